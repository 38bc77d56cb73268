"""Single HTTP GET probe producing a Status."""

from __future__ import annotations

import asyncio
import http
import ssl
import time

import httpx

from pulsecheck import __version__
from pulsecheck.models import ErrorType, Status

DEFAULT_SCHEME = "http://"
USER_AGENT = f"pulsecheck/{__version__} (+monitoring)"

CONNECT_TIMEOUT_S = 3.0
KEEPALIVE_EXPIRY_S = 30.0
MAX_CONNECTIONS = 100
MAX_KEEPALIVE_CONNECTIONS = 10
MAX_REDIRECTS = 5
MAX_BODY_BYTES = 1 << 20
MAX_MESSAGE_LENGTH = 500


def normalize_url(url: str) -> str:
    """Prepend the default scheme when ``url`` has no http(s) prefix."""
    url = url.strip()
    lowered = url.lower()
    if lowered.startswith("http://") or lowered.startswith("https://"):
        return url
    return DEFAULT_SCHEME + url


def build_client(
    timeout_s: float, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """Create the pooled client shared by every probe."""
    tls_context = ssl.create_default_context()
    tls_context.minimum_version = ssl.TLSVersion.TLSv1_2

    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_s, connect=CONNECT_TIMEOUT_S, pool=CONNECT_TIMEOUT_S),
        limits=httpx.Limits(
            max_connections=MAX_CONNECTIONS,
            max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
            keepalive_expiry=KEEPALIVE_EXPIRY_S,
        ),
        verify=tls_context,
        follow_redirects=False,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
    )


def reason_phrase(code: int) -> str:
    """Return the standard reason phrase for ``code``."""
    try:
        return http.HTTPStatus(code).phrase
    except ValueError:
        return f"HTTP {code}"


def classify_error(exc: BaseException) -> ErrorType:
    """Map a transport-level exception to an ``ErrorType``."""
    if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
        return ErrorType.TIMEOUT
    if isinstance(exc, ssl.SSLError):
        return ErrorType.TLS
    if isinstance(exc, httpx.ConnectError):
        text = str(exc).lower()
        if "name or service not known" in text or "nodename nor servname" in text:
            return ErrorType.DNS
        if "getaddrinfo" in text or "temporary failure in name resolution" in text:
            return ErrorType.DNS
        if "ssl" in text or "certificate" in text:
            return ErrorType.TLS
        return ErrorType.CONNECT
    return ErrorType.UNKNOWN


def failed_status(
    url: str,
    error_type: ErrorType,
    message: str,
    started: float,
    monitor_id: int = 0,
) -> Status:
    """Build an unavailable Status for a failure below HTTP."""
    return Status(
        monitor_id=monitor_id,
        url=url,
        available=False,
        http_status=0,
        error_type=error_type,
        error_message=message[:MAX_MESSAGE_LENGTH] or error_type.value,
        latency_ms=elapsed_ms(started),
    )


def elapsed_ms(started: float) -> float:
    return max((time.monotonic() - started) * 1000, 0.0)


async def _drain(response: httpx.Response) -> None:
    read = 0
    async for chunk in response.aiter_bytes():
        read += len(chunk)
        if read >= MAX_BODY_BYTES:
            break


async def _send(client: httpx.AsyncClient, url: str) -> httpx.Response:
    request = client.build_request("GET", url)
    response = await client.send(request, stream=True)
    hops = 0
    while response.is_redirect and response.next_request is not None and hops < MAX_REDIRECTS:
        next_request = response.next_request
        await response.aclose()
        response = await client.send(next_request, stream=True)
        hops += 1
    return response


async def probe(
    client: httpx.AsyncClient,
    url: str,
    timeout_s: float,
    monitor_id: int = 0,
) -> Status:
    """Perform one GET against ``url`` and describe the outcome.

    Network and HTTP failures are encoded in the returned Status. Only
    ``asyncio.CancelledError`` escapes, so task cancellation keeps working.
    """
    url = normalize_url(url)
    started = time.monotonic()

    try:
        async with asyncio.timeout(timeout_s):
            response = await _send(client, url)
            try:
                await _drain(response)
            finally:
                await response.aclose()
    except TimeoutError:
        return failed_status(
            url,
            ErrorType.TIMEOUT,
            f"timeout: no complete response within {timeout_s:g}s (deadline exceeded)",
            started,
            monitor_id,
        )
    except Exception as e:
        message = str(e) or type(e).__name__
        return failed_status(url, classify_error(e), message, started, monitor_id)

    code = response.status_code
    available = 200 <= code < 400
    return Status(
        monitor_id=monitor_id,
        url=url,
        available=available,
        http_status=code,
        error_type=None if available else ErrorType.HTTP,
        error_message="" if available else reason_phrase(code),
        latency_ms=elapsed_ms(started),
    )
