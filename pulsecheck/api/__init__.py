"""HTTP API for probes, monitors and results."""

from .routes import router

__all__ = ["router"]
