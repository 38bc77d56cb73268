"""Concurrent HTTP health-check engine."""

__all__ = ["__version__"]

#: Semantic version of the package.
__version__ = "0.1.0"
