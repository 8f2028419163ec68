"""rup: a minimal static-content HTTP server."""

__version__ = "0.3.0"
