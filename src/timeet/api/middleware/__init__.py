"""API middleware package."""

from src.timeet.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
