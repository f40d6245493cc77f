"""API middleware package."""

from src.capacity.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
