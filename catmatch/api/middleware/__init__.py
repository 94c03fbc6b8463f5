"""API middleware."""

from catmatch.api.middleware.error_handler import ErrorHandlerMiddleware
from catmatch.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware", "ErrorHandlerMiddleware"]
