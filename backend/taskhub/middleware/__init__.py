"""Middleware package."""

from taskhub.middleware.logging import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]
