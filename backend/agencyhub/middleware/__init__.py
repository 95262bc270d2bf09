"""Middleware package."""

from agencyhub.middleware.logging import LoggingMiddleware
from agencyhub.middleware.request_id import RequestIDMiddleware

__all__ = ["LoggingMiddleware", "RequestIDMiddleware"]
