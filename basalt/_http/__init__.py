"""
HTTP Client Module

Async HTTP client and error taxonomy for Basalt API communication.
"""

from .client import AsyncHTTPClient, decode_response
from .errors import (
    AuthenticationError,
    BadRequestError,
    BasaltError,
    ConnectionError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ResponseDecodeError,
    ServerError,
    ValidationError,
    raise_for_status,
)

__all__ = [
    "AsyncHTTPClient",
    "decode_response",
    "BasaltError",
    "AuthenticationError",
    "ForbiddenError",
    "ConnectionError",
    "BadRequestError",
    "ValidationError",
    "RateLimitError",
    "NotFoundError",
    "ServerError",
    "ResponseDecodeError",
    "raise_for_status",
]
