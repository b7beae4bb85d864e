"""
Basalt SDK Error Classes

Every error raised by the API client derives from BasaltError. Errors carry
a short message, numbered "To fix" steps, the decoded response body in
``details`` and the HTTP status code when the server answered.

Subclasses describe themselves declaratively (``status``, ``title``,
``hints``); ``raise_for_status`` picks the class from the status code.
"""

from typing import Any, Dict, Optional, Sequence, Type


def error_message(response_body: Any, default: str) -> str:
    """
    Human-readable message from a response body of any shape.

    Understands ``{"error": "text"}``, ``{"error": {"message": "text"}}`` and
    ``{"message": "text"}``. Lists, scalars and None yield ``default``.
    """
    if not isinstance(response_body, dict):
        return default

    for key in ("error", "message"):
        value = response_body.get(key)
        if isinstance(value, dict):
            value = value.get("message")
        if isinstance(value, str) and value:
            return value
    return default


def body_value(response_body: Any, key: str, default: Any = None) -> Any:
    """``response_body[key]`` when the body is a dict, else ``default``."""
    if isinstance(response_body, dict):
        return response_body.get(key, default)
    return default


def _numbered(steps: Sequence[str]) -> Optional[str]:
    if not steps:
        return None
    return "\n".join(f"{i}. {step}" for i, step in enumerate(steps, 1))


class BasaltError(Exception):
    """
    Base error for all Basalt SDK errors.

    Attributes:
        message: Short description, without the hint
        hint: Numbered steps to resolve the problem
        original_error: Exception that caused this one
        details: Extra context (response body, identifiers, ...)
        status_code: HTTP status code when the server answered
    """

    status: Optional[int] = None
    title: str = "Request failed"
    hints: Sequence[str] = ()

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        original_error: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.hint = hint
        self.original_error = original_error
        self.details = details or {}
        self.status_code = status_code if status_code is not None else self.status
        super().__init__(message if not hint else f"{message}\n\nTo fix:\n{hint}")

    @classmethod
    def from_response(
        cls,
        response_body: Any = None,
        *,
        status_code: Optional[int] = None,
        **details: Any,
    ) -> "BasaltError":
        """Build the error from a decoded response body."""
        return cls(
            f"{cls.title}: {error_message(response_body, default='no details')}",
            hint=_numbered(cls.hints),
            details={"response": response_body, **details},
            status_code=status_code,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class BadRequestError(BasaltError):
    """The API rejected the request parameters (HTTP 400)."""

    status = 400
    title = "Bad request"


class AuthenticationError(BasaltError):
    """The API key is missing, invalid or revoked (HTTP 401)."""

    status = 401
    title = "Authentication failed"
    hints = (
        "Check your API key is set: export BASALT_API_KEY=sk-...",
        "Verify the key has not been revoked in the Basalt dashboard",
        "If using a custom base URL, verify it: export BASALT_BASE_URL=https://api.getbasalt.ai",
    )

    @classmethod
    def from_response(
        cls,
        status_code: int,
        response_body: Any = None,
        api_key_prefix: Optional[str] = None,
    ) -> "AuthenticationError":
        key_info = f" (key prefix: {api_key_prefix}...)" if api_key_prefix else ""
        reason = error_message(response_body, default="unknown reason")
        return cls(
            f"{cls.title} (HTTP {status_code}){key_info}: {reason}",
            hint=_numbered(cls.hints),
            details={"response": response_body},
            status_code=status_code,
        )


class ForbiddenError(BasaltError):
    """The API key is valid but cannot access the resource (HTTP 403)."""

    status = 403
    title = "Access denied"
    hints = ("Check that the API key belongs to the workspace owning this resource",)


class NotFoundError(BasaltError):
    """The requested resource does not exist (HTTP 404)."""

    status = 404
    title = "Resource not found"
    hints = ("Check the resource identifier",)

    @classmethod
    def for_resource(cls, resource_type: str, identifier: str) -> "NotFoundError":
        """Error naming the missing prompt, dataset, ..."""
        return cls(
            f"{resource_type.capitalize()} not found: '{identifier}'",
            hint=_numbered((
                f"Verify the {resource_type.lower()} exists in the Basalt dashboard",
                f"Check for typos in the identifier: '{identifier}'",
                "For prompts, check that the requested tag or version is published",
            )),
            details={"resource_type": resource_type, "identifier": identifier},
        )


class ValidationError(BasaltError):
    """The request body failed server-side validation (HTTP 422)."""

    status = 422
    title = "Validation error"
    hints = (
        "Check required fields are provided",
        "Verify values have the expected types",
    )

    @classmethod
    def from_response(cls, response_body: Any = None, field: Optional[str] = None) -> "ValidationError":
        field_info = f" (field: {field})" if field else ""
        return cls(
            f"{cls.title}{field_info}: {error_message(response_body, default='invalid request')}",
            hint=_numbered(cls.hints),
            details={"response": response_body, "field": field},
        )


class RateLimitError(BasaltError):
    """Too many requests (HTTP 429)."""

    status = 429
    title = "Rate limit exceeded"

    @classmethod
    def from_response(cls, response_body: Any = None, retry_after: Optional[int] = None) -> "RateLimitError":
        wait_info = f" (retry after {retry_after}s)" if retry_after else ""
        return cls(
            f"{cls.title}{wait_info}",
            hint=_numbered((
                f"Wait before retrying{wait_info or ' (check the Retry-After header)'}",
                "Keep caching enabled so repeated reads are served locally",
            )),
            details={"response": response_body, "retry_after": retry_after},
        )


class ServerError(BasaltError):
    """The API failed to handle the request (HTTP 5xx)."""

    status = 500
    title = "Server error"
    hints = (
        "Retry the request after a brief delay",
        "If it persists, check the Basalt status page",
    )

    @classmethod
    def from_response(cls, status_code: int, response_body: Any = None) -> "ServerError":
        return cls(
            f"{cls.title} (HTTP {status_code})",
            hint=_numbered(cls.hints),
            details={"response": response_body},
            status_code=status_code,
        )


class ConnectionError(BasaltError):
    """
    The Basalt API could not be reached or the request timed out.

    Shadows the builtin of the same name; import it explicitly.
    """

    title = "Failed to connect to Basalt API"

    @classmethod
    def from_exception(cls, original: Exception, base_url: Optional[str] = None) -> "ConnectionError":
        url_info = f" ({base_url})" if base_url else ""
        return cls(
            f"{cls.title}{url_info}: {original}",
            hint=_numbered((
                f"Check network connectivity to the Basalt API{url_info}",
                "Verify the base URL: export BASALT_BASE_URL=https://api.getbasalt.ai",
                "Raise the timeout on slow networks: export BASALT_TIMEOUT=60",
            )),
            original_error=original,
            details={"base_url": base_url},
        )


class ResponseDecodeError(BasaltError):
    """The API answered with a body that does not match the expected shape."""

    title = "Failed to decode response"

    @classmethod
    def for_payload(cls, operation: str, original: Exception, response_body: Any = None) -> "ResponseDecodeError":
        return cls(
            f"{operation}: {cls.title} ({original})",
            original_error=original,
            details={"response": response_body},
        )


_BY_STATUS: Dict[int, Type[BasaltError]] = {
    BadRequestError.status: BadRequestError,
    ForbiddenError.status: ForbiddenError,
    ValidationError.status: ValidationError,
}


def raise_for_status(
    status_code: int,
    response_body: Any = None,
    *,
    api_key_prefix: Optional[str] = None,
    resource_type: Optional[str] = None,
    identifier: Optional[str] = None,
) -> None:
    """
    Raise the error matching a non-2xx status code.

    Args:
        status_code: HTTP status code
        response_body: Decoded body, of any shape
        api_key_prefix: Shown in authentication errors
        resource_type: Named in 404 errors, with ``identifier``
        identifier: Identifier of the requested resource

    Raises:
        BasaltError: Subclass chosen from ``status_code``
    """
    if 200 <= status_code < 300:
        return

    if status_code == AuthenticationError.status:
        raise AuthenticationError.from_response(status_code, response_body, api_key_prefix)
    if status_code == NotFoundError.status:
        if resource_type and identifier:
            raise NotFoundError.for_resource(resource_type, identifier)
        raise NotFoundError.from_response(response_body)
    if status_code == RateLimitError.status:
        raise RateLimitError.from_response(response_body, body_value(response_body, "retry_after"))
    if status_code >= 500:
        raise ServerError.from_response(status_code, response_body)

    error_cls = _BY_STATUS.get(status_code)
    if error_cls is not None:
        raise error_cls.from_response(response_body)

    raise BasaltError(
        f"HTTP {status_code}: {error_message(response_body, default='Request failed')}",
        details={"response": response_body},
        status_code=status_code,
    )
