"""
HTTP Client

Async HTTP client for Basalt API communication.
"""

import logging
import re
import time
from typing import Any, Dict, Optional, Type, TypeVar

import backoff
import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..observability.attributes import BasaltSpanAttributes
from ..observability.span import SpanHandle
from ..observability.spans import span_scope
from ..version import SDK_NAME
from .errors import (
    BasaltError,
    ConnectionError,
    ResponseDecodeError,
    ServerError,
    raise_for_status,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_CLIENT_FROM_PATH = re.compile(r"^/([^/?]+)")


def api_client_name(path: str) -> str:
    """Name of the API client a path belongs to (``/prompts/x`` -> ``prompts``)."""
    match = _CLIENT_FROM_PATH.match(path)
    return match.group(1) if match else "unknown"


class AsyncHTTPClient:
    """
    Async HTTP client for Basalt API.

    Wraps httpx.AsyncClient with Basalt authentication, retries and error
    mapping. Each request is recorded as a ``basalt.api.request`` span.
    """

    def __init__(
        self,
        config,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_factor: float = 1.0,
    ):
        """
        Initialize HTTP client.

        Args:
            config: BasaltConfig instance
            transport: Optional httpx transport (used by tests)
            retry_factor: Multiplier for the exponential retry delay
        """
        self._config = config
        self._transport = transport
        self._retry_factor = retry_factor
        self._session: Optional[httpx.AsyncClient] = None

    def _get_session(self) -> httpx.AsyncClient:
        """Get or create httpx session."""
        if self._session is None:
            self._session = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=self._config.timeout,
                headers=self._config.get_headers(),
                transport=self._transport,
            )
        return self._session

    def _api_key_prefix(self) -> Optional[str]:
        api_key = self._config.api_key
        return api_key[:8] if api_key else None

    async def _send_once(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        json: Optional[Dict[str, Any]],
    ) -> httpx.Response:
        session = self._get_session()
        try:
            response = await session.request(method, path, params=params, json=json)
        except httpx.TransportError as e:
            logger.debug(f"{method} {path} failed: {e}")
            raise ConnectionError.from_exception(e, self._config.base_url) from e

        if response.status_code >= 500:
            raise ServerError.from_response(response.status_code, _decode_body(response))
        return response

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        json: Optional[Dict[str, Any]],
    ) -> httpx.Response:
        retrying = backoff.on_exception(
            backoff.expo,
            (ConnectionError, ServerError),
            max_tries=self._config.max_retries + 1,
            factor=self._retry_factor,
            logger=logger,
        )(self._send_once)
        return await retrying(method, path, params, json)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        operation: Optional[str] = None,
        resource_type: Optional[str] = None,
        identifier: Optional[str] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Args:
            method: HTTP method
            path: API path (e.g., "/prompts/greeting")
            params: Optional query parameters (``None`` values are dropped)
            json: Optional request body
            operation: Operation name recorded on the request span
            resource_type: Resource type used for 404 messages
            identifier: Resource identifier used for 404 messages

        Returns:
            Response JSON

        Raises:
            BasaltError: Mapped transport or status error
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        method = method.upper()
        attributes = {
            BasaltSpanAttributes.API_CLIENT: api_client_name(path),
            BasaltSpanAttributes.API_OPERATION: operation or f"{method} {path}",
            BasaltSpanAttributes.INTERNAL_API: True,
            BasaltSpanAttributes.HTTP_METHOD: method,
            BasaltSpanAttributes.HTTP_URL: f"{self._config.base_url.rstrip('/')}{path}",
        }

        with span_scope(SDK_NAME, "basalt.api.request", attributes, activate=True) as span:
            started = time.perf_counter()
            response = None
            try:
                response = await self._send(method, path, params, json)
                _record_timing(span, started)
                span.set_attribute(BasaltSpanAttributes.HTTP_STATUS_CODE, response.status_code)

                raise_for_status(
                    response.status_code,
                    _decode_body(response),
                    api_key_prefix=self._api_key_prefix(),
                    resource_type=resource_type,
                    identifier=identifier,
                )

                if not response.content:
                    body = None
                else:
                    try:
                        body = response.json()
                    except ValueError as e:
                        raise ResponseDecodeError.for_payload(
                            operation or path, e, response.text
                        ) from e
            except BasaltError as e:
                if response is None:
                    _record_timing(span, started)
                _record_failure(span, e)
                raise

            span.set_attribute(BasaltSpanAttributes.REQUEST_SUCCESS, True)
            return body

    async def get(
        self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs: Any
    ) -> Any:
        """Send GET request."""
        return await self.request("GET", path, params=params, **kwargs)

    async def post(
        self, path: str, json: Optional[Dict[str, Any]] = None, **kwargs: Any
    ) -> Any:
        """Send POST request."""
        return await self.request("POST", path, json=json, **kwargs)

    async def close(self):
        """Close HTTP session."""
        if self._session:
            await self._session.aclose()
            self._session = None


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _record_timing(span: SpanHandle, started: float) -> None:
    elapsed_ms = (time.perf_counter() - started) * 1000
    span.set_attributes({
        BasaltSpanAttributes.REQUEST_DURATION_MS: elapsed_ms,
        BasaltSpanAttributes.HTTP_RESPONSE_TIME_MS: elapsed_ms,
    })


def _record_failure(span: SpanHandle, error: BasaltError) -> None:
    attributes: Dict[str, Any] = {
        BasaltSpanAttributes.REQUEST_SUCCESS: False,
        BasaltSpanAttributes.ERROR_TYPE: type(error).__name__,
        BasaltSpanAttributes.ERROR_MESSAGE: error.message,
    }
    if error.status_code is not None:
        attributes[BasaltSpanAttributes.ERROR_CODE] = error.status_code
        attributes[BasaltSpanAttributes.HTTP_STATUS_CODE] = error.status_code
    span.set_attributes(attributes)


def decode_response(model: Type[ModelT], body: Any, operation: str) -> ModelT:
    """
    Validate a response body against ``model``.

    Raises:
        ResponseDecodeError: The body does not have the expected shape
    """
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        raise ResponseDecodeError.for_payload(operation, e, body) from e
