"""
Monitor SDK

Creates traces and sends them to the Basalt monitoring API.
"""

import logging
from typing import Any, Optional

from .._http import AsyncHTTPClient
from .logs import Generation, Span
from .trace import Trace

logger = logging.getLogger(__name__)


class MonitorSDK:
    """Async monitoring client."""

    def __init__(self, http_client: AsyncHTTPClient):
        self._http = http_client

    def create_trace(self, feature_slug: str, **params: Any) -> Trace:
        """
        Create a trace bound to this client.

        Args:
            feature_slug: Slug of the monitored feature
            **params: Initial trace fields (input, user, metadata, ...)
        """
        if not isinstance(feature_slug, str) or not feature_slug.strip():
            raise ValueError("feature_slug is required to create a trace")
        return Trace(feature_slug, self.send_trace, **params)

    async def send_trace(self, trace: Trace) -> Optional[str]:
        """Send ``trace`` and return the id assigned by the server."""
        body = await self._http.post(
            "/monitor/trace",
            json=trace.to_payload(),
            operation="Send Trace",
        )
        if isinstance(body, dict):
            return body.get("id")
        return None

    def create_generation(self, trace: Trace, name: Optional[str] = None, **params: Any) -> Generation:
        """
        Create a generation on ``trace``.

        Args:
            trace: Trace the generation belongs to
            name: Log name; defaults to ``prompt["slug"]`` when a prompt is given
            **params: Generation fields (prompt, input, parent, input_tokens, ...)
        """
        return trace.create_generation(name, **params)

    def create_span(self, trace: Trace, name: str, **params: Any) -> Span:
        """Create a span on ``trace``; pass ``parent`` to nest it."""
        return trace.create_span(name, **params)
