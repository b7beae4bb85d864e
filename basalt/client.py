"""
Basalt client.

Wires configuration, the HTTP transport, the resource caches, telemetry and
provider instrumentation together behind one object.
"""

import atexit
import logging
from typing import Optional

import httpx
from opentelemetry.sdk.trace.export import SpanExporter
from opentelemetry.trace import Tracer

from ._http import AsyncHTTPClient
from ._utils import MemoryCache
from .config import BasaltConfig
from .datasets import DatasetSDK
from .monitor import MonitorSDK
from .observability.instrumentation import InstrumentationRegistry
from .observability.manager import TelemetryManager
from .prompts import PromptSDK
from .version import SDK_NAME

logger = logging.getLogger(__name__)


class Basalt:
    """
    Main Basalt client.

    Example:
        >>> from basalt import Basalt
        >>> async with Basalt(api_key="sk-...") as basalt:
        ...     prompt = await basalt.prompts.get("greeting", variables={"name": "Alice"})
        ...     dataset = await basalt.datasets.get("support-tickets")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        config: Optional[BasaltConfig] = None,
        exporter: Optional[SpanExporter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        register_global: bool = True,
        **overrides,
    ):
        """
        Initialize Basalt client.

        Args:
            api_key: Basalt API key. Falls back to BASALT_API_KEY.
            config: Pre-built configuration (takes precedence over everything else)
            exporter: Span exporter override
            transport: httpx transport override
            register_global: Install the tracer provider globally
            **overrides: Configuration fields, see ``BasaltConfig``

        Raises:
            ValueError: If configuration is invalid
        """
        if config is None:
            if api_key is not None:
                overrides["api_key"] = api_key
            config = BasaltConfig.from_env(**overrides)
        self.config = config

        if config.debug:
            logging.getLogger("basalt").setLevel(logging.DEBUG)

        self._http = AsyncHTTPClient(config, transport=transport)

        self.prompts = PromptSDK(
            self._http,
            config,
            query_cache=MemoryCache(),
            fallback_cache=MemoryCache(),
        )
        self.datasets = DatasetSDK(
            self._http,
            config,
            query_cache=MemoryCache(),
            fallback_cache=MemoryCache(),
        )
        self.monitor = MonitorSDK(self._http)

        self._telemetry = TelemetryManager(
            config, exporter=exporter, register_global=register_global
        )
        self._instrumentation = InstrumentationRegistry(
            tracer_provider=self._telemetry.provider
        )
        if config.instrument:
            self._instrumentation.instrument(
                config.instrument, capture_content=config.capture_content
            )

        self._closed = False
        atexit.register(self._cleanup)

    @property
    def tracer(self) -> Tracer:
        """Tracer bound to this client's tracer provider."""
        return self._telemetry.get_tracer(SDK_NAME)

    @property
    def telemetry(self) -> TelemetryManager:
        return self._telemetry

    @property
    def instrumentation(self) -> InstrumentationRegistry:
        return self._instrumentation

    def flush(self, timeout_seconds: int = 30) -> bool:
        """
        Export all pending spans.

        Returns:
            True if successful, False otherwise
        """
        return self._telemetry.force_flush(timeout_seconds * 1000)

    def shutdown(self) -> None:
        """Remove instrumentation and flush and stop telemetry."""
        self._instrumentation.uninstrument()
        self._telemetry.shutdown()

    async def close(self) -> None:
        """Close the HTTP session and shut down telemetry."""
        if self._closed:
            return
        self._closed = True
        atexit.unregister(self._cleanup)
        await self._http.close()
        self.shutdown()

    def _cleanup(self):
        """Cleanup handler called on process exit."""
        if not self._closed:
            self.shutdown()

    async def __aenter__(self) -> "Basalt":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self) -> str:
        return f"Basalt(environment='{self.config.environment}', tracing_enabled={self.config.tracing_enabled})"
