"""
Tracer provider wiring.

``TelemetryManager`` owns the OpenTelemetry ``TracerProvider`` used by a
Basalt client. Processors run in registration order: the context stamper
first, so attributes are in place before the batch processor hands spans
to the exporter.
"""

import logging
from typing import Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON, TraceIdRatioBased
from opentelemetry.trace import Tracer

from ..config import BasaltConfig
from ..version import SDK_NAME, __version__
from .attributes import BasaltSpanAttributes as Attrs
from .exporter import create_exporter_for_config
from .processor import BasaltContextProcessor

logger = logging.getLogger(__name__)


class TelemetryManager:
    """
    Builds and owns the tracer provider for one client.

    Args:
        config: Basalt configuration
        exporter: Span exporter override (default: derived from ``config``)
        register_global: Install the provider as the global tracer provider,
            so that ``basalt.observability`` helpers and third-party
            instrumentations use it
    """

    def __init__(
        self,
        config: BasaltConfig,
        *,
        exporter: Optional[SpanExporter] = None,
        register_global: bool = True,
    ):
        self.config = config
        self._shutdown = False

        resource_attrs = {
            "service.name": SDK_NAME,
            Attrs.SDK_NAME: SDK_NAME,
            Attrs.SDK_VERSION: __version__,
            "deployment.environment": config.environment,
        }
        if config.release:
            resource_attrs["service.version"] = config.release
        resource = Resource.create(resource_attrs)

        # Trace-level sampling keeps whole traces together
        if config.sample_rate < 1.0:
            sampler = TraceIdRatioBased(config.sample_rate)
        else:
            sampler = ALWAYS_ON

        self._provider = TracerProvider(resource=resource, sampler=sampler)
        self._context_processor = BasaltContextProcessor()
        self._batch_processor = BatchSpanProcessor(
            exporter or create_exporter_for_config(config),
            max_queue_size=config.max_queue_size,
            schedule_delay_millis=int(config.flush_interval * 1000),
            max_export_batch_size=min(config.flush_at, config.max_queue_size),
            export_timeout_millis=config.export_timeout,
        )
        self._provider.add_span_processor(self._context_processor)
        self._provider.add_span_processor(self._batch_processor)

        if register_global:
            trace.set_tracer_provider(self._provider)
            if trace.get_tracer_provider() is not self._provider:
                logger.warning(
                    "A global tracer provider was already installed; Basalt spans created through "
                    "basalt.observability will go to that provider instead. Add "
                    "BasaltContextProcessor to it to keep context stamping."
                )

    @property
    def provider(self) -> TracerProvider:
        return self._provider

    def get_tracer(self, name: str = SDK_NAME) -> Tracer:
        """Get a tracer bound to this manager's provider."""
        return self._provider.get_tracer(name, __version__)

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        """
        Export all pending spans.

        Returns:
            True if successful, False otherwise
        """
        if self._shutdown:
            return True
        return self._provider.force_flush(timeout_millis)

    def shutdown(self) -> None:
        """Flush and shut down the provider. Calling it again has no effect."""
        if self._shutdown:
            return
        self._shutdown = True
        self._provider.shutdown()
