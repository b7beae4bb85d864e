"""
Span exporters for the Basalt backend.

Spans go to the Basalt OTLP/HTTP endpoint with the same authentication
headers as API requests. With tracing disabled, spans are discarded.
"""

from typing import Sequence

from opentelemetry.exporter.otlp.proto.http import Compression
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

from ..config import BasaltConfig


def create_basalt_exporter(config: BasaltConfig) -> OTLPSpanExporter:
    """OTLP/HTTP exporter for ``config.get_otlp_endpoint()``, gzip-compressed."""
    return OTLPSpanExporter(
        endpoint=config.get_otlp_endpoint(),
        headers=config.get_headers(),
        timeout=config.timeout,
        compression=Compression.Gzip,
    )


class NoOpExporter(SpanExporter):
    """
    Exporter that accepts and drops every span.

    Spans are still created and stamped, so context propagation behaves the
    same whether or not tracing is exported.
    """

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        return None

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True


def create_exporter_for_config(config: BasaltConfig) -> SpanExporter:
    """Exporter matching ``config``: OTLP, or ``NoOpExporter`` when tracing is disabled."""
    if config.tracing_enabled:
        return create_basalt_exporter(config)
    return NoOpExporter()
