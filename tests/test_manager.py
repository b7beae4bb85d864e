"""Tests for the tracer provider wiring."""

from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from basalt.config import BasaltConfig
from basalt.observability.attributes import BasaltSpanAttributes as Attrs
from basalt.observability.context import ObservationContext, with_merged_context
from basalt.observability.exporter import NoOpExporter, create_exporter_for_config
from basalt.observability.manager import TelemetryManager


def _manager(**config_overrides):
    config = BasaltConfig(api_key="sk-test-0123456789", environment="test", **config_overrides)
    exporter = InMemorySpanExporter()
    return TelemetryManager(config, exporter=exporter, register_global=False), exporter


class TestTelemetryManager:
    """Provider, processors and sampling."""

    def test_spans_exported_with_context(self):
        manager, exporter = _manager()
        tracer = manager.get_tracer()

        def work():
            with tracer.start_as_current_span("work"):
                pass

        with_merged_context(ObservationContext(user={"id": "u1"}), work)
        assert manager.force_flush() is True

        (span,) = exporter.get_finished_spans()
        assert span.attributes[Attrs.USER_ID] == "u1"
        assert span.resource.attributes["deployment.environment"] == "test"
        manager.shutdown()

    def test_sample_rate_zero_drops_traces(self):
        manager, exporter = _manager(sample_rate=0.0)

        with manager.get_tracer().start_as_current_span("dropped"):
            pass
        manager.force_flush()

        assert exporter.get_finished_spans() == ()
        manager.shutdown()

    def test_release_sets_service_version(self):
        manager, _ = _manager(release="1.2.3")
        assert manager.provider.resource.attributes["service.version"] == "1.2.3"
        manager.shutdown()

    def test_shutdown_is_idempotent(self):
        manager, _ = _manager()
        manager.shutdown()
        manager.shutdown()
        assert manager.force_flush() is True


class TestExporterSelection:
    """Exporter derived from configuration."""

    def test_tracing_disabled(self):
        config = BasaltConfig(api_key="sk-test-0123456789", tracing_enabled=False)
        assert isinstance(create_exporter_for_config(config), NoOpExporter)

    def test_tracing_enabled(self):
        config = BasaltConfig(api_key="sk-test-0123456789")
        assert isinstance(create_exporter_for_config(config), OTLPSpanExporter)
