"""Pytest configuration and fixtures for Basalt SDK tests."""

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from basalt.config import BasaltConfig
from basalt.observability.processor import BasaltContextProcessor

# The global tracer provider can only be set once per process.
_EXPORTER = InMemorySpanExporter()
_PROVIDER = TracerProvider()
_PROVIDER.add_span_processor(BasaltContextProcessor())
_PROVIDER.add_span_processor(SimpleSpanProcessor(_EXPORTER))
trace.set_tracer_provider(_PROVIDER)


@pytest.fixture
def span_exporter():
    """In-memory exporter receiving every span finished during the test."""
    _EXPORTER.clear()
    yield _EXPORTER
    _EXPORTER.clear()


@pytest.fixture
def finished_spans(span_exporter):
    """Callable returning finished spans keyed by name."""

    def get():
        return {span.name: span for span in span_exporter.get_finished_spans()}

    return get


@pytest.fixture
def test_config():
    """Create a test configuration."""
    return BasaltConfig(
        api_key="sk-test-0123456789",
        base_url="https://api.test.getbasalt.ai",
        environment="test",
        max_retries=0,
    )


@pytest.fixture
def fake_clock():
    """Controllable clock in seconds."""

    class FakeClock:
        def __init__(self):
            self.now = 1_000.0

        def __call__(self) -> float:
            return self.now

        def advance(self, seconds: float) -> None:
            self.now += seconds

    return FakeClock()
