"""Tests for provider auto-instrumentation."""

import logging
import os
from types import SimpleNamespace
from unittest.mock import patch

from basalt.observability.instrumentation import (
    CONTENT_CAPTURE_ENV,
    DEFAULT_PROVIDERS,
    InstrumentationRegistry,
    InstrumentationStatus,
    ProviderInstrumentation,
)

FAKE_PROVIDER = ProviderInstrumentation(
    name="fake",
    module="fake_instrumentation",
    instrumentor="FakeInstrumentor",
    package="fake-instrumentation",
)


class FakeInstrumentor:
    instances = []

    def __init__(self):
        self.instrument_kwargs = None
        self.uninstrumented = False
        FakeInstrumentor.instances.append(self)

    def instrument(self, **kwargs):
        self.instrument_kwargs = kwargs

    def uninstrument(self):
        self.uninstrumented = True


class BrokenInstrumentor:
    def instrument(self, **kwargs):
        raise RuntimeError("incompatible library version")


def _fake_module(instrumentor=FakeInstrumentor):
    return SimpleNamespace(FakeInstrumentor=instrumentor)


def _registry(**kwargs):
    registry = InstrumentationRegistry(**kwargs)
    registry.register_provider(FAKE_PROVIDER)
    return registry


class TestInstrumentationRegistry:
    """Registry behaviour with present, missing and failing instrumentors."""

    def test_default_providers(self):
        registry = InstrumentationRegistry()
        assert registry.list_providers() == [p.name for p in DEFAULT_PROVIDERS]
        assert set(registry.get_status().values()) == {InstrumentationStatus.AVAILABLE}

    def test_missing_package(self, caplog):
        registry = InstrumentationRegistry(
            providers=[
                ProviderInstrumentation(
                    name="ghost",
                    module="basalt_tests_no_such_module",
                    instrumentor="GhostInstrumentor",
                    package="ghost-instrumentation",
                )
            ]
        )

        with caplog.at_level(logging.WARNING):
            status = registry.instrument_provider("ghost")

        assert status == InstrumentationStatus.NOT_AVAILABLE
        assert "pip install ghost-instrumentation" in caplog.text
        assert registry.get_status("ghost") == {"ghost": InstrumentationStatus.NOT_AVAILABLE}

    def test_unknown_provider(self):
        assert InstrumentationRegistry().instrument_provider("nope") == InstrumentationStatus.NOT_AVAILABLE

    def test_instrument_with_tracer_provider(self):
        provider = object()
        registry = _registry(tracer_provider=provider)

        with patch(
            "basalt.observability.instrumentation.importlib.import_module",
            return_value=_fake_module(),
        ):
            statuses = registry.instrument(["fake"])

        assert statuses == {"fake": InstrumentationStatus.INSTRUMENTED}
        assert FakeInstrumentor.instances[-1].instrument_kwargs == {"tracer_provider": provider}

    def test_instrument_is_idempotent(self):
        registry = _registry()

        with patch(
            "basalt.observability.instrumentation.importlib.import_module",
            return_value=_fake_module(),
        ) as import_module:
            registry.instrument_provider("fake")
            status = registry.instrument_provider("fake")

        assert status == InstrumentationStatus.INSTRUMENTED
        assert import_module.call_count == 1

    def test_instrumentor_failure(self, caplog):
        registry = _registry()

        with patch(
            "basalt.observability.instrumentation.importlib.import_module",
            return_value=_fake_module(BrokenInstrumentor),
        ):
            with caplog.at_level(logging.ERROR):
                status = registry.instrument_provider("fake")

        assert status == InstrumentationStatus.FAILED
        assert "incompatible library version" in caplog.text

    def test_uninstrument(self):
        registry = _registry()

        with patch(
            "basalt.observability.instrumentation.importlib.import_module",
            return_value=_fake_module(),
        ):
            registry.instrument_provider("fake")

        instrumentor = FakeInstrumentor.instances[-1]
        registry.uninstrument()

        assert instrumentor.uninstrumented is True
        assert registry.get_status("fake") == {"fake": InstrumentationStatus.AVAILABLE}

    def test_capture_content_overrides_env_until_uninstrument(self):
        registry = _registry()

        with patch.dict(os.environ, {CONTENT_CAPTURE_ENV: "true"}):
            with patch(
                "basalt.observability.instrumentation.importlib.import_module",
                return_value=_fake_module(),
            ):
                registry.instrument(["fake"], capture_content=False)

            assert os.environ[CONTENT_CAPTURE_ENV] == "false"

            registry.uninstrument()
            assert os.environ[CONTENT_CAPTURE_ENV] == "true"

    def test_capture_content_env_removed_when_previously_unset(self):
        registry = _registry()

        with patch.dict(os.environ, {}, clear=True):
            with patch(
                "basalt.observability.instrumentation.importlib.import_module",
                return_value=_fake_module(),
            ):
                registry.instrument(["fake"])

            assert os.environ[CONTENT_CAPTURE_ENV] == "true"

            registry.uninstrument()
            assert CONTENT_CAPTURE_ENV not in os.environ

    def test_no_providers_leaves_env_untouched(self):
        with patch.dict(os.environ, {}, clear=True):
            InstrumentationRegistry().instrument([], capture_content=False)
            assert CONTENT_CAPTURE_ENV not in os.environ
