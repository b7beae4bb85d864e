"""
Tests for the Basalt client.

Covers configuration resolution, wiring of the resource SDKs and lifecycle.
"""

import json
from unittest.mock import patch

import httpx
import pytest
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from basalt import Basalt, BasaltConfig
from basalt.datasets import DatasetSDK
from basalt.monitor import MonitorSDK
from basalt.observability.instrumentation import InstrumentationStatus
from basalt.prompts import PromptSDK


def _client(handler=None, **kwargs):
    handler = handler or (lambda request: httpx.Response(200, json={}))
    return Basalt(
        config=kwargs.pop("config", None)
        or BasaltConfig(api_key="sk-test-0123456789", max_retries=0),
        exporter=InMemorySpanExporter(),
        transport=httpx.MockTransport(handler),
        register_global=False,
        **kwargs,
    )


class TestBasaltClient:
    """Client construction."""

    def test_exposes_resource_sdks(self):
        client = _client()

        assert isinstance(client.prompts, PromptSDK)
        assert isinstance(client.datasets, DatasetSDK)
        assert isinstance(client.monitor, MonitorSDK)
        assert client.tracer is not None
        client.shutdown()

    def test_api_key_from_environment(self):
        with patch.dict("os.environ", {"BASALT_API_KEY": "sk-env-0123456789", "BASALT_ENVIRONMENT": "staging"}):
            client = Basalt(exporter=InMemorySpanExporter(), register_global=False)

        assert client.config.api_key == "sk-env-0123456789"
        assert client.config.environment == "staging"
        client.shutdown()

    def test_explicit_api_key_wins(self):
        with patch.dict("os.environ", {"BASALT_API_KEY": "sk-env-0123456789"}):
            client = Basalt("sk-explicit-0123456789", exporter=InMemorySpanExporter(), register_global=False)

        assert client.config.api_key == "sk-explicit-0123456789"
        client.shutdown()

    def test_missing_api_key(self):
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError, match="BASALT_API_KEY"):
                Basalt(register_global=False)

    def test_repr_hides_api_key(self):
        client = _client()
        assert "sk-test" not in repr(client)
        client.shutdown()

    def test_instrument_missing_packages(self):
        config = BasaltConfig(api_key="sk-test-0123456789", instrument=("openai",))

        with patch(
            "basalt.observability.instrumentation.importlib.import_module",
            side_effect=ImportError("no module"),
        ):
            client = _client(config=config)

        assert client.instrumentation.get_status("openai") == {
            "openai": InstrumentationStatus.NOT_AVAILABLE
        }
        client.shutdown()


class TestBasaltLifecycle:
    """Requests through the client and closing it."""

    @pytest.mark.asyncio
    async def test_monitor_trace_sent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "trace-1"})

        async with _client(handler) as basalt:
            trace = basalt.monitor.create_trace("support-bot", input="Hi")
            trace.identify("user-1", name="Alice")
            await trace.complete(output="Hello Alice!")

        assert seen["path"] == "/monitor/trace"
        assert seen["body"]["featureSlug"] == "support-bot"
        assert seen["body"]["input"] == "Hi"
        assert seen["body"]["output"] == "Hello Alice!"
        assert seen["body"]["user"] == {"id": "user-1", "name": "Alice"}

    def test_create_trace_requires_slug(self):
        client = _client()
        with pytest.raises(ValueError):
            client.monitor.create_trace(" ")
        client.shutdown()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        client = _client()
        await client.close()
        await client.close()

    @pytest.mark.asyncio
    async def test_close_unregisters_exit_handler(self):
        with patch("basalt.client.atexit") as atexit:
            client = _client()
            atexit.register.assert_called_once_with(client._cleanup)

            await client.close()
            await client.close()

        atexit.unregister.assert_called_once_with(client._cleanup)

    def test_flush_after_shutdown(self):
        client = _client()
        client.shutdown()
        assert client.flush() is True
