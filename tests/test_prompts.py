"""Tests for the prompts SDK."""

import logging

import httpx
import pytest

from basalt._http import AsyncHTTPClient, ConnectionError, NotFoundError
from basalt._utils import MemoryCache
from basalt.config import BasaltConfig
from basalt.observability.attributes import BasaltSpanAttributes as Attrs
from basalt.prompts import PromptSDK
from basalt.prompts.client import prompt_cache_key

PROMPT_BODY = {
    "warning": None,
    "prompt": {
        "text": "Hello {{name}}, welcome to {{product}}",
        "systemText": "You help {{name}}",
        "version": "3",
        "model": {
            "provider": "open-ai",
            "model": "gpt-4o",
            "version": "latest",
            "parameters": {"temperature": 0.2, "maxLength": 512},
        },
    },
}


class FakeApi:
    """MockTransport handler answering from a queue of responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def _sdk(config, api, clock=None):
    http = AsyncHTTPClient(config, transport=httpx.MockTransport(api), retry_factor=0)
    return PromptSDK(
        http,
        config,
        query_cache=MemoryCache(clock=clock) if clock else MemoryCache(),
        fallback_cache=MemoryCache(clock=clock) if clock else MemoryCache(),
    )


def _down(request=None):
    return httpx.ConnectError("connection refused")


def test_prompt_cache_key():
    assert prompt_cache_key("greeting") == "greeting"
    assert prompt_cache_key("greeting", tag="prod") == "greeting|tag:prod"
    assert prompt_cache_key("greeting", tag="prod", version="2") == "greeting|tag:prod|version:2"
    assert prompt_cache_key("greeting", version="2") == "greeting|version:2"


class TestGetPrompt:
    """Fetching and rendering prompts."""

    @pytest.mark.asyncio
    async def test_renders_variables(self, test_config, finished_spans):
        api = FakeApi(httpx.Response(200, json=PROMPT_BODY))
        prompts = _sdk(test_config, api)

        prompt = await prompts.get("welcome", tag="prod", variables={"name": "Ada", "product": "Basalt"})

        assert prompt.text == "Hello Ada, welcome to Basalt"
        assert prompt.system_text == "You help Ada"
        assert prompt.slug == "welcome"
        assert prompt.tag == "prod"
        assert prompt.version == "3"
        assert prompt.model.parameters.max_length == 512
        assert prompt.from_cache is False
        assert dict(api.requests[0].url.params) == {"tag": "prod"}

        spans = finished_spans()
        span = spans["basalt.prompt.get"]
        assert span.attributes[Attrs.API_CLIENT] == "prompts"
        assert span.attributes[Attrs.PROMPT_SLUG] == "welcome"
        assert span.attributes[Attrs.PROMPT_TAG] == "prod"
        assert span.attributes[Attrs.PROMPT_VERSION] == "3"
        assert span.attributes[Attrs.PROMPT_MODEL_PROVIDER] == "open-ai"
        assert span.attributes[Attrs.CACHE_HIT] is False
        assert span.attributes[Attrs.CACHE_TYPE] == "none"
        assert spans["basalt.api.request"].parent.span_id == span.context.span_id

    @pytest.mark.asyncio
    async def test_missing_variables_warn(self, test_config, caplog):
        prompts = _sdk(test_config, FakeApi(httpx.Response(200, json=PROMPT_BODY)))

        with caplog.at_level(logging.WARNING):
            prompt = await prompts.get("welcome", variables={"name": "Ada"})

        assert prompt.text == "Hello Ada, welcome to {{product}}"
        assert "Some variables are missing in the prompt text: product" in caplog.text

    @pytest.mark.asyncio
    async def test_server_warning_logged(self, test_config, caplog):
        body = {**PROMPT_BODY, "warning": "Prompt is deprecated"}
        prompts = _sdk(test_config, FakeApi(httpx.Response(200, json=body)))

        with caplog.at_level(logging.WARNING):
            await prompts.get("welcome", variables={"name": "a", "product": "b"})

        assert 'Basalt Warning: "Prompt is deprecated"' in caplog.text

    @pytest.mark.asyncio
    async def test_second_get_served_from_query_cache(self, test_config, finished_spans):
        api = FakeApi(httpx.Response(200, json=PROMPT_BODY))
        prompts = _sdk(test_config, api)

        await prompts.get("welcome", tag="prod")
        prompt = await prompts.get("welcome", tag="prod", variables={"name": "Bob", "product": "X"})

        assert len(api.requests) == 1
        assert prompt.from_cache is True
        assert prompt.text == "Hello Bob, welcome to X"
        span = finished_spans()["basalt.prompt.get"]
        assert span.attributes[Attrs.CACHE_HIT] is True
        assert span.attributes[Attrs.CACHE_TYPE] == "query"
        assert span.attributes[Attrs.PROMPT_FROM_CACHE] is True

    @pytest.mark.asyncio
    async def test_different_tags_do_not_share_entries(self, test_config):
        api = FakeApi(httpx.Response(200, json=PROMPT_BODY))
        prompts = _sdk(test_config, api)

        await prompts.get("welcome", tag="prod")
        await prompts.get("welcome", tag="staging")

        assert len(api.requests) == 2

    @pytest.mark.asyncio
    async def test_query_cache_expires(self, test_config, fake_clock):
        api = FakeApi(httpx.Response(200, json=PROMPT_BODY))
        prompts = _sdk(test_config, api, clock=fake_clock)

        await prompts.get("welcome")
        fake_clock.advance(test_config.cache_ttl + 1)
        prompt = await prompts.get("welcome")

        assert len(api.requests) == 2
        assert prompt.from_cache is False

    @pytest.mark.asyncio
    async def test_cache_disabled_per_call(self, test_config):
        api = FakeApi(httpx.Response(200, json=PROMPT_BODY))
        prompts = _sdk(test_config, api)

        await prompts.get("welcome")
        await prompts.get("welcome", cache=False)

        assert len(api.requests) == 2

    @pytest.mark.asyncio
    async def test_fallback_after_failure(self, test_config, fake_clock, finished_spans, caplog):
        api = FakeApi(httpx.Response(200, json=PROMPT_BODY), _down())
        prompts = _sdk(test_config, api, clock=fake_clock)

        await prompts.get("welcome")
        fake_clock.advance(test_config.cache_ttl + 1)

        with caplog.at_level(logging.WARNING):
            prompt = await prompts.get("welcome", variables={"name": "Ada", "product": "Basalt"})

        assert prompt.from_cache is True
        assert prompt.text == "Hello Ada, welcome to Basalt"
        assert 'using last result for "welcome"' in caplog.text
        span = finished_spans()["basalt.prompt.get"]
        assert span.attributes[Attrs.CACHE_TYPE] == "fallback"

    @pytest.mark.asyncio
    async def test_no_fallback_when_cache_disabled(self, test_config):
        api = FakeApi(httpx.Response(200, json=PROMPT_BODY), _down())
        prompts = _sdk(test_config, api)

        await prompts.get("welcome")

        with pytest.raises(ConnectionError):
            await prompts.get("welcome", cache=False)

    @pytest.mark.asyncio
    async def test_error_without_fallback(self, test_config, finished_spans):
        api = FakeApi(httpx.Response(404, json={"error": "Prompt not found"}))
        prompts = _sdk(test_config, api)

        with pytest.raises(NotFoundError) as exc_info:
            await prompts.get("missing")

        assert "Prompt not found: 'missing'" in exc_info.value.message
        span = finished_spans()["basalt.prompt.get"]
        assert span.attributes[Attrs.CACHE_HIT] is False
        assert span.status.is_ok is False

    @pytest.mark.asyncio
    async def test_global_cache_switch(self):
        config = BasaltConfig(api_key="sk-test-0123456789", max_retries=0, cache_enabled=False)
        api = FakeApi(httpx.Response(200, json=PROMPT_BODY))
        prompts = _sdk(config, api)

        await prompts.get("welcome")
        await prompts.get("welcome")

        assert len(api.requests) == 2


class TestListAndDescribe:
    """Listing and describing prompts."""

    @pytest.mark.asyncio
    async def test_list(self, test_config):
        body = {
            "prompts": [
                {
                    "slug": "welcome",
                    "status": "live",
                    "name": "Welcome",
                    "availableVersions": ["1", "2"],
                    "availableTags": ["prod"],
                }
            ]
        }
        api = FakeApi(httpx.Response(200, json=body))
        prompts = _sdk(test_config, api)

        items = await prompts.list(feature_slug="onboarding")

        assert items[0].available_versions == ["1", "2"]
        assert items[0].available_tags == ["prod"]
        assert dict(api.requests[0].url.params) == {"featureSlug": "onboarding"}

    @pytest.mark.asyncio
    async def test_list_without_filter(self, test_config):
        api = FakeApi(httpx.Response(200, json={"prompts": []}))
        prompts = _sdk(test_config, api)

        assert await prompts.list() == []
        assert "featureSlug" not in api.requests[0].url.params

    @pytest.mark.asyncio
    async def test_describe(self, test_config):
        body = {
            "prompt": {
                "slug": "welcome",
                "status": "live",
                "name": "Welcome",
                "version": "2",
                "tag": "prod",
                "variables": [{"label": "name", "type": "string"}],
            }
        }
        api = FakeApi(httpx.Response(200, json=body))
        prompts = _sdk(test_config, api)

        detail = await prompts.describe("welcome", tag="prod")

        assert detail.version == "2"
        assert detail.variables[0].label == "name"
        assert api.requests[0].url.path == "/prompts/welcome/describe"
