"""
Prompts SDK

Fetches prompts from the Basalt API through the two-tier cache and fills
their variables.

Usage:
    >>> async with Basalt(api_key="sk-...") as basalt:
    ...     prompt = await basalt.prompts.get("greeting", tag="production",
    ...                                       variables={"name": "Alice"})
    ...     print(prompt.text)
"""

import logging
from typing import Any, Dict, List, Optional

from .._http import AsyncHTTPClient, decode_response
from .._utils import FetchResult, MemoryCache, TwoTierFetchPolicy, render
from ..config import BasaltConfig
from ..observability.attributes import ApiClient, BasaltSpanAttributes
from ..observability.context import ObservationContext, extract_attributes
from ..observability.span import SpanHandle
from ..observability.spans import scoped
from ..version import SDK_NAME
from .models import (
    DescribePromptResponse,
    GetPromptResponse,
    ListPromptsResponse,
    PromptDetail,
    PromptListItem,
    PromptResponse,
)

logger = logging.getLogger(__name__)


def prompt_cache_key(slug: str, *, tag: Optional[str] = None, version: Optional[str] = None) -> str:
    """
    Cache key identifying one prompt request.

    Example:
        >>> prompt_cache_key("greeting", tag="prod")
        'greeting|tag:prod'
    """
    key = slug
    if tag is not None:
        key += f"|tag:{tag}"
    if version is not None:
        key += f"|version:{version}"
    return key


class PromptSDK:
    """
    Async prompts client.

    ``get`` serves prompts from the query cache, then the API, then the
    fallback cache. ``list`` and ``describe`` always hit the API.
    """

    def __init__(
        self,
        http_client: AsyncHTTPClient,
        config: BasaltConfig,
        *,
        query_cache: Optional[MemoryCache] = None,
        fallback_cache: Optional[MemoryCache] = None,
    ):
        """
        Initialize the prompts SDK.

        Args:
            http_client: Shared async HTTP client
            config: Basalt configuration
            query_cache: Short-lived cache read before the API
            fallback_cache: Last good values served when the API fails
        """
        self._http = http_client
        self._config = config
        self._policy = TwoTierFetchPolicy(
            query_cache if query_cache is not None else MemoryCache(),
            fallback_cache if fallback_cache is not None else MemoryCache(),
            ttl=config.cache_ttl,
            fallback_requires_cache=config.prompt_fallback_requires_cache,
            resource="prompt",
        )

    async def get(
        self,
        slug: str,
        *,
        tag: Optional[str] = None,
        version: Optional[str] = None,
        variables: Optional[Dict[str, Any]] = None,
        cache: bool = True,
    ) -> PromptResponse:
        """
        Get a prompt by slug.

        Args:
            slug: Prompt slug
            tag: Optional tag (e.g. "production")
            version: Optional version
            variables: Values for the ``{{name}}`` placeholders
            cache: Read the query cache and allow the fallback cache

        Returns:
            Prompt with variables substituted

        Raises:
            BasaltError: The API call failed and no cached prompt can stand in
        """
        attributes = {
            BasaltSpanAttributes.API_CLIENT: ApiClient.PROMPTS,
            BasaltSpanAttributes.PROMPT_SLUG: slug,
            BasaltSpanAttributes.PROMPT_VERSION: version,
            BasaltSpanAttributes.PROMPT_TAG: tag,
        }

        async def fetch_prompt() -> FetchResult:
            body = await self._http.get(
                f"/prompts/{slug}",
                params={"tag": tag, "version": version},
                operation="Get Prompt",
                resource_type="Prompt",
                identifier=slug,
            )
            response = decode_response(GetPromptResponse, body, "Get Prompt")
            return FetchResult(response.prompt, response.warning)

        async def run(span: SpanHandle) -> PromptResponse:
            outcome = await self._policy.fetch(
                prompt_cache_key(slug, tag=tag, version=version),
                fetch_prompt,
                cache_enabled=cache and self._config.cache_enabled,
                span=span,
            )
            raw: PromptResponse = outcome.value
            prompt = raw.model_copy(update={
                "text": render(raw.text, variables),
                "system_text": render(raw.system_text, variables) if raw.system_text else raw.system_text,
                "slug": slug,
                "tag": tag,
                "variables": dict(variables) if variables else None,
                "from_cache": outcome.from_cache,
            })
            span.set_attributes(
                extract_attributes(ObservationContext(prompts=(prompt.prompt_metadata,)))
            )
            return prompt

        return await scoped(SDK_NAME, "basalt.prompt.get", attributes, run, activate=True)

    async def list(self, *, feature_slug: Optional[str] = None) -> List[PromptListItem]:
        """
        List prompts.

        Args:
            feature_slug: Only list prompts of this feature
        """
        body = await self._http.get(
            "/prompts",
            params={"featureSlug": feature_slug},
            operation="List Prompts",
        )
        response = decode_response(ListPromptsResponse, body, "List Prompts")
        _log_warning(response.warning)
        return response.prompts

    async def describe(
        self,
        slug: str,
        *,
        tag: Optional[str] = None,
        version: Optional[str] = None,
    ) -> PromptDetail:
        """Describe a prompt: versions, tags and declared variables."""
        body = await self._http.get(
            f"/prompts/{slug}/describe",
            params={"tag": tag, "version": version},
            operation="Describe Prompt",
            resource_type="Prompt",
            identifier=slug,
        )
        response = decode_response(DescribePromptResponse, body, "Describe Prompt")
        _log_warning(response.warning)
        return response.prompt


def _log_warning(warning: Optional[str]) -> None:
    if warning:
        logger.warning(f'Basalt Warning: "{warning}"')
