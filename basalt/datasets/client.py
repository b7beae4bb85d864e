"""
Datasets SDK

Reads datasets through the two-tier cache and appends rows to them.
"""

import logging
from typing import Any, Dict, List, Optional

from .._http import AsyncHTTPClient, decode_response
from .._utils import FetchResult, MemoryCache, TwoTierFetchPolicy
from ..config import BasaltConfig
from ..observability.attributes import ApiClient, BasaltSpanAttributes
from ..observability.span import SpanHandle
from ..observability.spans import scoped
from ..version import SDK_NAME
from .models import (
    CreateDatasetItemResponse,
    Dataset,
    DatasetListItem,
    DatasetRow,
    GetDatasetResponse,
    ListDatasetsResponse,
)

logger = logging.getLogger(__name__)


class DatasetSDK:
    """
    Async datasets client.

    Example:
        >>> dataset = await basalt.datasets.get("support-tickets")
        >>> for row in dataset.rows:
        ...     print(row.values)
    """

    def __init__(
        self,
        http_client: AsyncHTTPClient,
        config: BasaltConfig,
        *,
        query_cache: Optional[MemoryCache] = None,
        fallback_cache: Optional[MemoryCache] = None,
    ):
        self._http = http_client
        self._config = config
        self._policy = TwoTierFetchPolicy(
            query_cache if query_cache is not None else MemoryCache(),
            fallback_cache if fallback_cache is not None else MemoryCache(),
            ttl=config.cache_ttl,
            fallback_requires_cache=config.dataset_fallback_requires_cache,
            resource="dataset",
        )

    async def list(self) -> List[DatasetListItem]:
        """List the datasets of the workspace."""
        body = await self._http.get("/datasets", operation="List Datasets")
        response = decode_response(ListDatasetsResponse, body, "List Datasets")
        _log_warning(response.warning)
        return response.datasets

    async def get(self, slug: str) -> Dataset:
        """
        Get a dataset with its rows.

        A failed API call is answered from the last good copy when one exists.

        Raises:
            BasaltError: The API call failed and no copy was cached
        """
        attributes = {
            BasaltSpanAttributes.API_CLIENT: ApiClient.DATASETS,
            BasaltSpanAttributes.DATASET_SLUG: slug,
        }

        async def fetch_dataset() -> FetchResult:
            body = await self._http.get(
                f"/datasets/{slug}",
                operation="Get Dataset",
                resource_type="Dataset",
                identifier=slug,
            )
            response = decode_response(GetDatasetResponse, body, "Get Dataset")
            return FetchResult(response.dataset, response.warning)

        async def run(span: SpanHandle) -> Dataset:
            outcome = await self._policy.fetch(
                slug,
                fetch_dataset,
                cache_enabled=self._config.cache_enabled,
                span=span,
            )
            span.set_attribute(BasaltSpanAttributes.DATASET_ROW_COUNT, len(outcome.value.rows))
            return outcome.value

        return await scoped(SDK_NAME, "basalt.dataset.get", attributes, run, activate=True)

    async def add_row(
        self,
        slug: str,
        *,
        values: Dict[str, str],
        name: Optional[str] = None,
        ideal_output: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> DatasetRow:
        """
        Append a row to a dataset.

        Args:
            slug: Dataset slug
            values: Column values keyed by column name
            name: Optional row name
            ideal_output: Expected output for evaluations
            metadata: Arbitrary row metadata

        Returns:
            The created row
        """
        body = await self._http.post(
            f"/datasets/{slug}/items",
            json={
                "name": name,
                "values": values,
                "idealOutput": ideal_output,
                "metadata": metadata,
            },
            operation="Create Dataset Item",
            resource_type="Dataset",
            identifier=slug,
        )
        response = decode_response(CreateDatasetItemResponse, body, "Create Dataset Item")
        _log_warning(response.warning)
        return response.dataset_row


def _log_warning(warning: Optional[str]) -> None:
    if warning:
        logger.warning(f'Basalt Warning: "{warning}"')
