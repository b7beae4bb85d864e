"""Internal utilities shared by the resource SDKs."""

from .cache import MemoryCache
from .fetch_policy import FetchOutcome, FetchResult, TwoTierFetchPolicy
from .template import get_variable_names, missing_variables, render, replace_variables

__all__ = [
    "MemoryCache",
    "TwoTierFetchPolicy",
    "FetchResult",
    "FetchOutcome",
    "get_variable_names",
    "missing_variables",
    "replace_variables",
    "render",
]
