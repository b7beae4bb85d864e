"""
Basalt SDK - prompts, datasets and OpenTelemetry-native observability for AI applications.

Basic Usage:
    >>> from basalt import Basalt
    >>> async with Basalt(api_key="sk-...") as basalt:
    ...     prompt = await basalt.prompts.get("greeting", variables={"name": "Alice"})

Observation context:
    >>> from basalt import observe, with_evaluators
    >>> def answer(span):
    ...     return with_evaluators(["hallucination"], lambda: call_llm(prompt.text))
    >>> observe("answer-question", answer)

Root spans:
    >>> from basalt import start_observe, with_root_span
    >>> root = start_observe(feature_slug="support-bot", name="conversation")
    >>> root.set_identity({"user_id": "user-123"})
    >>> with_root_span(root, handle_conversation)
    >>> root.end()
"""

from ._http import (
    AuthenticationError,
    BasaltError,
    ConnectionError,
    NotFoundError,
    RateLimitError,
    ServerError,
    ValidationError,
)
from .client import Basalt
from .config import BasaltConfig
from .datasets import Dataset, DatasetRow
from .monitor import Trace
from .observability import (
    EvaluationConfig,
    ObservationContext,
    ObserveKind,
    ObserveOptions,
    PromptMetadata,
    SpanHandle,
    StartObserveOptions,
    StartSpanHandle,
    attach_evaluator,
    get_context,
    get_root_span,
    observe,
    observed,
    scoped,
    start_observe,
    with_context,
    with_evaluation_config,
    with_evaluators,
    with_merged_context,
    with_prompt,
    with_prompts,
    with_root_span,
)
from .prompts import PromptResponse
from .version import __version__

__all__ = [
    # Client
    "Basalt",
    "BasaltConfig",
    "__version__",
    # Resources
    "PromptResponse",
    "Dataset",
    "DatasetRow",
    "Trace",
    # Observability
    "ObservationContext",
    "get_context",
    "with_context",
    "with_merged_context",
    "get_root_span",
    "SpanHandle",
    "StartSpanHandle",
    "ObserveKind",
    "ObserveOptions",
    "StartObserveOptions",
    "scoped",
    "observe",
    "observed",
    "start_observe",
    "with_root_span",
    "with_evaluators",
    "attach_evaluator",
    "with_evaluation_config",
    "EvaluationConfig",
    "with_prompt",
    "with_prompts",
    "PromptMetadata",
    # Errors
    "BasaltError",
    "AuthenticationError",
    "ConnectionError",
    "NotFoundError",
    "RateLimitError",
    "ServerError",
    "ValidationError",
]
