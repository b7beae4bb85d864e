"""
Observability for the Basalt SDK.

Ambient observation context, span helpers, the context-stamping span
processor and provider auto-instrumentation.
"""

from .attributes import METADATA_PREFIX, SERIALIZATION_ERROR, ApiClient, BasaltSpanAttributes, CacheType
from .context import (
    ObservationContext,
    context_scope,
    extract_attributes,
    get_context,
    get_root_span,
    merge_context,
    merged_context_scope,
    set_context,
    with_context,
    with_merged_context,
)
from .evaluators import (
    attach_evaluator,
    evaluation_config_scope,
    evaluators_scope,
    with_evaluation_config,
    with_evaluators,
)
from .instrumentation import InstrumentationRegistry, InstrumentationStatus, ProviderInstrumentation
from .manager import TelemetryManager
from .processor import BasaltContextProcessor
from .prompts import prompts_scope, with_prompt, with_prompts
from .span import SpanHandle, StartSpanHandle
from .spans import (
    ObserveOptions,
    StartObserveOptions,
    get_tracer,
    observe,
    observe_scope,
    observed,
    root_span_scope,
    scoped,
    span_scope,
    start_observe,
    with_root_span,
)
from .types import (
    EvaluationConfig,
    ExperimentDict,
    IdentityDict,
    ObserveKind,
    PromptMetadata,
    PromptModel,
)

__all__ = [
    # Attributes
    "BasaltSpanAttributes",
    "CacheType",
    "ApiClient",
    "METADATA_PREFIX",
    "SERIALIZATION_ERROR",
    # Context
    "ObservationContext",
    "get_context",
    "set_context",
    "merge_context",
    "context_scope",
    "merged_context_scope",
    "with_context",
    "with_merged_context",
    "extract_attributes",
    "get_root_span",
    # Spans
    "SpanHandle",
    "StartSpanHandle",
    "ObserveOptions",
    "StartObserveOptions",
    "get_tracer",
    "span_scope",
    "scoped",
    "observe_scope",
    "observe",
    "observed",
    "start_observe",
    "root_span_scope",
    "with_root_span",
    # Evaluators and prompts
    "evaluators_scope",
    "with_evaluators",
    "attach_evaluator",
    "evaluation_config_scope",
    "with_evaluation_config",
    "prompts_scope",
    "with_prompt",
    "with_prompts",
    # Types
    "ObserveKind",
    "EvaluationConfig",
    "ExperimentDict",
    "IdentityDict",
    "PromptMetadata",
    "PromptModel",
    # Wiring
    "BasaltContextProcessor",
    "TelemetryManager",
    "InstrumentationRegistry",
    "InstrumentationStatus",
    "ProviderInstrumentation",
]
