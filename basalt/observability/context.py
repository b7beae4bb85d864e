"""
Ambient observation context.

The observation context carries business-level information (identity,
experiment, feature, metadata, evaluators and prompts in use) alongside the
OpenTelemetry context. Because it lives in the OpenTelemetry context it
follows ``contextvars`` semantics: every scope restores its parent on exit and
concurrently running asyncio tasks never observe each other's changes.

Usage:
    >>> from basalt.observability import (
    ...     ObservationContext, extract_attributes, with_merged_context,
    ... )
    >>>
    >>> def handle_request():
    ...     return extract_attributes()
    >>>
    >>> with_merged_context(
    ...     ObservationContext(user={"id": "user-1"}, evaluators=("quality",)),
    ...     handle_request,
    ... )
"""

import inspect
import json
import math
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Final, Iterator, Mapping, Optional, Sequence, Tuple, Union

from opentelemetry import context as otel_context
from opentelemetry.context import Context

from .attributes import METADATA_PREFIX, SERIALIZATION_ERROR, BasaltSpanAttributes as Attrs
from .types import PromptMetadata, PromptModel

OBSERVATION_CONTEXT_KEY: Final[str] = "basalt.context"
ROOT_SPAN_CONTEXT_KEY: Final[str] = "basalt.context.root_span"

AttributeValue = Union[str, bool, int, float]


@dataclass(frozen=True)
class ObservationContext:
    """
    Business context attached to every span started within a scope.

    Instances are never mutated; merging produces a new value. When used as a
    partial update, ``None`` and empty tuples mean "leave unchanged".

    Attributes:
        user: Identity record, typically ``{"id": ..., "name": ...}``.
        organization: Organization record, same shape as ``user``.
        experiment: ``{"id", "name", "feature_slug"}`` of the running experiment.
        feature_slug: Feature the current work belongs to.
        metadata: Free-form key/values flattened under ``basalt.meta.``.
        evaluators: Evaluator slugs, unique and in first-seen order.
        evaluation_config: ``{"sample_rate": float}``.
        prompts: Prompts used in the scope, unique by slug.
    """

    user: Optional[Mapping[str, Any]] = None
    organization: Optional[Mapping[str, Any]] = None
    experiment: Optional[Mapping[str, Any]] = None
    feature_slug: Optional[str] = None
    metadata: Optional[Mapping[str, Any]] = None
    evaluators: Tuple[str, ...] = ()
    evaluation_config: Optional[Mapping[str, Any]] = None
    prompts: Tuple[PromptMetadata, ...] = ()

    def is_empty(self) -> bool:
        return (
            not self.user
            and not self.organization
            and not self.experiment
            and not self.feature_slug
            and not self.metadata
            and not self.evaluators
            and not self.evaluation_config
            and not self.prompts
        )


# ========== Merging ==========


def normalize_evaluators(evaluators: Any) -> Tuple[str, ...]:
    """
    Keep non-blank string entries, trimmed, deduplicated in first-seen order.

    Anything other than a list or tuple yields an empty tuple.
    """
    if not isinstance(evaluators, (list, tuple)):
        return ()

    unique: Dict[str, None] = {}
    for entry in evaluators:
        if isinstance(entry, str) and entry.strip():
            unique.setdefault(entry.strip(), None)
    return tuple(unique)


def _merge_mapping(
    existing: Optional[Mapping[str, Any]],
    incoming: Optional[Mapping[str, Any]],
) -> Optional[Mapping[str, Any]]:
    if incoming is None:
        return existing
    merged = dict(existing or {})
    merged.update(incoming)
    return merged


def _merge_prompts(
    existing: Sequence[PromptMetadata],
    incoming: Sequence[PromptMetadata],
) -> Tuple[PromptMetadata, ...]:
    by_slug: Dict[str, PromptMetadata] = {}
    for prompt in (*existing, *incoming):
        if not isinstance(prompt, PromptMetadata):
            continue
        key = prompt.key
        if key is None:
            continue
        # Reassigning an existing key keeps its insertion position
        by_slug[key] = prompt
    return tuple(by_slug.values())


def merge_context(
    existing: Optional[ObservationContext],
    incoming: ObservationContext,
) -> ObservationContext:
    """
    Merge a partial context into an existing one.

    Scalars override; ``user``, ``organization``, ``experiment``, ``metadata``
    and ``evaluation_config`` merge key by key; evaluators are the
    deduplicated concatenation of both sides; prompts are upserted by slug,
    keeping the position of the first occurrence.
    """
    if existing is None:
        existing = ObservationContext()

    return ObservationContext(
        user=_merge_mapping(existing.user, incoming.user),
        organization=_merge_mapping(existing.organization, incoming.organization),
        experiment=_merge_mapping(existing.experiment, incoming.experiment),
        feature_slug=(
            incoming.feature_slug if incoming.feature_slug is not None else existing.feature_slug
        ),
        metadata=_merge_mapping(existing.metadata, incoming.metadata),
        evaluators=normalize_evaluators(
            list(existing.evaluators or ()) + list(incoming.evaluators or ())
        ),
        evaluation_config=_merge_mapping(existing.evaluation_config, incoming.evaluation_config),
        prompts=_merge_prompts(existing.prompts or (), incoming.prompts or ()),
    )


# ========== Propagation ==========


def get_context(ctx: Optional[Context] = None) -> Optional[ObservationContext]:
    """Return the observation context of ``ctx`` (default: the active context)."""
    value = otel_context.get_value(OBSERVATION_CONTEXT_KEY, ctx)
    return value if isinstance(value, ObservationContext) else None


def set_context(observation: ObservationContext, parent: Optional[Context] = None) -> Context:
    """Return a new OpenTelemetry context carrying ``observation``. Nothing is attached."""
    return otel_context.set_value(OBSERVATION_CONTEXT_KEY, observation, parent)


def get_root_span(ctx: Optional[Context] = None) -> Optional[Any]:
    """Return the innermost active root span handle, if any."""
    return otel_context.get_value(ROOT_SPAN_CONTEXT_KEY, ctx)


def set_root_span(handle: Any, parent: Optional[Context] = None) -> Context:
    """Return a new OpenTelemetry context whose root span slot holds ``handle``."""
    return otel_context.set_value(ROOT_SPAN_CONTEXT_KEY, handle, parent)


@contextmanager
def context_scope(observation: ObservationContext) -> Iterator[ObservationContext]:
    """Run the enclosed block with ``observation`` as the ambient context (no merge)."""
    token = otel_context.attach(set_context(observation))
    try:
        yield observation
    finally:
        otel_context.detach(token)


@contextmanager
def merged_context_scope(partial: ObservationContext) -> Iterator[ObservationContext]:
    """Run the enclosed block with ``partial`` merged into the ambient context."""
    merged = merge_context(get_context(), partial)
    with context_scope(merged):
        yield merged


def run_in_scope(scope_factory: Callable[[], Any], fn: Callable[..., Any], *args, **kwargs) -> Any:
    """
    Call ``fn`` inside the context manager produced by ``scope_factory``.

    Coroutine functions get a coroutine back; the scope is entered when it is
    awaited, so the ambient context at await time is the one extended.
    """
    if inspect.iscoroutinefunction(fn):
        async def run_async():
            with scope_factory():
                return await fn(*args, **kwargs)

        return run_async()

    with scope_factory():
        return fn(*args, **kwargs)


def with_context(observation: ObservationContext, fn: Callable[..., Any], *args, **kwargs) -> Any:
    """Call ``fn`` with ``observation`` replacing the ambient context."""
    return run_in_scope(lambda: context_scope(observation), fn, *args, **kwargs)


def with_merged_context(partial: ObservationContext, fn: Callable[..., Any], *args, **kwargs) -> Any:
    """Call ``fn`` with ``partial`` merged into the ambient context."""
    return run_in_scope(lambda: merged_context_scope(partial), fn, *args, **kwargs)


# ========== Extraction ==========


def _scalar(value: Any) -> Optional[AttributeValue]:
    if value is None or value == "":
        return None
    if isinstance(value, (str, bool, int, float)):
        return value
    return str(value)


def _field(record: Optional[Mapping[str, Any]], key: str) -> Optional[AttributeValue]:
    if not isinstance(record, Mapping):
        return None
    return _scalar(record.get(key))


def _dumps(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return SERIALIZATION_ERROR


def flatten_metadata(
    metadata: Optional[Mapping[str, Any]],
    prefix: str = METADATA_PREFIX,
) -> Dict[str, AttributeValue]:
    """Flatten metadata to ``prefix + key`` attributes, JSON-encoding non-primitives."""
    if not metadata:
        return {}

    flattened: Dict[str, AttributeValue] = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, (str, bool, int, float)):
            flattened[f"{prefix}{key}"] = value
        else:
            flattened[f"{prefix}{key}"] = _dumps(value)
    return flattened


def _sample_rate(config: Optional[Mapping[str, Any]]) -> Optional[float]:
    if not isinstance(config, Mapping):
        return None
    value = config.get("sample_rate")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return min(max(float(value), 0.0), 1.0)


def _prompt_attributes(prompts: Sequence[PromptMetadata]) -> Dict[str, AttributeValue]:
    valid = [p for p in prompts if isinstance(p, PromptMetadata) and p.key]
    if not valid:
        return {}

    first = valid[0]
    model = first.model or PromptModel()
    attributes: Dict[str, AttributeValue] = {
        Attrs.PROMPT_SLUG: first.key,
        Attrs.PROMPT_MODEL_PROVIDER: model.provider,
        Attrs.PROMPT_MODEL_NAME: model.model,
        Attrs.PROMPT_FROM_CACHE: bool(first.from_cache),
    }
    if first.version is not None:
        attributes[Attrs.PROMPT_VERSION] = first.version
    if first.tag is not None:
        attributes[Attrs.PROMPT_TAG] = first.tag
    if first.variables:
        attributes[Attrs.PROMPT_VARIABLES] = _dumps(dict(first.variables))
    if len(valid) > 1:
        attributes[Attrs.PROMPTS_COUNT] = len(valid)
    return attributes


def extract_attributes(observation: Optional[ObservationContext] = None) -> Dict[str, AttributeValue]:
    """
    Flatten an observation context (default: the ambient one) into span attributes.

    The result depends only on the context value, so repeated calls without
    a context change return equal mappings.
    """
    if observation is None:
        observation = get_context()
    if observation is None:
        return {}

    candidates = {
        Attrs.USER_ID: _field(observation.user, "id"),
        Attrs.USER_NAME: _field(observation.user, "name"),
        Attrs.ORGANIZATION_ID: _field(observation.organization, "id"),
        Attrs.ORGANIZATION_NAME: _field(observation.organization, "name"),
        Attrs.EXPERIMENT_ID: _field(observation.experiment, "id"),
        Attrs.EXPERIMENT_NAME: _field(observation.experiment, "name"),
        Attrs.EXPERIMENT_FEATURE_SLUG: _field(observation.experiment, "feature_slug"),
        Attrs.FEATURE_SLUG: _scalar(observation.feature_slug),
    }
    attributes: Dict[str, AttributeValue] = {
        key: value for key, value in candidates.items() if value is not None
    }

    attributes.update(flatten_metadata(observation.metadata))

    evaluators = normalize_evaluators(list(observation.evaluators or ()))
    if evaluators:
        attributes[Attrs.EVALUATORS] = json.dumps(list(evaluators))

    sample_rate = _sample_rate(observation.evaluation_config)
    if sample_rate is not None:
        attributes[Attrs.EVALUATION_SAMPLE_RATE] = sample_rate

    attributes.update(_prompt_attributes(observation.prompts or ()))
    return attributes


__all__ = [
    "OBSERVATION_CONTEXT_KEY",
    "ROOT_SPAN_CONTEXT_KEY",
    "ObservationContext",
    "normalize_evaluators",
    "merge_context",
    "get_context",
    "set_context",
    "get_root_span",
    "set_root_span",
    "context_scope",
    "merged_context_scope",
    "run_in_scope",
    "with_context",
    "with_merged_context",
    "flatten_metadata",
    "extract_attributes",
]
