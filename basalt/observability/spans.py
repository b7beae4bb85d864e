"""
Scoped span execution.

``scoped`` runs a unit of work inside a span that is always ended, marked OK
on success and marked failed (exception recorded, then re-raised) otherwise.
``observe`` does the same but also makes the span the active parent and the
current root-span handle. ``start_observe`` creates a root span the caller
activates with ``with_root_span`` and ends explicitly.

All helpers accept plain and coroutine functions; for coroutine functions
they return a coroutine and the span starts when it is awaited.

Usage:
    >>> from basalt.observability import ObserveKind, observed, start_observe, with_root_span
    >>>
    >>> root = start_observe(feature_slug="support-bot", identity={"user_id": "u-1"})
    >>> try:
    ...     answer = await with_root_span(root, answer_question, "hello")
    ... finally:
    ...     root.end()
    >>>
    >>> @observed(kind=ObserveKind.RETRIEVAL)
    ... async def search(query: str) -> list:
    ...     return await index.search(query)
"""

import functools
import inspect
import logging
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, TypeVar, Union

from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.trace import Span, StatusCode, Tracer
from typing_extensions import ParamSpec

from ..version import SDK_NAME, SDK_TARGET, SDK_TYPE, __version__
from .attributes import BasaltSpanAttributes as Attrs
from .context import extract_attributes, merged_context_scope, run_in_scope, set_root_span
from .span import SpanHandle, StartSpanHandle, sanitize_attributes
from .types import EvaluationConfig, ExperimentDict, IdentityDict, ObserveKind

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


@dataclass
class ObserveOptions:
    """Options for ``observe``."""

    name: str
    kind: Union[ObserveKind, str] = ObserveKind.SPAN
    attributes: Optional[Mapping[str, Any]] = None
    tracer_name: str = SDK_NAME


@dataclass
class StartObserveOptions:
    """
    Options for ``start_observe``.

    Attributes:
        feature_slug: Feature the trace belongs to (required).
        name: Span name, defaults to the feature slug.
        attributes: Extra span attributes.
        experiment: Experiment id or ``ExperimentDict``.
        identity: End user and organization.
        evaluation_config: Evaluation settings for the trace.
    """

    feature_slug: str
    name: Optional[str] = None
    attributes: Optional[Mapping[str, Any]] = None
    experiment: Optional[Union[str, ExperimentDict]] = None
    identity: Optional[IdentityDict] = None
    evaluation_config: Optional[Union[EvaluationConfig, Mapping[str, Any]]] = None
    tracer_name: str = SDK_NAME


def get_tracer(name: str = SDK_NAME) -> Tracer:
    """Return a tracer from the global provider, or a no-op tracer if none can be obtained."""
    try:
        return trace.get_tracer(name, __version__)
    except Exception as e:
        logger.debug(f"Tracer '{name}' unavailable, spans will not be recorded: {e}")
        return trace.NoOpTracer()


def _kind_value(kind: Optional[Union[ObserveKind, str]]) -> str:
    if isinstance(kind, ObserveKind):
        return kind.value
    return kind or ObserveKind.SPAN.value


def build_span_attributes(
    tracer_name: str,
    span_name: str,
    attributes: Optional[Mapping[str, Any]] = None,
    kind: Optional[Union[ObserveKind, str]] = None,
) -> Dict[str, Any]:
    """
    Attributes for a new span: SDK markers, then the ambient context, then
    ``attributes``. Later layers win on key collisions.
    """
    merged: Dict[str, Any] = {
        Attrs.TRACE: True,
        Attrs.IN_TRACE: "true",
        Attrs.SPAN_KIND: _kind_value(kind),
        Attrs.SDK: tracer_name,
        Attrs.SDK_NAME: SDK_NAME,
        Attrs.SDK_VERSION: __version__,
        Attrs.SDK_TARGET: SDK_TARGET,
        Attrs.SDK_TYPE: SDK_TYPE,
        Attrs.SPAN_TYPE: span_name,
    }
    merged.update(extract_attributes())
    merged.update(sanitize_attributes(attributes))
    return merged


def _start_span(tracer_name: str, span_name: str, attributes: Dict[str, Any]) -> Span:
    try:
        return get_tracer(tracer_name).start_span(span_name, attributes=attributes)
    except Exception as e:
        logger.debug(f"Failed to start span '{span_name}', continuing without tracing: {e}")
        return trace.INVALID_SPAN


@contextmanager
def span_scope(
    tracer_name: str,
    span_name: str,
    attributes: Optional[Mapping[str, Any]] = None,
    *,
    kind: Optional[Union[ObserveKind, str]] = None,
    activate: bool = False,
) -> Iterator[SpanHandle]:
    """
    Context manager form of ``scoped``.

    With ``activate=True`` the span is the active parent of spans started
    inside the block.
    """
    span = _start_span(
        tracer_name,
        span_name,
        build_span_attributes(tracer_name, span_name, attributes, kind),
    )
    handle = SpanHandle(span)
    token = otel_context.attach(trace.set_span_in_context(span)) if activate else None
    try:
        yield handle
    except Exception as exc:
        handle.record_exception(exc)
        raise
    else:
        handle.set_status(StatusCode.OK)
    finally:
        if token is not None:
            otel_context.detach(token)
        handle.end()


def _call_with_handle(scope_factory: Callable[[], Any], fn: Callable[..., Any]) -> Any:
    if inspect.iscoroutinefunction(fn):
        async def run_async():
            with scope_factory() as handle:
                return await fn(handle)

        return run_async()

    with scope_factory() as handle:
        return fn(handle)


def scoped(
    tracer_name: str,
    span_name: str,
    attributes: Optional[Mapping[str, Any]],
    fn: Callable[[SpanHandle], Any],
    *,
    kind: Optional[Union[ObserveKind, str]] = None,
    activate: bool = False,
) -> Any:
    """
    Run ``fn(handle)`` inside a new span and return its result.

    Args:
        tracer_name: Instrumentation scope name of the tracer.
        span_name: Span name, also written to ``basalt.span_type``.
        attributes: Explicit attributes; they win over context attributes.
        fn: Work to run. Coroutine functions yield a coroutine.
        kind: Value of ``basalt.span.kind`` (default: ``span``).
        activate: Make the span the active parent while ``fn`` runs.
    """
    return _call_with_handle(
        lambda: span_scope(tracer_name, span_name, attributes, kind=kind, activate=activate),
        fn,
    )


@contextmanager
def observe_scope(options: Union[ObserveOptions, str]) -> Iterator[SpanHandle]:
    """Context manager form of ``observe``."""
    if isinstance(options, str):
        options = ObserveOptions(name=options)

    with span_scope(
        options.tracer_name,
        options.name,
        options.attributes,
        kind=options.kind,
        activate=True,
    ) as handle:
        token = otel_context.attach(set_root_span(handle))
        try:
            yield handle
        finally:
            otel_context.detach(token)


def observe(options: Union[ObserveOptions, str], fn: Callable[[SpanHandle], Any]) -> Any:
    """
    Run ``fn(handle)`` inside a span that is the active parent and the
    current root-span handle for the duration of the call.
    """
    return _call_with_handle(lambda: observe_scope(options), fn)


def _bound_arguments(func: Callable[..., Any], args: tuple, kwargs: dict) -> Dict[str, Any]:
    try:
        bound = inspect.signature(func).bind_partial(*args, **kwargs)
    except (TypeError, ValueError):
        return {"args": list(args), "kwargs": kwargs}
    arguments = dict(bound.arguments)
    arguments.pop("self", None)
    arguments.pop("cls", None)
    return arguments


def observed(
    name: Optional[str] = None,
    *,
    kind: Union[ObserveKind, str] = ObserveKind.SPAN,
    attributes: Optional[Mapping[str, Any]] = None,
    capture_input: bool = True,
    capture_output: bool = True,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator running each call of the wrapped function under ``observe``.

    Args:
        name: Span name (default: the function's qualified name).
        kind: Span kind.
        attributes: Static attributes added to every span.
        capture_input: Record call arguments as ``basalt.span.input``.
        capture_output: Record the return value as ``basalt.span.output``.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        options = ObserveOptions(name=name or func.__qualname__, kind=kind, attributes=attributes)

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs):
                with observe_scope(options) as handle:
                    if capture_input:
                        handle.set_input(_bound_arguments(func, args, kwargs))
                    result = await func(*args, **kwargs)
                    if capture_output:
                        handle.set_output(result)
                    return result

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with observe_scope(options) as handle:
                if capture_input:
                    handle.set_input(_bound_arguments(func, args, kwargs))
                result = func(*args, **kwargs)
                if capture_output:
                    handle.set_output(result)
                return result

        return wrapper

    return decorator


def start_observe(options: Optional[StartObserveOptions] = None, **kwargs: Any) -> StartSpanHandle:
    """
    Start a root span without activating or ending it.

    Pass a ``StartObserveOptions`` or its fields as keyword arguments. The
    caller activates the span with ``with_root_span``/``root_span_scope`` and
    must call ``end()`` on the returned handle.

    Raises:
        ValueError: If ``feature_slug`` is missing or blank.
    """
    if options is None:
        options = StartObserveOptions(**kwargs)

    feature_slug = options.feature_slug
    if not isinstance(feature_slug, str) or not feature_slug.strip():
        raise ValueError("feature_slug is required for root spans")

    span_name = options.name or feature_slug.strip()
    span = _start_span(
        options.tracer_name,
        span_name,
        build_span_attributes(options.tracer_name, span_name, options.attributes, ObserveKind.ROOT),
    )
    return StartSpanHandle(
        span,
        feature_slug,
        experiment=options.experiment,
        identity=options.identity,
        evaluation_config=options.evaluation_config,
    )


@contextmanager
def root_span_scope(handle: StartSpanHandle) -> Iterator[StartSpanHandle]:
    """
    Activate a root span for the enclosed block.

    The handle's context fragment, as it is when the block is entered, is
    merged into the ambient context; the span becomes the active parent and
    the root-span slot points at the handle. Nested activations shadow outer
    ones until they exit.
    """
    fragment = handle.observation_context
    scope = nullcontext() if fragment.is_empty() else merged_context_scope(fragment)
    with scope:
        ctx = trace.set_span_in_context(handle.span, set_root_span(handle))
        token = otel_context.attach(ctx)
        try:
            yield handle
        finally:
            otel_context.detach(token)


def with_root_span(handle: StartSpanHandle, fn: Callable[..., Any], *args, **kwargs) -> Any:
    """Call ``fn(*args, **kwargs)`` with ``handle`` activated (see ``root_span_scope``)."""
    return run_in_scope(lambda: root_span_scope(handle), fn, *args, **kwargs)


__all__ = [
    "ObserveOptions",
    "StartObserveOptions",
    "get_tracer",
    "build_span_attributes",
    "span_scope",
    "scoped",
    "observe_scope",
    "observe",
    "observed",
    "start_observe",
    "root_span_scope",
    "with_root_span",
]
