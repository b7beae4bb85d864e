"""
Span handles.

A ``SpanHandle`` is a narrow façade over an OpenTelemetry span: every value
written through it is sanitized into something the exporter accepts.
``StartSpanHandle`` is the root variant returned by ``start_observe``; only it
can annotate the trace with experiment, identity and evaluation settings,
and it records those annotations in a context fragment that is merged into
the ambient observation context when the root span is activated.
"""

import json
import logging
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Union

from opentelemetry.trace import Span, Status, StatusCode
from opentelemetry.util.types import AttributeValue

from .attributes import SERIALIZATION_ERROR, BasaltSpanAttributes as Attrs
from .context import ObservationContext
from .types import EvaluationConfig, ExperimentDict, IdentityDict, ObserveKind

logger = logging.getLogger(__name__)

_PRIMITIVES = (str, bool, int, float)


def _uniform_sequence(values: List[Any]) -> Optional[List[Any]]:
    if all(isinstance(v, bool) for v in values):
        return values
    if all(isinstance(v, str) for v in values):
        return values
    if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
        return values
    return None


def sanitize_attribute(value: Any) -> Optional[AttributeValue]:
    """
    Convert a value into an OpenTelemetry attribute value.

    Primitives pass through, sequences of a single primitive type pass
    through as lists, everything else is JSON-encoded. Returns None when the
    value should be dropped (None, empty sequences, unserializable values).
    """
    if value is None:
        return None
    if isinstance(value, _PRIMITIVES):
        return value
    if isinstance(value, (list, tuple)):
        items = list(value)
        if not items:
            return None
        uniform = _uniform_sequence(items)
        if uniform is not None:
            return uniform
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        logger.debug(f"Dropping attribute value of type {type(value).__name__}: not serializable")
        return None


def sanitize_attributes(attributes: Optional[Mapping[str, Any]]) -> Dict[str, AttributeValue]:
    """Sanitize every value of ``attributes``, dropping the ones that cannot be kept."""
    sanitized: Dict[str, AttributeValue] = {}
    for key, value in (attributes or {}).items():
        clean = sanitize_attribute(value)
        if clean is not None:
            sanitized[key] = clean
    return sanitized


def serialize_payload(value: Any) -> str:
    """Encode a span input/output payload; strings are kept as they are."""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return SERIALIZATION_ERROR


class SpanHandle:
    """Restricted handle over one OpenTelemetry span."""

    def __init__(self, span: Span):
        self._span = span
        self._ended = False

    @property
    def span(self) -> Span:
        """Underlying OpenTelemetry span."""
        return self._span

    @property
    def is_root(self) -> bool:
        return False

    @property
    def ended(self) -> bool:
        return self._ended

    def set_attribute(self, key: str, value: Any) -> None:
        clean = sanitize_attribute(value)
        if clean is not None:
            self._span.set_attribute(key, clean)

    def set_attributes(self, attributes: Mapping[str, Any]) -> None:
        clean = sanitize_attributes(attributes)
        if clean:
            self._span.set_attributes(clean)

    def set_status(self, code: StatusCode, description: Optional[str] = None) -> None:
        if description is None:
            self._span.set_status(Status(code))
        else:
            self._span.set_status(Status(code, description))

    def add_event(self, name: str, attributes: Optional[Mapping[str, Any]] = None) -> None:
        self._span.add_event(name, sanitize_attributes(attributes))

    def record_exception(
        self,
        exception: BaseException,
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Record ``exception`` on the span and mark the span as failed."""
        self._span.record_exception(exception, attributes=sanitize_attributes(attributes) or None)
        self._span.set_status(Status(StatusCode.ERROR, str(exception)))

    def end(self, end_time: Optional[int] = None) -> None:
        """End the span. Subsequent calls are ignored."""
        if self._ended:
            return
        self._ended = True
        self._span.end(end_time=end_time)

    def set_input(self, value: Any) -> None:
        self._span.set_attribute(Attrs.SPAN_INPUT, serialize_payload(value))

    def set_output(self, value: Any) -> None:
        self._span.set_attribute(Attrs.SPAN_OUTPUT, serialize_payload(value))

    def set_variables(self, variables: Mapping[str, Any]) -> None:
        if variables:
            self._span.set_attribute(Attrs.SPAN_VARIABLES, serialize_payload(dict(variables)))


class StartSpanHandle(SpanHandle):
    """
    Root span handle.

    Carries a context fragment (feature slug, identity, experiment and
    evaluation settings) that ``with_root_span`` merges into the ambient
    observation context for everything running under the root.
    """

    def __init__(
        self,
        span: Span,
        feature_slug: str,
        *,
        experiment: Optional[Union[str, ExperimentDict]] = None,
        identity: Optional[IdentityDict] = None,
        evaluation_config: Optional[Union[EvaluationConfig, Mapping[str, Any]]] = None,
    ):
        if not isinstance(feature_slug, str) or not feature_slug.strip():
            raise ValueError("feature_slug is required for root spans")

        super().__init__(span)
        self._feature_slug = feature_slug.strip()
        self._context = ObservationContext(feature_slug=self._feature_slug)

        self.set_attributes({
            Attrs.TRACE: True,
            Attrs.IN_TRACE: "true",
            Attrs.ROOT: True,
            Attrs.SPAN_KIND: ObserveKind.ROOT.value,
            Attrs.FEATURE_SLUG: self._feature_slug,
        })

        if experiment:
            self.set_experiment(experiment)
        if identity:
            self.set_identity(identity)
        if evaluation_config is not None:
            self.set_evaluation_config(evaluation_config)

    @property
    def is_root(self) -> bool:
        return True

    @property
    def feature_slug(self) -> str:
        return self._feature_slug

    @property
    def observation_context(self) -> ObservationContext:
        """Context fragment contributed by this root span."""
        return self._context

    def set_experiment(self, experiment: Union[str, ExperimentDict]) -> "StartSpanHandle":
        """Link the trace to an experiment, given its id or an ``ExperimentDict``."""
        if isinstance(experiment, str):
            experiment = {"id": experiment}

        record = {key: experiment.get(key) for key in ("id", "name", "feature_slug") if experiment.get(key)}
        self.set_attributes({
            Attrs.EXPERIMENT_ID: record.get("id"),
            Attrs.EXPERIMENT_NAME: record.get("name"),
            Attrs.EXPERIMENT_FEATURE_SLUG: record.get("feature_slug"),
        })

        merged = dict(self._context.experiment or {})
        merged.update(record)
        self._context = replace(self._context, experiment=merged)
        return self

    def set_identity(self, identity: IdentityDict) -> "StartSpanHandle":
        """Attach the end user and organization the trace runs on behalf of."""
        self.set_attributes({
            Attrs.USER_ID: identity.get("user_id"),
            Attrs.USER_NAME: identity.get("user_name"),
            Attrs.ORGANIZATION_ID: identity.get("organization_id"),
            Attrs.ORGANIZATION_NAME: identity.get("organization_name"),
        })

        user = self._context.user or {}
        organization = self._context.organization or {}

        user_id = identity.get("user_id") or user.get("id")
        if user_id:
            user = {"id": user_id, "name": identity.get("user_name") or user.get("name")}

        organization_id = identity.get("organization_id") or organization.get("id")
        if organization_id:
            organization = {
                "id": organization_id,
                "name": identity.get("organization_name") or organization.get("name"),
            }

        self._context = replace(
            self._context,
            user=user or None,
            organization=organization or None,
        )
        return self

    def set_evaluation_config(
        self,
        config: Union[EvaluationConfig, Mapping[str, Any]],
    ) -> "StartSpanHandle":
        """Set evaluation settings for the whole trace."""
        if isinstance(config, EvaluationConfig):
            data = config.to_dict()
        else:
            data = dict(config)

        self._span.set_attribute(Attrs.EVALUATION_CONFIG, serialize_payload(data))
        self.set_attribute(Attrs.EVALUATION_SAMPLE_RATE, data.get("sample_rate"))
        merged = dict(self._context.evaluation_config or {})
        merged.update(data)
        self._context = replace(self._context, evaluation_config=merged)
        return self


__all__ = [
    "SpanHandle",
    "StartSpanHandle",
    "sanitize_attribute",
    "sanitize_attributes",
    "serialize_payload",
]
