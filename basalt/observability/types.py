"""Value types shared by the observability layer."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, TypedDict


class ObserveKind(str, Enum):
    """Classification written to ``basalt.span.kind``."""

    ROOT = "basalt_trace"
    SPAN = "span"
    GENERATION = "generation"
    RETRIEVAL = "retrieval"
    FUNCTION = "function"
    TOOL = "tool"
    EVENT = "event"


class IdentityDict(TypedDict, total=False):
    """Identity accepted by root spans."""

    user_id: str
    user_name: str
    organization_id: str
    organization_name: str


class ExperimentDict(TypedDict, total=False):
    """Experiment reference accepted by root spans."""

    id: str
    name: str
    feature_slug: str


@dataclass(frozen=True)
class EvaluationConfig:
    """
    Evaluation settings shared by every evaluator attached to a trace.

    Attributes:
        sample_rate: Fraction of traces evaluated (0.0-1.0). Default is 1.0.
    """

    sample_rate: float = 1.0

    def __post_init__(self) -> None:
        if isinstance(self.sample_rate, bool) or not isinstance(self.sample_rate, (int, float)):
            raise TypeError("sample_rate must be a number")
        if math.isnan(self.sample_rate) or not 0.0 <= self.sample_rate <= 1.0:
            raise ValueError("sample_rate must be between 0.0 and 1.0")

    def to_dict(self) -> dict[str, Any]:
        return {"sample_rate": float(self.sample_rate)}


@dataclass(frozen=True)
class PromptModel:
    """Model a prompt is configured for."""

    provider: str = "unknown"
    model: str = "unknown"


@dataclass(frozen=True)
class PromptMetadata:
    """
    Prompt usage recorded in the observation context.

    Only entries with a non-blank slug take part in context merging and
    attribute extraction.
    """

    slug: str
    version: Optional[str] = None
    tag: Optional[str] = None
    variables: Optional[Mapping[str, Any]] = None
    model: PromptModel = field(default_factory=PromptModel)
    from_cache: bool = False

    @property
    def key(self) -> Optional[str]:
        """Trimmed slug, or None when the slug is unusable."""
        if not isinstance(self.slug, str):
            return None
        trimmed = self.slug.strip()
        return trimmed or None
