"""
Monitor trace logs.

Logs are the steps recorded inside a monitor trace: ``Span`` for any unit of
work and ``Generation`` for one LLM call. A log registers itself on its
trace when created and is sent as part of the trace payload; spans can nest
further logs, which reference them through ``parentId``.
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .trace import Trace


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class BaseLog:
    """Fields and lifecycle shared by every trace log."""

    log_type = "span"

    def __init__(
        self,
        trace: "Trace",
        name: str,
        *,
        parent: Optional["Span"] = None,
        input: Optional[str] = None,
        output: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        log_type: Optional[str] = None,
    ):
        if not isinstance(name, str) or not name.strip():
            raise ValueError("name is required to create a log")

        self.id = f"log-{uuid.uuid4().hex[:12]}"
        self.type = log_type or self.log_type
        self.name = name
        self.parent = parent
        self.input = input
        self.output = output
        self.metadata = metadata
        self.start_time = start_time or _now()
        self.end_time = end_time

        self.trace = trace
        trace.logs.append(self)

    @property
    def parent_id(self) -> Optional[str]:
        return self.parent.id if self.parent is not None else None

    def start(self, input: Optional[str] = None) -> "BaseLog":
        """Reset the start time, optionally recording the input."""
        if input:
            self.input = input
        self.start_time = _now()
        return self

    def set_metadata(self, metadata: Dict[str, Any]) -> "BaseLog":
        self.metadata = metadata
        return self

    def update(
        self,
        *,
        name: Optional[str] = None,
        input: Optional[str] = None,
        output: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> "BaseLog":
        """Overwrite every field passed with a non-None value."""
        self.name = name or self.name
        self.input = input if input is not None else self.input
        self.output = output if output is not None else self.output
        self.metadata = metadata if metadata is not None else self.metadata
        self.start_time = start_time or self.start_time
        self.end_time = end_time or self.end_time
        return self

    def end(self, output: Optional[str] = None) -> "BaseLog":
        """Set the end time, optionally recording the output."""
        if output is not None:
            self.output = output
        self.end_time = _now()
        return self

    def to_payload(self) -> Dict[str, Any]:
        """Entry of the trace payload's ``logs`` list."""
        return {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "startTime": _isoformat(self.start_time),
            "endTime": _isoformat(self.end_time),
            "metadata": self.metadata,
            "parentId": self.parent_id,
            "input": self.input,
            "output": self.output,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, name={self.name!r})"


class Generation(BaseLog):
    """
    One LLM call inside a trace.

    When created from a prompt, the log is named after the prompt slug.
    """

    log_type = "generation"

    def __init__(
        self,
        trace: "Trace",
        name: Optional[str] = None,
        *,
        prompt: Optional[Dict[str, Any]] = None,
        variables: Optional[Dict[str, Any]] = None,
        input_tokens: Optional[int] = None,
        output_tokens: Optional[int] = None,
        cost: Optional[float] = None,
        **params: Any,
    ):
        if prompt and prompt.get("slug"):
            name = prompt["slug"]
        super().__init__(trace, name, **params)

        self.prompt = prompt
        self.variables = variables
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.cost = cost

    def update(
        self,
        *,
        prompt: Optional[Dict[str, Any]] = None,
        variables: Optional[Dict[str, Any]] = None,
        input_tokens: Optional[int] = None,
        output_tokens: Optional[int] = None,
        cost: Optional[float] = None,
        **params: Any,
    ) -> "Generation":
        self.prompt = prompt if prompt is not None else self.prompt
        self.variables = variables if variables is not None else self.variables
        self.input_tokens = input_tokens if input_tokens is not None else self.input_tokens
        self.output_tokens = output_tokens if output_tokens is not None else self.output_tokens
        self.cost = cost if cost is not None else self.cost
        super().update(**params)
        return self

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload.update({
            "prompt": self.prompt,
            "variables": self.variables,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cost": self.cost,
        })
        return payload


class Span(BaseLog):
    """A unit of work inside a trace; may contain nested logs."""

    log_type = "span"

    def create_generation(self, name: Optional[str] = None, **params: Any) -> Generation:
        """Create a generation nested under this span."""
        return Generation(self.trace, name, parent=self, **params)

    def create_span(self, name: str, **params: Any) -> "Span":
        """Create a span nested under this span."""
        return Span(self.trace, name, parent=self, **params)

    def append(self, log: BaseLog) -> "Span":
        """Move ``log`` under this span, and into this span's trace."""
        self.trace.append(log)
        log.parent = self
        return self


__all__ = ["BaseLog", "Generation", "Span"]
