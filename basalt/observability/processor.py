"""
Context-stamping span processor.

Registered on the tracer provider ahead of the exporting processor, it copies
the ambient observation context onto every span at start time, whoever
created the span (the SDK itself or a third-party instrumentation such as an
HTTP client or an LLM provider library).
"""

from typing import Optional

from opentelemetry.context import Context
from opentelemetry.sdk.trace import ReadableSpan, Span, SpanProcessor

from .attributes import BasaltSpanAttributes as Attrs
from .context import extract_attributes, get_context


class BasaltContextProcessor(SpanProcessor):
    """
    Stamps observation-context attributes onto spans as they start.

    Keys already present on the span are left untouched, so attributes
    passed explicitly when the span was created keep their values and a span
    is never stamped twice with different values.
    """

    def on_start(
        self,
        span: Span,
        parent_context: Optional[Context] = None,
    ) -> None:
        """
        Called when a span is started.

        Args:
            span: The span that was started
            parent_context: Context the span was started in; when it carries no
                observation context the active one is used
        """
        observation = get_context(parent_context) if parent_context is not None else None
        if observation is None:
            observation = get_context()
        if observation is None:
            return

        attributes = extract_attributes(observation)
        if not attributes:
            return

        attributes = {Attrs.TRACE: True, Attrs.IN_TRACE: "true", **attributes}
        existing = span.attributes or {}
        missing = {key: value for key, value in attributes.items() if key not in existing}
        if missing:
            span.set_attributes(missing)

    def on_end(self, span: ReadableSpan) -> None:
        """Nothing to do once a span has ended."""

    def shutdown(self) -> None:
        """Nothing to release."""

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        """Nothing is buffered."""
        return True
