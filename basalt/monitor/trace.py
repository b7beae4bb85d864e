"""
Monitor traces.

A ``Trace`` collects the input, output, identity and metadata of one run
of a feature and sends itself to Basalt once ended. At most one send is in
flight per trace; a failed send is logged and a later ``flush`` retries.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..observability.context import ObservationContext
from .logs import BaseLog, Generation, Span

logger = logging.getLogger(__name__)

TraceSender = Callable[["Trace"], Awaitable[Any]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class Trace:
    """
    One monitored run of a feature.

    Example:
        >>> trace = basalt.monitor.create_trace("support-bot", input="Hi")
        >>> trace.identify("user-123", name="Alice")
        >>> await trace.complete(output="Hello Alice!")
    """

    def __init__(
        self,
        feature_slug: str,
        sender: TraceSender,
        *,
        input: Optional[str] = None,
        output: Optional[str] = None,
        user: Optional[Dict[str, Any]] = None,
        organization: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ):
        self._feature_slug = feature_slug
        self._sender = sender

        self.input = input
        self.output = output
        self.user = user
        self.organization = organization
        self.metadata = metadata
        self.start_time = start_time or _now()
        self.end_time = end_time
        self.logs: List[BaseLog] = []

        self._ended = False
        self._in_flight: Optional[asyncio.Task] = None

    @property
    def feature_slug(self) -> str:
        return self._feature_slug

    @property
    def is_ended(self) -> bool:
        return self._ended

    @property
    def flush_in_flight(self) -> bool:
        return self._in_flight is not None

    @property
    def observation_context(self) -> ObservationContext:
        """Identity, feature and metadata of this trace as an observation context."""
        return ObservationContext(
            user=self.user,
            organization=self.organization,
            feature_slug=self._feature_slug,
            metadata=self.metadata,
        )

    # ----------------------------------------------------------------- building

    def start(self, input: Optional[str] = None) -> "Trace":
        """Reset the start time, optionally recording the input."""
        if input:
            self.input = input
        self.start_time = _now()
        return self

    def identify(self, user_id: str, name: Optional[str] = None, **extra: Any) -> "Trace":
        """Attach the end user. ``name`` defaults to the id."""
        self.user = {"id": user_id, "name": name or user_id, **extra}
        return self

    def set_organization(self, organization_id: str, name: Optional[str] = None, **extra: Any) -> "Trace":
        """Attach the end user's organization. ``name`` defaults to the id."""
        self.organization = {"id": organization_id, "name": name or organization_id, **extra}
        return self

    def set_metadata(self, metadata: Dict[str, Any]) -> "Trace":
        """Replace the trace metadata."""
        self.metadata = metadata
        return self

    def update(
        self,
        *,
        input: Optional[str] = None,
        output: Optional[str] = None,
        user: Optional[Dict[str, Any]] = None,
        organization: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> "Trace":
        """Overwrite every field passed with a non-None value."""
        self.input = input if input is not None else self.input
        self.output = output if output is not None else self.output
        self.user = user if user is not None else self.user
        self.organization = organization if organization is not None else self.organization
        self.metadata = metadata if metadata is not None else self.metadata
        self.start_time = start_time or self.start_time
        self.end_time = end_time or self.end_time
        return self

    def create_generation(self, name: Optional[str] = None, **params: Any) -> Generation:
        """
        Record an LLM call at the top level of this trace.

        Args:
            name: Log name; defaults to ``prompt["slug"]`` when a prompt is given
            **params: Generation fields (prompt, input, output, variables, ...)
        """
        return Generation(self, name, **params)

    def create_span(self, name: str, **params: Any) -> Span:
        """Record a unit of work at the top level of this trace."""
        return Span(self, name, **params)

    def append(self, log: BaseLog) -> "Trace":
        """Move ``log`` from the trace it was created on to this one."""
        if log.trace is not self:
            log.trace.logs[:] = [entry for entry in log.trace.logs if entry is not log]
            log.trace = self
        if log not in self.logs:
            self.logs.append(log)
        return self

    def to_payload(self) -> Dict[str, Any]:
        """Body of ``POST /monitor/trace``."""
        return {
            "featureSlug": self._feature_slug,
            "input": self.input,
            "output": self.output,
            "metadata": self.metadata,
            "organization": self.organization,
            "user": self.user,
            "startTime": _isoformat(self.start_time),
            "endTime": _isoformat(self.end_time),
            "logs": [log.to_payload() for log in self.logs],
        }

    # ----------------------------------------------------------------- flushing

    def end(self, output: Optional[str] = None) -> "Trace":
        """
        Mark the trace as ended and schedule its send.

        Ending twice logs a warning and changes nothing. Without a running
        event loop the send is left to an explicit ``flush``.
        """
        if self._ended:
            logger.warning(f"Trace '{self._feature_slug}' already ended, ignoring end()")
            return self

        self._ended = True
        if output is not None:
            self.output = output
        self.end_time = _now()

        if self._in_flight is None:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                logger.debug(f"No running event loop, trace '{self._feature_slug}' awaits flush()")
            else:
                self._start_flush()
        return self

    async def flush(self) -> None:
        """
        Send the trace unless a send is already in flight.

        Send failures are logged, never raised.
        """
        if self._in_flight is not None:
            return
        await self._start_flush()

    async def complete(
        self,
        output: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Record the output, merge metadata, end the trace and wait for the send.

        On a trace that already ended, logs a warning and only waits for the
        send in flight.
        """
        if self._ended:
            logger.warning(f"Trace '{self._feature_slug}' already ended, ignoring complete()")
            await self.wait_for_flush()
            return

        if metadata:
            self.metadata = {**(self.metadata or {}), **metadata}
        self.end(output)
        await self.wait_for_flush()

    async def wait_for_flush(self) -> None:
        """Wait for the in-flight send, if any."""
        task = self._in_flight
        if task is not None:
            await task

    def _start_flush(self) -> "asyncio.Task[None]":
        # Check-and-set happens before the first await.
        task = asyncio.get_running_loop().create_task(self._send())
        self._in_flight = task
        return task

    async def _send(self) -> None:
        try:
            await self._sender(self)
            logger.debug(f"Trace '{self._feature_slug}' flushed")
        except Exception as e:
            logger.error(f"Failed to flush trace '{self._feature_slug}': {e}")
        finally:
            self._in_flight = None
