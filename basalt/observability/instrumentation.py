"""
Auto-instrumentation registry for LLM provider libraries.

The registry is an ordinary object owned by the client; nothing here is
process-global. Instrumentation packages are optional: a missing package is
logged with an install hint and reported as ``NOT_AVAILABLE``.

Spans produced by these instrumentations are stamped with the ambient
observation context by ``BasaltContextProcessor``.
"""

import importlib
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from opentelemetry.trace import TracerProvider

logger = logging.getLogger(__name__)


class InstrumentationStatus(Enum):
    """Status of instrumentation for a provider library."""
    NOT_AVAILABLE = "not_available"  # Instrumentation package not installed
    AVAILABLE = "available"          # Known provider, not instrumented yet
    INSTRUMENTED = "instrumented"    # Instrumented successfully
    FAILED = "failed"                # Instrumentor raised


@dataclass(frozen=True)
class ProviderInstrumentation:
    """Where to find the OpenTelemetry instrumentor for a provider library."""

    name: str
    module: str
    instrumentor: str
    package: str
    description: str = ""


DEFAULT_PROVIDERS = (
    ProviderInstrumentation(
        name="openai",
        module="opentelemetry.instrumentation.openai",
        instrumentor="OpenAIInstrumentor",
        package="opentelemetry-instrumentation-openai",
        description="OpenAI Python library for GPT models",
    ),
    ProviderInstrumentation(
        name="anthropic",
        module="opentelemetry.instrumentation.anthropic",
        instrumentor="AnthropicInstrumentor",
        package="opentelemetry-instrumentation-anthropic",
        description="Anthropic Python library for Claude models",
    ),
    ProviderInstrumentation(
        name="bedrock",
        module="opentelemetry.instrumentation.bedrock",
        instrumentor="BedrockInstrumentor",
        package="opentelemetry-instrumentation-bedrock",
        description="AWS Bedrock runtime via boto3",
    ),
)

# Read by the provider instrumentations when deciding whether to record message content
CONTENT_CAPTURE_ENV = "TRACELOOP_TRACE_CONTENT"

_UNSET = object()


class InstrumentationRegistry:
    """Registry for enabling provider auto-instrumentation."""

    def __init__(
        self,
        tracer_provider: Optional[TracerProvider] = None,
        providers: Iterable[ProviderInstrumentation] = DEFAULT_PROVIDERS,
    ):
        self._tracer_provider = tracer_provider
        self._providers: Dict[str, ProviderInstrumentation] = {p.name: p for p in providers}
        self._instrumentors: Dict[str, Any] = {}
        self._status: Dict[str, InstrumentationStatus] = {}
        self._previous_content_env: Any = _UNSET

    def register_provider(self, provider: ProviderInstrumentation) -> None:
        """Register (or replace) a provider definition."""
        self._providers[provider.name] = provider
        logger.debug(f"Registered instrumentation for {provider.name}")

    def list_providers(self) -> List[str]:
        """List all registered provider names."""
        return list(self._providers)

    def get_status(self, name: Optional[str] = None) -> Dict[str, InstrumentationStatus]:
        """Get instrumentation status for one provider or for all of them."""
        names = [name] if name else list(self._providers)
        return {
            n: self._status.get(n, InstrumentationStatus.AVAILABLE)
            for n in names
            if n in self._providers
        }

    def instrument(
        self,
        providers: Iterable[str],
        *,
        capture_content: bool = True,
    ) -> Dict[str, InstrumentationStatus]:
        """
        Instrument each named provider.

        Args:
            providers: Provider names ("openai", "anthropic", "bedrock")
            capture_content: Record prompt/completion content on provider spans.
                Overrides TRACELOOP_TRACE_CONTENT until ``uninstrument()``
                restores its previous value.

        Returns:
            Status per requested provider
        """
        providers = list(providers)
        if providers:
            self._set_content_capture(capture_content)
        return {name: self.instrument_provider(name) for name in providers}

    def _set_content_capture(self, enabled: bool) -> None:
        if self._previous_content_env is _UNSET:
            self._previous_content_env = os.environ.get(CONTENT_CAPTURE_ENV)
        os.environ[CONTENT_CAPTURE_ENV] = "true" if enabled else "false"

    def _restore_content_capture(self) -> None:
        previous, self._previous_content_env = self._previous_content_env, _UNSET
        if previous is _UNSET:
            return
        if previous is None:
            os.environ.pop(CONTENT_CAPTURE_ENV, None)
        else:
            os.environ[CONTENT_CAPTURE_ENV] = previous

    def instrument_provider(self, name: str) -> InstrumentationStatus:
        """Instrument one provider. Instrumenting an already instrumented provider is a no-op."""
        if name in self._instrumentors:
            return InstrumentationStatus.INSTRUMENTED

        provider = self._providers.get(name)
        if provider is None:
            logger.warning(f"Unknown instrumentation provider '{name}'")
            return InstrumentationStatus.NOT_AVAILABLE

        try:
            module = importlib.import_module(provider.module)
        except ImportError:
            logger.warning(
                f"Cannot enable {name} instrumentation: package not found. "
                f"Install with: pip install {provider.package}"
            )
            self._status[name] = InstrumentationStatus.NOT_AVAILABLE
            return InstrumentationStatus.NOT_AVAILABLE

        try:
            instrumentor = getattr(module, provider.instrumentor)()
            if self._tracer_provider is not None:
                instrumentor.instrument(tracer_provider=self._tracer_provider)
            else:
                instrumentor.instrument()
        except Exception as e:
            logger.error(f"Error instrumenting {name}: {e}")
            self._status[name] = InstrumentationStatus.FAILED
            return InstrumentationStatus.FAILED

        self._instrumentors[name] = instrumentor
        self._status[name] = InstrumentationStatus.INSTRUMENTED
        logger.info(f"Successfully instrumented {name}")
        return InstrumentationStatus.INSTRUMENTED

    def uninstrument(self) -> None:
        """Remove every instrumentation this registry installed."""
        for name, instrumentor in list(self._instrumentors.items()):
            try:
                instrumentor.uninstrument()
                logger.info(f"Successfully uninstrumented {name}")
            except Exception as e:
                logger.error(f"Error uninstrumenting {name}: {e}")
            self._status[name] = InstrumentationStatus.AVAILABLE
        self._instrumentors.clear()
        self._restore_content_capture()
