"""
Configuration for the Basalt SDK.

A ``BasaltConfig`` is built in code or from ``BASALT_*`` environment
variables; keyword overrides passed to ``from_env`` win over the environment,
and fields set by neither keep their defaults.
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

from .version import SDK_TYPE, __version__

SUPPORTED_PROVIDERS = ("openai", "anthropic", "bedrock")

_TRUTHY = ("true", "1", "yes", "on", "enabled")


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in _TRUTHY


def _parse_names(raw: str) -> Tuple[str, ...]:
    return tuple(name.strip() for name in raw.split(",") if name.strip())


# field name -> (environment variable, parser)
_ENVIRONMENT: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "api_key": ("BASALT_API_KEY", str),
    "base_url": ("BASALT_BASE_URL", str),
    "timeout": ("BASALT_TIMEOUT", float),
    "max_retries": ("BASALT_MAX_RETRIES", int),
    "environment": ("BASALT_ENVIRONMENT", str),
    "release": ("BASALT_RELEASE", str),
    "tracing_enabled": ("BASALT_TRACING_ENABLED", _parse_bool),
    "sample_rate": ("BASALT_SAMPLE_RATE", float),
    "debug": ("BASALT_DEBUG", _parse_bool),
    "cache_enabled": ("BASALT_CACHE_ENABLED", _parse_bool),
    "cache_ttl": ("BASALT_CACHE_TTL", float),
    "flush_at": ("BASALT_FLUSH_AT", int),
    "flush_interval": ("BASALT_FLUSH_INTERVAL", float),
    "instrument": ("BASALT_INSTRUMENT", _parse_names),
    "capture_content": ("BASALT_CAPTURE_CONTENT", _parse_bool),
}


@dataclass
class BasaltConfig:
    """
    Settings shared by the HTTP client, the resource caches and telemetry.

    Invalid values raise ``ValueError`` at construction.
    """

    # ========== Connection ==========
    api_key: str
    """Basalt API key (required)"""

    base_url: str = "https://api.getbasalt.ai"
    """Root URL of the Basalt API"""

    timeout: float = 30.0
    """Per-request timeout in seconds"""

    max_retries: int = 3
    """Retries after a connection failure or a 5xx response"""

    # ========== Deployment ==========
    environment: str = "default"
    """Deployment tag sent with every request ('production', 'staging', ...)"""

    release: Optional[str] = None
    """Application release, exported as the service version"""

    # ========== Tracing ==========
    tracing_enabled: bool = True
    """Export spans; when False spans are still created, then dropped"""

    sample_rate: float = 1.0
    """Fraction of traces kept (0.0-1.0)"""

    debug: bool = False
    """Log at DEBUG level"""

    # ========== Resource caching ==========
    cache_enabled: bool = True
    """Serve resource reads from the short-lived query cache"""

    cache_ttl: float = 300.0
    """Query cache lifetime in seconds, for prompts and datasets"""

    prompt_fallback_requires_cache: bool = True
    """Only fall back to stale prompts when the read has caching enabled"""

    dataset_fallback_requires_cache: bool = False
    """Only fall back to stale datasets when the read has caching enabled"""

    # ========== Span export ==========
    flush_at: int = 512
    """Spans per export batch (1-2048)"""

    flush_interval: float = 5.0
    """Seconds between scheduled exports (0.1-60.0)"""

    max_queue_size: int = 2048
    """Spans buffered before new ones are dropped"""

    export_timeout: int = 30000
    """Export deadline in milliseconds"""

    # ========== Provider instrumentation ==========
    instrument: Tuple[str, ...] = ()
    """Provider libraries to auto-instrument ('openai', 'anthropic', 'bedrock')"""

    capture_content: bool = True
    """Record prompt and completion content on provider spans"""

    def __post_init__(self):
        self.instrument = tuple(self.instrument)
        self.validate()

    def _rules(self) -> Iterator[Tuple[bool, str]]:
        yield bool(self.api_key and self.api_key.strip()), "api_key is required"
        yield bool(self.base_url), "base_url is required"
        yield (
            self.base_url.startswith(("http://", "https://")),
            "base_url must start with http:// or https://",
        )
        yield bool(self.environment), "environment cannot be empty"
        yield len(self.environment) <= 40, "environment must be 40 characters or less"
        yield 0.0 <= self.sample_rate <= 1.0, "sample_rate must be between 0.0 and 1.0"
        yield self.timeout > 0, "timeout must be positive"
        yield self.max_retries >= 0, "max_retries cannot be negative"
        yield self.cache_ttl > 0, "cache_ttl must be positive"
        yield 1 <= self.flush_at <= 2048, "flush_at must be between 1 and 2048"
        yield 0.1 <= self.flush_interval <= 60.0, "flush_interval must be between 0.1 and 60.0 seconds"
        yield self.max_queue_size >= 1, "max_queue_size must be at least 1"
        yield self.export_timeout >= 1000, "export_timeout must be at least 1000 milliseconds"

        unknown = [name for name in self.instrument if name not in SUPPORTED_PROVIDERS]
        yield not unknown, (
            f"instrument contains unsupported providers: {', '.join(unknown)} "
            f"(supported: {', '.join(SUPPORTED_PROVIDERS)})"
        )

    def validate(self) -> None:
        """
        Check every field.

        Raises:
            ValueError: Naming the first invalid field
        """
        for ok, message in self._rules():
            if not ok:
                raise ValueError(message)

    @classmethod
    def from_env(cls, **overrides: Any) -> "BasaltConfig":
        """
        Build a configuration from ``BASALT_*`` environment variables.

        Recognized variables: BASALT_API_KEY (required), BASALT_BASE_URL,
        BASALT_TIMEOUT, BASALT_MAX_RETRIES, BASALT_ENVIRONMENT,
        BASALT_RELEASE, BASALT_TRACING_ENABLED, BASALT_SAMPLE_RATE,
        BASALT_DEBUG, BASALT_CACHE_ENABLED, BASALT_CACHE_TTL,
        BASALT_FLUSH_AT, BASALT_FLUSH_INTERVAL, BASALT_INSTRUMENT
        (comma-separated) and BASALT_CAPTURE_CONTENT. Booleans accept
        true/1/yes/on/enabled.

        Args:
            **overrides: Field values taking precedence over the environment.
                ``None`` values are ignored.

        Raises:
            ValueError: If the API key is missing or a value is invalid
        """
        known = {f.name for f in fields(cls) if f.init}
        values = {key: value for key, value in overrides.items() if key in known and value is not None}

        for name, (variable, parse) in _ENVIRONMENT.items():
            if name not in values and os.getenv(variable):
                values[name] = parse(os.environ[variable])

        if not values.get("api_key"):
            raise ValueError(
                "BASALT_API_KEY environment variable is required. "
                "Get your API key from https://app.getbasalt.ai"
            )
        return cls(**values)

    def get_otlp_endpoint(self) -> str:
        """OTLP/HTTP traces endpoint under the API base URL."""
        return f"{self.base_url.rstrip('/')}/v1/traces"

    def get_headers(self) -> Dict[str, str]:
        """Headers shared by API requests and span export."""
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "X-BASALT-SDK-VERSION": __version__,
            "X-BASALT-SDK-TYPE": SDK_TYPE,
        }
        if self.environment != "default":
            headers["X-BASALT-ENVIRONMENT"] = self.environment
        return headers

    def __repr__(self) -> str:
        key = self.api_key
        masked = f"{key[:7]}...{key[-4:]}" if len(key) > 11 else "***"
        return (
            f"BasaltConfig(api_key='{masked}', base_url='{self.base_url}', "
            f"environment='{self.environment}', tracing_enabled={self.tracing_enabled}, "
            f"cache_enabled={self.cache_enabled})"
        )
