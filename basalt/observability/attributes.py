"""
Basalt span attribute constants.

Stable keys other systems may query on exported spans. Use these constants
instead of magic strings.
"""


class BasaltSpanAttributes:
    """Attribute keys written by the Basalt SDK onto OpenTelemetry spans."""

    # ========== Trace Markers ==========
    TRACE = "basalt.trace"
    IN_TRACE = "basalt.in_trace"
    ROOT = "basalt.root"
    SPAN_KIND = "basalt.span.kind"
    SPAN_TYPE = "basalt.span_type"

    # ========== SDK Identification ==========
    SDK = "basalt.sdk"
    SDK_NAME = "basalt.sdk.name"
    SDK_VERSION = "basalt.sdk.version"
    SDK_TARGET = "basalt.sdk.target"
    SDK_TYPE = "basalt.sdk.type"

    # ========== Span Payload ==========
    SPAN_INPUT = "basalt.span.input"
    SPAN_OUTPUT = "basalt.span.output"
    SPAN_VARIABLES = "basalt.span.variables"

    # ========== Identity ==========
    USER_ID = "basalt.user.id"
    USER_NAME = "basalt.user.name"
    ORGANIZATION_ID = "basalt.organization.id"
    ORGANIZATION_NAME = "basalt.organization.name"
    FEATURE_SLUG = "basalt.span.feature_slug"

    # ========== Experiments ==========
    EXPERIMENT_ID = "basalt.experiment.id"
    EXPERIMENT_NAME = "basalt.experiment.name"
    EXPERIMENT_FEATURE_SLUG = "basalt.experiment.feature_slug"

    # ========== Evaluation ==========
    EVALUATORS = "basalt.evaluators"
    EVALUATION_SAMPLE_RATE = "basalt.evaluation.sample_rate"
    EVALUATION_CONFIG = "basalt.evaluation.config"

    # ========== Prompts ==========
    PROMPT_SLUG = "basalt.prompt.slug"
    PROMPT_VERSION = "basalt.prompt.version"
    PROMPT_TAG = "basalt.prompt.tag"
    PROMPT_MODEL_PROVIDER = "basalt.prompt.model.provider"
    PROMPT_MODEL_NAME = "basalt.prompt.model.model"
    PROMPT_FROM_CACHE = "basalt.prompt.from_cache"
    PROMPT_VARIABLES = "basalt.prompt.variables"
    PROMPTS_COUNT = "basalt.prompts.count"

    # ========== Datasets ==========
    DATASET_SLUG = "basalt.dataset.slug"
    DATASET_ROW_COUNT = "basalt.dataset.row_count"

    # ========== Cache ==========
    CACHE_HIT = "basalt.cache.hit"
    CACHE_TYPE = "basalt.cache.type"

    # ========== API Layer ==========
    API_CLIENT = "basalt.api.client"
    API_OPERATION = "basalt.api.operation"
    INTERNAL_API = "basalt.internal.api"
    REQUEST_DURATION_MS = "basalt.request.duration_ms"
    REQUEST_SUCCESS = "basalt.request.success"

    # ========== HTTP Semantic Conventions ==========
    HTTP_METHOD = "http.method"
    HTTP_URL = "http.url"
    HTTP_STATUS_CODE = "http.status_code"
    HTTP_RESPONSE_TIME_MS = "http.response_time_ms"

    # ========== Errors ==========
    ERROR_TYPE = "error.type"
    ERROR_MESSAGE = "error.message"
    ERROR_CODE = "basalt.error.code"


METADATA_PREFIX = "basalt.meta."
"""Prefix for flattened context metadata keys"""

SERIALIZATION_ERROR = "[Serialization Error]"
"""Value written in place of attributes that cannot be JSON-encoded"""


class CacheType:
    """Values of the ``basalt.cache.type`` attribute."""

    QUERY = "query"
    FALLBACK = "fallback"
    NONE = "none"


class ApiClient:
    """Values of the ``basalt.api.client`` attribute."""

    PROMPTS = "prompts"
    DATASETS = "datasets"
    EXPERIMENTS = "experiments"
    MONITOR = "monitor"
