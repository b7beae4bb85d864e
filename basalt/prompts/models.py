"""
Response models for the prompts API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..observability.types import PromptMetadata, PromptModel


class _ApiModel(BaseModel):
    """Accepts the API's camelCase keys as well as snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PromptModelParameters(_ApiModel):
    """Generation parameters configured on a prompt's model."""

    temperature: Optional[float] = None
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    top_k: Optional[float] = None
    max_length: Optional[int] = None
    response_format: Optional[str] = Field(default=None, description="json, text, json-object or tools")
    json_object: Optional[Dict[str, Any]] = None
    reasoning_effort: Optional[str] = None
    verbosity: Optional[str] = None


class PromptModelConfig(_ApiModel):
    """Model a prompt is configured to run on."""

    provider: str = Field(description="Model provider (open-ai, anthropic, mistral, ...)")
    model: str = Field(description="Model name")
    version: str = Field(default="latest", description="Model version")
    parameters: Optional[PromptModelParameters] = None


class PromptResponse(_ApiModel):
    """A prompt as served to the caller."""

    text: str = Field(description="Prompt text")
    system_text: Optional[str] = Field(default=None, description="System prompt text")
    version: Optional[str] = Field(default=None, description="Resolved prompt version")
    model: PromptModelConfig

    slug: Optional[str] = Field(default=None, description="Requested slug")
    tag: Optional[str] = Field(default=None, description="Requested tag")
    variables: Optional[Dict[str, Any]] = Field(default=None, description="Variables substituted into the text")
    from_cache: bool = Field(default=False, description="Whether the prompt was served from a cache")

    @property
    def prompt_metadata(self) -> PromptMetadata:
        """Metadata used to tag spans and the ambient context."""
        return PromptMetadata(
            slug=self.slug or "",
            version=self.version,
            tag=self.tag,
            variables=self.variables,
            model=PromptModel(provider=self.model.provider, model=self.model.model),
            from_cache=self.from_cache,
        )


class GetPromptResponse(_ApiModel):
    """Envelope of ``GET /prompts/{slug}``."""

    warning: Optional[str] = None
    prompt: PromptResponse


class PromptListItem(_ApiModel):
    """Summary of a prompt returned by ``list``."""

    slug: Optional[str] = None
    status: str = Field(description="live or draft")
    name: str
    description: Optional[str] = None
    available_versions: List[str] = Field(default_factory=list)
    available_tags: List[str] = Field(default_factory=list)


class ListPromptsResponse(_ApiModel):
    """Envelope of ``GET /prompts``."""

    warning: Optional[str] = None
    prompts: List[PromptListItem]


class PromptVariable(_ApiModel):
    """Variable declared by a prompt."""

    label: str
    description: Optional[str] = None
    type: str


class PromptDetail(PromptListItem):
    """Full description of a prompt returned by ``describe``."""

    variables: List[PromptVariable] = Field(default_factory=list)
    version: str
    tag: Optional[str] = None


class DescribePromptResponse(_ApiModel):
    """Envelope of ``GET /prompts/{slug}/describe``."""

    warning: Optional[str] = None
    prompt: PromptDetail
