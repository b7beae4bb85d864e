"""
Prompts Module

Async access to prompts stored in Basalt.
"""

from .client import PromptSDK, prompt_cache_key
from .models import (
    PromptDetail,
    PromptListItem,
    PromptModelConfig,
    PromptModelParameters,
    PromptResponse,
    PromptVariable,
)

__all__ = [
    "PromptSDK",
    "prompt_cache_key",
    "PromptResponse",
    "PromptModelConfig",
    "PromptModelParameters",
    "PromptListItem",
    "PromptDetail",
    "PromptVariable",
]
