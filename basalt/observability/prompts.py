"""
Prompt propagation.

Records which prompts are in use so that every span started in the scope is
annotated with the first prompt's slug, version, tag, model and variables.
Accepts ``PromptMetadata`` values or prompts returned by ``basalt.prompts.get``.
"""

from contextlib import contextmanager, nullcontext
from typing import Any, Callable, Iterable, Iterator, List, Optional

from .context import ObservationContext, merged_context_scope, run_in_scope
from .types import PromptMetadata


def as_prompt_metadata(prompt: Any) -> Optional[PromptMetadata]:
    """Return the ``PromptMetadata`` describing ``prompt``, or None if it has no usable slug."""
    if not isinstance(prompt, PromptMetadata):
        prompt = getattr(prompt, "prompt_metadata", None)
    if isinstance(prompt, PromptMetadata) and prompt.key:
        return prompt
    return None


@contextmanager
def prompts_scope(prompts: Iterable[Any]) -> Iterator[None]:
    """Merge ``prompts`` into the ambient context for the enclosed block."""
    metadata: List[PromptMetadata] = []
    for prompt in prompts or ():
        entry = as_prompt_metadata(prompt)
        if entry is not None:
            metadata.append(entry)

    scope = merged_context_scope(ObservationContext(prompts=tuple(metadata))) if metadata else nullcontext()
    with scope:
        yield


def with_prompt(prompt: Any, fn: Callable[..., Any], *args, **kwargs) -> Any:
    """Call ``fn`` with ``prompt`` recorded in the ambient context."""
    return run_in_scope(lambda: prompts_scope([prompt]), fn, *args, **kwargs)


def with_prompts(prompts: Iterable[Any], fn: Callable[..., Any], *args, **kwargs) -> Any:
    """Call ``fn`` with every prompt in ``prompts`` recorded in the ambient context."""
    return run_in_scope(lambda: prompts_scope(prompts), fn, *args, **kwargs)


__all__ = ["as_prompt_metadata", "prompts_scope", "with_prompt", "with_prompts"]
