"""
Evaluator propagation.

Evaluators named here are attached to every span started in the scope (as
the ``basalt.evaluators`` JSON array) and evaluated server-side.

Usage:
    >>> with evaluators_scope(["quality", "safety"]):
    ...     with evaluators_scope(["toxicity"]):
    ...         ...  # spans carry ["quality", "safety", "toxicity"]
"""

from contextlib import contextmanager, nullcontext
from typing import Any, Callable, Iterator, Mapping, Sequence, Union

from .context import ObservationContext, merged_context_scope, normalize_evaluators, run_in_scope
from .types import EvaluationConfig


@contextmanager
def evaluators_scope(evaluators: Sequence[str]) -> Iterator[None]:
    """
    Add evaluators to the ambient context for the enclosed block.

    Blank and non-string entries are dropped; input that is not a list or
    tuple is ignored.
    """
    valid = normalize_evaluators(evaluators)
    scope = merged_context_scope(ObservationContext(evaluators=valid)) if valid else nullcontext()
    with scope:
        yield


def with_evaluators(evaluators: Sequence[str], fn: Callable[..., Any], *args, **kwargs) -> Any:
    """Call ``fn`` with ``evaluators`` added to the ambient context."""
    return run_in_scope(lambda: evaluators_scope(evaluators), fn, *args, **kwargs)


def attach_evaluator(evaluator: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
    """Single-evaluator form of ``with_evaluators``."""
    return with_evaluators([evaluator], fn, *args, **kwargs)


@contextmanager
def evaluation_config_scope(config: Union[EvaluationConfig, Mapping[str, Any]]) -> Iterator[None]:
    """Merge evaluation settings into the ambient context for the enclosed block."""
    if not isinstance(config, EvaluationConfig):
        config = EvaluationConfig(**dict(config))
    with merged_context_scope(ObservationContext(evaluation_config=config.to_dict())):
        yield


def with_evaluation_config(
    config: Union[EvaluationConfig, Mapping[str, Any]],
    fn: Callable[..., Any],
    *args,
    **kwargs,
) -> Any:
    """Call ``fn`` with ``config`` merged into the ambient evaluation settings."""
    return run_in_scope(lambda: evaluation_config_scope(config), fn, *args, **kwargs)


__all__ = [
    "evaluators_scope",
    "with_evaluators",
    "attach_evaluator",
    "evaluation_config_scope",
    "with_evaluation_config",
]
