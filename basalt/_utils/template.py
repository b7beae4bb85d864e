"""
Prompt template helpers.

Prompt text carries ``{{name}}`` placeholders filled from a variables map.
"""

import logging
import re
from typing import Any, List, Mapping, Optional, Set

logger = logging.getLogger(__name__)

_VARIABLE = re.compile(r"{{(.*?)}}")


def get_variable_names(text: str) -> List[str]:
    """
    Find all variables present in a template.

    Example:
        >>> get_variable_names("Hello {{name}}, welcome to {{place}}")
        ['name', 'place']
    """
    return _VARIABLE.findall(text or "")


def missing_variables(text: str, variables: Optional[Mapping[str, Any]]) -> Set[str]:
    """Variables referenced by ``text`` that ``variables`` does not provide."""
    return set(get_variable_names(text)) - set(variables or {})


def replace_variables(text: str, variables: Optional[Mapping[str, Any]]) -> str:
    """
    Substitute ``{{name}}`` placeholders.

    None values leave their placeholder untouched. Inserted values are not
    re-scanned, so a value may itself contain ``{{...}}``.
    """
    if not variables:
        return text

    def substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        value = variables.get(name)
        if value is None:
            return match.group(0)
        return str(value)

    return _VARIABLE.sub(substitute, text)


def render(text: str, variables: Optional[Mapping[str, Any]]) -> str:
    """Fill ``text`` with ``variables``, warning about missing ones."""
    missing = missing_variables(text, variables)
    if missing:
        logger.warning(
            "Basalt Warning: Some variables are missing in the prompt text: "
            + ", ".join(sorted(missing))
        )
    return replace_variables(text, variables)
