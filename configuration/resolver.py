"""
Configuration - Variable Resolver.

============================================================
RESPONSIBILITY
============================================================
Rewrites ``${source:path}`` placeholders in a configuration tree.

Supported sources:
- ``${sls:stage}``  -> the current stage
- ``${env:NAME}``   -> the NAME environment variable

============================================================
ALGORITHM
============================================================
1. Walk every string leaf and rewrite each placeholder match
2. If a pass substituted anything, run another pass over the
   whole tree (a substitution can reveal a new placeholder)
3. Once a pass substitutes nothing, fail if any unrecognized
   source was seen (all of them, in first-seen order),
   otherwise return the tree

A missing environment variable fails immediately. Passes are
capped to bound self-referencing values.

============================================================
"""

import logging
import os
import re
from typing import Any, Callable, Dict, Mapping, Optional

from core.constants import DEFAULT_MAX_RESOLUTION_PASSES, LOGGER_NAME
from core.exceptions import (
    MissingEnvironmentVariableError,
    ResolutionLimitExceededError,
    UnrecognizedVariableSourcesError,
)


logger = logging.getLogger(f"{LOGGER_NAME}.{__name__}")

VARIABLE_PATTERN = re.compile(r"\$\{(\w+):([\w.-]+)\}")

SLS_SOURCE = "sls"
ENV_SOURCE = "env"


# ============================================================
# TREE VISITOR
# ============================================================

def transform_strings(node: Any, rewrite: Callable[[str], str]) -> Any:
    """
    Return a copy of ``node`` with every string leaf passed through ``rewrite``.

    Mapping keys are left untouched.
    """
    if isinstance(node, str):
        return rewrite(node)
    if isinstance(node, dict):
        return {key: transform_strings(value, rewrite) for key, value in node.items()}
    if isinstance(node, list):
        return [transform_strings(item, rewrite) for item in node]
    if isinstance(node, tuple):
        return tuple(transform_strings(item, rewrite) for item in node)
    return node


# ============================================================
# RESOLVER
# ============================================================

class VariableResolver:
    """Fixpoint resolver for ``sls`` and ``env`` placeholders."""

    def __init__(
        self,
        stage: str,
        environ: Optional[Mapping[str, str]] = None,
        max_passes: int = DEFAULT_MAX_RESOLUTION_PASSES,
    ):
        self._stage = stage
        self._environ = environ if environ is not None else os.environ
        self._max_passes = max_passes
        # dict keeps first-seen order
        self._unrecognized_sources: Dict[str, None] = {}
        self._substitutions = 0

    @property
    def unrecognized_sources(self):
        return list(self._unrecognized_sources)

    def resolve(self, configuration: Any) -> Any:
        """
        Resolve all placeholders.

        Raises:
            MissingEnvironmentVariableError: An env placeholder is undefined
            UnrecognizedVariableSourcesError: Unknown sources remain
            ResolutionLimitExceededError: The pass cap was reached
        """
        resolved = configuration
        for pass_number in range(1, self._max_passes + 1):
            self._substitutions = 0
            resolved = transform_strings(resolved, self._resolve_string)
            logger.debug(
                f"Variable resolution pass {pass_number} | substitutions={self._substitutions}"
            )
            if self._substitutions == 0:
                break
        else:
            raise ResolutionLimitExceededError(self._max_passes)

        if self._unrecognized_sources:
            raise UnrecognizedVariableSourcesError(self._unrecognized_sources)

        return resolved

    def _resolve_string(self, value: str) -> str:
        new_value = value
        for match in VARIABLE_PATTERN.finditer(value):
            placeholder = match.group(0)
            source, path = match.group(1), match.group(2)

            if source == SLS_SOURCE and path == "stage":
                new_value = new_value.replace(placeholder, self._stage, 1)
                self._substitutions += 1
            elif source == ENV_SOURCE:
                name = path.split(":", 1)[0]
                env_value = self._environ.get(name)
                if env_value is None:
                    raise MissingEnvironmentVariableError(name)
                if placeholder == value:
                    new_value = env_value
                else:
                    new_value = new_value.replace(placeholder, env_value, 1)
                self._substitutions += 1
            else:
                self._unrecognized_sources.setdefault(source, None)

        return new_value


def resolve_configuration_variables(
    configuration: Any,
    stage: str,
    environ: Optional[Mapping[str, str]] = None,
    max_passes: int = DEFAULT_MAX_RESOLUTION_PASSES,
) -> Any:
    """Resolve ``configuration`` against ``stage``; see :class:`VariableResolver`."""
    return VariableResolver(stage, environ=environ, max_passes=max_passes).resolve(configuration)


__all__ = [
    "VARIABLE_PATTERN",
    "VariableResolver",
    "resolve_configuration_variables",
    "transform_strings",
]
