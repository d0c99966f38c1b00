"""Command router: turns CLI tokens into an invocation."""

from typing import Any, Dict, Mapping, Optional, Sequence, Union

from core.constants import (
    HELP_COMMAND,
    HELP_OPTION,
    POSITIONAL_KEY,
    RESERVED_CLI_OPTIONS,
    SERVICE_OPTION,
)
from core.exceptions import InvalidCliOptionError
from .models import HelpRequested, Invocation


def route(
    tokens: Optional[Sequence[str]],
    options: Mapping[str, Any],
) -> Union[Invocation, HelpRequested]:
    """
    Derive the target invocation.

    Rules, in order:
    1. help flag, ``help`` as first token, or no tokens -> HelpRequested
    2. tokens are joined with ``:`` into the raw command
    3. ``--service`` names the component, the raw command is kept whole
    4. otherwise ``component:command...`` is split on the first ``:``
    5. otherwise the raw command is global

    The caller's ``options`` are not modified.
    """
    tokens = list(tokens or [])
    if options.get(HELP_OPTION) or not tokens or tokens[0] == HELP_COMMAND:
        return HelpRequested()

    command = ":".join(str(token) for token in tokens)
    remaining: Dict[str, Any] = dict(options)
    remaining.pop(POSITIONAL_KEY, None)

    component_name = None
    if remaining.get(SERVICE_OPTION):
        component_name = str(remaining.pop(SERVICE_OPTION))
    else:
        remaining.pop(SERVICE_OPTION, None)
        if ":" in command:
            component_name, command = command.split(":", 1)

    return Invocation(
        command=command,
        component_name=component_name,
        options=remaining,
    )


def reject_reserved_options(options: Mapping[str, Any]) -> None:
    """
    Fail on Framework CLI-wide options that compose reserves.

    Reserved for every command, component-specific ones included.
    """
    for option in RESERVED_CLI_OPTIONS:
        if options.get(option):
            raise InvalidCliOptionError(option)


__all__ = ["route", "reject_reserved_options"]
