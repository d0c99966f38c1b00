"""
Telemetry - Payload Generation.

Builds a :class:`TelemetryPayload` from whatever part of the run
state is populated. Every input may be None: exit listeners call
this before initialization has finished.
"""

import platform
import re
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from core.constants import CLI_VERSION
from core.context import Context
from core.exceptions import ComposeException
from .models import TelemetryError, TelemetryPayload


# ${component.output} references left for the components service
CROSS_COMPONENT_REFERENCE = re.compile(r"\$\{([\w-]+)\.([\w.-]+)\}")


def count_cross_component_references(
    configuration: Optional[Mapping[str, Any]],
) -> int:
    """Count ``${name.output}`` references that target a declared component."""
    if not isinstance(configuration, Mapping):
        return 0
    services = configuration.get("services")
    if not isinstance(services, Mapping):
        return 0

    count = 0
    stack = [services]
    while stack:
        node = stack.pop()
        if isinstance(node, str):
            count += sum(
                1 for m in CROSS_COMPONENT_REFERENCE.finditer(node) if m.group(1) in services
            )
        elif isinstance(node, Mapping):
            stack.extend(node.values())
        elif isinstance(node, (list, tuple)):
            stack.extend(node)
    return count


def _error_record(error: Optional[BaseException]) -> Optional[TelemetryError]:
    if error is None:
        return None
    if isinstance(error, ComposeException):
        return TelemetryError(type=type(error).__name__, code=error.code)
    return TelemetryError(type=type(error).__name__)


def generate_payload(
    configuration: Optional[Mapping[str, Any]] = None,
    options: Optional[Mapping[str, Any]] = None,
    command: Optional[str] = None,
    component_name: Optional[str] = None,
    context: Optional[Context] = None,
    error: Optional[BaseException] = None,
    interrupt_signal: Optional[str] = None,
) -> TelemetryPayload:
    """
    Generate a telemetry payload.

    Option values and component names are never included.
    """
    services = configuration.get("services") if isinstance(configuration, Mapping) else None
    outcomes: Dict[str, str] = {}
    if context is not None:
        outcomes = {
            key: outcome.value for key, outcome in context.component_commands_outcomes.items()
        }

    scope = None
    if command is not None:
        scope = "component" if component_name else "global"

    return TelemetryPayload(
        event_id=str(uuid.uuid4()),
        timestamp=datetime.now(timezone.utc),
        cli_version=CLI_VERSION,
        python_version=platform.python_version(),
        platform=sys.platform,
        command=command,
        command_scope=scope,
        stage=context.stage if context is not None else None,
        is_verbose=bool(context.verbose) if context is not None else False,
        option_names=sorted(options) if options else [],
        component_count=len(services) if isinstance(services, Mapping) else 0,
        cross_component_reference_count=count_cross_component_references(configuration),
        component_outcomes=outcomes,
        error=_error_record(error),
        interrupt_signal=interrupt_signal,
    )


__all__ = [
    "generate_payload",
    "count_cross_component_references",
]
