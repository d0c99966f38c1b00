"""
Orchestrator - Models.

============================================================
RESPONSIBILITY
============================================================
Defines data models for the CLI orchestrator.

- Invocation produced by the command router
- Help marker returned instead of an invocation
- RunState shared with exit listeners
- Settings loaded from the environment

============================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import os

from core.constants import (
    DEFAULT_FRAMEWORK_EXECUTABLE,
    DEFAULT_MAX_RESOLUTION_PASSES,
    DEFAULT_TELEMETRY_DIR,
    DEFAULT_TELEMETRY_TIMEOUT_SECONDS,
)
from core.context import Context


# ============================================================
# ROUTING RESULTS
# ============================================================

@dataclass(frozen=True)
class Invocation:
    """Target of one CLI run."""

    command: str
    """Command string, may itself contain ``:``."""

    component_name: Optional[str] = None
    """Component targeted, None for a global command."""

    options: Dict[str, Any] = field(default_factory=dict)
    """Remaining CLI options, without ``service`` and positional tokens."""

    @property
    def is_global(self) -> bool:
        """Check if the command targets every component."""
        return self.component_name is None


@dataclass(frozen=True)
class HelpRequested:
    """Returned by the router when usage should be printed."""


# ============================================================
# RUN STATE
# ============================================================

@dataclass
class RunState:
    """
    Process-wide record of the current run.

    Created before exit listeners are installed and only ever
    mutated in place, so listeners always see the latest values.
    Any field may still be None when a listener reads it.
    """

    options: Optional[Dict[str, Any]] = None
    command: Optional[str] = None
    component_name: Optional[str] = None
    context: Optional[Context] = None
    configuration_for_telemetry: Optional[Dict[str, Any]] = None

    def apply_invocation(self, invocation: Invocation) -> None:
        """Copy the routed invocation into the run state."""
        self.options = invocation.options
        self.command = invocation.command
        self.component_name = invocation.component_name


# ============================================================
# SETTINGS
# ============================================================

def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class ComposeSettings:
    """Settings for the CLI, independent of the composition document."""

    # Logging
    log_level: str = "INFO"
    """Console logging level (``--verbose`` forces DEBUG)."""

    log_format: str = "text"
    """Logging format (text or json)."""

    # Telemetry
    telemetry_url: Optional[str] = None
    """Endpoint receiving telemetry batches; None skips transmission."""

    telemetry_disabled: bool = False
    """Disable telemetry storage and transmission."""

    telemetry_timeout_seconds: float = DEFAULT_TELEMETRY_TIMEOUT_SECONDS
    """Timeout of the single transmission attempt."""

    telemetry_dir: str = str(DEFAULT_TELEMETRY_DIR)
    """Directory where telemetry events are stored before sending."""

    # Resolution
    max_resolution_passes: int = DEFAULT_MAX_RESOLUTION_PASSES
    """Cap on variable resolution passes."""

    # Components
    framework_executable: str = DEFAULT_FRAMEWORK_EXECUTABLE
    """Executable run inside each component directory."""

    @classmethod
    def from_env(cls) -> "ComposeSettings":
        """Load settings from environment variables."""
        return cls(
            log_level=os.getenv("SLS_COMPOSE_LOG_LEVEL", "INFO"),
            log_format=os.getenv("SLS_COMPOSE_LOG_FORMAT", "text"),
            telemetry_url=os.getenv("SLS_TELEMETRY_URL") or None,
            telemetry_disabled=(
                _env_flag("SLS_TELEMETRY_DISABLED") or _env_flag("SLS_TRACKING_DISABLED")
            ),
            telemetry_timeout_seconds=float(
                os.getenv("SLS_TELEMETRY_TIMEOUT", str(DEFAULT_TELEMETRY_TIMEOUT_SECONDS))
            ),
            telemetry_dir=os.getenv("SLS_COMPOSE_TELEMETRY_DIR", str(DEFAULT_TELEMETRY_DIR)),
            max_resolution_passes=int(
                os.getenv("SLS_COMPOSE_MAX_RESOLUTION_PASSES", str(DEFAULT_MAX_RESOLUTION_PASSES))
            ),
            framework_executable=os.getenv("SLS_COMPOSE_FRAMEWORK", DEFAULT_FRAMEWORK_EXECUTABLE),
        )

    def validate(self) -> List[str]:
        """Validate settings, return list of errors."""
        errors = []

        if self.log_format not in ("text", "json"):
            errors.append("log_format must be 'text' or 'json'")

        if self.max_resolution_passes < 1:
            errors.append("max_resolution_passes must be at least 1")

        if self.telemetry_timeout_seconds <= 0:
            errors.append("telemetry_timeout_seconds must be positive")

        return errors


__all__ = [
    "Invocation",
    "HelpRequested",
    "RunState",
    "ComposeSettings",
]
