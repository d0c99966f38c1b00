"""
Core Module Package.

This package contains the core infrastructure components
that all other packages depend on.

Components:
- constants: CLI-wide constants
- exceptions: Custom exception hierarchy
- state_manager: Process lifecycle state machine
- context: Run context and logging setup
"""

from .constants import CLI_NAME, CLI_VERSION
from .context import Context, Outcome, setup_logging
from .exceptions import ComposeException
from .state_manager import LifecycleManager, LifecycleState

__all__ = [
    "CLI_NAME",
    "CLI_VERSION",
    "Context",
    "Outcome",
    "setup_logging",
    "ComposeException",
    "LifecycleManager",
    "LifecycleState",
]
