"""
Core Module - Lifecycle State Manager.

============================================================
RESPONSIBILITY
============================================================
Tracks where the process is in its run lifecycle.

- Tracks lifecycle state (not started ... terminated)
- Manages state transitions with validation
- Lets racing exit paths claim finalization exactly once

============================================================
STATE MACHINE
============================================================
    NOT_STARTED -> INITIALIZING -> RUNNING -> FINALIZING -> TERMINATED

- INITIALIZING -> FINALIZING: initialization failed, or an exit
  listener fired before the run started
- INITIALIZING -> TERMINATED: help was rendered, nothing to report
- NOT_STARTED -> FINALIZING: an exit listener fired before the
  main flow began

Only one thread of control ever runs, so transitions are plain
synchronous calls; the race is about which callback runs first.

============================================================
"""

from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set
import logging

from .constants import LOGGER_NAME
from .exceptions import StateTransitionError


# ============================================================
# LIFECYCLE STATE
# ============================================================

class LifecycleState(Enum):
    """Process lifecycle states."""

    NOT_STARTED = "not_started"
    """Exit listeners installed, main flow not yet begun."""

    INITIALIZING = "initializing"
    """Routing, configuration loading and resolution."""

    RUNNING = "running"
    """Delegated invocation in progress."""

    FINALIZING = "finalizing"
    """Telemetry being stored and sent; one exit path owns this."""

    TERMINATED = "terminated"
    """Exit status decided."""

    @property
    def is_finalizing_or_done(self) -> bool:
        """Check if an exit path already owns termination."""
        return self in (LifecycleState.FINALIZING, LifecycleState.TERMINATED)


VALID_TRANSITIONS: Dict[LifecycleState, Set[LifecycleState]] = {
    LifecycleState.NOT_STARTED: {
        LifecycleState.INITIALIZING,
        LifecycleState.FINALIZING,
    },
    LifecycleState.INITIALIZING: {
        LifecycleState.RUNNING,
        LifecycleState.FINALIZING,
        LifecycleState.TERMINATED,
    },
    LifecycleState.RUNNING: {
        LifecycleState.FINALIZING,
    },
    LifecycleState.FINALIZING: {
        LifecycleState.TERMINATED,
    },
    LifecycleState.TERMINATED: set(),
}


@dataclass
class StateTransition:
    """Record of a state transition."""

    transition_id: str
    from_state: LifecycleState
    to_state: LifecycleState
    reason: str
    triggered_by: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "transition_id": self.transition_id,
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "reason": self.reason,
            "triggered_by": self.triggered_by,
            "timestamp": self.timestamp.isoformat(),
        }


# ============================================================
# LIFECYCLE MANAGER
# ============================================================

class LifecycleManager:
    """
    Owns the lifecycle state shared by the main flow and exit listeners.
    """

    def __init__(self, initial_state: LifecycleState = LifecycleState.NOT_STARTED):
        self._state = initial_state
        self._transition_count = 0
        self._history: List[StateTransition] = []
        self._logger = logging.getLogger(f"{LOGGER_NAME}.{__name__}")

    @property
    def state(self) -> LifecycleState:
        """Get current lifecycle state."""
        return self._state

    @property
    def owner(self) -> Optional[str]:
        """Who moved the lifecycle into FINALIZING, if anyone."""
        for transition in self._history:
            if transition.to_state == LifecycleState.FINALIZING:
                return transition.triggered_by
        return None

    def get_history(self) -> List[StateTransition]:
        """Get transition history."""
        return list(self._history)

    def can_transition_to(self, target_state: LifecycleState) -> bool:
        """Check if transition to target state is valid."""
        return target_state in VALID_TRANSITIONS.get(self._state, set())

    def transition_to(
        self,
        target_state: LifecycleState,
        reason: str,
        triggered_by: str = "main",
    ) -> StateTransition:
        """
        Transition to a new state.

        Raises:
            StateTransitionError: If transition is invalid
        """
        if not self.can_transition_to(target_state):
            raise StateTransitionError(
                message=f"Invalid state transition: {self._state.value} -> {target_state.value}",
                from_state=self._state.value,
                to_state=target_state.value,
                reason=reason,
            )

        self._transition_count += 1
        transition = StateTransition(
            transition_id=f"transition_{self._transition_count}",
            from_state=self._state,
            to_state=target_state,
            reason=reason,
            triggered_by=triggered_by,
        )
        self._state = target_state
        self._history.append(transition)

        self._logger.debug(
            f"Lifecycle transition: {transition.from_state.value} -> {target_state.value} "
            f"| reason={reason} | triggered_by={triggered_by}"
        )
        return transition

    def try_begin_finalizing(self, reason: str, triggered_by: str) -> bool:
        """
        Claim finalization for one exit path.

        Returns False when another exit path already owns it.
        """
        if self._state.is_finalizing_or_done:
            self._logger.debug(
                f"Finalization already owned by {self.owner} | ignored={triggered_by}"
            )
            return False
        self.transition_to(LifecycleState.FINALIZING, reason, triggered_by)
        return True

    def mark_terminated(self, reason: str, triggered_by: str = "main") -> None:
        """Move to TERMINATED if not already there."""
        if self._state != LifecycleState.TERMINATED:
            self.transition_to(LifecycleState.TERMINATED, reason, triggered_by)


__all__ = [
    "LifecycleState",
    "StateTransition",
    "LifecycleManager",
    "VALID_TRANSITIONS",
]
