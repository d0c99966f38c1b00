"""
Core Module - Run Context.

============================================================
RESPONSIBILITY
============================================================
Holds the parameters of the current run.

- Working directory, state root, stage, verbose flag
- Logger setup (console + .serverless/compose.log)
- Outcomes of every component command invoked

The context is read by exit listeners too, so it must be
usable without ``init()`` having been awaited.

============================================================
"""

import json
import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from .constants import DEFAULT_STAGE, LOG_FILE_NAME, LOGGER_NAME, STATE_DIR_NAME


# ============================================================
# OUTCOME
# ============================================================

class Outcome(Enum):
    """Result of one invoked component command."""

    SUCCESS = "success"
    FAILURE = "failure"


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: Optional[Path] = None,
    run_id: Optional[str] = None,
) -> List[logging.Handler]:
    """
    Set up logging on the ``compose`` logger.

    Args:
        level: Console log level
        log_format: Output format (json or text)
        log_file: Optional file receiving DEBUG and above
        run_id: Identifier included in every record

    Returns:
        Handlers attached, so the caller can detach them
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
                "run_id": run_id or "",
            })
        )
    else:
        formatter = logging.Formatter(
            f"%(asctime)s | %(levelname)-8s | %(name)s | {run_id or ''} | %(message)s"
        )

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    console.setFormatter(formatter)
    handlers: List[logging.Handler] = [console]

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file is not None else log_level)
    for handler in handlers:
        logger.addHandler(handler)

    return handlers


# ============================================================
# CONTEXT
# ============================================================

class Context:
    """Run parameters shared by the main flow and exit listeners."""

    def __init__(
        self,
        root: Union[str, Path],
        state_root: Optional[Union[str, Path]] = None,
        verbose: bool = False,
        stage: Optional[str] = None,
        app_name: Optional[str] = None,
        log_level: str = "INFO",
        log_format: str = "text",
        run_id: Optional[str] = None,
    ):
        self.root = Path(root)
        self.state_root = Path(state_root) if state_root else self.root / STATE_DIR_NAME
        self.verbose = bool(verbose)
        self.stage = stage or DEFAULT_STAGE
        self.app_name = app_name
        self.run_id = run_id
        self.logger = logging.getLogger(LOGGER_NAME)
        self.component_commands_outcomes: Dict[str, Outcome] = {}

        self._log_level = "DEBUG" if self.verbose else log_level
        self._log_format = log_format
        self._handlers: List[logging.Handler] = []
        self._initialized = False

    @property
    def log_file(self) -> Path:
        return self.state_root / LOG_FILE_NAME

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def init(self) -> None:
        """Create the state root and attach log handlers."""
        if self._initialized:
            return
        self.state_root.mkdir(parents=True, exist_ok=True)
        self._handlers = setup_logging(
            level=self._log_level,
            log_format=self._log_format,
            log_file=self.log_file,
            run_id=self.run_id,
        )
        self._initialized = True
        self.logger.debug(
            f"Context initialized | root={self.root} | stage={self.stage} | verbose={self.verbose}"
        )

    def record_outcome(self, key: str, outcome: Outcome) -> None:
        """Record the outcome of one component command."""
        self.component_commands_outcomes[key] = outcome

    @property
    def has_failures(self) -> bool:
        """Check if any recorded command failed."""
        return Outcome.FAILURE in self.component_commands_outcomes.values()

    def shutdown(self) -> None:
        """Detach and close handlers attached by ``init()``."""
        for handler in self._handlers:
            self.logger.removeHandler(handler)
            handler.close()
        self._handlers = []
        self._initialized = False


__all__ = [
    "Outcome",
    "Context",
    "setup_logging",
]
