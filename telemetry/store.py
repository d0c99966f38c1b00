"""
Telemetry - Local Store.

Events are written one JSON file per event before any transmission
is attempted, so an interrupted run still leaves its record behind.
Failures are logged and swallowed: telemetry never changes the exit
status.
"""

import logging
from pathlib import Path
from typing import List, Optional

from core.constants import LOGGER_NAME
from core.context import Context
from .models import TelemetryPayload


logger = logging.getLogger(f"{LOGGER_NAME}.{__name__}")


def store_locally(
    payload: TelemetryPayload,
    telemetry_dir: Path,
    context: Optional[Context] = None,
) -> Optional[Path]:
    """
    Store ``payload`` under ``telemetry_dir``.

    Returns:
        Path written, or None on failure
    """
    log = context.logger if context is not None else logger
    try:
        telemetry_dir = Path(telemetry_dir)
        telemetry_dir.mkdir(parents=True, exist_ok=True)
        path = telemetry_dir / f"{payload.event_id}.json"
        path.write_text(payload.model_dump_json(), encoding="utf-8")
        log.debug(f"Telemetry stored | path={path}")
        return path
    except Exception as e:
        log.debug(f"Could not store telemetry: {e}")
        return None


def list_stored_events(telemetry_dir: Path) -> List[Path]:
    """Stored event files, oldest first."""
    telemetry_dir = Path(telemetry_dir)
    if not telemetry_dir.is_dir():
        return []
    return sorted(telemetry_dir.glob("*.json"), key=lambda p: p.stat().st_mtime)


__all__ = ["store_locally", "list_stored_events"]
