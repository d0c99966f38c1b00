"""
Telemetry - Transmission.

============================================================
PURPOSE
============================================================
Send locally stored telemetry events in one batch.

PRINCIPLES:
- Exactly one attempt per call, no retries
- Stored events are deleted only after a 2xx response
- Never raises: the outcome cannot affect the exit status

============================================================
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiohttp

from core.constants import LOGGER_NAME
from core.context import Context
from .store import list_stored_events


logger = logging.getLogger(f"{LOGGER_NAME}.{__name__}")


def _read_events(paths: List[Path]) -> List[Dict[str, Any]]:
    events = []
    for path in paths:
        try:
            events.append(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as e:
            logger.debug(f"Skipping unreadable telemetry event {path.name}: {e}")
    return events


async def send_telemetry(
    telemetry_dir: Path,
    url: Optional[str],
    timeout_seconds: float = 3.0,
    context: Optional[Context] = None,
) -> bool:
    """
    Send every stored event to ``url``.

    Returns:
        True if the batch was accepted
    """
    log = context.logger if context is not None else logger
    if not url:
        log.debug("Telemetry endpoint not configured, skipping transmission")
        return False

    try:
        paths = list_stored_events(telemetry_dir)
        events = _read_events(paths)
        if not events:
            return True

        timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, json={"events": events}) as response:
                if not 200 <= response.status < 300:
                    body = await response.text()
                    log.debug(f"Telemetry endpoint error: {response.status} - {body}")
                    return False

        for path in paths:
            path.unlink(missing_ok=True)
        log.debug(f"Telemetry sent | events={len(events)}")
        return True

    except Exception as e:
        log.debug(f"Error sending telemetry: {e}")
        return False


__all__ = ["send_telemetry"]
