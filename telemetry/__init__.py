"""
Telemetry Package.

Generation, local storage and transmission of run telemetry.
"""

from telemetry.models import TelemetryError, TelemetryPayload
from telemetry.payload import count_cross_component_references, generate_payload
from telemetry.sender import send_telemetry
from telemetry.store import list_stored_events, store_locally

__all__ = [
    "TelemetryError",
    "TelemetryPayload",
    "count_cross_component_references",
    "generate_payload",
    "send_telemetry",
    "list_stored_events",
    "store_locally",
]
