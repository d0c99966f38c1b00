"""
Pydantic schemas for telemetry events.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

# =======================
# ERROR
# =======================

class TelemetryError(BaseModel):
    type: str
    code: Optional[str] = None  # only domain errors carry a code

# =======================
# EVENT
# =======================

class TelemetryPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: str
    timestamp: datetime
    cli_version: str
    python_version: str
    platform: str

    command: Optional[str] = None
    command_scope: Optional[str] = None  # component / global
    stage: Optional[str] = None
    is_verbose: bool = False
    option_names: List[str] = []

    component_count: int = 0
    cross_component_reference_count: int = 0
    component_outcomes: Dict[str, str] = {}

    error: Optional[TelemetryError] = None
    interrupt_signal: Optional[str] = None
