#!/usr/bin/env python3
"""
Serverless Compose - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
Deploys and manages several serverless services together.

- Reads serverless-compose.yml from the current directory
- Runs a command on one service or on all of them
- Exits 0 only when every command succeeded

============================================================
USAGE
============================================================
Direct execution:
    python app.py deploy
    python app.py api:deploy --stage prod
    python app.py logs --service=api --tail

Environment-based configuration:
    SLS_COMPOSE_LOG_LEVEL=DEBUG python app.py info
    SLS_TELEMETRY_DISABLED=1 python app.py remove

============================================================
"""

import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.absolute()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from orchestrator.cli import main


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
