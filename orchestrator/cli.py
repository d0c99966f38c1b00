"""
Orchestrator - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line entry point of serverless-compose.

- Loads .env and settings from the environment
- Installs the exit listeners before anything else runs
- Runs the orchestrator and returns its exit status

============================================================
USAGE
============================================================
serverless-compose deploy
serverless-compose api:deploy --stage prod
serverless-compose logs --service=api --tail

============================================================
"""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from core.exceptions import ConfigurationError
from .core import LifecycleSupervisor, Orchestrator
from .models import ComposeSettings, RunState


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(
    argv: Optional[List[str]] = None,
    settings: Optional[ComposeSettings] = None,
) -> int:
    """
    Async main entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])
        settings: CLI settings

    Returns:
        Exit code
    """
    settings = settings or ComposeSettings()
    cwd = Path.cwd()

    run_state = RunState()
    supervisor = LifecycleSupervisor(run_state, settings=settings, cwd=cwd)
    supervisor.install()

    try:
        orchestrator = Orchestrator(argv, supervisor, cwd=cwd)
        return await orchestrator.run()
    finally:
        # The excepthook stays installed for errors escaping the loop
        supervisor.detach_loop()


def load_settings() -> ComposeSettings:
    """
    Load settings from the environment (.env included).

    Raises:
        ConfigurationError: If a setting is malformed or invalid
    """
    load_dotenv(Path.cwd() / ".env")

    try:
        settings = ComposeSettings.from_env()
    except ValueError as e:
        raise ConfigurationError(f"Invalid setting: {e}") from e

    errors = settings.validate()
    if errors:
        raise ConfigurationError(
            "Invalid settings: " + "; ".join(errors),
            context={"errors": errors},
        )
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    return asyncio.run(async_main(argv, settings))


if __name__ == "__main__":
    sys.exit(main())
