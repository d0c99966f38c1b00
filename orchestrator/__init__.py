"""
Orchestrator Package - CLI Driver.

============================================================
PACKAGE OVERVIEW
============================================================
This package drives one serverless-compose run, from argv to
exit status. It is the SINGLE ENTRYPOINT of the CLI.

============================================================
CORE PRINCIPLES
============================================================
1. Exit listeners are installed before any work starts
2. Telemetry is stored locally on every exit path
3. Exactly one exit path owns finalization
4. Exit status is 0 only when nothing failed

============================================================
ARCHITECTURE
============================================================

    +-----------------------------------------------------+
    |                     Orchestrator                    |
    |-----------------------------------------------------|
    |  arguments  |  argv -> options mapping             |
    |  router     |  options -> Invocation / help        |
    |  core       |  lifecycle, exit listeners, finalize |
    |  errors     |  user-facing error reporting         |
    |  cli        |  entry point                         |
    +-----------------------------------------------------+

============================================================
LIFECYCLE
============================================================
NOT_STARTED -> INITIALIZING -> RUNNING -> FINALIZING -> TERMINATED

A signal or uncaught exception may enter FINALIZING from any
earlier state.

============================================================
QUICK START
============================================================
Command line usage::

    serverless-compose deploy
    serverless-compose api:deploy --stage prod
    python app.py remove --verbose

Programmatic usage::

    import asyncio
    from orchestrator import LifecycleSupervisor, Orchestrator, RunState

    async def main():
        supervisor = LifecycleSupervisor(RunState())
        supervisor.install()
        try:
            return await Orchestrator(["info"], supervisor).run()
        finally:
            supervisor.detach_loop()

    asyncio.run(main())

============================================================
EXPORTS
============================================================
"""

# ============================================================
# Models
# ============================================================
from orchestrator.models import (
    Invocation,
    HelpRequested,
    RunState,
    ComposeSettings,
)

# ============================================================
# Routing
# ============================================================
from orchestrator.arguments import create_parser, parse_cli_arguments
from orchestrator.router import route, reject_reserved_options
from orchestrator.help import render_help
from orchestrator.errors import handle_error

# ============================================================
# Core
# ============================================================
from orchestrator.core import (
    LifecycleSupervisor,
    Orchestrator,
    SignalClaims,
    signal_claims,
    terminating_signals,
)

# ============================================================
# CLI
# ============================================================
from orchestrator.cli import load_settings, main, async_main

# ============================================================
# Package metadata
# ============================================================
__version__ = "1.0.0"

__all__ = [
    # Models
    "Invocation",
    "HelpRequested",
    "RunState",
    "ComposeSettings",

    # Routing
    "create_parser",
    "parse_cli_arguments",
    "route",
    "reject_reserved_options",
    "render_help",
    "handle_error",

    # Core
    "LifecycleSupervisor",
    "Orchestrator",
    "SignalClaims",
    "signal_claims",
    "terminating_signals",

    # CLI
    "load_settings",
    "main",
    "async_main",
]
