"""Usage text."""

import sys
from typing import Optional, TextIO

from core.constants import CLI_NAME, CLI_VERSION

HELP_TEXT = f"""
{CLI_NAME} {CLI_VERSION}

Usage
  {CLI_NAME} <command> [options]
  {CLI_NAME} <service>:<command> [options]
  {CLI_NAME} <command> --service=<service> [options]

Global commands
  deploy              Deploy all services (in dependency order)
  remove              Remove all services (in reverse dependency order)
  info                Display information about all services
  <command>           Run any Framework command on all services

Service commands
  <service>:<command> Run a Framework command on one service,
                      e.g. "{CLI_NAME} api:deploy" or "{CLI_NAME} api logs"

Options
  --service=<name>    Target one service
  --stage=<name>      Stage of all services (default: dev)
  --verbose           Show verbose logs
  --help, -h          Show this message

Configuration is read from serverless-compose.yml (or .yaml) in the
current directory. Verbose logs are written to .serverless/compose.log.
"""


def render_help(stream: Optional[TextIO] = None) -> None:
    """Print usage."""
    print(HELP_TEXT, file=stream or sys.stdout)


__all__ = ["render_help", "HELP_TEXT"]
