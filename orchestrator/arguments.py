"""
Orchestrator - Argument Parsing.

============================================================
RESPONSIBILITY
============================================================
Turns ``argv`` into the options mapping the router consumes.

- Positional tokens are collected under ``_`` in any position
- Known options: --help/-h, --service, --stage, --verbose
- Reserved Framework options (--debug, --config, --param) are
  collected like unknown options so the router can reject them;
  they never consume the command that follows them
- Unknown options pass through to the component:
  ``--key=value`` -> "value", ``--key`` -> True

============================================================
"""

import argparse
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from core.constants import CLI_NAME, POSITIONAL_KEY
from core.exceptions import CliUsageError


class _ArgumentParser(argparse.ArgumentParser):
    """Raises instead of printing usage and exiting with status 2."""

    def error(self, message: str) -> NoReturn:
        raise CliUsageError(message)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = _ArgumentParser(
        prog=CLI_NAME,
        add_help=False,
        allow_abbrev=False,
        description="Deploy and manage multiple services together",
    )

    parser.add_argument("tokens", nargs="*", metavar="command")

    parser.add_argument("--help", "-h", action="store_true", default=False)
    parser.add_argument("--service", metavar="NAME")
    parser.add_argument("--stage", metavar="NAME")
    parser.add_argument("--verbose", action="store_true", default=False)

    return parser


def _apply_extra(token: str, options: Dict[str, Any], tokens: List[str]) -> None:
    if token.startswith("--") and len(token) > 2:
        key, sep, value = token[2:].partition("=")
        options[key] = value if sep else True
    elif token.startswith("-") and len(token) > 1:
        for flag in token[1:]:
            options[flag] = True
    else:
        tokens.append(token)


def parse_cli_arguments(argv: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """
    Parse CLI arguments.

    Raises:
        CliUsageError: If a known option is malformed
    """
    parser = create_parser()
    args, extras = parser.parse_known_intermixed_args(
        list(argv) if argv is not None else None
    )

    tokens = [str(token) for token in (args.tokens or [])]
    options: Dict[str, Any] = {}

    if args.help:
        options["help"] = True
    if args.service:
        options["service"] = args.service
    if args.stage:
        options["stage"] = args.stage
    if args.verbose:
        options["verbose"] = True

    for token in extras:
        _apply_extra(token, options, tokens)

    options[POSITIONAL_KEY] = tokens
    return options


__all__ = ["create_parser", "parse_cli_arguments"]
