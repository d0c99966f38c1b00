"""
Components - Framework Runner.

Runs one framework command inside a component directory and
streams its output into the ``compose`` log at DEBUG level.
"""

import asyncio
import logging
from typing import Any, List, Mapping

from core.exceptions import FrameworkNotFoundError, InvalidConfigurationError
from .models import ComponentDefinition


# Options handled by compose itself and passed explicitly
_CONSUMED_OPTIONS = {"stage"}


def options_to_argv(options: Mapping[str, Any]) -> List[str]:
    """Turn an options mapping back into ``--key[=value]`` arguments."""
    argv: List[str] = []
    for key, value in options.items():
        if key in _CONSUMED_OPTIONS or value is None or value is False:
            continue
        if value is True:
            argv.append(f"--{key}")
        elif isinstance(value, (list, tuple)):
            argv.extend(f"--{key}={item}" for item in value)
        else:
            argv.append(f"--{key}={value}")
    return argv


class FrameworkRunner:
    """Executes ``<executable> <command parts> --stage <stage> <options>``."""

    def __init__(self, executable: str, logger: logging.Logger):
        self._executable = executable
        self._logger = logger

    def build_argv(
        self,
        command: str,
        stage: str,
        options: Mapping[str, Any],
    ) -> List[str]:
        return [
            self._executable,
            *command.split(":"),
            "--stage",
            stage,
            *options_to_argv(options),
        ]

    async def __call__(
        self,
        component: ComponentDefinition,
        command: str,
        stage: str,
        options: Mapping[str, Any],
    ) -> bool:
        """
        Run the command.

        Returns:
            True if the process exited with status 0

        Raises:
            InvalidConfigurationError: The component directory does not exist
            FrameworkNotFoundError: The executable cannot be found
        """
        argv = self.build_argv(command, stage, options)
        self._logger.debug(f"[{component.name}] {' '.join(argv)} (cwd={component.path})")

        # A missing cwd raises the same FileNotFoundError as a missing executable
        if not component.path.is_dir():
            raise InvalidConfigurationError(
                f'Service "{component.name}" path "{component.path}" does not exist',
                context={"component": component.name, "path": str(component.path)},
            )

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(component.path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            raise FrameworkNotFoundError(self._executable, cause=e)

        async for raw_line in process.stdout:
            line = raw_line.decode("utf-8", errors="replace").rstrip()
            if line:
                self._logger.debug(f"[{component.name}] {line}")

        return_code = await process.wait()
        self._logger.debug(f"[{component.name}] exited with status {return_code}")
        return return_code == 0


__all__ = ["FrameworkRunner", "options_to_argv"]
