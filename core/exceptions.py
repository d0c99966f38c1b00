"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines all custom exceptions for the compose CLI.

- Provides clear exception hierarchy
- Every domain error carries a stable machine-readable code
- Codes are folded into telemetry, messages are shown to the user
- Includes context for debugging

============================================================
EXCEPTION HIERARCHY
============================================================
ComposeException (base)
├── ConfigurationError
│   ├── ConfigurationFileNotFoundError
│   ├── InvalidConfigurationError
│   ├── ReferencedTemplatePathError
│   └── InvalidTemplateFormatError
├── VariableResolutionError
│   ├── MissingEnvironmentVariableError
│   ├── UnrecognizedVariableSourcesError
│   └── ResolutionLimitExceededError
├── InvalidCliOptionError
├── CliUsageError
├── ComponentError
│   ├── ComponentNotFoundError
│   ├── ComponentDependencyError
│   └── FrameworkNotFoundError
└── StateTransitionError

============================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional


# ============================================================
# BASE EXCEPTION
# ============================================================

class ComposeException(Exception):
    """
    Base exception for all compose CLI errors.

    All exceptions carry:
    - code: stable identifier, reported in telemetry
    - context: for debugging
    - timestamp: when the error occurred
    """

    default_code: str = "COMPOSE_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)

        self.message = message
        self.code = code or self.default_code
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging/storage."""
        return {
            "type": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def to_log_format(self) -> str:
        """Format exception for structured logging."""
        ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        line = f"{type(self).__name__} [{self.code}]: {self.message}"
        if ctx_str:
            line += f" | {ctx_str}"
        return line


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(ComposeException):
    """Error in the composition document or CLI settings."""

    default_code = "CONFIGURATION_ERROR"


class ConfigurationFileNotFoundError(ConfigurationError):
    """No composition document in the working directory."""

    default_code = "CONFIGURATION_FILE_NOT_FOUND"

    def __init__(self, directory: Optional[str] = None):
        context = {"directory": directory} if directory else {}
        super().__init__(
            "No serverless-compose.yml file found",
            context=context,
        )


class InvalidConfigurationError(ConfigurationError):
    """The document is not a Serverless Compose document."""

    default_code = "INVALID_CONFIGURATION"

    def __init__(self, message: Optional[str] = None, **kwargs):
        super().__init__(
            message or (
                "serverless-compose.yml does not contain valid Serverless Compose "
                "configuration.\nRead about Serverless Compose in the documentation: "
                "https://github.com/serverless/compose"
            ),
            **kwargs,
        )


class ReferencedTemplatePathError(ConfigurationError):
    """A string template does not point at a readable JSON/YAML file."""

    default_code = "REFERENCED_TEMPLATE_PATH_DOES_NOT_EXIST"

    def __init__(self, path: str):
        super().__init__(
            "The referenced template path does not exist",
            context={"path": path},
        )


class InvalidTemplateFormatError(ConfigurationError):
    """Template is neither a mapping nor a path."""

    default_code = "INVALID_TEMPLATE_FORMAT"

    def __init__(self, actual_type: str):
        super().__init__(
            "The template input could either be an object, or a string path to a template file",
            context={"actual_type": actual_type},
        )


# ============================================================
# VARIABLE RESOLUTION ERRORS
# ============================================================

class VariableResolutionError(ComposeException):
    """Base class for placeholder resolution failures."""

    default_code = "VARIABLE_RESOLUTION_ERROR"


class MissingEnvironmentVariableError(VariableResolutionError):
    """An ``${env:NAME}`` placeholder references an undefined variable."""

    default_code = "CANNOT_FIND_ENVIRONMENT_VARIABLE"

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f'The environment variable "{name}" is referenced but is not defined',
            context={"variable": name},
        )


class UnrecognizedVariableSourcesError(VariableResolutionError):
    """Placeholders use sources other than ``sls`` and ``env``."""

    default_code = "UNRECOGNIZED_VARIABLE_SOURCES"

    def __init__(self, sources: Iterable[str]):
        self.sources: List[str] = list(sources)
        quoted = '", "'.join(self.sources)
        super().__init__(
            f'Unrecognized configuration variable sources: "{quoted}"',
            context={"sources": self.sources},
        )


class ResolutionLimitExceededError(VariableResolutionError):
    """Placeholders kept producing new substitutions past the pass cap."""

    default_code = "VARIABLE_RESOLUTION_LIMIT_EXCEEDED"

    def __init__(self, max_passes: int):
        super().__init__(
            f"Configuration variables could not be resolved within {max_passes} passes, "
            "check for self-referencing environment variables",
            context={"max_passes": max_passes},
        )


# ============================================================
# CLI ERRORS
# ============================================================

class InvalidCliOptionError(ComposeException):
    """A reserved Framework CLI option was used."""

    default_code = "INVALID_CLI_OPTION"

    def __init__(self, option: str):
        self.option = option
        super().__init__(
            f'The "--{option}" option is not supported (yet) in Serverless Compose',
            context={"option": option},
        )


class CliUsageError(ComposeException):
    """Command line arguments could not be parsed."""

    default_code = "INVALID_CLI_USAGE"


# ============================================================
# COMPONENT ERRORS
# ============================================================

class ComponentError(ComposeException):
    """Base class for component errors."""

    default_code = "COMPONENT_ERROR"


class ComponentNotFoundError(ComponentError):
    """Targeted component is not declared in ``services``."""

    default_code = "COMPONENT_NOT_FOUND"

    def __init__(self, name: str, available: Optional[Iterable[str]] = None):
        context: Dict[str, Any] = {"component": name}
        if available is not None:
            context["available"] = sorted(available)
        super().__init__(
            f'There is no service named "{name}" in serverless-compose.yml',
            context=context,
        )


class ComponentDependencyError(ComponentError):
    """Unknown or circular ``dependsOn`` reference."""

    default_code = "INVALID_COMPONENT_DEPENDENCY"


class FrameworkNotFoundError(ComponentError):
    """The framework executable is not installed."""

    default_code = "FRAMEWORK_NOT_FOUND"

    def __init__(self, executable: str, cause: Optional[BaseException] = None):
        super().__init__(
            f'Could not find the "{executable}" executable, is the Serverless Framework installed?',
            context={"executable": executable},
            cause=cause,
        )


# ============================================================
# LIFECYCLE ERRORS
# ============================================================

class StateTransitionError(ComposeException):
    """Invalid lifecycle state transition."""

    default_code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        message: str,
        from_state: Optional[str] = None,
        to_state: Optional[str] = None,
        reason: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if from_state:
            context["from_state"] = from_state
        if to_state:
            context["to_state"] = to_state
        if reason:
            context["reason"] = reason

        super().__init__(message, context=context, **kwargs)


__all__ = [
    "ComposeException",
    "ConfigurationError",
    "ConfigurationFileNotFoundError",
    "InvalidConfigurationError",
    "ReferencedTemplatePathError",
    "InvalidTemplateFormatError",
    "VariableResolutionError",
    "MissingEnvironmentVariableError",
    "UnrecognizedVariableSourcesError",
    "ResolutionLimitExceededError",
    "InvalidCliOptionError",
    "CliUsageError",
    "ComponentError",
    "ComponentNotFoundError",
    "ComponentDependencyError",
    "FrameworkNotFoundError",
    "StateTransitionError",
]
