"""
Core Module - Constants.

============================================================
RESPONSIBILITY
============================================================
Defines all CLI-wide constants.

- Single source of truth for file names and defaults
- Names of reserved and routing-related CLI options

============================================================
"""

from pathlib import Path


# ============================================================
# SYSTEM IDENTIFICATION
# ============================================================

CLI_NAME = "serverless-compose"
CLI_VERSION = "1.0.0"
LOGGER_NAME = "compose"


# ============================================================
# CONFIGURATION DISCOVERY
# ============================================================

# Checked in this order in the working directory
CONFIGURATION_FILE_NAMES = (
    "serverless-compose.yml",
    "serverless-compose.yaml",
)

TEMPLATE_FILE_SUFFIXES = (".json", ".yml", ".yaml")

STATE_DIR_NAME = ".serverless"
LOG_FILE_NAME = "compose.log"

DEFAULT_STAGE = "dev"


# ============================================================
# CLI OPTIONS
# ============================================================

# Key under which raw positional tokens travel until routing removes them
POSITIONAL_KEY = "_"

SERVICE_OPTION = "service"
HELP_OPTION = "help"
HELP_COMMAND = "help"

# Framework CLI-wide options that are reserved and rejected for every command
RESERVED_CLI_OPTIONS = ("debug", "config", "param")


# ============================================================
# VARIABLE RESOLUTION
# ============================================================

DEFAULT_MAX_RESOLUTION_PASSES = 100


# ============================================================
# TELEMETRY
# ============================================================

DEFAULT_TELEMETRY_DIR = Path.home() / ".serverless" / "compose" / "telemetry"
DEFAULT_TELEMETRY_TIMEOUT_SECONDS = 3.0


# ============================================================
# COMPONENTS
# ============================================================

DEFAULT_FRAMEWORK_EXECUTABLE = "serverless"

# Global commands that walk components in reverse dependency order
REVERSE_ORDER_COMMANDS = frozenset({"remove"})
