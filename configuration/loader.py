"""
Configuration - Loader.

============================================================
RESPONSIBILITY
============================================================
Locates and reads the composition document.

- Looks for serverless-compose.yml, then serverless-compose.yaml
- Distinguishes a compose document from a single-service
  Framework document (``provider.name`` present)
- Follows string templates that point at JSON/YAML files

============================================================
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from core.constants import CONFIGURATION_FILE_NAMES, LOGGER_NAME, TEMPLATE_FILE_SUFFIXES
from core.exceptions import (
    ConfigurationFileNotFoundError,
    InvalidConfigurationError,
    InvalidTemplateFormatError,
    ReferencedTemplatePathError,
)


logger = logging.getLogger(f"{LOGGER_NAME}.{__name__}")


# ============================================================
# FILE ACCESS
# ============================================================

def find_configuration_file(directory: Union[str, Path]) -> Optional[Path]:
    """Return the first composition document found in ``directory``."""
    base = Path(directory)
    for name in CONFIGURATION_FILE_NAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def read_configuration_file(path: Union[str, Path]) -> Any:
    """
    Parse a JSON or YAML file.

    Raises:
        InvalidConfigurationError: If the file cannot be parsed
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        content = f.read()

    try:
        if path.suffix == ".json":
            return json.loads(content)
        return yaml.safe_load(content)
    except (yaml.YAMLError, ValueError) as e:
        raise InvalidConfigurationError(
            f"Cannot parse {path.name}: {e}",
            context={"path": str(path)},
            cause=e,
        )


async def load_compose_document(directory: Union[str, Path]) -> Tuple[Path, Any]:
    """
    Locate and parse the composition document.

    Returns:
        Tuple of (path, parsed document)

    Raises:
        ConfigurationFileNotFoundError: If no document exists
    """
    path = find_configuration_file(directory)
    if path is None:
        raise ConfigurationFileNotFoundError(str(directory))

    logger.debug(f"Loading composition document | path={path}")
    return path, read_configuration_file(path)


# ============================================================
# DOCUMENT SHAPE
# ============================================================

def is_compose_document(document: Any) -> bool:
    """Check ``services`` is present and ``provider.name`` is not."""
    if not isinstance(document, dict):
        return False

    # A Framework service file, not a compose file
    provider = document.get("provider")
    if isinstance(provider, dict) and provider.get("name"):
        return False

    # Empty collections still count as present
    services = document.get("services")
    if isinstance(services, (dict, list)):
        return True
    return services not in (None, False, 0, "")


def ensure_compose_document(document: Any) -> Dict[str, Any]:
    """Return ``document`` or raise if it is not a compose document."""
    if not is_compose_document(document):
        raise InvalidConfigurationError()
    return document


# ============================================================
# TEMPLATE INDIRECTION
# ============================================================

async def get_configuration(
    template: Any,
    base_dir: Optional[Union[str, Path]] = None,
) -> Dict[str, Any]:
    """
    Turn a template into a configuration mapping.

    A string template is a path to a JSON/YAML file, relative to
    ``base_dir`` when not absolute.
    """
    if isinstance(template, str):
        path = Path(template)
        if base_dir is not None and not path.is_absolute():
            path = Path(base_dir) / path
        if path.suffix not in TEMPLATE_FILE_SUFFIXES or not path.is_file():
            raise ReferencedTemplatePathError(template)
        return read_configuration_file(path)

    if not isinstance(template, dict):
        raise InvalidTemplateFormatError(type(template).__name__)

    return template


__all__ = [
    "find_configuration_file",
    "read_configuration_file",
    "load_compose_document",
    "is_compose_document",
    "ensure_compose_document",
    "get_configuration",
]
