"""
Configuration Package.

Loading of the composition document and resolution of the
``${sls:stage}`` / ``${env:NAME}`` placeholders it contains.
"""

from configuration.loader import (
    ensure_compose_document,
    find_configuration_file,
    get_configuration,
    is_compose_document,
    load_compose_document,
    read_configuration_file,
)
from configuration.resolver import (
    VariableResolver,
    resolve_configuration_variables,
    transform_strings,
)

__all__ = [
    "ensure_compose_document",
    "find_configuration_file",
    "get_configuration",
    "is_compose_document",
    "load_compose_document",
    "read_configuration_file",
    "VariableResolver",
    "resolve_configuration_variables",
    "transform_strings",
]
