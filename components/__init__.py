"""
Components Package.

Execution of commands against the services declared in the
composition document.
"""

from components.graph import DependencyGraph
from components.models import ComponentDefinition
from components.runner import FrameworkRunner, options_to_argv
from components.service import CommandRunner, ComponentsService

__all__ = [
    "DependencyGraph",
    "ComponentDefinition",
    "FrameworkRunner",
    "options_to_argv",
    "CommandRunner",
    "ComponentsService",
]
