"""
Components - Service.

============================================================
RESPONSIBILITY
============================================================
Executes commands against the components of a composition.

- Builds component definitions from ``services``
- Validates ``dependsOn`` (unknown names, cycles)
- Runs a command on one component, or on all of them in
  dependency order (teardown commands in reverse order)
- Records a success/failure Outcome per component command

A failed command is recorded, not raised: the orchestrator
turns recorded failures into exit status 1.

============================================================
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from core.constants import REVERSE_ORDER_COMMANDS
from core.context import Context, Outcome
from core.exceptions import ComponentNotFoundError, InvalidConfigurationError
from .graph import DependencyGraph
from .models import ComponentDefinition
from .runner import FrameworkRunner


CommandRunner = Callable[
    [ComponentDefinition, str, str, Mapping[str, Any]],
    Awaitable[bool],
]


class ComponentsService:
    """Runs component and global commands for one composition."""

    def __init__(
        self,
        context: Context,
        configuration: Mapping[str, Any],
        runner: Optional[CommandRunner] = None,
        framework_executable: str = "serverless",
    ):
        self._context = context
        self._configuration = configuration
        self._runner = runner or FrameworkRunner(framework_executable, context.logger)
        self._components: Dict[str, ComponentDefinition] = {}
        self._graph = DependencyGraph()
        self._logger = context.logger

    @property
    def components(self) -> Dict[str, ComponentDefinition]:
        return dict(self._components)

    # --------------------------------------------------------
    # Initialization
    # --------------------------------------------------------

    async def init(self) -> None:
        """
        Load and validate component definitions.

        Raises:
            InvalidConfigurationError: Malformed ``services`` entries
            ComponentDependencyError: Unknown or circular dependencies
        """
        services = self._configuration.get("services")
        if not isinstance(services, Mapping):
            raise InvalidConfigurationError('"services" must be a mapping of service names')

        for name, entry in services.items():
            definition = ComponentDefinition.from_config(str(name), entry, self._context.root)
            self._components[definition.name] = definition
            self._graph.add_node(definition.name, definition.depends_on)

        self._graph.validate()
        self._logger.debug(f"Loaded {len(self._components)} components: {', '.join(self._components)}")

    # --------------------------------------------------------
    # Invocation
    # --------------------------------------------------------

    async def invoke_component_command(
        self,
        component_name: str,
        command: str,
        options: Mapping[str, Any],
    ) -> Outcome:
        """
        Run ``command`` on one component.

        Raises:
            ComponentNotFoundError: Unknown component
        """
        component = self._components.get(component_name)
        if component is None:
            raise ComponentNotFoundError(component_name, available=self._components)
        return await self._run(component, command, options)

    async def invoke_global_command(
        self,
        command: str,
        options: Mapping[str, Any],
    ) -> Dict[str, Outcome]:
        """
        Run ``command`` on every component.

        Components whose dependency failed are recorded as failed
        without being run.
        """
        if command in REVERSE_ORDER_COMMANDS:
            order = self._graph.get_reverse_order()
            blockers = self._graph.get_dependents
        else:
            order = self._graph.get_execution_order()
            blockers = self._graph.get_dependencies

        outcomes: Dict[str, Outcome] = {}
        for name in order:
            failed: List[str] = [
                other for other in blockers(name) if outcomes.get(other) == Outcome.FAILURE
            ]
            if failed:
                self._logger.warning(
                    f"{name}: skipped because {', '.join(sorted(failed))} failed"
                )
                outcomes[name] = Outcome.FAILURE
                self._context.record_outcome(f"{name}:{command}", Outcome.FAILURE)
                continue
            outcomes[name] = await self._run(self._components[name], command, options)

        return outcomes

    async def _run(
        self,
        component: ComponentDefinition,
        command: str,
        options: Mapping[str, Any],
    ) -> Outcome:
        self._logger.info(f"{component.name}: running {command}")
        succeeded = await self._runner(component, command, self._context.stage, options)
        outcome = Outcome.SUCCESS if succeeded else Outcome.FAILURE
        self._context.record_outcome(f"{component.name}:{command}", outcome)

        if outcome == Outcome.SUCCESS:
            self._logger.info(f"{component.name}: {command} succeeded")
        else:
            self._logger.error(f"{component.name}: {command} failed")
        return outcome


__all__ = ["ComponentsService", "CommandRunner"]
