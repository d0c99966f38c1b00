"""
Components - Dependency Graph.

============================================================
RESPONSIBILITY
============================================================
Orders components by their ``dependsOn`` declarations.

- Topological sort (dependencies first)
- Reverse order for teardown commands
- Circular dependency detection

Ordering is deterministic: ties are broken by declaration order.

============================================================
"""

from typing import Dict, List, Set

from core.exceptions import ComponentDependencyError


class DependencyGraph:
    """
    Manages component dependencies and resolution order.

    Uses topological sort to determine execution order.
    """

    def __init__(self):
        self._nodes: List[str] = []
        self._edges: Dict[str, List[str]] = {}  # node -> dependencies

    def add_node(self, name: str, dependencies: List[str] = None) -> None:
        """Add a node with its dependencies."""
        if name not in self._edges:
            self._nodes.append(name)
        self._edges[name] = list(dependencies or [])

    def validate(self) -> None:
        """
        Check every dependency is a known node and there is no cycle.

        Raises:
            ComponentDependencyError: On unknown or circular dependencies
        """
        for node in self._nodes:
            for dep in self._edges[node]:
                if dep not in self._edges:
                    raise ComponentDependencyError(
                        f'Service "{node}" depends on "{dep}", which does not exist',
                        context={"component": node, "dependency": dep},
                    )
        self.get_execution_order()

    def get_execution_order(self) -> List[str]:
        """
        Get components in execution order (dependencies first).

        Raises:
            ComponentDependencyError: If circular dependency detected
        """
        visited: Set[str] = set()
        temp_visited: Set[str] = set()
        order: List[str] = []

        def visit(node: str) -> None:
            if node in temp_visited:
                raise ComponentDependencyError(
                    f"Circular dependency detected involving: {node}",
                    context={"component": node},
                )
            if node in visited:
                return

            temp_visited.add(node)

            for dep in self._edges.get(node, []):
                visit(dep)

            temp_visited.remove(node)
            visited.add(node)
            order.append(node)

        for node in self._nodes:
            if node not in visited:
                visit(node)

        return order

    def get_reverse_order(self) -> List[str]:
        """Get components in teardown order (reverse of execution)."""
        return list(reversed(self.get_execution_order()))

    def get_dependencies(self, name: str) -> List[str]:
        """Get direct dependencies of a component."""
        return list(self._edges.get(name, []))

    def get_dependents(self, name: str) -> Set[str]:
        """Get components that depend on the given component."""
        return {node for node, deps in self._edges.items() if name in deps}


__all__ = ["DependencyGraph"]
