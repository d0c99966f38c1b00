"""
Components - Models.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping

from core.exceptions import InvalidConfigurationError


@dataclass(frozen=True)
class ComponentDefinition:
    """One entry of the ``services`` mapping."""

    name: str
    path: Path
    params: Dict[str, Any] = field(default_factory=dict)
    depends_on: List[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, name: str, entry: Any, root: Path) -> "ComponentDefinition":
        """
        Build a definition from the document.

        Raises:
            InvalidConfigurationError: If ``path`` is missing or not a string
        """
        if not isinstance(entry, Mapping) or not isinstance(entry.get("path"), str):
            raise InvalidConfigurationError(
                f'Service "{name}" must define a "path" pointing at its directory',
                context={"component": name},
            )

        depends_on = entry.get("dependsOn") or []
        if isinstance(depends_on, str):
            depends_on = [depends_on]

        params = entry.get("params") or {}
        return cls(
            name=name,
            path=(root / entry["path"]).resolve(),
            params=dict(params) if isinstance(params, Mapping) else {},
            depends_on=[str(dep) for dep in depends_on],
        )


__all__ = ["ComponentDefinition"]
