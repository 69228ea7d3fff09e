"""In-memory repository used by manifests and tests."""

import logging
from typing import Dict, Iterable, List, Mapping, Sequence

from versioning.constraints import VersionConstraint
from versioning.errors import MalformedVersionError
from versioning.models import DeclarationSource, DependencyDeclaration
from versioning.parser import parse_dependency_notation

logger = logging.getLogger(__name__)


class StaticRepository:
    """Expander backed by a mapping of coordinate -> dependency notations.

    Keys are "group:module:version" or "group:module" (any version). A
    lookup for a constraint such as ">=22.0" falls back to the concrete
    version it names, then to the version-agnostic key.
    """

    def __init__(self, graph: Mapping[str, Sequence[str]]):
        self._graph: Dict[str, List[DependencyDeclaration]] = {}
        for coordinate, deps in (graph or {}).items():
            self._graph[str(coordinate).strip()] = [
                parse_dependency_notation(d, DeclarationSource.TRANSITIVE) for d in (deps or [])
            ]

    def __len__(self) -> int:
        return len(self._graph)

    def knows(self, group: str, module: str, version: str) -> bool:
        """True when the mapping has an entry for this artifact."""
        return any(k in self._graph for k in self._lookup_keys(group, module, version))

    def __call__(self, group: str, module: str, version: str) -> Iterable[DependencyDeclaration]:
        for key in self._lookup_keys(group, module, version):
            if key in self._graph:
                return list(self._graph[key])
        return []

    @staticmethod
    def _lookup_keys(group: str, module: str, version: str) -> List[str]:
        keys = []
        if version:
            keys.append(f"{group}:{module}:{version}")
            try:
                preferred = VersionConstraint.parse(version).preferred
            except MalformedVersionError:
                preferred = None
            if preferred and preferred != version:
                keys.append(f"{group}:{module}:{preferred}")
        keys.append(f"{group}:{module}")
        return keys
