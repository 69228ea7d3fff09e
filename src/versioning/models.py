"""Data models for dependency declarations, override rules and resolution results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union


# Type alias for stable map key for lookups: (group, module).
CoordinateKey = Tuple[str, str]

# Direct dependency a scoped exclusion applies to: its key or list position.
ExclusionScope = Union[CoordinateKey, int]

WILDCARD = "*"


class DeclarationSource(Enum):
    """Where a declaration came from."""
    DIRECT = "direct"
    TRANSITIVE = "transitive"


@dataclass(frozen=True)
class DependencyDeclaration:
    """A single requirement on group:module with a version constraint."""
    group: str
    module: str
    version_constraint: str = ""
    source: DeclarationSource = DeclarationSource.DIRECT

    @property
    def key(self) -> CoordinateKey:
        return (self.group, self.module)

    @property
    def coordinate(self) -> str:
        """Render as group:module[:constraint]."""
        if self.version_constraint:
            return f"{self.group}:{self.module}:{self.version_constraint}"
        return f"{self.group}:{self.module}"


@dataclass(frozen=True)
class ExclusionRule:
    """Omit group:module (or the whole group when module is "*").

    scope is None for a global rule. Otherwise it names the direct
    dependency whose transitive subtree the rule applies to, either by key
    (every direct declaration of that module) or by its position in the
    direct list.
    """
    group: str
    module: str = WILDCARD
    scope: Optional[ExclusionScope] = None

    def matches(self, group: str, module: str) -> bool:
        if group != self.group:
            return False
        return self.module in (WILDCARD, "") or self.module == module


@dataclass(frozen=True)
class ForceRule:
    """Pin group:module to version regardless of declared constraints."""
    group: str
    module: str
    version: str

    @property
    def key(self) -> CoordinateKey:
        return (self.group, self.module)


@dataclass(frozen=True)
class DeclarationNode:
    """One occurrence of a declaration in the expanded graph.

    ancestry runs from the direct root down to the immediate parent; it is
    empty for direct declarations.
    """
    declaration: DependencyDeclaration
    ancestry: Tuple[DependencyDeclaration, ...] = ()

    @property
    def key(self) -> CoordinateKey:
        return self.declaration.key

    def chain(self) -> List[str]:
        return [d.coordinate for d in self.ancestry] + [self.declaration.coordinate]


@dataclass
class ResolvedDependency:
    """Final version chosen for one group:module."""
    group: str
    module: str
    version: str
    forced: bool = False
    constraints: List[str] = field(default_factory=list)
    direct: bool = False

    @property
    def coordinate(self) -> str:
        return f"{self.group}:{self.module}:{self.version}"


@dataclass
class ResolvedGraph:
    """Flattened result: exactly one version per (group, module).

    Behaves as a read-only mapping of CoordinateKey -> version string; the
    per-entry detail lives in ``dependencies``.
    """
    dependencies: Dict[CoordinateKey, ResolvedDependency] = field(default_factory=dict)
    excluded: List[DeclarationNode] = field(default_factory=list)
    truncated_cycles: List[DeclarationNode] = field(default_factory=list)

    def __getitem__(self, key: CoordinateKey) -> str:
        return self.dependencies[key].version

    def __contains__(self, key: object) -> bool:
        return key in self.dependencies

    def __iter__(self) -> Iterator[CoordinateKey]:
        return iter(self.dependencies)

    def __len__(self) -> int:
        return len(self.dependencies)

    def get(self, key: CoordinateKey, default: Optional[str] = None) -> Optional[str]:
        dep = self.dependencies.get(key)
        return dep.version if dep is not None else default

    def versions(self) -> Dict[CoordinateKey, str]:
        return {k: d.version for k, d in self.dependencies.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resolved": [
                {
                    "group": d.group,
                    "module": d.module,
                    "version": d.version,
                    "forced": d.forced,
                    "direct": d.direct,
                    "constraints": list(d.constraints),
                }
                for d in self.dependencies.values()
            ],
            "excluded": [n.chain() for n in self.excluded],
            "truncated_cycles": [n.chain() for n in self.truncated_cycles],
        }


class ConflictKind(Enum):
    """Why resolution of a module failed."""
    UNSATISFIABLE_CONSTRAINT = "unsatisfiable_constraint"
    MALFORMED_VERSION_STRING = "malformed_version_string"


@dataclass
class ConflictReport:
    """Declarations for one module that could not be reconciled."""
    kind: ConflictKind
    group: str
    module: str
    declarations: List[DeclarationNode]
    message: str = ""

    @property
    def key(self) -> CoordinateKey:
        return (self.group, self.module)

    @property
    def constraints(self) -> List[str]:
        seen: List[str] = []
        for node in self.declarations:
            c = node.declaration.version_constraint
            if c not in seen:
                seen.append(c)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conflict": self.kind.value,
            "group": self.group,
            "module": self.module,
            "message": self.message,
            "constraints": self.constraints,
            "declarations": [
                {
                    "constraint": n.declaration.version_constraint,
                    "source": n.declaration.source.value,
                    "ancestry": n.chain(),
                }
                for n in self.declarations
            ],
        }


ResolutionResult = Union[ResolvedGraph, ConflictReport]

# expand(group, module, version) -> transitive declarations of that artifact
Expander = Callable[[str, str, str], Iterable[DependencyDeclaration]]


@dataclass
class ResolutionRequest:
    """Everything a single resolution call consumes."""
    direct: Sequence[DependencyDeclaration]
    exclusions: Sequence[ExclusionRule] = ()
    forces: Sequence[ForceRule] = ()
    platform: Dict[CoordinateKey, str] = field(default_factory=dict)
    expand: Optional[Expander] = None
