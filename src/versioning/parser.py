"""Notation parsing for dependencies, force rules and exclusion rules.

Accepts the Gradle string notation ("group:module:version") and the mapping
form used by ``exclude(group = ..., module = ...)``.
"""

from typing import Any, Mapping, Optional, Tuple

from .errors import NotationError
from .models import (
    WILDCARD,
    CoordinateKey,
    DeclarationSource,
    DependencyDeclaration,
    ExclusionRule,
    ExclusionScope,
    ForceRule,
)


def _split(notation: str) -> Tuple[str, ...]:
    """Split on the first two colons; the remainder is the version part.

    Maven ranges never contain colons, so anything after the second colon
    belongs to the constraint.
    """
    if not isinstance(notation, str):
        raise NotationError(f"Expected a string notation, got {type(notation).__name__}")
    parts = tuple(p.strip() for p in notation.strip().split(":", 2))
    if any(not p for p in parts[:2]):
        raise NotationError(f"Empty group or module in '{notation}'")
    return parts


def parse_coordinate_key(notation: str) -> CoordinateKey:
    """Parse "group:module" into a key."""
    parts = _split(notation)
    if len(parts) != 2:
        raise NotationError(f"Expected group:module, got '{notation}'")
    return parts[0], parts[1]


def parse_dependency_notation(
    notation: str, source: DeclarationSource = DeclarationSource.DIRECT
) -> DependencyDeclaration:
    """Parse "group:module[:constraint]" into a declaration."""
    parts = _split(notation)
    if len(parts) < 2:
        raise NotationError(f"Expected group:module[:version], got '{notation}'")
    constraint = parts[2] if len(parts) > 2 else ""
    return DependencyDeclaration(
        group=parts[0],
        module=parts[1],
        version_constraint=constraint,
        source=source,
    )


def parse_force_notation(notation: str) -> ForceRule:
    """Parse "group:module:version"; the version is mandatory."""
    parts = _split(notation)
    if len(parts) != 3 or not parts[2]:
        raise NotationError(f"Force rule needs group:module:version, got '{notation}'")
    return ForceRule(group=parts[0], module=parts[1], version=parts[2])


def parse_exclusion_notation(
    notation: str, scope: Optional[ExclusionScope] = None
) -> ExclusionRule:
    """Parse "group", "group:*" or "group:module" into an exclusion rule."""
    if not isinstance(notation, str) or not notation.strip():
        raise NotationError(f"Empty exclusion notation: {notation!r}")
    parts = [p.strip() for p in notation.strip().split(":")]
    if len(parts) > 2 or not parts[0]:
        raise NotationError(f"Expected group[:module], got '{notation}'")
    module = parts[1] if len(parts) == 2 and parts[1] else WILDCARD
    return ExclusionRule(group=parts[0], module=module, scope=scope)


def parse_exclusion_mapping(
    data: Mapping[str, Any], scope: Optional[ExclusionScope] = None
) -> ExclusionRule:
    """Parse {"group": ..., "module": ...}; a missing module means the whole group."""
    group = str(data.get("group") or "").strip()
    if not group:
        raise NotationError(f"Exclusion is missing a group: {dict(data)!r}")
    module = str(data.get("module") or WILDCARD).strip()
    return ExclusionRule(group=group, module=module, scope=scope)


def parse_exclusion(
    value: Any, scope: Optional[ExclusionScope] = None
) -> ExclusionRule:
    """Parse either exclusion form."""
    if isinstance(value, Mapping):
        return parse_exclusion_mapping(value, scope)
    return parse_exclusion_notation(value, scope)
