"""Dependency-conflict resolution: one version per group:module.

Resolution is a pure function of its inputs. Override rules are passed into
each call rather than held as global configuration, so concurrent calls share
nothing but the (read-only) expand callback.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from common.logging_utils import Timer, extra_context, is_debug_enabled
from versioning.constraints import VersionConstraint, pick_version
from versioning.errors import MalformedVersionError, UnsatisfiableConstraintError
from versioning.models import (
    ConflictKind,
    ConflictReport,
    CoordinateKey,
    DeclarationNode,
    DeclarationSource,
    DependencyDeclaration,
    ExclusionRule,
    Expander,
    ForceRule,
    ResolutionRequest,
    ResolutionResult,
    ResolvedDependency,
    ResolvedGraph,
)
from .graph import collect

logger = logging.getLogger(__name__)


def _distinct_constraints(nodes: Sequence[DeclarationNode]) -> List[str]:
    seen: List[str] = []
    for node in nodes:
        c = node.declaration.version_constraint
        if c not in seen:
            seen.append(c)
    return seen


def _select_version(key: CoordinateKey, nodes: List[DeclarationNode]):
    """Return (version, None) or (None, ConflictReport) for one module."""
    group, module = key
    raw = _distinct_constraints(nodes)

    try:
        parsed = [VersionConstraint.parse(c) for c in raw]
    except MalformedVersionError as exc:
        if len(raw) == 1:
            # Nothing to compare against; take the declaration as written.
            return raw[0], None
        return None, ConflictReport(
            kind=ConflictKind.MALFORMED_VERSION_STRING,
            group=group,
            module=module,
            declarations=list(nodes),
            message=str(exc),
        )

    if len(parsed) == 1:
        only = parsed[0]
        return (only.preferred if only.preferred is not None else only.raw), None

    try:
        return pick_version(parsed), None
    except UnsatisfiableConstraintError as exc:
        return None, ConflictReport(
            kind=ConflictKind.UNSATISFIABLE_CONSTRAINT,
            group=group,
            module=module,
            declarations=list(nodes),
            message=str(exc),
        )
    except MalformedVersionError as exc:
        return None, ConflictReport(
            kind=ConflictKind.MALFORMED_VERSION_STRING,
            group=group,
            module=module,
            declarations=list(nodes),
            message=str(exc),
        )


class DependencyResolver:
    """Resolve declared dependencies into a single consistent graph.

    Args:
        expand: Callback returning the transitive declarations of
            (group, module, version). None means no transitive expansion.
    """

    def __init__(self, expand: Optional[Expander] = None):
        self._expand = expand

    def resolve(
        self,
        direct: Sequence[DependencyDeclaration],
        exclusions: Sequence[ExclusionRule] = (),
        forces: Sequence[ForceRule] = (),
        platform: Optional[Mapping[CoordinateKey, str]] = None,
    ) -> ResolutionResult:
        """Build, prune and flatten the graph.

        Returns the ResolvedGraph, or the first ConflictReport encountered
        in first-appearance order of modules.
        """
        with Timer() as t:
            forced: Dict[CoordinateKey, str] = {}
            for rule in forces:
                # Later rules for the same module win, as repeated force() calls do.
                forced[rule.key] = rule.version

            collected = collect(direct, self._expand, exclusions, forces, platform)

            groups: Dict[CoordinateKey, List[DeclarationNode]] = {}
            for node in collected.nodes:
                groups.setdefault(node.key, []).append(node)

            graph = ResolvedGraph(
                excluded=collected.excluded,
                truncated_cycles=collected.truncated,
            )
            for key, nodes in groups.items():
                constraints = _distinct_constraints(nodes)
                is_direct = any(
                    n.declaration.source == DeclarationSource.DIRECT for n in nodes
                )
                if key in forced:
                    graph.dependencies[key] = ResolvedDependency(
                        group=key[0],
                        module=key[1],
                        version=forced[key],
                        forced=True,
                        constraints=constraints,
                        direct=is_direct,
                    )
                    continue

                version, report = _select_version(key, nodes)
                if report is not None:
                    logger.warning(
                        "Dependency conflict on %s:%s: %s",
                        key[0],
                        key[1],
                        report.message,
                        extra=extra_context(
                            event="decision",
                            component="resolver",
                            action="resolve",
                            outcome=report.kind.value,
                        ),
                    )
                    return report
                graph.dependencies[key] = ResolvedDependency(
                    group=key[0],
                    module=key[1],
                    version=version,
                    constraints=constraints,
                    direct=is_direct,
                )

        if is_debug_enabled(logger):
            logger.debug(
                "Resolution complete",
                extra=extra_context(
                    event="function_exit",
                    component="resolver",
                    action="resolve",
                    outcome="success",
                    count=len(graph),
                    duration_ms=t.duration_ms(),
                ),
            )
        return graph

    def resolve_request(self, request: ResolutionRequest) -> ResolutionResult:
        """Resolve a ResolutionRequest, using its expand callback if it has one."""
        resolver = self if request.expand is None else DependencyResolver(request.expand)
        return resolver.resolve(
            request.direct,
            exclusions=request.exclusions,
            forces=request.forces,
            platform=request.platform,
        )


def resolve(
    direct: Sequence[DependencyDeclaration],
    expand: Optional[Expander] = None,
    exclusions: Sequence[ExclusionRule] = (),
    forces: Sequence[ForceRule] = (),
    platform: Optional[Mapping[CoordinateKey, str]] = None,
) -> ResolutionResult:
    """Module-level shortcut for DependencyResolver(expand).resolve(...)."""
    return DependencyResolver(expand).resolve(direct, exclusions, forces, platform)
