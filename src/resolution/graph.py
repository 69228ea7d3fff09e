"""Transitive expansion of direct declarations with exclusion pruning."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Set, Tuple

from common.logging_utils import extra_context, is_debug_enabled
from versioning.errors import ExpansionError
from versioning.models import (
    CoordinateKey,
    DeclarationNode,
    DeclarationSource,
    DependencyDeclaration,
    ExclusionRule,
    Expander,
    ForceRule,
)

logger = logging.getLogger(__name__)

# (group, module, version) as passed to expand
Triple = Tuple[str, str, str]


@dataclass
class CollectedGraph:
    """Surviving declaration occurrences in depth-first pre-order."""
    nodes: List[DeclarationNode] = field(default_factory=list)
    excluded: List[DeclarationNode] = field(default_factory=list)
    truncated: List[DeclarationNode] = field(default_factory=list)


def _apply_platform(
    decl: DependencyDeclaration, platform: Mapping[CoordinateKey, str]
) -> DependencyDeclaration:
    if not decl.version_constraint and decl.key in platform:
        return replace(decl, version_constraint=platform[decl.key])
    return decl


def _is_excluded(
    decl: DependencyDeclaration,
    global_rules: Sequence[ExclusionRule],
    scoped_rules: Sequence[ExclusionRule],
) -> bool:
    return any(r.matches(decl.group, decl.module) for r in global_rules) or any(
        r.matches(decl.group, decl.module) for r in scoped_rules
    )


class _Expansion:
    """Per-call memo so expand runs at most once per triple."""

    def __init__(self, expand: Optional[Expander], platform: Mapping[CoordinateKey, str]):
        self._expand = expand
        self._platform = platform
        self._memo: Dict[Triple, Tuple[DependencyDeclaration, ...]] = {}

    def children(self, triple: Triple) -> Tuple[DependencyDeclaration, ...]:
        if self._expand is None:
            return ()
        if triple not in self._memo:
            try:
                raw = list(self._expand(*triple) or ())
            except Exception as exc:  # pylint: disable=broad-exception-caught
                raise ExpansionError(":".join(p for p in triple if p), exc) from exc
            self._memo[triple] = tuple(
                _apply_platform(replace(d, source=DeclarationSource.TRANSITIVE), self._platform)
                for d in raw
            )
        return self._memo[triple]


def collect(
    direct: Sequence[DependencyDeclaration],
    expand: Optional[Expander] = None,
    exclusions: Sequence[ExclusionRule] = (),
    forces: Sequence[ForceRule] = (),
    platform: Optional[Mapping[CoordinateKey, str]] = None,
) -> CollectedGraph:
    """Expand the direct declarations into every surviving occurrence.

    An occurrence survives when neither it nor any ancestor on its path is
    excluded; excluded subtrees are never expanded. A triple already on the
    current path is recorded as truncated instead of being expanded again,
    and a triple met again under the same root is recorded without walking its
    subtree a second time.
    """
    platform = platform or {}
    forced: Dict[CoordinateKey, str] = {f.key: f.version for f in forces}
    global_rules = [r for r in exclusions if r.scope is None]
    expansion = _Expansion(expand, platform)
    graph = CollectedGraph()

    for index, root in enumerate(direct):
        root = _apply_platform(replace(root, source=DeclarationSource.DIRECT), platform)
        if _is_excluded(root, global_rules, ()):
            graph.excluded.append(DeclarationNode(root))
            continue
        scoped_rules = [r for r in exclusions if r.scope in (root.key, index)]
        # Scoped rules only vary by root, so a triple's subtree is the same
        # wherever it recurs under this root.
        expanded: Set[Triple] = set()

        stack: List[Tuple[DependencyDeclaration, Tuple[DependencyDeclaration, ...], FrozenSet[Triple]]]
        stack = [(root, (), frozenset())]
        while stack:
            decl, ancestry, on_path = stack.pop()
            node = DeclarationNode(decl, ancestry)
            if ancestry and _is_excluded(decl, global_rules, scoped_rules):
                graph.excluded.append(node)
                continue

            version = forced.get(decl.key, decl.version_constraint)
            triple = (decl.group, decl.module, version)
            if triple in on_path:
                graph.truncated.append(node)
                if is_debug_enabled(logger):
                    logger.debug(
                        "Cycle truncated",
                        extra=extra_context(
                            event="decision",
                            component="graph",
                            action="collect",
                            outcome="cycle_truncated",
                            coordinate=decl.coordinate,
                        ),
                    )
                continue

            graph.nodes.append(node)
            if triple in expanded:
                continue
            expanded.add(triple)
            child_ancestry = ancestry + (decl,)
            child_path = on_path | {triple}
            for child in reversed(expansion.children(triple)):
                stack.append((child, child_ancestry, child_path))

    if is_debug_enabled(logger):
        logger.debug(
            "Collected declarations",
            extra=extra_context(
                event="function_exit",
                component="graph",
                action="collect",
                count=len(graph.nodes),
            ),
        )
    return graph
