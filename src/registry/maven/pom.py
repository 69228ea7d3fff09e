"""Maven repository expander: transitive dependencies and BOMs from POM files."""
from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Sequence, Set

from common.http_client import robust_get
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from constants import Constants
from versioning.cache import TTLCache
from versioning.constraints import ConstraintKind, VersionConstraint
from versioning.errors import MalformedVersionError
from versioning.models import CoordinateKey, DeclarationSource, DependencyDeclaration

logger = logging.getLogger(__name__)

_PROPERTY = re.compile(r"\$\{([^}]+)\}")
_SKIPPED_SCOPES = {"test", "provided", "system", "import"}


def pom_url(base: str, group: str, artifact: str, version: str) -> str:
    """Build the repository URL of an artifact's POM."""
    return f"{base.rstrip('/')}/{group.replace('.', '/')}/{artifact}/{version}/{artifact}-{version}.pom"


def _strip_namespaces(root: ET.Element) -> ET.Element:
    for elem in root.iter():
        if isinstance(elem.tag, str) and "}" in elem.tag:
            elem.tag = elem.tag.split("}", 1)[1]
    return root


def _child_text(elem: Optional[ET.Element], tag: str) -> str:
    if elem is None:
        return ""
    child = elem.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text.strip()


class PomModel:
    """The parts of a POM needed for dependency expansion."""

    def __init__(self, root: ET.Element):
        root = _strip_namespaces(root)
        parent = root.find("parent")
        self.group = _child_text(root, "groupId") or _child_text(parent, "groupId")
        self.artifact = _child_text(root, "artifactId")
        self.version = _child_text(root, "version") or _child_text(parent, "version")

        self.properties: Dict[str, str] = {
            "project.groupId": self.group,
            "project.artifactId": self.artifact,
            "project.version": self.version,
            "pom.version": self.version,
            "version": self.version,
            "project.parent.version": _child_text(parent, "version"),
            "project.parent.groupId": _child_text(parent, "groupId"),
        }
        props = root.find("properties")
        if props is not None:
            for prop in props:
                if isinstance(prop.tag, str):
                    self.properties[prop.tag] = (prop.text or "").strip()

        self.dependencies = self._read_dependencies(root.find("dependencies"))
        self.managed = self._read_dependencies(root.find("dependencyManagement/dependencies"))

    @classmethod
    def from_text(cls, text: str) -> "PomModel":
        return cls(ET.fromstring(text))

    def interpolate(self, value: str) -> str:
        """Substitute ${...} properties; unknown ones are left in place."""
        for _ in range(5):
            replaced = _PROPERTY.sub(lambda m: self.properties.get(m.group(1), m.group(0)), value)
            if replaced == value:
                break
            value = replaced
        return value

    def _read_dependencies(self, container: Optional[ET.Element]) -> List[Dict[str, str]]:
        if container is None:
            return []
        deps = []
        for dep in container.findall("dependency"):
            deps.append({
                "group": self.interpolate(_child_text(dep, "groupId")),
                "artifact": self.interpolate(_child_text(dep, "artifactId")),
                "version": self.interpolate(_child_text(dep, "version")),
                "scope": _child_text(dep, "scope") or "compile",
                "type": _child_text(dep, "type") or "jar",
                "optional": _child_text(dep, "optional").lower(),
            })
        return deps

    def managed_versions(self) -> Dict[CoordinateKey, str]:
        return {
            (d["group"], d["artifact"]): d["version"]
            for d in self.managed
            if d["group"] and d["artifact"] and d["version"] and "${" not in d["version"]
        }


class MavenPomExpander:
    """Expander reading transitive dependencies from Maven repositories.

    Args:
        repositories: Base URLs searched in order.
        cache: Optional TTL cache shared across resolution calls.
        scopes: Dependency scopes that propagate transitively.
    """

    def __init__(
        self,
        repositories: Optional[Sequence[str]] = None,
        cache: Optional[TTLCache] = None,
        scopes: Optional[Sequence[str]] = None,
    ):
        self.repositories = list(repositories or Constants.MAVEN_REPOSITORIES)
        self.cache = cache
        self.scopes = set(scopes or Constants.MAVEN_TRANSITIVE_SCOPES)

    def fetch_pom(self, group: str, artifact: str, version: str) -> Optional[PomModel]:
        """Fetch and parse a POM from the first repository that has it."""
        cache_key = f"maven:pom:{group}:{artifact}:{version}"
        if self.cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        for base in self.repositories:
            url = pom_url(base, group, artifact, version)
            status_code, _, text = robust_get(url)
            if status_code != 200 or not text:
                if is_debug_enabled(logger):
                    logger.debug("POM not in repository", extra=extra_context(
                        event="decision", component="maven", action="fetch_pom",
                        outcome="not_found", status_code=status_code,
                        coordinate=f"{group}:{artifact}:{version}", package_manager="maven"
                    ))
                continue
            try:
                model = PomModel.from_text(text)
            except ET.ParseError as exc:
                logger.warning(
                    "Unparseable POM for %s:%s:%s from %s: %s",
                    group, artifact, version, safe_url(base), exc,
                )
                continue
            if self.cache:
                self.cache.set(cache_key, model, Constants.POM_CACHE_TTL_SEC)
            return model

        logger.warning("No POM found for %s:%s:%s", group, artifact, version)
        return None

    def __call__(self, group: str, module: str, version: str) -> List[DependencyDeclaration]:
        concrete = self._concrete_version(version)
        if concrete is None:
            if is_debug_enabled(logger):
                logger.debug("Skipping expansion of non-concrete version", extra=extra_context(
                    event="decision", component="maven", action="expand",
                    outcome="skipped", coordinate=f"{group}:{module}:{version}"
                ))
            return []

        model = self.fetch_pom(group, module, concrete)
        if model is None:
            return []

        managed = model.managed_versions()
        result = []
        for dep in model.dependencies:
            if dep["scope"] in _SKIPPED_SCOPES or dep["scope"] not in self.scopes:
                continue
            if dep["optional"] == "true" or not dep["group"] or not dep["artifact"]:
                continue
            constraint = dep["version"]
            if not constraint or "${" in constraint:
                constraint = managed.get((dep["group"], dep["artifact"]), "")
            result.append(DependencyDeclaration(
                group=dep["group"],
                module=dep["artifact"],
                version_constraint=constraint,
                source=DeclarationSource.TRANSITIVE,
            ))
        return result

    def load_platform(
        self, group: str, module: str, version: str, _seen: Optional[Set[str]] = None
    ) -> Dict[CoordinateKey, str]:
        """Read a BOM's dependencyManagement into a platform mapping.

        Imported BOMs are merged in; entries declared by the BOM itself win.
        """
        seen = _seen if _seen is not None else set()
        coordinate = f"{group}:{module}:{version}"
        if coordinate in seen:
            return {}
        seen.add(coordinate)

        model = self.fetch_pom(group, module, version)
        if model is None:
            return {}

        platform: Dict[CoordinateKey, str] = {}
        for dep in model.managed:
            if dep["scope"] == "import" and dep["type"] == "pom" and dep["version"]:
                for key, ver in self.load_platform(dep["group"], dep["artifact"], dep["version"], seen).items():
                    platform.setdefault(key, ver)
        platform.update(model.managed_versions())
        logger.info("Loaded platform %s with %d managed versions", coordinate, len(platform))
        return platform

    @staticmethod
    def _concrete_version(version: str) -> Optional[str]:
        try:
            constraint = VersionConstraint.parse(version)
        except MalformedVersionError:
            return version or None
        if constraint.kind == ConstraintKind.ANY:
            return None
        return constraint.preferred
