"""Load resolution requests from YAML or JSON manifests.

Example::

    dependencies:
      - com.google.firebase:firebase-messaging
      - coordinate: com.google.mlkit:text-recognition-chinese:16.0.0
        exclude:
          - com.google.firebase:firebase-iid
    force:
      - com.google.firebase:firebase-messaging:24.1.1
    exclude:
      - group: com.google.firebase
        module: firebase-iid
    platform:
      com.google.firebase:firebase-messaging: 23.4.1
    boms:
      - com.google.firebase:firebase-bom:32.7.3
    repository:
      com.google.mlkit:text-recognition-chinese:16.0.0:
        - com.google.firebase:firebase-messaging:>=22.0
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

import yaml

from versioning.errors import NotationError
from versioning.models import (
    CoordinateKey,
    DeclarationSource,
    DependencyDeclaration,
    ExclusionRule,
    ForceRule,
)
from versioning.parser import (
    parse_coordinate_key,
    parse_dependency_notation,
    parse_exclusion,
    parse_force_notation,
)

logger = logging.getLogger(__name__)


class ManifestError(Exception):
    """The manifest file is missing, unreadable or malformed."""


@dataclass
class Manifest:
    """Parsed manifest contents."""
    dependencies: List[DependencyDeclaration] = field(default_factory=list)
    exclusions: List[ExclusionRule] = field(default_factory=list)
    forces: List[ForceRule] = field(default_factory=list)
    platform: Dict[CoordinateKey, str] = field(default_factory=dict)
    boms: List[str] = field(default_factory=list)
    repository: Dict[str, List[str]] = field(default_factory=dict)


def _as_list(data: Mapping[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestError(f"'{key}' must be a list")
    return value


def parse_manifest(data: Any) -> Manifest:
    """Build a Manifest from already-decoded YAML/JSON data."""
    if not isinstance(data, dict):
        raise ManifestError("Manifest top level must be a mapping")

    manifest = Manifest()
    try:
        for entry in _as_list(data, "dependencies"):
            if isinstance(entry, str):
                manifest.dependencies.append(parse_dependency_notation(entry))
                continue
            if not isinstance(entry, dict) or "coordinate" not in entry:
                raise ManifestError(f"Dependency entry needs a 'coordinate': {entry!r}")
            decl = parse_dependency_notation(str(entry["coordinate"]), DeclarationSource.DIRECT)
            manifest.dependencies.append(decl)
            for rule in _as_list(entry, "exclude"):
                manifest.exclusions.append(
                    parse_exclusion(rule, scope=len(manifest.dependencies) - 1)
                )

        for rule in _as_list(data, "exclude"):
            manifest.exclusions.append(parse_exclusion(rule))
        for rule in _as_list(data, "force"):
            manifest.forces.append(parse_force_notation(str(rule)))

        platform = data.get("platform") or {}
        if not isinstance(platform, dict):
            raise ManifestError("'platform' must be a mapping of group:module to version")
        for coordinate, ver in platform.items():
            manifest.platform[parse_coordinate_key(str(coordinate))] = str(ver)

        for bom in _as_list(data, "boms"):
            parse_force_notation(str(bom))  # same shape: group:module:version
            manifest.boms.append(str(bom))

        repository = data.get("repository") or {}
        if not isinstance(repository, dict):
            raise ManifestError("'repository' must be a mapping")
        for coordinate, deps in repository.items():
            if deps is not None and not isinstance(deps, list):
                raise ManifestError(f"Repository entry for {coordinate} must be a list")
            manifest.repository[str(coordinate)] = [str(d) for d in (deps or [])]
    except NotationError as exc:
        raise ManifestError(str(exc)) from exc

    return manifest


def load_manifest(path: str) -> Manifest:
    """Read a manifest file; JSON when the extension says so, YAML otherwise."""
    if not os.path.isfile(path):
        raise ManifestError(f"Manifest not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ManifestError(f"Cannot read manifest {path}: {exc}") from exc
    manifest = parse_manifest(data)
    logger.info(
        "Manifest loaded: %d dependencies, %d force rules, %d exclusions",
        len(manifest.dependencies),
        len(manifest.forces),
        len(manifest.exclusions),
    )
    return manifest
