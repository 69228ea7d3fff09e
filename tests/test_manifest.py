"""Tests for manifest loading."""

import json
import textwrap

import pytest

from manifest import ManifestError, load_manifest, parse_manifest
from versioning.models import ExclusionRule, ForceRule


MANIFEST_YAML = textwrap.dedent("""\
    dependencies:
      - com.google.firebase:firebase-messaging
      - coordinate: "com.google.mlkit:text-recognition-chinese:16.0.0"
        exclude:
          - com.google.firebase:firebase-iid
    force:
      - "com.google.firebase:firebase-messaging:24.1.1"
    exclude:
      - group: com.google.firebase
        module: firebase-iid
    platform:
      "com.google.firebase:firebase-messaging": "23.4.1"
    boms:
      - "com.google.firebase:firebase-bom:32.7.3"
    repository:
      "com.google.mlkit:text-recognition-chinese:16.0.0":
        - "com.google.firebase:firebase-messaging:>=22.0"
""")


class TestLoadManifest:
    """Reading manifests from disk."""

    def test_yaml_manifest(self, tmp_path):
        path = tmp_path / "depforce.yml"
        path.write_text(MANIFEST_YAML, encoding="utf-8")
        manifest = load_manifest(str(path))

        assert [d.coordinate for d in manifest.dependencies] == [
            "com.google.firebase:firebase-messaging",
            "com.google.mlkit:text-recognition-chinese:16.0.0",
        ]
        assert manifest.forces == [
            ForceRule("com.google.firebase", "firebase-messaging", "24.1.1")
        ]
        assert manifest.exclusions == [
            ExclusionRule(
                "com.google.firebase",
                "firebase-iid",
                scope=1,
            ),
            ExclusionRule("com.google.firebase", "firebase-iid"),
        ]
        assert manifest.platform == {
            ("com.google.firebase", "firebase-messaging"): "23.4.1"
        }
        assert manifest.boms == ["com.google.firebase:firebase-bom:32.7.3"]
        assert manifest.repository == {
            "com.google.mlkit:text-recognition-chinese:16.0.0": [
                "com.google.firebase:firebase-messaging:>=22.0"
            ]
        }

    def test_json_manifest(self, tmp_path):
        path = tmp_path / "deps.json"
        path.write_text(json.dumps({
            "dependencies": ["lib:x:1.0"],
            "force": ["lib:x:2.0"],
        }), encoding="utf-8")
        manifest = load_manifest(str(path))
        assert manifest.dependencies[0].coordinate == "lib:x:1.0"
        assert manifest.forces == [ForceRule("lib", "x", "2.0")]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError):
            load_manifest(str(tmp_path / "absent.yml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yml"
        path.write_text("dependencies: [unclosed", encoding="utf-8")
        with pytest.raises(ManifestError):
            load_manifest(str(path))


class TestParseManifest:
    """Validation of manifest structure."""

    def test_top_level_must_be_mapping(self):
        with pytest.raises(ManifestError):
            parse_manifest(["lib:x:1.0"])

    def test_section_must_be_list(self):
        with pytest.raises(ManifestError):
            parse_manifest({"force": "lib:x:1.0"})

    def test_bad_notation_becomes_manifest_error(self):
        with pytest.raises(ManifestError):
            parse_manifest({"force": ["lib:x"]})

    def test_dependency_mapping_needs_coordinate(self):
        with pytest.raises(ManifestError):
            parse_manifest({"dependencies": [{"exclude": ["a:b"]}]})

    def test_empty_manifest(self):
        manifest = parse_manifest({})
        assert manifest.dependencies == []
        assert manifest.platform == {}

    def test_dependency_excludes_are_scoped_to_their_own_entry(self):
        manifest = parse_manifest({
            "dependencies": [
                "lib:x:1.0",
                {"coordinate": "lib:x:1.0", "exclude": ["a:b"]},
            ],
        })
        assert manifest.exclusions == [ExclusionRule("a", "b", scope=1)]
