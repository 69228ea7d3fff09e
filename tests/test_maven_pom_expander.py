"""Tests for the Maven POM expander and BOM loading."""

from unittest.mock import patch

import pytest

from common.http_client import ConnectionFailure
from registry.maven import MavenPomExpander, PomModel, pom_url
from versioning.cache import TTLCache
from versioning.models import DeclarationSource

GOOGLE = "https://dl.google.com/dl/android/maven2"
CENTRAL = "https://repo1.maven.org/maven2"

MESSAGING_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>com.google.firebase</groupId>
  <artifactId>firebase-messaging</artifactId>
  <version>24.1.1</version>
  <properties>
    <datatransport.version>3.1.9</datatransport.version>
  </properties>
  <dependencyManagement>
    <dependencies>
      <dependency>
        <groupId>com.google.android.gms</groupId>
        <artifactId>play-services-basement</artifactId>
        <version>18.4.0</version>
      </dependency>
    </dependencies>
  </dependencyManagement>
  <dependencies>
    <dependency>
      <groupId>com.google.firebase</groupId>
      <artifactId>firebase-common</artifactId>
      <version>[21.0.0]</version>
      <scope>compile</scope>
    </dependency>
    <dependency>
      <groupId>com.google.android.datatransport</groupId>
      <artifactId>transport-api</artifactId>
      <version>${datatransport.version}</version>
      <scope>runtime</scope>
    </dependency>
    <dependency>
      <groupId>com.google.android.gms</groupId>
      <artifactId>play-services-basement</artifactId>
    </dependency>
    <dependency>
      <groupId>junit</groupId>
      <artifactId>junit</artifactId>
      <version>4.13.2</version>
      <scope>test</scope>
    </dependency>
    <dependency>
      <groupId>com.google.firebase</groupId>
      <artifactId>firebase-iid</artifactId>
      <version>21.1.0</version>
      <optional>true</optional>
    </dependency>
  </dependencies>
</project>
"""

BOM_POM = """<project>
  <groupId>com.google.firebase</groupId>
  <artifactId>firebase-bom</artifactId>
  <version>32.7.3</version>
  <dependencyManagement>
    <dependencies>
      <dependency>
        <groupId>com.google.firebase</groupId>
        <artifactId>firebase-messaging</artifactId>
        <version>23.4.1</version>
      </dependency>
      <dependency>
        <groupId>com.google.firebase</groupId>
        <artifactId>firebase-auth</artifactId>
        <version>22.3.1</version>
      </dependency>
      <dependency>
        <groupId>com.example</groupId>
        <artifactId>extra-bom</artifactId>
        <version>1.0</version>
        <type>pom</type>
        <scope>import</scope>
      </dependency>
    </dependencies>
  </dependencyManagement>
</project>
"""

EXTRA_BOM = """<project>
  <groupId>com.example</groupId>
  <artifactId>extra-bom</artifactId>
  <version>1.0</version>
  <dependencyManagement>
    <dependencies>
      <dependency>
        <groupId>com.google.firebase</groupId>
        <artifactId>firebase-auth</artifactId>
        <version>1.0.0</version>
      </dependency>
      <dependency>
        <groupId>com.example</groupId>
        <artifactId>helper</artifactId>
        <version>2.0</version>
      </dependency>
    </dependencies>
  </dependencyManagement>
</project>
"""


def _responses(mapping):
    """Build a robust_get side effect serving POMs by URL."""
    def fake_get(url, **_kwargs):
        if url in mapping:
            return 200, {}, mapping[url]
        return 404, {}, ""
    return fake_get


def test_pom_url():
    assert pom_url(CENTRAL + "/", "com.google.firebase", "firebase-messaging", "24.1.1") == (
        CENTRAL + "/com/google/firebase/firebase-messaging/24.1.1/firebase-messaging-24.1.1.pom"
    )


def test_pom_model_interpolates_properties():
    model = PomModel.from_text(MESSAGING_POM)
    assert model.group == "com.google.firebase"
    assert model.version == "24.1.1"
    assert model.interpolate("${project.version}-${datatransport.version}") == "24.1.1-3.1.9"
    assert model.interpolate("${unknown}") == "${unknown}"


class TestMavenPomExpander:
    """Transitive expansion from POM files."""

    @patch("registry.maven.pom.robust_get")
    def test_expand_reads_compile_and_runtime(self, mock_get):
        url = pom_url(GOOGLE, "com.google.firebase", "firebase-messaging", "24.1.1")
        mock_get.side_effect = _responses({url: MESSAGING_POM})
        expander = MavenPomExpander(repositories=[GOOGLE, CENTRAL])

        deps = expander("com.google.firebase", "firebase-messaging", "24.1.1")

        assert [d.coordinate for d in deps] == [
            "com.google.firebase:firebase-common:[21.0.0]",
            "com.google.android.datatransport:transport-api:3.1.9",
            "com.google.android.gms:play-services-basement:18.4.0",
        ]
        assert all(d.source == DeclarationSource.TRANSITIVE for d in deps)

    @patch("registry.maven.pom.robust_get")
    def test_falls_through_repositories(self, mock_get):
        url = pom_url(CENTRAL, "com.google.firebase", "firebase-messaging", "24.1.1")
        mock_get.side_effect = _responses({url: MESSAGING_POM})
        expander = MavenPomExpander(repositories=[GOOGLE, CENTRAL])

        assert len(expander("com.google.firebase", "firebase-messaging", "24.1.1")) == 3
        assert mock_get.call_count == 2

    @patch("registry.maven.pom.robust_get")
    def test_constraint_expanded_at_named_version(self, mock_get):
        url = pom_url(GOOGLE, "com.google.firebase", "firebase-messaging", "24.1.1")
        mock_get.side_effect = _responses({url: MESSAGING_POM})
        expander = MavenPomExpander(repositories=[GOOGLE])

        assert len(expander("com.google.firebase", "firebase-messaging", ">=24.1.1")) == 3

    @patch("registry.maven.pom.robust_get")
    def test_dynamic_version_not_expanded(self, mock_get):
        expander = MavenPomExpander(repositories=[GOOGLE])
        assert expander("com.google.firebase", "firebase-messaging", "") == []
        assert expander("com.google.firebase", "firebase-messaging", "1.+") == []
        mock_get.assert_not_called()

    @patch("registry.maven.pom.robust_get")
    def test_missing_pom_yields_no_dependencies(self, mock_get):
        mock_get.side_effect = _responses({})
        expander = MavenPomExpander(repositories=[GOOGLE, CENTRAL])
        assert expander("com.example", "ghost", "1.0") == []

    @patch("registry.maven.pom.robust_get")
    def test_unparseable_pom_yields_no_dependencies(self, mock_get):
        mock_get.return_value = (200, {}, "<project><unclosed></project>")
        expander = MavenPomExpander(repositories=[GOOGLE])
        assert expander("com.example", "broken", "1.0") == []

    @patch("registry.maven.pom.robust_get")
    def test_unparseable_pom_falls_through_to_next_repository(self, mock_get):
        mock_get.side_effect = _responses({
            pom_url(GOOGLE, "com.google.firebase", "firebase-messaging", "24.1.1"): "<project><oops",
            pom_url(CENTRAL, "com.google.firebase", "firebase-messaging", "24.1.1"): MESSAGING_POM,
        })
        expander = MavenPomExpander(repositories=[GOOGLE, CENTRAL])

        assert len(expander("com.google.firebase", "firebase-messaging", "24.1.1")) == 3
        assert mock_get.call_count == 2

    @patch("registry.maven.pom.robust_get")
    def test_cache_avoids_refetch(self, mock_get):
        url = pom_url(GOOGLE, "com.google.firebase", "firebase-messaging", "24.1.1")
        mock_get.side_effect = _responses({url: MESSAGING_POM})
        expander = MavenPomExpander(repositories=[GOOGLE], cache=TTLCache())

        expander("com.google.firebase", "firebase-messaging", "24.1.1")
        expander("com.google.firebase", "firebase-messaging", "24.1.1")
        assert mock_get.call_count == 1

    @patch("registry.maven.pom.robust_get")
    def test_connection_failure_propagates(self, mock_get):
        mock_get.side_effect = ConnectionFailure("https://example.invalid/x.pom", "timeout")
        expander = MavenPomExpander(repositories=[GOOGLE])
        with pytest.raises(ConnectionFailure):
            expander("com.example", "lib", "1.0")


class TestLoadPlatform:
    """BOM loading into platform versions."""

    @patch("registry.maven.pom.robust_get")
    def test_bom_with_import(self, mock_get):
        mock_get.side_effect = _responses({
            pom_url(GOOGLE, "com.google.firebase", "firebase-bom", "32.7.3"): BOM_POM,
            pom_url(GOOGLE, "com.example", "extra-bom", "1.0"): EXTRA_BOM,
        })
        expander = MavenPomExpander(repositories=[GOOGLE])

        platform = expander.load_platform("com.google.firebase", "firebase-bom", "32.7.3")

        assert platform[("com.google.firebase", "firebase-messaging")] == "23.4.1"
        assert platform[("com.google.firebase", "firebase-auth")] == "22.3.1"
        assert platform[("com.example", "helper")] == "2.0"
