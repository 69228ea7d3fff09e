"""Maven repository access for transitive expansion and platform (BOM) loading."""

from .pom import MavenPomExpander, PomModel, pom_url

__all__ = ["MavenPomExpander", "PomModel", "pom_url"]
