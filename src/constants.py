"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    CONFLICT = 3


class OutputFormats(Enum):
    """Export formats supported by the program.

    Args:
        Enum (string): Export formats supported by the program.
    """

    JSON = "json"
    CSV = "csv"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    # google() and mavenCentral(), in that order
    MAVEN_REPOSITORIES = [
        "https://dl.google.com/dl/android/maven2",
        "https://repo1.maven.org/maven2",
    ]
    MAVEN_TRANSITIVE_SCOPES = ["compile", "runtime"]
    CONFIG_ENV_VAR = "DEPFORCE_CONFIG"
    CONFIG_SEARCH_PATHS = [
        "depforce.yml",
        "depforce.yaml",
        os.path.join("~", ".config", "depforce", "depforce.yml"),
    ]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_CACHE_TTL_SEC = 300
    POM_CACHE_TTL_SEC = 600

    # Rules applied to every resolution in addition to the request's own
    DEFAULT_FORCE = []
    DEFAULT_EXCLUDE = []


def _find_config_path() -> Optional[str]:
    """Return the first existing config file path, env var taking precedence."""
    env_path = os.environ.get(Constants.CONFIG_ENV_VAR)
    if env_path:
        return os.path.expanduser(env_path)
    for candidate in Constants.CONFIG_SEARCH_PATHS:
        path = os.path.expanduser(candidate)
        if os.path.isfile(path):
            return path
    return None


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the YAML config from ``path`` or the default locations.

    Returns an empty dict when no file exists. A file that exists but cannot
    be parsed is logged and ignored so a bad config never blocks the CLI.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    path = path or _find_config_path()
    if not path or not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level must be a mapping", path)
        return {}
    return data


def apply_config(cfg: Dict[str, Any]) -> None:
    """Overlay a loaded config mapping onto Constants."""
    http = cfg.get("http") or {}
    if isinstance(http, dict):
        if http.get("request_timeout") is not None:
            Constants.REQUEST_TIMEOUT = int(http["request_timeout"])
        if http.get("retry_max") is not None:
            Constants.HTTP_RETRY_MAX = int(http["retry_max"])
        if http.get("retry_base_delay_sec") is not None:
            Constants.HTTP_RETRY_BASE_DELAY_SEC = float(http["retry_base_delay_sec"])
        if http.get("cache_ttl_sec") is not None:
            Constants.HTTP_CACHE_TTL_SEC = int(http["cache_ttl_sec"])

    maven = cfg.get("maven") or {}
    if isinstance(maven, dict):
        repos = maven.get("repositories")
        if isinstance(repos, list) and repos:
            Constants.MAVEN_REPOSITORIES = [str(r).rstrip("/") for r in repos]
        scopes = maven.get("scopes")
        if isinstance(scopes, list) and scopes:
            Constants.MAVEN_TRANSITIVE_SCOPES = [str(s) for s in scopes]
        if maven.get("pom_cache_ttl_sec") is not None:
            Constants.POM_CACHE_TTL_SEC = int(maven["pom_cache_ttl_sec"])

    resolution = cfg.get("resolution") or {}
    if isinstance(resolution, dict):
        if isinstance(resolution.get("force"), list):
            Constants.DEFAULT_FORCE = list(resolution["force"])
        if isinstance(resolution.get("exclude"), list):
            Constants.DEFAULT_EXCLUDE = list(resolution["exclude"])
