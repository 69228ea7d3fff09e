"""CLI configuration: YAML config loading and runtime overrides.

Extracted from depforce.py to keep the entrypoint slim. Precedence, lowest to
highest: built-in Constants, YAML config, CLI flags.
"""

from __future__ import annotations

import logging
import os
from typing import Any, List

from constants import Constants, _load_yaml_config, apply_config
from versioning.models import ExclusionRule, ForceRule
from versioning.parser import parse_exclusion, parse_force_notation

logger = logging.getLogger(__name__)


def setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments."""
    from common.logging_utils import configure_logging  # pylint: disable=import-outside-toplevel

    # Honor CLI --loglevel by passing it to centralized logger via env
    if getattr(args, "LOG_LEVEL", None):
        os.environ["DEPFORCE_LOG_LEVEL"] = str(args.LOG_LEVEL).upper()
    configure_logging()

    if getattr(args, "QUIET", False):
        logging.getLogger().setLevel(logging.ERROR)

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def load_config(args: Any) -> None:
    """Load YAML config (explicit --config first, then default locations)."""
    path = getattr(args, "CONFIG", None)
    if path and not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
    apply_config(_load_yaml_config(path))


def apply_cli_overrides(args: Any) -> None:
    """Apply CLI overrides with highest precedence."""
    repos = getattr(args, "REPOSITORIES", None)
    if repos:
        Constants.MAVEN_REPOSITORIES = [r.rstrip("/") for r in repos]


def default_forces() -> List[ForceRule]:
    """Force rules configured under resolution.force."""
    return [parse_force_notation(str(n)) for n in Constants.DEFAULT_FORCE]


def default_exclusions() -> List[ExclusionRule]:
    """Global exclusions configured under resolution.exclude."""
    return [parse_exclusion(n) for n in Constants.DEFAULT_EXCLUDE]
