"""depforce - Dependency conflict resolver with force/exclude rules

    Returns:
        int: Exit code
"""
import csv
import json
import logging
import sys

from args import parse_args
from cli_config import (
    apply_cli_overrides,
    default_exclusions,
    default_forces,
    load_config,
    setup_logging,
)
from common.http_client import ConnectionFailure
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants, ExitCodes, OutputFormats
from manifest import Manifest, ManifestError, load_manifest
from registry.maven import MavenPomExpander
from registry.static import StaticRepository
from resolution import DependencyResolver
from versioning.cache import TTLCache
from versioning.errors import ExpansionError, NotationError
from versioning.models import ConflictReport, ResolutionRequest, ResolvedGraph
from versioning.parser import (
    parse_dependency_notation,
    parse_exclusion_notation,
    parse_force_notation,
)

logger = logging.getLogger(__name__)


def build_manifest(args):
    """Build the Manifest from --manifest or from -d/--dependency flags.

    Raises:
        ManifestError: If the manifest or a notation cannot be parsed.
    """
    if getattr(args, "MANIFEST", None):
        manifest = load_manifest(args.MANIFEST)
    else:
        manifest = Manifest()
        try:
            manifest.dependencies = [parse_dependency_notation(d) for d in args.DEPENDENCIES or []]
        except NotationError as exc:
            raise ManifestError(str(exc)) from exc

    # Config defaults first, then the manifest, then CLI flags; later force rules win.
    try:
        manifest.forces = default_forces() + manifest.forces + [
            parse_force_notation(n) for n in args.FORCE or []
        ]
        manifest.exclusions = default_exclusions() + manifest.exclusions + [
            parse_exclusion_notation(n) for n in args.EXCLUDE or []
        ]
    except NotationError as exc:
        raise ManifestError(str(exc)) from exc
    return manifest


def build_expander(args, manifest):
    """Pick the expand callback: static manifest graph, Maven POMs, or both."""
    static = StaticRepository(manifest.repository) if manifest.repository else None
    maven = None
    if getattr(args, "ONLINE", False):
        maven = MavenPomExpander(cache=TTLCache(Constants.POM_CACHE_TTL_SEC))

    if static is not None and maven is not None:
        def expand(group, module, version):
            if static.knows(group, module, version):
                return static(group, module, version)
            return maven(group, module, version)
        return expand, maven
    return (static or maven), maven


def build_request(args, manifest):
    """Assemble the ResolutionRequest, loading BOM platforms when online."""
    expand, maven = build_expander(args, manifest)
    platform = {}
    if manifest.boms:
        if maven is None:
            logger.warning("Ignoring %d BOM(s); use --online to load them.", len(manifest.boms))
        else:
            for bom in manifest.boms:
                rule = parse_force_notation(bom)
                for key, ver in maven.load_platform(rule.group, rule.module, rule.version).items():
                    platform.setdefault(key, ver)
    # Explicit platform entries override BOM contents.
    platform.update(manifest.platform)
    return ResolutionRequest(
        direct=manifest.dependencies,
        exclusions=manifest.exclusions,
        forces=manifest.forces,
        platform=platform,
        expand=expand,
    )


def print_graph(graph):
    """Write the resolved graph to stdout."""
    for dep in graph.dependencies.values():
        marker = " (forced)" if dep.forced else ""
        sys.stdout.write(f"{dep.coordinate}{marker}\n")
    for node in graph.excluded:
        sys.stdout.write(f"excluded: {' -> '.join(node.chain())}\n")
    for node in graph.truncated_cycles:
        sys.stdout.write(f"cycle truncated: {' -> '.join(node.chain())}\n")


def print_conflict(report):
    """Write the conflict report with ancestry chains to stdout."""
    sys.stdout.write(
        f"CONFLICT ({report.kind.value}) on {report.group}:{report.module}: {report.message}\n"
    )
    for node in report.declarations:
        sys.stdout.write(
            f"  {node.declaration.version_constraint or '(any)'} via {' -> '.join(node.chain())}\n"
        )


def export_csv(result, path):
    """Exports the resolution result to a CSV file.

    Args:
        result (ResolvedGraph | ConflictReport): Resolution outcome.
        path (str): File path to export the CSV.
    """
    if isinstance(result, ResolvedGraph):
        rows = [["group", "module", "version", "forced", "direct", "constraints"]]
        for dep in result.dependencies.values():
            rows.append([
                dep.group,
                dep.module,
                dep.version,
                dep.forced,
                dep.direct,
                "|".join(dep.constraints),
            ])
    else:
        rows = [["conflict", "group", "module", "constraint", "source", "ancestry"]]
        for node in result.declarations:
            rows.append([
                result.kind.value,
                result.group,
                result.module,
                node.declaration.version_constraint,
                node.declaration.source.value,
                " -> ".join(node.chain()),
            ])
    try:
        with open(path, 'w', newline='', encoding='utf-8') as file:
            export = csv.writer(file)
            export.writerows(rows)
        logging.info("CSV file has been successfully exported at: %s", path)
    except (OSError, csv.Error) as e:
        logging.error("CSV file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def export_json(result, path):
    """Exports the resolution result to a JSON file.

    Args:
        result (ResolvedGraph | ConflictReport): Resolution outcome.
        path (str): File path to export the JSON.
    """
    try:
        with open(path, 'w', encoding='utf-8') as file:
            json.dump(result.to_dict(), file, ensure_ascii=False, indent=4)
        logging.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logging.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def export_result(args, result):
    """Write result to --output in the requested or inferred format."""
    fmt = None
    if getattr(args, "OUTPUT_FORMAT", None):
        fmt = args.OUTPUT_FORMAT.lower()
    elif args.OUTPUT.lower().endswith(".csv"):
        fmt = OutputFormats.CSV.value
    if fmt == OutputFormats.CSV.value:
        export_csv(result, args.OUTPUT)
    else:
        export_json(result, args.OUTPUT)


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    setup_logging(args)
    load_config(args)
    apply_cli_overrides(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        manifest = build_manifest(args)
    except ManifestError as exc:
        logging.error("%s", exc)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if not manifest.dependencies:
        logging.warning("No dependencies declared.")
        sys.exit(ExitCodes.SUCCESS.value)

    try:
        request = build_request(args, manifest)
        result = DependencyResolver().resolve_request(request)
    except ConnectionFailure as exc:
        logging.error("Repository unreachable: %s", exc)
        sys.exit(ExitCodes.CONNECTION_ERROR.value)
    except ExpansionError as exc:
        if isinstance(exc.cause, ConnectionFailure):
            logging.error("Repository unreachable: %s", exc.cause)
            sys.exit(ExitCodes.CONNECTION_ERROR.value)
        logging.error("%s", exc)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if not args.QUIET:
        if isinstance(result, ConflictReport):
            print_conflict(result)
        else:
            print_graph(result)

    if getattr(args, "OUTPUT", None):
        export_result(args, result)

    if isinstance(result, ConflictReport):
        logging.error("Resolution failed with a conflict on %s:%s.", result.group, result.module)
        sys.exit(ExitCodes.CONFLICT.value)

    logging.info("Resolved %d dependencies.", len(result))
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
