"""Argument parsing functionality for depforce."""

import argparse
from constants import OutputFormats


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="depforce",
        description=(
            "depforce - Dependency conflict resolver with force/exclude rules"
        ),
        add_help=True,
    )

    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument("-m", "--manifest",
                        dest="MANIFEST",
                        help="Load dependencies and rules from a YAML or JSON manifest",
                        action="store", type=str)
    input_group.add_argument("-d", "--dependency",
                        dest="DEPENDENCIES",
                        help="Declare a direct dependency as group:module[:version] (repeatable)",
                        action="append", type=str)

    parser.add_argument("--force",
                        dest="FORCE",
                        help="Force group:module:version regardless of constraints (repeatable)",
                        action="append", type=str, default=[])
    parser.add_argument("--exclude",
                        dest="EXCLUDE",
                        help="Exclude group[:module] everywhere in the graph (repeatable)",
                        action="append", type=str, default=[])
    parser.add_argument("--online",
                        dest="ONLINE",
                        help="Expand transitive dependencies from Maven repository POMs",
                        action="store_true")
    parser.add_argument("-r", "--repository",
                        dest="REPOSITORIES",
                        help="Maven repository base URL, searched in order (repeatable)",
                        action="append", type=str, default=[])

    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to output file (JSON or CSV)",
                        action="store",
                        type=str)
    parser.add_argument("-f", "--format",
                        dest="OUTPUT_FORMAT",
                        help="Output format (json or csv). If not specified, inferred from --output extension; defaults to json.",
                        action="store",
                        type=str.lower,
                        choices=[f.value for f in OutputFormats])
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output to console.",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
