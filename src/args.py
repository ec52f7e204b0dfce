"""Argument parsing functionality for dist-surveyor."""

import argparse
from constants import Constants


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="dist-surveyor",
        description=(
            "dist-surveyor - Infer which CPAN releases were installed into a Perl library tree"
        ),
        add_help=True,
    )

    parser.add_argument("libdir",
                        help="Top-level library directory; an architecture subdirectory is added automatically",
                        action="store",
                        type=str)

    parser.add_argument("--match",
                        dest="MATCH",
                        help="Only consider modules whose name matches this regular expression",
                        action="store",
                        type=str)
    parser.add_argument("--perlver",
                        dest="PERLVER",
                        help="Skip modules that this perl version ships in core at the same or a newer version (needs perl with Module::CoreList)",
                        action="store",
                        type=str)
    parser.add_argument("--corelist",
                        dest="CORELIST",
                        help="JSON file of {module: version} core modules to skip, instead of asking perl",
                        action="store",
                        type=str)
    parser.add_argument("--remnants",
                        dest="REMNANTS",
                        help="Include old releases that have remnant/orphaned modules installed",
                        action="store_true")
    parser.add_argument("--uncached",
                        dest="UNCACHED",
                        help="Don't use the persistent result cache",
                        action="store_true")
    parser.add_argument("--cache-file",
                        dest="CACHE_FILE",
                        help=f"Persistent cache location (default: {Constants.CACHE_FILE})",
                        action="store",
                        type=str)
    parser.add_argument("--workers",
                        dest="WORKERS",
                        help="Number of modules to resolve concurrently (default: 1, sequential)",
                        action="store",
                        type=int)

    parser.add_argument("--fields",
                        dest="FIELDS",
                        help="Space separated release fields to print, e.g. 'download_url author modvers'",
                        action="store",
                        type=str,
                        default=Constants.DEFAULT_OUTPUT_FIELDS)
    parser.add_argument("--format",
                        dest="FORMAT",
                        help="printf-style template for each line, e.g. 'mcpani --add --file %%s --authorid %%s'",
                        action="store",
                        type=str)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to output file (JSON or CSV)",
                        action="store",
                        type=str)
    parser.add_argument("-f", "--output-format",
                        dest="OUTPUT_FORMAT",
                        help="Output file format (json or csv). If not specified, inferred from --output extension; defaults to json.",
                        action="store",
                        type=str.lower,
                        choices=['json', 'csv'])

    parser.add_argument("-v", "--verbose",
                        dest="VERBOSE",
                        help="Report per-release scoring and lookup details",
                        action="store_true")
    parser.add_argument("-d", "--debug",
                        dest="DEBUG",
                        help="Enable debug tracing (implies --verbose)",
                        action="store_true")
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

    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)

    return parser.parse_args(argv)
