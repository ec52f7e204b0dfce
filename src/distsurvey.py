"""dist-surveyor - infer which CPAN releases produced a Perl library tree

    Raises:
        SystemExit: with an ExitCodes value

    Returns:
        int: Exit code
"""
import csv
import json
import logging
import os
import sys

from constants import ExitCodes
from common.cache import NullCache, PersistentCache
from common.errors import CacheError, ResultCountExceeded
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_config import build_config
from analysis.context import SurveyContext
from analysis.survey import determine_installed_releases
from inventory.corelist import CoreListError, load_core_versions, perl_version_label
from inventory.perllocal import PerllocalHint
from inventory.scan import build_inventory, find_arch_dirs
from registry.metacpan.client import MetaCpanClient


def format_release_lines(releases, fields, template=None):
    """Render one line per release from the named fields.

    Args:
        releases (list): ResolvedInstallation instances.
        fields (list): Field names to substitute, in order.
        template (str, optional): printf-style template; defaults to
            tab-separated fields.

    Returns:
        list: Formatted lines. A field missing from a release renders as "field?".
    """
    template = template or "\t".join(["%s"] * len(fields))
    lines = []
    for release in releases:
        data = release.as_dict()
        values = tuple(data[f] if f in data else f"{f}?" for f in fields)
        lines.append(template % values)
    return lines


def _release_record(release):
    dist = release.dist_data
    record = dict(release.release_data)
    record.update({
        "url": release.url,
        "modvers": release.modvers,
        "status": "remnant" if release.remnant else "installed",
        "dist_data": {
            "release": dist.release,
            "distribution": dist.distribution,
            "author": dist.author,
            "version": str(dist.version),
            "fraction_installed": dist.fraction_installed,
            "percent_installed": dist.percent_installed,
        },
        "mods_in_rel": {
            name: {"version": mod.raw_version, "size": mod.size, "path": mod.path}
            for name, mod in sorted(release.mods_in_rel.items())
        },
    })
    return record


def export_json(releases, path):
    """Exports the resolved releases to a JSON file.

    Args:
        releases (list): List of ResolvedInstallation instances.
        path (str): File path to export the JSON.
    """
    data = [_release_record(r) for r in releases]
    try:
        with open(path, 'w', encoding='utf-8') as file:
            json.dump(data, file, ensure_ascii=False, indent=4, default=str)
        logging.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logging.error("JSON file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def export_csv(releases, path):
    """Exports the resolved releases to a CSV file.

    Args:
        releases (list): List of ResolvedInstallation instances.
        path (str): File path to export the CSV.
    """
    headers = [
        "Release",
        "Distribution",
        "Author",
        "Version",
        "Status",
        "Percent Installed",
        "URL",
        "Modules",
    ]
    rows = [headers]
    for r in releases:
        dist = r.dist_data
        rows.append([
            dist.release,
            dist.distribution,
            dist.author,
            str(dist.version),
            "remnant" if r.remnant else "installed",
            dist.percent_installed,
            r.url,
            r.modvers,
        ])
    try:
        with open(path, 'w', newline='', encoding='utf-8') as file:
            export = csv.writer(file)
            export.writerows(rows)
        logging.info("CSV file has been successfully exported at: %s", path)
    except (OSError, csv.Error) as e:
        logging.error("CSV file couldn't be written to disk: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def _output_format(args):
    if args.OUTPUT_FORMAT:
        return args.OUTPUT_FORMAT
    if args.OUTPUT and args.OUTPUT.lower().endswith(".csv"):
        return "csv"
    return "json"


def write_output(args, releases):
    """Print the release lines and write the optional output file."""
    fields = (args.FIELDS or "").split()
    try:
        lines = format_release_lines(releases, fields, args.FORMAT)
    except (TypeError, ValueError) as e:
        logging.error("Invalid --format template %r for %d fields: %s", args.FORMAT, len(fields), e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    for line in lines:
        sys.stdout.write(line + "\n")

    if args.OUTPUT:
        if _output_format(args) == "csv":
            export_csv(releases, args.OUTPUT)
        else:
            export_json(releases, args.OUTPUT)


def main(argv=None):
    """Main function of the program."""
    logger = logging.getLogger(__name__)

    args = parse_args(argv)
    configure_logging("DEBUG" if args.DEBUG else args.LOG_LEVEL, args.LOG_FILE)
    config = build_config(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    libdir = args.libdir
    if not os.path.isdir(libdir):
        logging.error("%s isn't a directory", libdir)
        sys.exit(ExitCodes.FILE_ERROR.value)

    try:
        core_versions = load_core_versions(config)
        perlver = perl_version_label(config.perlver) if config.perlver else config.corelist_file
    except CoreListError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    search_dirs = find_arch_dirs(libdir) + [libdir]
    logging.info("Searching %s", " ".join(search_dirs))
    inventory, meta = build_inventory(search_dirs, config.match, core_versions, perlver)

    client = MetaCpanClient(config.metacpan_url, config.page_size)
    hint = PerllocalHint(meta.get("perllocalpod", []), config.distro_key_module_names)

    try:
        cache = PersistentCache(config.cache_file) if config.use_cache else NullCache()
        with cache:
            ctx = SurveyContext(client, config, cache, hint)
            releases = determine_installed_releases(ctx, inventory)
    except ResultCountExceeded as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.QUERY_ERROR.value)
    except CacheError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    write_output(args, releases)
    ctx.log_summary()

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action="main", outcome="success")
        )
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
