"""Core module versions shipped with a given perl, used to skip core modules.

Module versions come from Module::CoreList, either by asking a perl
interpreter or from a JSON file of {module: version} exported earlier.
"""
from __future__ import annotations

import json
import logging
import subprocess
from typing import Dict, Mapping, Optional

from constants import Constants
from common.errors import SurveyError
from common.logging_utils import extra_context, is_debug_enabled
from versioning.models import PerlVersion, VersionParseError
from versioning.parser import parse_version

logger = logging.getLogger(__name__)

CoreVersions = Dict[str, Optional[str]]

# Module::CoreList keys %version by the numeric perl version (5.008, 5.010001)
_CORELIST_SCRIPT = (
    "my $v = 0 + version->parse($ARGV[0])->numify;"
    " my $core = $Module::CoreList::version{$v}"
    " or die qq{perl $ARGV[0] is not known to Module::CoreList\\n};"
    " print JSON::PP->new->canonical->encode({%$core});"
)


class CoreListError(SurveyError):
    """Core module versions could not be loaded."""


def perl_version_label(perlver: str) -> str:
    """Numeric form of perlver, e.g. "5.010001" for "5.10.1"."""
    try:
        return parse_version(perlver).numify()
    except VersionParseError as exc:
        raise CoreListError(f"Invalid perl version {perlver!r}: {exc}") from exc


def _as_mapping(data, source: str) -> CoreVersions:
    if not isinstance(data, dict):
        raise CoreListError(f"{source}: expected a mapping of module names to versions")
    return {str(k): (None if v is None else str(v)) for k, v in data.items()}


def load_core_versions_from_perl(perlver: str, perl_command: str = Constants.PERL_COMMAND) -> CoreVersions:
    """Ask perl's Module::CoreList which modules perlver ships, and their versions.

    Raises:
        CoreListError: perl could not be run, doesn't know perlver, or
            printed something other than a JSON mapping.
    """
    label = perl_version_label(perlver)
    cmd = [perl_command, "-Mversion", "-MModule::CoreList", "-MJSON::PP", "-e", _CORELIST_SCRIPT, label]
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=Constants.CORELIST_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        raise CoreListError(f"Unable to run {perl_command} for Module::CoreList: {exc}") from exc
    if result.returncode != 0 or not result.stdout:
        detail = (result.stderr or "").strip() or f"exit status {result.returncode}"
        raise CoreListError(f"Module::CoreList lookup for perl {label} failed: {detail}")
    try:
        data = json.loads(result.stdout)
    except ValueError as exc:
        raise CoreListError(f"Module::CoreList output for perl {label} isn't JSON: {exc}") from exc
    return _as_mapping(data, f"Module::CoreList output for perl {label}")


def load_core_versions_from_file(path: str) -> CoreVersions:
    """Read a JSON {module: version} mapping; null marks an unversioned core module."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as exc:
        raise CoreListError(f"Unable to read core module list {path}: {exc}") from exc
    return _as_mapping(data, path)


def load_core_versions(config) -> Optional[CoreVersions]:
    """Load core module versions for config, or None when core modules aren't skipped."""
    if config.corelist_file:
        versions = load_core_versions_from_file(config.corelist_file)
    elif config.perlver:
        versions = load_core_versions_from_perl(config.perlver, config.perl_command)
    else:
        return None
    logger.info(
        "Loaded %d core module versions",
        len(versions),
        extra=extra_context(event="corelist_loaded", component="corelist", count=len(versions)),
    )
    return versions


def core_version_of(module: str, version: PerlVersion, core_versions: Mapping[str, Optional[str]]) -> Optional[str]:
    """Return the core version of module if core supplies version or newer, else None.

    A core entry without a version never covers an installed module.
    """
    core = core_versions.get(module)
    if core in (None, "", "0"):
        return None
    core = core.replace(" ", "")
    try:
        covered = parse_version(core) >= version
    except VersionParseError:
        if is_debug_enabled(logger):
            logger.debug("Ignoring unparseable core version %r for %s", core, module)
        return None
    return core if covered else None
