"""Installed module scanner: walks a Perl library tree and builds the inventory."""
from __future__ import annotations

import logging
import os
import re
from typing import Dict, Iterable, List, Mapping, Optional, Pattern, Tuple

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from analysis.models import InstalledModule
from inventory.corelist import core_version_of
from versioning.models import VersionParseError
from versioning.parser import parse_version

logger = logging.getLogger(__name__)

_POD_START_RE = re.compile(r"^=[a-zA-Z]")
_POD_END_RE = re.compile(r"^=cut\b")
_END_RE = re.compile(r"^__(?:END|DATA)__\s*$")
_PACKAGE_VERSION_RE = re.compile(r"^\s*package\s+[\w:]+\s+(v?\d[\d._]*)\s*[;{]")
_VERSION_ASSIGN_RE = re.compile(r"^[^#]*?(?:our\s+)?\$(?:[\w:]*::)?VERSION\s*=\s*(?P<expr>[^;#]+)")
_VERSION_LITERAL_RE = re.compile(
    r"""^\s*(?:qv\s*\(\s*|version\s*->\s*(?:declare|parse|new)\s*\(\s*)?(['"]?)(v?\d[\d._]*)\1\s*\)?\s*$"""
)


def _read_text(path: str) -> str:
    with open(path, "rb") as fh:
        raw = fh.read()
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def extract_version(path: str) -> Optional[str]:
    """Return the first $VERSION (or ``package NAME VERSION``) declared in a module file.

    POD blocks and anything after __END__/__DATA__ are ignored. Returns None
    when the file declares no version or can't be read.
    """
    try:
        text = _read_text(path)
    except OSError as exc:
        logger.warning("Unable to read %s: %s", path, exc)
        return None

    in_pod = False
    for line in text.splitlines():
        if in_pod:
            if _POD_END_RE.match(line):
                in_pod = False
            continue
        if _POD_START_RE.match(line):
            in_pod = not _POD_END_RE.match(line)
            continue
        if _END_RE.match(line):
            break
        m = _PACKAGE_VERSION_RE.match(line)
        if m:
            return m.group(1)
        m = _VERSION_ASSIGN_RE.match(line)
        if m:
            # computed versions (sprintf, eval, RCS keywords) are skipped
            literal = _VERSION_LITERAL_RE.match(m.group("expr"))
            if literal:
                return literal.group(2)
    return None


def find_arch_dirs(libdir: str) -> List[str]:
    """Return architecture-specific subdirectories of libdir (e.g. x86_64-linux/).

    They are recognised by a hyphenated name and an ``auto`` subdirectory,
    the layout Perl uses for XS modules.
    """
    found = []
    try:
        entries = sorted(os.listdir(libdir))
    except OSError:
        return found
    for entry in entries:
        full = os.path.join(libdir, entry)
        if "-" in entry and os.path.isdir(os.path.join(full, "auto")):
            found.append(full)
    return found


def find_installed_modules(dirs: Iterable[str]) -> Tuple[Dict[str, str], Dict[str, List[str]]]:
    """Map module names to the files that provide them.

    Directories are searched longest first so a directory nested within
    another (such as an arch dir inside the lib dir) is handled with its own
    module prefix and not re-entered. Dot-directories are skipped. The first
    file seen for a module wins.

    Returns:
        Tuple of ({module name: file path}, metadata). metadata["perllocalpod"]
        lists every perllocal.pod found.
    """
    seen_mod: Dict[str, str] = {}
    dir_done = set()
    meta: Dict[str, List[str]] = {"perllocalpod": []}

    for top in sorted(dirs, key=len, reverse=True):
        if top == "." or not os.path.isdir(top):
            continue
        top = os.path.normpath(top)
        for dirpath, dirnames, filenames in os.walk(top):
            dir_done.add(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames
                if not (d.startswith(".") and len(d) > 1)
                and os.path.join(dirpath, d) not in dir_done
            )
            for filename in sorted(filenames):
                full = os.path.join(dirpath, filename)
                if filename == Constants.PERLLOCAL_FILE:
                    meta["perllocalpod"].append(full)
                    continue
                if not filename.lower().endswith(Constants.MODULE_FILE_SUFFIX):
                    continue
                rel = os.path.relpath(full, top)[: -len(Constants.MODULE_FILE_SUFFIX)]
                module = "::".join(rel.split(os.sep))
                if module not in seen_mod:
                    seen_mod[module] = full
    return seen_mod, meta


def build_inventory(
    dirs: Iterable[str],
    match: Optional[str] = None,
    core_versions: Optional[Mapping[str, Optional[str]]] = None,
    perlver: Optional[str] = None,
) -> Tuple[Dict[str, InstalledModule], Dict[str, List[str]]]:
    """Scan dirs and capture name, version, size and path of every module.

    Args:
        dirs: Library directories to search.
        match: Optional regex; only module names matching it are kept.
        core_versions: Optional {module: version} shipped with the target
            perl; modules core already supplies at the same or a newer
            version are skipped.
        perlver: Label for the target perl in the skip diagnostics.

    Returns:
        Tuple of ({module name: InstalledModule}, scan metadata).
    """
    dirs = list(dirs)
    logger.info("Finding modules in %s", " ".join(dirs))
    mod_files, meta = find_installed_modules(dirs)
    match_re: Optional[Pattern[str]] = re.compile(match) if match else None

    inventory: Dict[str, InstalledModule] = {}
    skipped_core = 0
    for module in sorted(mod_files):
        if match_re and not match_re.search(module):
            continue
        path = mod_files[module]
        raw_version = extract_version(path)
        try:
            version = parse_version(raw_version)
        except VersionParseError as exc:
            logger.warning("%s: unparseable version %r treated as 0: %s", module, raw_version, exc)
            raw_version = None
            version = parse_version(None)
        if core_versions:
            core = core_version_of(module, version, core_versions)
            if core is not None:
                logger.warning(
                    "%s %s is core in perl %s (as v%s) - skipped",
                    module,
                    raw_version or 0,
                    perlver or "target",
                    core,
                )
                skipped_core += 1
                continue
        try:
            size = os.path.getsize(path)
        except OSError as exc:
            logger.warning("Unable to stat %s: %s", path, exc)
            continue
        inventory[module] = InstalledModule(
            name=module, version=version, size=size, path=path, raw_version=raw_version
        )

    if is_debug_enabled(logger):
        logger.debug(
            "Inventory built",
            extra=extra_context(
                event="inventory", component="scan", count=len(inventory), skipped_core=skipped_core
            ),
        )
    return inventory, meta
