"""Translate MetaCPAN file documents into candidate releases and module manifests."""
from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, Iterable

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from analysis.models import CandidateRelease, ManifestModule, ReleaseManifest
from versioning.models import VersionParseError
from versioning.parser import parse_version

logger = logging.getLogger(__name__)

_NON_DIST_RE = re.compile(Constants.NON_DIST_RELEASE_PATTERN)
_NON_INSTALLED_RE = re.compile(Constants.NON_INSTALLED_PATH_PATTERN)
_AUTHORS_PREFIX_RE = re.compile(r"^.*?\bauthors/")


def _stat_size(doc: Dict[str, Any]) -> int:
    stat = doc.get("stat")
    if isinstance(stat, dict) and stat.get("size") is not None:
        return int(stat["size"])
    if doc.get("stat.size") is not None:
        return int(doc["stat.size"])
    return 0


def candidates_from_hits(hits: Iterable[Dict[str, Any]], desc: str = "") -> Dict[str, CandidateRelease]:
    """Build {release id: CandidateRelease} from module query hits.

    Perl-implementation "releases" (perl, parrot, ...) are dropped and hits
    whose release version cannot be parsed are skipped with a warning.
    """
    candidates: Dict[str, CandidateRelease] = {}
    for doc in hits:
        release = doc.get("release")
        if not release:
            logger.warning("%s: hit without a release: %s", desc, doc)
            continue
        if _NON_DIST_RE.match(release):
            continue
        try:
            version = parse_version(doc.get("version"))
        except VersionParseError as exc:
            logger.warning("%s: error parsing %s %s: %s", desc, doc.get("path"), doc.get("version"), exc)
            continue
        candidates[release] = CandidateRelease(
            release=release,
            distribution=doc.get("distribution") or release,
            author=doc.get("author") or "",
            version=version,
            fields=dict(doc),
        )
    return candidates


def manifest_from_hits(author: str, release: str, hits: Iterable[Dict[str, Any]]) -> ReleaseManifest:
    """Build {module name: ManifestModule} for the files of one release.

    Files under non-installed directories (t/, inc/, examples/, ...) are
    ignored. A file can declare several packages; only the one matching the
    file's base name is kept.
    """
    tag = f"{author}/{release}"
    debug = is_debug_enabled(logger)
    modules: ReleaseManifest = {}
    for doc in hits:
        path = doc.get("path") or ""
        if _NON_INSTALLED_RE.match(path):
            if debug:
                logger.debug("%s: ignored non-installed module %s", tag, path)
            continue

        size = _stat_size(doc)
        base = os.path.basename(doc.get("name") or path)
        if base.endswith(Constants.MODULE_FILE_SUFFIX):
            base = base[: -len(Constants.MODULE_FILE_SUFFIX)]
        base_re = re.compile(r"\b" + re.escape(base) + r"$")

        for mod in doc.get("module") or []:
            name = mod.get("name")
            if not name or not base_re.search(name):
                if debug:
                    logger.debug("%s: ignored %s in %s", tag, name, path)
                continue
            try:
                version = parse_version(mod.get("version"))
            except VersionParseError as exc:
                logger.warning("%s: %s %s: %s", tag, name, mod.get("version"), exc)
                continue

            prev = modules.get(name)
            if prev is not None and (prev.version != version or prev.size != size) and logger.isEnabledFor(logging.INFO):
                logger.info(
                    "%s: %s %s (%d) seen in %s after %s %s (%d)",
                    release, name, version, size, path, prev.path, prev.version, prev.size,
                )
            modules[name] = ManifestModule(
                name=name,
                path=path,
                version=version,
                size=size,
                raw_version=None if mod.get("version") is None else str(mod.get("version")),
            )

    if debug:
        logger.debug(
            "%s contains: %s",
            tag,
            " ".join(f"{m.name} {m.version}" for m in modules.values()),
            extra=extra_context(event="manifest", component="metacpan", count=len(modules)),
        )
    return modules


def release_url(download_url: str) -> str:
    """Return the CPAN-relative authors/... path of a download URL."""
    if not download_url:
        return ""
    return _AUTHORS_PREFIX_RE.sub("authors/", download_url, count=1)
