"""Reduction of a distribution's candidate releases to installed and remnant releases."""
from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from common.errors import MetadataFetchFailed, RemoteQueryFailed
from common.logging_utils import extra_context, is_debug_enabled
from registry.metacpan.files import release_url
from analysis.models import DistributionEntry, ResolvedInstallation
from analysis.scorer import release_manifest

logger = logging.getLogger(__name__)


def _by_version(entry: DistributionEntry):
    return (entry.dist.version, entry.dist.fraction_installed, entry.dist.release)


def _by_fraction(entry: DistributionEntry):
    return (entry.dist.fraction_installed, entry.dist.version, entry.dist.release)


def select_installed(
    distname: str, releases: Dict[str, DistributionEntry]
) -> Tuple[DistributionEntry, List[DistributionEntry]]:
    """Designate one release of distname as installed; the rest are remnants.

    The newest release is normally also the best match. When the two
    orderings disagree the state is ambiguous: a warning is logged and the
    newest release is still chosen, since partial upgrades leaving remnants
    are assumed more common than downgrades that left newer files behind.

    Returns:
        Tuple of (installed entry, remnant entries ordered by version).
    """
    dist_by_version = sorted(releases.values(), key=_by_version)
    dist_by_fraction = sorted(releases.values(), key=_by_fraction)

    remnants = dist_by_version[:-1]
    installed = dist_by_version[-1]

    if installed is not dist_by_fraction[-1]:
        logger.warning(
            "\tCan't determine which %s is installed from among %s",
            distname,
            " ".join(sorted(releases)),
            extra=extra_context(event="ambiguous_installation", component="reducer", target=distname),
        )
        if is_debug_enabled(logger):
            logger.debug(
                "by version: %s; by fraction: %s",
                [(e.dist.release, e.dist.fraction_installed) for e in dist_by_version],
                [(e.dist.release, e.dist.fraction_installed) for e in dist_by_fraction],
            )
        logger.warning("\tSelecting based on latest version")

    if remnants or is_debug_enabled(logger):
        logger.info("%s:", " ".join(e.dist.release for e in dist_by_fraction))
        for entry in [installed] + remnants:
            modules = entry.modules
            mv_desc = ", ".join(f"{m.name} {m.display_version}" for m in modules)
            logger.info(
                "\t%s\t%s%% installed: %s",
                entry.dist.release,
                entry.dist.percent_installed,
                f"({len(modules)} modules)" if len(modules) > 4 else mv_desc,
            )
    return installed, remnants


def build_resolved(ctx, entry: DistributionEntry, remnant: bool = False) -> ResolvedInstallation:
    """Fetch release metadata and manifest for a chosen release.

    Raises:
        MetadataFetchFailed: the index has no usable metadata for the release.
    """
    dist = entry.dist
    try:
        release_data = ctx.client.release(dist.author, dist.release)
    except RemoteQueryFailed as exc:
        raise MetadataFetchFailed(f"{dist.author}/{dist.release}: {exc}") from exc
    if not release_data:
        raise MetadataFetchFailed(f"{dist.author}/{dist.release}: not found")

    mods_in_rel = release_manifest(ctx, dist.author, dist.release)
    modvers = ";".join(
        f"{name}={mod.raw_version or 0}" for name, mod in sorted(mods_in_rel.items())
    )
    return ResolvedInstallation(
        release_data=release_data,
        url=release_url(release_data.get("download_url", "")),
        modvers=modvers,
        dist_data=dist,
        mods_in_rel=mods_in_rel,
        remnant=remnant,
    )


def reduce_distribution(
    ctx, distname: str, releases: Dict[str, DistributionEntry]
) -> List[ResolvedInstallation]:
    """Resolve one distribution's releases for output.

    Remnants are listed before the installed release and only when the run
    asked for them. A release whose metadata can't be fetched is skipped.
    """
    installed, remnants = select_installed(distname, releases)
    chosen = [(e, True) for e in remnants] if ctx.config.include_remnants else []
    chosen.append((installed, False))

    resolved: List[ResolvedInstallation] = []
    for entry, is_remnant in chosen:
        try:
            resolved.append(build_resolved(ctx, entry, remnant=is_remnant))
        except MetadataFetchFailed as exc:
            logger.warning(
                "Can't find release details for %s - SKIPPED!",
                exc,
                extra=extra_context(event="metadata_fetch_failed", component="reducer", target=entry.dist.release),
            )
    return resolved


def reduce_all(ctx, aggregate: Dict[str, Dict[str, DistributionEntry]]) -> List[ResolvedInstallation]:
    """Reduce every distribution in name order."""
    results: List[ResolvedInstallation] = []
    for distname in sorted(aggregate):
        results.extend(reduce_distribution(ctx, distname, aggregate[distname]))
    return results
