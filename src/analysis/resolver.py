"""Candidate resolution: which releases on the index contain a module version."""
from __future__ import annotations

import logging
from typing import Dict, Optional

from constants import CacheGenerations
from common.logging_utils import extra_context, is_debug_enabled
from registry.metacpan.files import candidates_from_hits
from versioning.parser import query_variants
from analysis.models import CandidateLookup, CandidateRelease, InstalledModule, LookupKind

logger = logging.getLogger(__name__)


def get_candidate_releases(ctx, module: str, version: Optional[str], file_size: int) -> Dict[str, CandidateRelease]:
    """Return {release id: CandidateRelease} for releases shipping module at version.

    A falsy file_size matches on version alone. Results are memoized in the
    run's persistent cache.

    Raises:
        RemoteQueryFailed: the index could not be queried.
        ResultCountExceeded: the query matched too many files.
    """
    version = version or "0"

    def _fetch(name, ver, size):
        desc = f"get_candidate_releases({name}, {ver}, {size})"
        hits = ctx.client.query_files_by_module(name, query_variants(ver), size or None)
        dists = candidates_from_hits(hits, desc)
        if is_debug_enabled(logger) or ctx.config.verbose:
            logger.info("%s: %s", desc, " ".join(sorted(dists)))
        return dists

    return ctx.cache.cached(
        "candidate_releases",
        CacheGenerations.CANDIDATE_RELEASES.value,
        _fetch,
        module,
        version,
        file_size or 0,
    )


def resolve(ctx, module: InstalledModule) -> CandidateLookup:
    """Find candidate releases for an installed module.

    The exact (version, size) query runs first. Only if that finds nothing,
    and the size is known, is the version-only query issued. A hit there
    means the module is on the index but the local copy differs.
    """
    exact = get_candidate_releases(ctx, module.name, module.raw_version, module.size)
    if exact:
        return CandidateLookup(LookupKind.EXACT, exact)

    if module.size:
        loose = get_candidate_releases(ctx, module.name, module.raw_version, 0)
        if loose:
            # probably a local change/patch or installed direct from a repo
            # but with a version number that matches a release
            level = logging.WARNING if module.has_version else logging.INFO
            logger.log(
                level,
                "%s %s on CPAN but with different file size (not %d)",
                module.name,
                module.display_version,
                module.size,
                extra=extra_context(event="file_size_mismatch", component="resolver", target=module.name),
            )
            return CandidateLookup(LookupKind.LOOSE, loose)

    # a local change with a never-released version, or a private module;
    # no version implies uninteresting
    level = logging.WARNING if module.has_version else logging.INFO
    logger.log(
        level,
        "%s %s not found on CPAN",
        module.name,
        module.display_version,
        extra=extra_context(event="version_not_on_cpan", component="resolver", target=module.name),
    )
    return CandidateLookup(LookupKind.NONE, {})
