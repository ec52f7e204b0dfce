"""Fractional-installation scoring of candidate releases."""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping

from constants import CacheGenerations, Constants
from common.errors import RemoteQueryFailed
from common.logging_utils import extra_context, is_debug_enabled
from registry.metacpan.files import manifest_from_hits
from analysis.models import CandidateRelease, InstalledModule, ReleaseManifest, ScoredRelease

logger = logging.getLogger(__name__)


def release_manifest(ctx, author: str, release: str) -> ReleaseManifest:
    """Return the modules provided by author/release.

    Memoized per run and in the persistent cache since every module of a
    release asks for the same manifest. A failed query yields an empty
    manifest for this call only; nothing is memoized for it.
    """
    key = (author, release)
    manifest = ctx.memo_get(ctx.manifests, key)
    if manifest is not None:
        return manifest

    def _fetch(auth, rel):
        return manifest_from_hits(auth, rel, ctx.client.query_files_by_release(auth, rel))

    try:
        manifest = ctx.cache.cached(
            "release_manifest", CacheGenerations.RELEASE_MANIFEST.value, _fetch, author, release
        )
    except RemoteQueryFailed as exc:
        logger.warning("Failed release_manifest for %s/%s: %s", author, release, exc)
        return {}
    return ctx.memo_set(ctx.manifests, key, manifest)


def module_weight(installed: InstalledModule, manifest_entry, size_mismatch_weight: float) -> float:
    """Match weight of one manifest module against its installed counterpart."""
    if installed is None or installed.version != manifest_entry.version:
        return 0.0
    if installed.size != manifest_entry.size:
        # same version but different content: weak corroboration only
        return size_mismatch_weight
    return 1.0


def score_manifest(
    manifest: ReleaseManifest,
    inventory: Mapping[str, InstalledModule],
    size_mismatch_weight: float = Constants.SIZE_MISMATCH_WEIGHT,
) -> float:
    """Fraction (0..1) of a release's modules that match the inventory; 0 for an empty manifest."""
    if not manifest:
        return 0.0
    total = sum(
        module_weight(inventory.get(name), entry, size_mismatch_weight)
        for name, entry in manifest.items()
    )
    return total / len(manifest)


def dist_fraction_installed(ctx, author: str, release: str, inventory: Mapping[str, InstalledModule]) -> float:
    """Score author/release against the inventory using its authoritative manifest."""
    manifest = release_manifest(ctx, author, release)
    weight = ctx.config.size_mismatch_weight
    tag = f"{author}/{release}"

    if is_debug_enabled(logger):
        for name, entry in sorted(manifest.items()):
            mi = inventory.get(name)
            hit = module_weight(mi, entry, weight)
            if hit == 1:
                state = "matches"
            elif mi is not None:
                state = f"differs ({mi.version}, {mi.size})"
            else:
                state = "not installed"
            logger.debug("%s %s %s %s: %s", tag, name, entry.version, entry.size, state)

    fraction = score_manifest(manifest, inventory, weight)
    if ctx.config.verbose or not manifest:
        logger.info(
            "%s:\tfraction_installed %s (%d modules)",
            tag,
            fraction,
            len(manifest),
            extra=extra_context(event="score", component="scorer", target=tag),
        )
    return fraction


def pick_best(
    ctx, candidates: Dict[str, CandidateRelease], inventory: Mapping[str, InstalledModule]
) -> List[ScoredRelease]:
    """Score every candidate and return all those tied at the maximum fraction installed.

    Candidates are scored in release-id order so ties come back in a
    deterministic order. An empty candidate map yields an empty list.
    """
    scored = [
        ScoredRelease(
            candidate=candidates[release],
            fraction_installed=dist_fraction_installed(ctx, candidates[release].author, release, inventory),
        )
        for release in sorted(candidates)
    ]
    if not scored:
        return []
    best_fraction = max(s.fraction_installed for s in scored)
    return [s for s in scored if s.fraction_installed == best_fraction]
