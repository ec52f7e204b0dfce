"""Survey pipeline: inventory -> candidates -> scores -> narrowed ties -> releases.

Per-module work (resolve, score, narrow) is independent and may run in a
thread pool; merging into the distribution aggregate happens on the calling
thread in module-name order so diagnostics and tie-breaks stay deterministic.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Mapping

from common.errors import RemoteQueryFailed
from common.logging_utils import extra_context
from analysis.disambiguator import disambiguate
from analysis.models import (
    DistributionAggregate,
    DistributionEntry,
    InstalledModule,
    ModuleOutcome,
    ResolvedInstallation,
)
from analysis.reducer import reduce_all
from analysis.resolver import resolve
from analysis.scorer import pick_best

logger = logging.getLogger(__name__)


class ProgressIndicator:
    """Logs each new top-level namespace as modules are processed."""

    def __init__(self):
        self._last = ""

    def __call__(self, module: str) -> None:
        current = module.split("::", 1)[0]
        if current != self._last:
            logger.info("\t%s...", current)
            self._last = current


def resolve_module(ctx, module: InstalledModule, inventory: Mapping[str, InstalledModule]) -> ModuleOutcome:
    """Find, score and narrow the candidate releases for one installed module.

    A remote failure is logged and leaves the module without candidates.
    ResultCountExceeded propagates.
    """
    outcome = ModuleOutcome(module=module)
    try:
        outcome.lookup = resolve(ctx, module)
    except RemoteQueryFailed as exc:
        logger.warning(
            "Failed get_candidate_releases(%s, %s, %d): %s",
            module.name,
            module.display_version,
            module.size,
            exc,
            extra=extra_context(event="remote_query_failed", component="survey", target=module.name),
        )
        outcome.error = str(exc)
        return outcome

    candidates = outcome.lookup.candidates
    if not candidates:
        return outcome

    best_key = " ".join(sorted(candidates))
    best = ctx.memo_get(ctx.best_matches, best_key)
    if best is None:
        best = ctx.memo_set(ctx.best_matches, best_key, pick_best(ctx, candidates, inventory))

    outcome.best, outcome.note, outcome.dropped = disambiguate(best, module, ctx.hint)
    return outcome


def _resolve_all(ctx, modules: List[InstalledModule], inventory) -> Iterable[ModuleOutcome]:
    workers = max(1, int(ctx.config.workers or 1))
    if workers == 1:
        for module in modules:
            yield resolve_module(ctx, module, inventory)
        return
    pool = ThreadPoolExecutor(max_workers=workers)
    try:
        futures = [pool.submit(resolve_module, ctx, module, inventory) for module in modules]
        for future in futures:
            yield future.result()
    except BaseException:
        # queued modules must not query the index once the run is failing
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    pool.shutdown(wait=True)


def aggregate_outcomes(outcomes: Iterable[ModuleOutcome]) -> DistributionAggregate:
    """Merge per-module best matches into {distribution: {release: DistributionEntry}}."""
    best_dist: DistributionAggregate = {}
    for outcome in outcomes:
        if outcome.dropped or not outcome.best:
            continue
        for dist in outcome.best:
            entry = best_dist.setdefault(dist.distribution, {}).setdefault(
                dist.release, DistributionEntry(dist=dist)
            )
            entry.modules.append(outcome.module)
            entry.alternatives.update(r.release for r in outcome.best if r is not dist)
    return best_dist


def determine_installed_releases(ctx, inventory: Mapping[str, InstalledModule]) -> List[ResolvedInstallation]:
    """Infer the releases that produced inventory.

    Returns:
        Resolved releases, by distribution name; within a distribution any
        requested remnants come before the installed release.
    """
    modules = [inventory[name] for name in sorted(inventory)]
    logger.info("Finding candidate releases for the %d installed modules", len(modules))
    progress = ProgressIndicator()
    failed: List[ModuleOutcome] = []

    def _outcomes():
        for outcome in _resolve_all(ctx, modules, inventory):
            progress(outcome.module.name)
            if outcome.error:
                failed.append(outcome)
            yield outcome

    best_dist = aggregate_outcomes(_outcomes())
    if failed:
        logger.warning(
            "%d modules left unresolved after index query failures: %s",
            len(failed),
            " ".join(o.module.name for o in failed),
            extra=extra_context(event="unresolved_modules", component="survey", count=len(failed)),
        )
    logger.info("*** Refining releases")
    return reduce_all(ctx, best_dist)
