"""Narrowing of tied best-match releases."""
from __future__ import annotations

import logging
from typing import List, Tuple

from common.logging_utils import extra_context, is_debug_enabled
from analysis.models import InstalledModule, ScoredRelease

logger = logging.getLogger(__name__)


def narrow(tied: List[ScoredRelease], hint) -> Tuple[List[ScoredRelease], str]:
    """Use the installation log to choose among tied releases.

    Keeps only releases whose distribution's primary module is recorded in
    perllocal.pod, but only when that is a non-empty strict subset of the
    ties; otherwise the ties are returned unchanged.

    Returns:
        Tuple of (releases, note). note describes the narrowing, or is "".
    """
    if len(tied) <= 1:
        return tied, ""

    in_log = []
    for release in tied:
        installed = hint.is_installed(release.distribution)
        if is_debug_enabled(logger):
            logger.debug("%s in perllocal.pod: %s", release.distribution, "YES" if installed else "NO")
        if installed:
            in_log.append(release)

    if in_log and len(in_log) < len(tied):
        return in_log, f"narrowed from {len(tied)} via perllocal"
    return tied, ""


def disambiguate(tied: List[ScoredRelease], module: InstalledModule, hint) -> Tuple[List[ScoredRelease], str, bool]:
    """Narrow the ties for module and decide whether the module can contribute.

    If several releases remain and the module has no version, it can't
    meaningfully select between them, so it is dropped rather than guessed.

    Returns:
        Tuple of (releases, note, dropped).
    """
    best, note = narrow(tied, hint)
    if len(best) > 1 or note:
        desc = " or ".join(r.release for r in best)
        fraction = best[0].fraction_installed
        noteworthy = bool(note) or (module.has_version and fraction < 0.3)
        logger.log(
            logging.WARNING if noteworthy else logging.INFO,
            "%s %s odd best match: %s %s (%s)",
            module.name,
            module.display_version,
            desc,
            note,
            fraction,
        )
    if len(best) > 1 and not module.has_version:
        logger.warning(
            "%s has no version and %d equally good releases; ignored",
            module.name,
            len(best),
            extra=extra_context(event="unresolvable_module", component="disambiguator", target=module.name),
        )
        return best, note, True
    return best, note, False
