"""perllocal.pod parser used as a disambiguation hint.

perllocal.pod is appended to by ``make install``; each record names the
distribution's main module and its VERSION, e.g.::

    =head2 Mon Jan  6 10:00:00 2020: C<Module> L<Foo::Bar|Foo::Bar>

    =over 4

    =item *

    C<VERSION: 1.23>

    =back
"""
from __future__ import annotations

import logging
import re
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from constants import Constants

logger = logging.getLogger(__name__)

_HEAD_RE = re.compile(r"^=head2\s+.*?:\s+C<[^>]*>\s+L<([^|>]+)(?:\|[^>]*)?>")
_VERSION_RE = re.compile(r"^C<VERSION:\s*([^>]*)>")


def parse_perllocal(path: str) -> Dict[str, Optional[str]]:
    """Return {main module name: installed VERSION} from a perllocal.pod file.

    Later records override earlier ones, matching reinstall order.
    """
    versions: Dict[str, Optional[str]] = {}
    current = None
    with open(path, encoding="utf-8", errors="replace") as fh:
        for line in fh:
            line = line.strip()
            m = _HEAD_RE.match(line)
            if m:
                current = m.group(1).strip()
                versions[current] = None
                continue
            m = _VERSION_RE.match(line)
            if m and current is not None:
                versions[current] = m.group(1).strip() or None
    return versions


def primary_module_name(dist_name: str, overrides: Optional[Dict[str, str]] = None) -> str:
    """Translate a distribution name to the module name perllocal.pod records for it."""
    table = Constants.DISTRO_KEY_MODULE_NAMES if overrides is None else overrides
    return table.get(dist_name) or dist_name.replace("-", "::")


class PerllocalHint:
    """Lazily parsed, per-run view of the installation log."""

    def __init__(self, paths: Sequence[str], overrides: Optional[Dict[str, str]] = None):
        self._paths: List[str] = list(paths)
        self._overrides = overrides
        self._versions: Optional[Dict[str, Optional[str]]] = None
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Optional[str]]:
        with self._lock:
            if self._versions is not None:
                return self._versions
            if len(self._paths) > 1:
                logger.warning(
                    "Only first %s file will be processed: %s",
                    Constants.PERLLOCAL_FILE,
                    " ".join(self._paths),
                )
            versions: Dict[str, Optional[str]] = {}
            if self._paths:
                path = self._paths[0]
                try:
                    versions = parse_perllocal(path)
                    logger.info("Details of %d distributions found in %s", len(versions), path)
                except OSError as exc:
                    logger.warning("Unable to read %s: %s", path, exc)
            else:
                logger.info("No %s found to aid disambiguation", Constants.PERLLOCAL_FILE)
            self._versions = versions
            return versions

    def lookup(self, dist_name: str) -> Tuple[Optional[str], str]:
        """Return (recorded version or None, primary module name) for a distribution."""
        mod_name = primary_module_name(dist_name, self._overrides)
        return self._load().get(mod_name), mod_name

    def is_installed(self, dist_name: str) -> bool:
        """True when the distribution's primary module has a perllocal.pod record with a version."""
        version, _ = self.lookup(dist_name)
        return bool(version)
