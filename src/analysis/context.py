"""Run configuration and per-run state for a survey."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from constants import Constants
from common.cache import NullCache
from inventory.perllocal import PerllocalHint
from analysis.models import ReleaseManifest, ScoredRelease

logger = logging.getLogger(__name__)


@dataclass
class SurveyConfig:
    """Effective settings after merging Constants, the config file and CLI flags."""
    metacpan_url: str = Constants.METACPAN_URL
    page_size: int = Constants.METACPAN_PAGE_SIZE
    size_mismatch_weight: float = Constants.SIZE_MISMATCH_WEIGHT
    include_remnants: bool = False
    use_cache: bool = True
    cache_file: str = Constants.CACHE_FILE
    workers: int = Constants.DEFAULT_WORKERS
    match: Optional[str] = None
    perlver: Optional[str] = None
    corelist_file: Optional[str] = None
    perl_command: str = Constants.PERL_COMMAND
    verbose: bool = False
    distro_key_module_names: Dict[str, str] = field(
        default_factory=lambda: dict(Constants.DISTRO_KEY_MODULE_NAMES)
    )


class SurveyContext:
    """State owned by one resolution run.

    Holds the index client, the persistent cache and the installation-log
    hint, plus the per-run memo tables shared by every module resolution.
    Safe to share between worker threads.
    """

    def __init__(
        self,
        client: Any,
        config: Optional[SurveyConfig] = None,
        cache: Any = None,
        hint: Optional[PerllocalHint] = None,
    ):
        self.client = client
        self.config = config or SurveyConfig()
        self.cache = cache if cache is not None else NullCache()
        self.hint = hint or PerllocalHint([], self.config.distro_key_module_names)
        self.started_at = time.time()
        self.manifests: Dict[tuple, ReleaseManifest] = {}
        self.best_matches: Dict[str, List[ScoredRelease]] = {}
        self._lock = threading.Lock()

    def memo_get(self, table: Dict, key: Any) -> Any:
        """Thread-safe read from one of the per-run memo tables."""
        with self._lock:
            return table.get(key)

    def memo_set(self, table: Dict, key: Any, value: Any) -> Any:
        """Thread-safe write; the first stored value wins."""
        with self._lock:
            return table.setdefault(key, value)

    @property
    def remote_calls(self) -> int:
        """Remote index calls made so far in this run."""
        return getattr(self.client, "calls", 0)

    def elapsed_minutes(self) -> float:
        return (time.time() - self.started_at) / 60

    def log_summary(self) -> None:
        """Log the end-of-run diagnostics."""
        logger.info(
            "Completed in %.1f minutes using %d metacpan calls.",
            self.elapsed_minutes(),
            self.remote_calls,
        )
