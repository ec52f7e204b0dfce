"""MetaCPAN client: file searches by module and by release, release metadata."""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from constants import Constants
from common.errors import RemoteQueryFailed, ResultCountExceeded
from common.logging_utils import extra_context, is_debug_enabled, Timer
from versioning.parser import looks_like_number

import registry.metacpan as metacpan_pkg

logger = logging.getLogger(__name__)

MODULE_QUERY_FIELDS = [
    "release",
    "author",
    "distribution",
    "version",
    "version_numified",
    "date",
    "download_url",
    "path",
    "stat.mtime",
]
RELEASE_QUERY_FIELDS = ["path", "name", "module", "stat.size"]


class MetaCpanClient:
    """Stateless query client for the MetaCPAN API.

    Every remote call is counted in ``calls`` for end-of-run diagnostics.
    Queries whose hit count reaches ``page_size`` raise ResultCountExceeded
    rather than returning a truncated set.
    """

    def __init__(self, base_url: str = Constants.METACPAN_URL, page_size: int = Constants.METACPAN_PAGE_SIZE):
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.calls = 0
        self._calls_lock = threading.Lock()

    def _count_call(self) -> None:
        with self._calls_lock:
            self.calls += 1

    def _search_files(self, filters: List[Dict[str, Any]], fields: List[str], desc: str) -> List[Dict[str, Any]]:
        body = {
            "size": self.page_size,
            "query": {"bool": {"filter": filters}},
            "_source": fields,
        }
        self._count_call()
        with Timer() as timer:
            _, data = metacpan_pkg.post_json(f"{self.base_url}/file/_search", body, context="metacpan")
        try:
            hits = data["hits"]["hits"]
        except (KeyError, TypeError) as exc:
            raise RemoteQueryFailed(f"{desc}: malformed search response") from exc

        if is_debug_enabled(logger):
            logger.debug(
                "File search complete",
                extra=extra_context(
                    event="search",
                    component="metacpan",
                    action=desc,
                    count=len(hits),
                    duration_ms=timer.duration_ms(),
                ),
            )
        if len(hits) >= self.page_size:
            raise ResultCountExceeded(desc, self.page_size)
        return [hit.get("_source") or {} for hit in hits]

    def query_files_by_module(
        self, name: str, version_variants: List[str], file_size: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Find files declaring module name at any of the given version encodings.

        Args:
            name: Module name, e.g. "Foo::Bar".
            version_variants: Equivalent encodings of the wanted version.
            file_size: Optional exact file size filter; omitted when falsy.

        Returns:
            List of file documents (release, author, distribution, version, ...).
        """
        version_qual: List[Dict[str, Any]] = [{"term": {"module.version": v}} for v in version_variants]
        version_qual += [
            {"term": {"module.version_numified": v}} for v in version_variants if looks_like_number(v)
        ]
        filters: List[Dict[str, Any]] = [{"term": {"module.name": name}}]
        if len(version_qual) > 1:
            filters.append({"bool": {"should": version_qual, "minimum_should_match": 1}})
        elif version_qual:
            filters.append(version_qual[0])
        if file_size:
            filters.append({"term": {"stat.size": file_size}})
        return self._search_files(
            filters, MODULE_QUERY_FIELDS, f"query_files_by_module({name}, {version_variants[0] if version_variants else ''}, {file_size or 0})"
        )

    def query_files_by_release(self, author: str, release: str) -> List[Dict[str, Any]]:
        """List the Perl module files shipped in author/release."""
        filters = [
            {"term": {"release": release}},
            {"term": {"author": author}},
            {"term": {"mime": Constants.PERL_MODULE_MIME}},
        ]
        return self._search_files(filters, RELEASE_QUERY_FIELDS, f"query_files_by_release({author}, {release})")

    def release(self, author: str, release: str) -> Optional[Dict[str, Any]]:
        """Fetch full metadata for author/release, or None if the index has no such release."""
        self._count_call()
        status, data = metacpan_pkg.get_json(f"{self.base_url}/release/{author}/{release}", context="metacpan")
        if status == 404 or not isinstance(data, dict):
            return None
        # newer API versions wrap the document
        if isinstance(data.get("release"), dict):
            return data["release"]
        return data
