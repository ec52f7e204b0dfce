"""MetaCPAN release index package.

This package provides access to the MetaCPAN index:
- client.py: Elasticsearch file queries and release metadata lookups
- files.py: translation of raw file hits into candidate releases and module manifests

Public API is preserved at registry.metacpan without shims.
"""

# Patch points exposed for tests (e.g., monkeypatch in tests)
from common.http_client import get_json, post_json  # noqa: F401

# Public API re-exports
from .client import MetaCpanClient  # noqa: F401
from .files import candidates_from_hits, manifest_from_hits, release_url  # noqa: F401

__all__ = [
    # Client
    "MetaCpanClient",
    # Hit translation
    "candidates_from_hits",
    "manifest_from_hits",
    "release_url",
    # Patch points for tests
    "get_json",
    "post_json",
]
