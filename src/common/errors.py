"""Error kinds raised by the index client, cache and survey pipeline."""


class SurveyError(Exception):
    """Base class for dist-surveyor failures."""


class RemoteQueryFailed(SurveyError):
    """The package index could not be queried (network, HTTP or decode error)."""


class ResultCountExceeded(SurveyError):
    """A query hit the page-size ceiling, so its results would be truncated.

    This indicates an overly broad query rather than a transient failure and
    is never swallowed by the pipeline.
    """

    def __init__(self, query: str, limit: int):
        super().__init__(f"{query}: too many results (>={limit})")
        self.query = query
        self.limit = limit


class MetadataFetchFailed(SurveyError):
    """Full release metadata for a chosen release could not be fetched."""


class CacheError(SurveyError):
    """The persistent result cache could not be opened, locked or written."""
