class SearchError(Exception):
    """Base class for search engine errors."""


class SourceQueryFailure(SearchError):
    """A source's rows or count query errored. Never masked, never partially merged."""

    def __init__(self, source: str, operation: str, detail: str = ""):
        self.source = source
        self.operation = operation
        msg = f"{operation} query against source {source!r} failed"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class StaleContext(SearchError):
    """The stored search context no longer contains the listing being viewed."""


class SearchCancelled(SearchError):
    """A search run was superseded by a newer request."""


class UnsupportedTagName(SearchError, ValueError):
    """A feature tag cannot be encoded losslessly as a query parameter key."""
