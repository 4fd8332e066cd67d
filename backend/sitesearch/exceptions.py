"""Domain errors raised by the indexing and search services."""


class SearchEngineError(Exception):
    """Base error carrying a message that is safe to show to API callers."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SiteNotConfiguredError(SearchEngineError):
    """The requested URL belongs to none of the configured sites."""


class IndexingAlreadyLaunchedError(SearchEngineError):
    """A crawl for the site is already in progress."""


class IndexingNotLaunchedError(SearchEngineError):
    """Stop was requested while no site is being indexed."""


class IndexConsistencyError(SearchEngineError):
    """Storage failed while applying lemma frequency and posting changes."""

    status_code = 500
