"""Error taxonomy for the search engine and provider registry."""

from __future__ import annotations


class SearchError(Exception):
    """Base class for every error raised by keeper-search."""


class IndexUnavailableError(SearchError):
    """Raised when a provider cannot enumerate its records to build an index.

    The previously built index, if any, is left untouched.
    """

    def __init__(self, provider_id: str, reason: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"Index for provider '{provider_id}' is unavailable: {reason}")


class ProviderNotFoundError(SearchError, LookupError):
    """Raised when routing to a provider that is not registered."""

    def __init__(self, provider_id: str | None) -> None:
        self.provider_id = provider_id
        if provider_id is None:
            message = "No default search provider available"
        else:
            message = f"Search provider '{provider_id}' not found"
        super().__init__(message)


class InvalidFilterOperatorError(SearchError, ValueError):
    """Raised when a filter names an operator the engine does not know."""

    def __init__(self, operator: str) -> None:
        self.operator = operator
        super().__init__(f"Unknown filter operator '{operator}'")


class MalformedRegexError(SearchError, ValueError):
    """Raised when a ``regex`` filter value does not compile."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        super().__init__(f"Invalid regex filter '{pattern}': {reason}")
