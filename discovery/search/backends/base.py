"""Base search backend interface."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any


class SearchBackend(ABC):
    """Abstract interface for the wire client talking to the search index."""

    @abstractmethod
    def search(self, params: Iterable[tuple[str, str]]) -> dict[str, Any]:
        """Execute a search request.

        Args:
            params: Ordered request parameters; names may repeat

        Returns:
            The decoded reply with ``responseHeader``, ``response`` or
            ``grouped``, ``facet_counts``, ``stats``, ``highlighting``
            and ``spellcheck`` sections as sent by the index

        Raises:
            BackendRequestError: If the request cannot be completed
        """
        pass

    def close(self) -> None:
        """Release any held connections (optional)."""


class SearchError(Exception):
    """Base exception for search-related errors."""


class BackendRequestError(SearchError):
    """The search index could not answer a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class QueryError(SearchError):
    """Error during query assembly caused by invalid input."""


class NotFoundError(SearchError):
    """No document matched where exactly one was expected."""


class NoUniqueResultError(SearchError):
    """Several documents matched where exactly one was expected."""

    def __init__(self, message: str, count: int):
        super().__init__(message)
        self.count = count


class ConfigError(SearchError):
    """Configuration could not be read."""
