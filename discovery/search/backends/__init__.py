"""Search backend implementations."""

from .base import (
    BackendRequestError,
    ConfigError,
    NotFoundError,
    NoUniqueResultError,
    QueryError,
    SearchBackend,
    SearchError,
)
from .solr import SolrBackend

__all__ = [
    "BackendRequestError",
    "ConfigError",
    "NoUniqueResultError",
    "NotFoundError",
    "QueryError",
    "SearchBackend",
    "SearchError",
    "SolrBackend",
]
