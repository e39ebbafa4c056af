"""Search middleware for a Solr index.

This module turns user searches into Solr requests and Solr replies into
stable result structures.

Main components:
- QueryCompiler: phrase tokenizing, escaping and classification
- FieldNameResolver: canonical fields to their exact/stemmed variants
- ParamsAssembler: search requests to backend parameters
- ResponseExtractor: facets, stats, highlighting, spelling and groups
- SearchService: the two-pass grouped search with spell correction
"""

from .backends import (
    BackendRequestError,
    ConfigError,
    NotFoundError,
    NoUniqueResultError,
    QueryError,
    SearchBackend,
    SearchError,
    SolrBackend,
)
from .engine import SearchService, SearchServiceBuilder, merge_responses
from .fields import FIELD_GROUP_ALL, FieldNameResolver, FieldSuffixes
from .highlighting import (
    SnippetGenerator,
    merge_contiguous,
    merge_intervals,
    merge_list,
    merge_two,
)
from .models import (
    CompiledQuery,
    FieldVariant,
    GroupIds,
    HighlightConfig,
    ItemType,
    MetaData,
    ObjectGroup,
    Phrase,
    QueryOperator,
    QueryToken,
    QueryType,
    RawQuery,
    SearchRequest,
    SearchResponse,
    SortField,
    Stats,
    TokenType,
    create_request,
)
from .params import BackendParams, ParamsAssembler
from .query import QueryCompiler, classify, tokenize
from .results import MISSING_FACET, ResponseExtractor
from .spellcheck import apply_spell_correction

__all__ = [
    # Backends and errors
    "BackendRequestError",
    "ConfigError",
    "NoUniqueResultError",
    "NotFoundError",
    "QueryError",
    "SearchBackend",
    "SearchError",
    "SolrBackend",
    # Service
    "SearchService",
    "SearchServiceBuilder",
    "merge_responses",
    # Fields
    "FIELD_GROUP_ALL",
    "FieldNameResolver",
    "FieldSuffixes",
    # Highlighting
    "SnippetGenerator",
    "merge_contiguous",
    "merge_intervals",
    "merge_list",
    "merge_two",
    # Models
    "CompiledQuery",
    "FieldVariant",
    "GroupIds",
    "HighlightConfig",
    "ItemType",
    "MetaData",
    "ObjectGroup",
    "Phrase",
    "QueryOperator",
    "QueryToken",
    "QueryType",
    "RawQuery",
    "SearchRequest",
    "SearchResponse",
    "SortField",
    "Stats",
    "TokenType",
    "create_request",
    # Query handling
    "BackendParams",
    "ParamsAssembler",
    "QueryCompiler",
    "classify",
    "tokenize",
    # Results
    "MISSING_FACET",
    "ResponseExtractor",
    "apply_spell_correction",
]
