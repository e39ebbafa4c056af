"""Phrase tokenizing and query compilation."""

from .compiler import (
    MATCH_ALL,
    QueryCompiler,
    create_embedded_query_with_parser,
    escape_term,
    spread_query,
)
from .tokenizer import (
    classify,
    contains_wildcards,
    is_quoted,
    to_query_tokens,
    tokenize,
)

__all__ = [
    "MATCH_ALL",
    "QueryCompiler",
    "classify",
    "contains_wildcards",
    "create_embedded_query_with_parser",
    "escape_term",
    "is_quoted",
    "spread_query",
    "to_query_tokens",
    "tokenize",
]
