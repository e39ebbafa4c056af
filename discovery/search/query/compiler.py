"""Compiles search phrases into backend queries.

Quoted tokens are exact searches, unquoted tokens are fuzzy searches
(stemming etc. is left to the backend). All backend special characters
are escaped unless they are semantically needed: wildcards keep their
meaning inside quoted tokens only.
"""

import logging
from collections.abc import Sequence

from ..fields import FieldNameResolver, remove_boosting_factor
from ..models import CompiledQuery, QueryOperator, QueryToken, QueryType, TokenType
from .tokenizer import to_query_tokens

logger = logging.getLogger(__name__)

ASTERISK = "*"
MATCH_ALL = "*:*"
COMPLEX_PHRASE_PARSER = "complexphrase"
EDISMAX_PARSER = "edismax"

# Backend special characters, except those used for wildcarding
SPECIAL_CHARACTERS = frozenset('\\+!():^[]"{}~|&;/')
SPECIAL_CHARACTERS_WITH_WILDCARDS = SPECIAL_CHARACTERS | {"*", "?"}

ESCAPE = "\\"
# Inside an embedded query the escape char itself has to survive two parsers
EMBEDDED_ESCAPE = "\\\\\\\\"


def escape_query_chars(term: str, special: frozenset[str], escape: str = ESCAPE) -> str:
    return "".join(f"{escape}{c}" if c in special else c for c in term)


def escape_term(term: str, escape: str = ESCAPE) -> str:
    """Escape every special character including wildcards."""
    return escape_query_chars(term, SPECIAL_CHARACTERS_WITH_WILDCARDS, escape)


def escape_term_ignoring_wildcards(term: str, escape: str = ESCAPE) -> str:
    return escape_query_chars(term, SPECIAL_CHARACTERS, escape)


def escape_for_embedded_complex_phrase(quoted_term: str) -> str:
    """Unquote, escape all but wildcards, then wrap in escaped quotes."""
    escaped = escape_term_ignoring_wildcards(quoted_term[1:-1], EMBEDDED_ESCAPE)
    return f'\\"{escaped}\\"'


def spread_query(term: str, fields: Sequence[str], operator: str) -> str | None:
    """Apply one term to several fields, ``f1:(term) OR f2:(term)``."""
    if not fields or not term.strip():
        return None
    return f" {operator} ".join(f"{field}:({term})" for field in fields)


def create_local_params_query(parser: str, query: str, **local_params: str) -> str:
    params = "".join(f" {key}={value}" for key, value in local_params.items())
    return f"{{!{parser}{params}}}{query}"


def create_embedded_query(query: str) -> str:
    return f'_query_:"{query}"'


def create_embedded_query_with_parser(parser: str, query: str) -> str:
    """Embed a query evaluated by a named parser, e.g. ``_query_:"{!edismax}q"``."""
    return create_embedded_query(create_local_params_query(parser, query))


def remove_boosting_factors_unique(field_names: Sequence[str]) -> list[str]:
    result: list[str] = []
    for name in field_names:
        name = remove_boosting_factor(name)
        if name not in result:
            result.append(name)
    return result


def create_complex_phrase_query(query: str, in_order: bool = True) -> str:
    return create_local_params_query(
        COMPLEX_PHRASE_PARSER, query, inOrder=str(in_order).lower()
    )


class QueryCompiler:
    """Turns a phrase into one backend query string and its classification."""

    def __init__(self, resolver: FieldNameResolver):
        self.resolver = resolver

    def compile(
        self,
        term: str | None,
        fields: Sequence[str] = (),
        negated: bool = False,
        include_field_names: bool = False,
        operator: QueryOperator = QueryOperator.AND,
    ) -> CompiledQuery:
        """Compile a phrase.

        Args:
            term: The raw phrase
            fields: Canonical search fields used for exact variants and,
                with ``include_field_names``, for plain terms
            negated: Prefix every clause with ``-``
            include_field_names: Spread plain terms across ``fields``
                instead of leaving field selection to the query parser
            operator: Operator joining a spread term's per-field clauses

        Returns:
            The compiled query; per-token clauses are joined with ``AND``
        """
        tokens = to_query_tokens(term)
        if not tokens:
            return CompiledQuery(query="", type=QueryType.PLAIN)

        clauses = []
        query_type = QueryType.of_token(tokens[0].type)
        for token in tokens:
            query_type = query_type.combine(token.type)
            clause = self._compile_token(token, fields, include_field_names, operator)
            clauses.append(f"-{clause}" if negated else clause)

        compiled = CompiledQuery(
            query=" AND ".join(clauses), type=query_type, tokens=tuple(tokens)
        )
        logger.debug("Compiled %r to %r (%s)", term, compiled.query, query_type.value)
        return compiled

    def _compile_token(
        self,
        token: QueryToken,
        fields: Sequence[str],
        include_field_names: bool,
        operator: QueryOperator,
    ) -> str:
        if token.type is TokenType.PLAIN:
            return self._create_plain_query(
                token.text, fields if include_field_names else (), operator
            )
        return self._create_exact_query(token.text, fields)

    def _create_plain_query(
        self, term: str, fields: Sequence[str], operator: QueryOperator
    ) -> str:
        escaped = term if term == ASTERISK else escape_term(term)
        if not fields:
            return escaped

        clauses = []
        for field in fields:
            name = remove_boosting_factor(field)
            clauses.append(f"{name}:({escaped}){self.resolver.get_boosting(name)}")
        if len(clauses) == 1:
            return clauses[0]
        return "(" + f" {operator.value} ".join(clauses) + ")"

    def _create_exact_query(self, term: str, fields: Sequence[str]) -> str:
        if term == f'"{ASTERISK}"':
            return ASTERISK

        exact_fields = remove_boosting_factors_unique(
            self.resolver.get_exact_names(fields)
            + self.resolver.get_exact_no_punctuation_names(fields)
        )
        spread = spread_query(
            escape_for_embedded_complex_phrase(term), exact_fields, QueryOperator.OR.value
        )
        if spread is None:
            # No exact variants to address: plain phrase query
            return f'"{escape_term_ignoring_wildcards(term[1:-1])}"'
        return create_embedded_query(create_complex_phrase_query(spread))

