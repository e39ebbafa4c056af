"""Data models for search functionality using msgspec for performance."""

from __future__ import annotations

from enum import Enum
from typing import Any

import msgspec

from .backends.base import QueryError


class TokenType(Enum):
    """Types of phrase tokens."""

    PLAIN = "plain"
    EXACT = "exact"
    COMPLEX = "complex"


class QueryType(Enum):
    """Overall classification of a compiled query."""

    PLAIN = "plain"
    EXACT = "exact"
    MIXED = "mixed"

    @classmethod
    def of_token(cls, token_type: TokenType) -> QueryType:
        if token_type is TokenType.PLAIN:
            return cls.PLAIN
        return cls.EXACT

    def combine(self, token_type: TokenType) -> QueryType:
        """Fold one more token type into this query type.

        Plain and exact tokens together give a mixed query; once mixed,
        the query stays mixed.
        """
        other = QueryType.of_token(token_type)
        if self is QueryType.MIXED or self is not other:
            return QueryType.MIXED
        return self


class QueryOperator(str, Enum):
    """Default operator between query clauses."""

    AND = "AND"
    OR = "OR"


class SortField(str, Enum):
    """Sort phrases accepted by the backend."""

    MS_IDENTIFIER_ASC = "ms-identifier-sort asc"
    MS_IDENTIFIER_DESC = "ms-identifier-sort desc"
    ORIG_DATE_ASC = "orig-date-from-sort asc"
    ORIG_DATE_DESC = "orig-date-to-sort desc"
    PUBLISH_YEAR_ASC = "publish-year-sort asc"
    PUBLISH_YEAR_DESC = "publish-year-sort desc"
    SCORE_DESC = "score desc"

    @classmethod
    def is_valid(cls, phrase: str | None) -> bool:
        return bool(phrase) and phrase in {f.value for f in cls}


class ItemType(str, Enum):
    """Values of the document type discriminator."""

    OBJECT = "hsp:object"
    DESCRIPTION = "hsp:description"
    DESCRIPTION_RETRO = "hsp:description_retro"
    DIGITIZED = "hsp:digitized"


class QueryToken(msgspec.Struct, frozen=True):
    """A single token of a search phrase."""

    text: str
    type: TokenType


class CompiledQuery(msgspec.Struct, frozen=True, kw_only=True):
    """A backend query string together with its classification."""

    query: str
    type: QueryType
    tokens: tuple[QueryToken, ...] = ()

    @property
    def correctable_terms(self) -> str:
        """Plain tokens joined by a space, the part a speller may rewrite."""
        return " ".join(t.text for t in self.tokens if t.type is TokenType.PLAIN)


class FieldVariant(msgspec.Struct, frozen=True, kw_only=True):
    """Backend field names derived from one canonical search field."""

    basic: str | None = None
    exact: str | None = None
    exact_no_punctuation: str | None = None
    stemmed: str | None = None


class Phrase(msgspec.Struct, frozen=True, tag=True):
    """Free text typed by a user, compiled before it is sent."""

    text: str


class RawQuery(msgspec.Struct, frozen=True, tag=True):
    """A backend query string sent verbatim."""

    text: str


class SearchRequest(msgspec.Struct, frozen=True, kw_only=True):
    """User level search parameters.

    ``search`` is either a :class:`Phrase` or a :class:`RawQuery`; when it
    is ``None`` the request matches every document. Filters map a backend
    filter expression to the facet tag it belongs to (empty for untagged
    filters).
    """

    search: Phrase | RawQuery | None = None
    search_fields: tuple[str, ...] = ()
    filters: dict[str, str] = msgspec.field(default_factory=dict)
    facets: tuple[str, ...] = ()
    facet_terms_excluded: tuple[str, ...] = ()
    facet_min_count: int = 1
    facet_missing: bool = True
    stats: tuple[str, ...] = ()
    display_fields: tuple[str, ...] = ()
    sort: str | None = None
    start: int = 0
    rows: int = 10
    operator: QueryOperator = QueryOperator.AND

    # Highlighting
    highlight: bool = False
    highlight_phrase: str | None = None
    highlight_fields: tuple[str, ...] = ()
    snippet_count: int | None = None

    # Result reduction
    grouping: bool = False
    collapse: bool = False

    spellcheck: bool = True

    @property
    def phrase(self) -> str | None:
        return self.search.text if isinstance(self.search, Phrase) else None

    @property
    def query(self) -> str | None:
        return self.search.text if isinstance(self.search, RawQuery) else None


class HighlightConfig(msgspec.Struct, frozen=True, kw_only=True):
    """How highlight fragments are requested and post-processed."""

    tag_name: str = "em"
    snippet_count: int = 10
    padding: int | None = None


class Stats(msgspec.Struct, frozen=True, kw_only=True):
    """Summary statistics of one numeric field."""

    min: float | None = None
    max: float | None = None
    count: int = 0
    missing: int = 0


class MetaData(msgspec.Struct, frozen=True, kw_only=True):
    """Everything in a reply besides the result items."""

    num_found: int = 0
    start: int = 0
    rows: int = 0
    facets: dict[str, dict[str, int]] = msgspec.field(default_factory=dict)
    stats: dict[str, Stats] = msgspec.field(default_factory=dict)
    highlighting: dict[str, dict[str, list[str]]] = msgspec.field(
        default_factory=dict
    )
    spell_corrected_term: str | None = None
    # Whether the results are those of the corrected term
    spell_correction_applied: bool = False


class ObjectGroup(msgspec.Struct, frozen=True, kw_only=True):
    """A primary object together with the documents grouped around it."""

    group_id: str | None
    object: dict[str, Any]
    descriptions: list[dict[str, Any]] = msgspec.field(default_factory=list)
    digitizeds: list[dict[str, Any]] = msgspec.field(default_factory=list)


class GroupIds(msgspec.Struct, frozen=True, kw_only=True):
    """Outcome of the id pass of a grouped search.

    ``request`` is the request that produced the ids; it differs from the
    caller's request when a spell correction was applied.
    """

    ids: list[str] = msgspec.field(default_factory=list)
    metadata: MetaData = msgspec.field(default_factory=MetaData)
    request: SearchRequest | None = None


class SearchResponse(msgspec.Struct, frozen=True, kw_only=True):
    """Result items plus metadata, as handed to callers."""

    payload: list[Any] = msgspec.field(default_factory=list)
    metadata: MetaData = msgspec.field(default_factory=MetaData)

    @property
    def is_empty(self) -> bool:
        """Check if no results were found."""
        return not self.payload


def create_request(
    phrase: str | None = None,
    query: str | None = None,
    **options: Any,
) -> SearchRequest:
    """Create a validated search request.

    Args:
        phrase: Free text to be compiled
        query: Backend query to be sent as is
        **options: Any other :class:`SearchRequest` field

    Raises:
        QueryError: If both phrase and query are given or paging is negative
    """
    if phrase and query:
        raise QueryError("Provide either a phrase or a query, not both")

    search: Phrase | RawQuery | None = None
    if query:
        search = RawQuery(query)
    elif phrase:
        search = Phrase(phrase)

    for name in ("start", "rows"):
        if options.get(name) is None:
            options.pop(name, None)
        elif options[name] < 0:
            raise QueryError(f"{name} must not be negative: {options[name]}")

    for name in (
        "search_fields",
        "facets",
        "facet_terms_excluded",
        "stats",
        "display_fields",
        "highlight_fields",
    ):
        if options.get(name) is not None:
            options[name] = tuple(options[name])
        else:
            options.pop(name, None)

    if "operator" in options and not isinstance(options["operator"], QueryOperator):
        options["operator"] = QueryOperator(str(options["operator"]).upper())

    return SearchRequest(search=search, **options)
