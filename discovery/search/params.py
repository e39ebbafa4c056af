"""Assembly of backend request parameters from search requests."""

import logging
from collections.abc import Iterable, Iterator, Sequence

from .fields import FieldNameResolver, get_stat_tag, remove_boosting_factor
from .models import (
    CompiledQuery,
    HighlightConfig,
    QueryType,
    SearchRequest,
    SortField,
)
from .query import MATCH_ALL, QueryCompiler

logger = logging.getLogger(__name__)

QUERY_PARSER = "edismax"
USER_FIELDS = "* _query_"
FILTER_TAG_PREFIX = "solr_fq_"
GROUP_FIELD = "group-id-search"
GROUP_LIMIT = 100
MAX_ANALYZED_CHARS = 2**31 - 2


def _to_str(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def create_local_params(*pairs: tuple[str, str]) -> str:
    """Render local parameters, ``{!k1=v1 k2=v2}``."""
    if not pairs:
        return ""
    return "{!" + " ".join(f"{key}={value}" for key, value in pairs) + "}"


class BackendParams:
    """Ordered request parameters; a name may carry several values."""

    def __init__(self) -> None:
        self._params: dict[str, list[str]] = {}

    def set(self, name: str, *values: object) -> None:
        """Replace all values of a parameter."""
        self._params[name] = [_to_str(v) for v in values]

    def add(self, name: str, *values: object) -> None:
        """Append values to a parameter."""
        self._params.setdefault(name, []).extend(_to_str(v) for v in values)

    def add_if_absent(self, name: str, *values: object) -> None:
        """Append only those values the parameter does not carry yet."""
        existing = self._params.get(name, [])
        missing = [v for v in map(_to_str, values) if v not in existing]
        if missing:
            self.add(name, *missing)

    def get(self, name: str) -> str | None:
        """Get the first value of a parameter."""
        values = self._params.get(name)
        return values[0] if values else None

    def get_all(self, name: str) -> list[str]:
        return list(self._params.get(name, []))

    def __contains__(self, name: object) -> bool:
        return name in self._params

    def __iter__(self) -> Iterator[tuple[str, str]]:
        for name, values in self._params.items():
            for value in values:
                yield name, value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BackendParams):
            return NotImplemented
        return self._params == other._params

    def __repr__(self) -> str:
        return f"BackendParams({self._params!r})"

    def to_dict(self) -> dict[str, list[str]]:
        return {name: list(values) for name, values in self._params.items()}


class ParamsAssembler:
    """Turns a :class:`SearchRequest` into backend parameters.

    Compiles the phrase, picks the field variants matching the query
    type, and adds paging, sorting, filters, facets, stats, highlighting,
    grouping and collapsing directives.
    """

    def __init__(
        self,
        resolver: FieldNameResolver,
        highlight_config: HighlightConfig | None = None,
        group_field: str = GROUP_FIELD,
        highlight_blacklist: Sequence[str] | None = None,
    ):
        """Initialize the assembler.

        Args:
            resolver: Field name resolver built from the configured fields
            highlight_config: Tag name and default snippet count
            group_field: Canonical field holding the group key
            highlight_blacklist: Canonical fields never highlighted
                (default: the group key field)
        """
        self.resolver = resolver
        self.compiler = QueryCompiler(resolver)
        self.highlight_config = highlight_config or HighlightConfig()
        self.group_field = group_field
        self.highlight_blacklist = (
            list(highlight_blacklist) if highlight_blacklist is not None else [group_field]
        )

    def assemble(self, request: SearchRequest) -> BackendParams:
        """Build the backend parameters for a request.

        Assembling the same request twice yields equal parameters.
        """
        params = BackendParams()
        fields = list(request.search_fields) or self.resolver.get_default_search_fields()
        query, query_fields, compiled = self._resolve_query(request, fields)

        params.set("q", query)
        if query_fields:
            params.set("qf", *query_fields)
        params.set("defType", QUERY_PARSER)
        params.set("uf", USER_FIELDS)
        if request.display_fields:
            params.set("fl", *request.display_fields)
        if SortField.is_valid(request.sort):
            params.set("sort", request.sort)
        params.set("q.op", request.operator.value)

        self._add_spellcheck(params, request, compiled)
        params.set("start", request.start)
        params.set("rows", request.rows)
        self._add_filters(params, request.filters)
        self._add_highlighting(params, request, fields)
        self._add_facets(params, request)
        self._add_stats(params, request.stats)
        if request.collapse:
            params.add("fq", f"{{!collapse field={self._group_field_name()}}}")
        if request.grouping:
            params.set("group", True)
            params.set("group.field", self._group_field_name())
            params.set("group.limit", GROUP_LIMIT)
            params.set("group.ngroups", True)

        logger.debug("Assembled params: %s", params.to_dict())
        return params

    def _resolve_query(
        self, request: SearchRequest, fields: list[str]
    ) -> tuple[str, list[str], CompiledQuery | None]:
        if request.query:
            return request.query, _unique(fields), None
        if not request.phrase:
            return MATCH_ALL, self.get_search_fields(QueryType.PLAIN, fields), None

        compiled = self.compiler.compile(request.phrase, fields)
        query = compiled.query or MATCH_ALL
        return query, self.get_search_fields(compiled.type, fields), compiled

    def get_search_fields(self, query_type: QueryType, fields: Iterable[str]) -> list[str]:
        """Get the boosted field variants to search for a query type.

        Plain queries search basic and stemmed variants, exact queries the
        exact variants only, mixed queries all of them.
        """
        fields = list(fields)
        resolver = self.resolver
        if query_type is QueryType.PLAIN:
            names = resolver.get_basic_names(fields) + resolver.get_stemmed_names(fields)
        elif query_type is QueryType.EXACT:
            names = resolver.get_exact_names(fields) + resolver.get_exact_no_punctuation_names(
                fields
            )
        else:
            names = (
                resolver.get_basic_names(fields)
                + resolver.get_exact_names(fields)
                + resolver.get_exact_no_punctuation_names(fields)
                + resolver.get_stemmed_names(fields)
            )
        return _unique(names)

    def _add_spellcheck(
        self, params: BackendParams, request: SearchRequest, compiled: CompiledQuery | None
    ) -> None:
        if not request.spellcheck or compiled is None:
            return
        terms = compiled.correctable_terms
        if terms:
            params.set("spellcheck", True)
            params.set("spellcheck.q", terms)

    def _add_filters(self, params: BackendParams, filters: dict[str, str]) -> None:
        for expression, tag in filters.items():
            if not expression:
                continue
            prefix = create_local_params(("tag", FILTER_TAG_PREFIX + tag)) if tag else ""
            params.add("fq", prefix + expression)

    def _add_highlighting(
        self, params: BackendParams, request: SearchRequest, fields: list[str]
    ) -> None:
        if not request.highlight:
            return

        tag_name = self.highlight_config.tag_name
        hl_fields = list(request.highlight_fields) or fields
        phrase = request.highlight_phrase or request.phrase
        if phrase:
            compiled = self.compiler.compile(phrase, hl_fields)
            hl_query = compiled.query or MATCH_ALL
            hl_fields = self.get_search_fields(compiled.type, hl_fields)
        elif request.query:
            hl_query = request.query
        else:
            hl_query = MATCH_ALL
            hl_fields = self.get_search_fields(QueryType.PLAIN, hl_fields)

        hl_fields = [
            name
            for name in _unique(remove_boosting_factor(f) for f in hl_fields)
            if self.resolver.remove_optional_suffix(name) not in self.highlight_blacklist
        ]

        params.set("hl", "on")
        params.set("hl.q", hl_query)
        if hl_fields:
            params.set("hl.fl", *hl_fields)
        params.set("hl.qparser", QUERY_PARSER)
        params.set("hl.highlightMultiTerm", True)
        params.set(
            "hl.snippets", request.snippet_count or self.highlight_config.snippet_count
        )
        params.set("hl.maxAnalyzedChars", MAX_ANALYZED_CHARS)
        params.set("hl.mergeContiguous", True)
        params.set("hl.method", "original")
        params.set("hl.simple.pre", f"<{tag_name}>")
        params.set("hl.simple.post", f"</{tag_name}>")
        params.set("hl.fragsize", 0)
        params.set("hl.requireFieldMatch", True)

        # The highlight query can only address fields the parser knows
        if hl_fields:
            params.add_if_absent("qf", *hl_fields)

    def _add_facets(self, params: BackendParams, request: SearchRequest) -> None:
        params.add("facet.excludeTerms", " ".join(request.facet_terms_excluded))
        if not request.facets:
            return

        params.add("facet", True)
        params.add("facet.limit", -1)
        params.add("facet.method", "enum")
        params.add("facet.mincount", request.facet_min_count)
        params.add("facet.missing", request.facet_missing)
        params.add("facet.sort", "count")
        for facet in request.facets:
            exclusion = create_local_params(("ex", FILTER_TAG_PREFIX + facet))
            params.add("facet.field", exclusion + facet)

    def _add_stats(self, params: BackendParams, stats: Sequence[str]) -> None:
        if not stats:
            return

        params.add("stats", True)
        for stat in stats:
            local_params = create_local_params(
                ("ex", FILTER_TAG_PREFIX + get_stat_tag(stat)),
                ("min", "true"),
                ("max", "true"),
                ("count", "true"),
                ("missing", "true"),
            )
            params.add("stats.field", local_params + stat)

    def _group_field_name(self) -> str:
        name = self.resolver.get_basic_name(self.group_field) or self.group_field
        return remove_boosting_factor(name)


def _unique(names: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(names))
