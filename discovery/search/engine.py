"""Search service running requests against a backend.

A grouped search is a two-step pipeline. The id pass runs the user's
request with collapsing on and returns the ids of the matching groups
together with facets and counts. The completion pass fetches those
groups in full (and their highlighting) and the two are merged.
"""

import logging
from collections.abc import Mapping
from typing import Any

from msgspec.structs import replace

from .backends.base import NotFoundError, NoUniqueResultError, SearchBackend
from .fields import FieldNameResolver, FieldSuffixes
from .models import (
    GroupIds,
    HighlightConfig,
    MetaData,
    ObjectGroup,
    Phrase,
    QueryOperator,
    RawQuery,
    SearchRequest,
    SearchResponse,
)
from .params import GROUP_FIELD, BackendParams, ParamsAssembler
from .query import create_embedded_query_with_parser
from .results import ResponseExtractor
from .spellcheck import apply_spell_correction

logger = logging.getLogger(__name__)

# Row cap of the completion pass; every requested group has to fit
MAX_ROWS = 2**31 - 1


class SearchService:
    """Runs search requests and turns replies into responses."""

    def __init__(
        self,
        backend: SearchBackend,
        assembler: ParamsAssembler,
        extractor: ResponseExtractor,
        default_filters: Mapping[str, str] | None = None,
    ):
        """Initialize search service.

        Args:
            backend: Wire client of the search index
            assembler: Builds backend parameters from requests
            extractor: Reads backend replies
            default_filters: Filter expressions (mapped to their tag) added
                to every request that has no filter with the same tag
        """
        self.backend = backend
        self.assembler = assembler
        self.extractor = extractor
        self.default_filters = dict(default_filters or {})

    def assemble(self, request: SearchRequest) -> BackendParams:
        """Build the backend parameters a request is sent with."""
        return self.assembler.assemble(self._with_default_filters(request))

    def execute(self, request: SearchRequest) -> dict[str, Any]:
        """Send one request and return the checked raw reply.

        Raises:
            BackendRequestError: If the backend fails or reports an error
        """
        reply = self.backend.search(self.assemble(request))
        self.extractor.check(reply)
        return reply

    def search(self, request: SearchRequest) -> SearchResponse:
        """Run a single ungrouped search returning documents."""
        reply = self.execute(request)
        return SearchResponse(
            payload=self.extractor.extract_documents(reply),
            metadata=self.extractor.extract_metadata(reply),
        )

    def find_one(self, request: SearchRequest) -> dict[str, Any]:
        """Get the one document matching a request.

        Raises:
            NotFoundError: If nothing matches
            NoUniqueResultError: If more than one document matches
        """
        reply = self.execute(replace(request, start=0, rows=2, grouping=False, collapse=False))
        count = self.extractor.extract_num_found(reply)
        documents = self.extractor.extract_documents(reply)
        if count == 0 or not documents:
            raise NotFoundError("No document matches the request")
        if count > 1 or len(documents) > 1:
            raise NoUniqueResultError(f"Expected one document, found {count}", count)
        return documents[0]

    def find_groups(self, request: SearchRequest) -> SearchResponse:
        """Run a grouped search.

        Returns:
            Object groups in the order of the id pass, with the id pass's
            metadata and the completion pass's highlighting
        """
        group_ids = self.find_group_ids(request)
        if not group_ids.ids:
            return SearchResponse(payload=[], metadata=group_ids.metadata)

        completion = self.complete_groups(group_ids.request or request, group_ids.ids)
        return merge_responses(group_ids, completion)

    def find_group_ids(self, request: SearchRequest) -> GroupIds:
        """Run the id pass, retrying once with a spell corrected phrase.

        The retry happens only for a request asking for rows that found
        nothing while the backend suggested a correction. It runs with
        spell correction off, so there is never a second one.
        """
        result = self._find_group_ids(request)
        if request.rows <= 0 or result.ids or not request.spellcheck:
            return result

        suggestion = result.metadata.spell_corrected_term
        corrected = apply_spell_correction(request.phrase, suggestion)
        if not suggestion or not corrected:
            return result

        logger.info("No results for %r, retrying with %r", request.phrase, corrected)
        retry = self._find_group_ids(
            replace(request, search=Phrase(corrected), spellcheck=False)
        )
        return replace(
            retry,
            metadata=replace(
                retry.metadata,
                spell_corrected_term=corrected,
                spell_correction_applied=True,
            ),
        )

    def _find_group_ids(self, request: SearchRequest) -> GroupIds:
        reply = self.execute(
            replace(request, highlight=False, collapse=True, grouping=False)
        )
        return GroupIds(
            ids=self.extractor.extract_group_ids(reply),
            metadata=self.extractor.extract_metadata(reply),
            request=request,
        )

    def complete_groups(self, request: SearchRequest, ids: list[str]) -> SearchResponse:
        """Fetch complete groups for the given ids.

        Highlighting follows the original request, so highlight phrase
        and search fields are carried over.
        """
        logger.info("Completing %d groups", len(ids))
        group_field = self.assembler.group_field
        query = create_embedded_query_with_parser(
            "edismax", f"{group_field}:({' '.join(ids)})"
        )
        completion = SearchRequest(
            search=RawQuery(query),
            search_fields=request.search_fields,
            display_fields=request.display_fields,
            operator=QueryOperator.OR,
            start=0,
            rows=MAX_ROWS,
            grouping=True,
            highlight=request.highlight,
            highlight_phrase=request.highlight_phrase or request.phrase,
            highlight_fields=request.highlight_fields or request.search_fields,
            snippet_count=request.snippet_count,
            spellcheck=False,
        )
        reply = self.execute(completion)
        return SearchResponse(
            payload=self.extractor.extract_groups(reply),
            metadata=self.extractor.extract_metadata(reply),
        )

    def close(self) -> None:
        self.backend.close()

    def _with_default_filters(self, request: SearchRequest) -> SearchRequest:
        if not self.default_filters:
            return request
        tags = set(request.filters.values())
        filters = {
            expression: tag
            for expression, tag in self.default_filters.items()
            if tag not in tags
        }
        if not filters:
            return request
        filters.update(request.filters)
        return replace(request, filters=filters)


def merge_responses(group_ids: GroupIds, completion: SearchResponse) -> SearchResponse:
    """Merge the id pass with the completion pass.

    Groups keep the id pass order; ids the completion pass did not return
    as a complete group are dropped.
    """
    groups: dict[str, ObjectGroup] = {
        group.group_id: group for group in completion.payload if group.group_id is not None
    }
    payload = [groups[group_id] for group_id in group_ids.ids if group_id in groups]
    metadata: MetaData = replace(
        group_ids.metadata, highlighting=dict(completion.metadata.highlighting)
    )
    return SearchResponse(payload=payload, metadata=metadata)


class SearchServiceBuilder:
    """Builder for constructing SearchService instances."""

    def __init__(self):
        self.backend: SearchBackend | None = None
        self.field_names: list[str] = []
        self.groups: dict[str, list[str]] = {}
        self.suffixes: FieldSuffixes | None = None
        self.highlight_config = HighlightConfig()
        self.group_field = GROUP_FIELD
        self.default_filters: dict[str, str] = {}

    def with_backend(self, backend: SearchBackend) -> "SearchServiceBuilder":
        """Set the search backend."""
        self.backend = backend
        return self

    def with_solr(self, url: str, timeout: float | None = None) -> "SearchServiceBuilder":
        """Configure with Solr backend."""
        from .backends.solr import DEFAULT_TIMEOUT, SolrBackend

        self.backend = SolrBackend(url, timeout=timeout or DEFAULT_TIMEOUT)
        return self

    def with_fields(
        self, field_names: list[str], groups: Mapping[str, list[str]] | None = None
    ) -> "SearchServiceBuilder":
        """Set the configured backend field names and field groups."""
        self.field_names = list(field_names)
        self.groups = {name: list(fields) for name, fields in (groups or {}).items()}
        return self

    def with_suffixes(self, suffixes: FieldSuffixes) -> "SearchServiceBuilder":
        self.suffixes = suffixes
        return self

    def with_highlighting(self, config: HighlightConfig) -> "SearchServiceBuilder":
        self.highlight_config = config
        return self

    def with_group_field(self, group_field: str) -> "SearchServiceBuilder":
        self.group_field = group_field
        return self

    def with_default_filters(self, filters: Mapping[str, str]) -> "SearchServiceBuilder":
        """Set filters added to every request."""
        self.default_filters = dict(filters)
        return self

    def build_resolver(self) -> FieldNameResolver:
        return FieldNameResolver(self.field_names, self.groups, self.suffixes)

    def build(self) -> SearchService:
        """Build the SearchService.

        Raises:
            ValueError: If no backend was configured
        """
        if self.backend is None:
            raise ValueError("A search backend is required")

        resolver = self.build_resolver()
        return SearchService(
            backend=self.backend,
            assembler=ParamsAssembler(resolver, self.highlight_config, self.group_field),
            extractor=ResponseExtractor(resolver, self.highlight_config),
            default_filters=self.default_filters,
        )
