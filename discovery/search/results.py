"""Extraction of result data from backend replies."""

import logging
from collections.abc import Callable
from typing import Any

from .backends.base import BackendRequestError
from .fields import FieldNameResolver
from .highlighting import SnippetGenerator, merge_contiguous, merge_list
from .models import HighlightConfig, ItemType, MetaData, ObjectGroup, Stats

logger = logging.getLogger(__name__)

MISSING_FACET = "__MISSING__"
GROUP_ID_FIELD = "group-id-display"
TYPE_FIELD = "type-display"

Highlighting = dict[str, dict[str, list[str]]]


def _pairs(section: Any) -> list[tuple[Any, Any]]:
    """Read a named list in any of the backend's JSON renderings.

    Handles flat lists (``[k1, v1, k2, v2]``), lists of pairs and maps.
    """
    if isinstance(section, dict):
        return list(section.items())
    if not isinstance(section, list):
        return []
    if all(isinstance(item, list) and len(item) == 2 for item in section):
        return [(item[0], item[1]) for item in section]
    return list(zip(section[::2], section[1::2]))


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _to_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ResponseExtractor:
    """Reads counts, facets, stats, highlighting, spelling and groups.

    Every section is optional; a missing section yields an empty value.
    """

    def __init__(
        self,
        resolver: FieldNameResolver,
        highlight_config: HighlightConfig | None = None,
        id_field: str = GROUP_ID_FIELD,
        type_field: str = TYPE_FIELD,
    ):
        self.resolver = resolver
        self.highlight_config = highlight_config or HighlightConfig()
        self.id_field = id_field
        self.type_field = type_field

    def check(self, reply: dict[str, Any]) -> None:
        """Raise if the reply reports a failed request.

        Raises:
            BackendRequestError: If the reply has an ``error`` section
        """
        error = reply.get("error")
        if error:
            message = error.get("msg", str(error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise BackendRequestError(message, status_code=_to_int(code) or None)

    def get_header_value(self, reply: dict[str, Any], name: str) -> str | None:
        params = reply.get("responseHeader", {}).get("params")
        value = params.get(name) if isinstance(params, dict) else None
        if isinstance(value, list):
            value = value[0] if value else None
        if value is None:
            logger.debug("Unable to extract header value: %s", name)
            return None
        return str(value)

    def is_grouped(self, reply: dict[str, Any]) -> bool:
        return (self.get_header_value(reply, "group") or "false").lower() == "true"

    def extract_num_found(self, reply: dict[str, Any]) -> int:
        """Get the number of groups for grouped replies, of documents otherwise."""
        if self.is_grouped(reply):
            grouped = self._first_grouping(reply)
            return _to_int(grouped.get("ngroups")) if grouped else 0
        response = reply.get("response")
        return _to_int(response.get("numFound")) if isinstance(response, dict) else 0

    def extract_facets(self, reply: dict[str, Any]) -> dict[str, dict[str, int]]:
        """Get value counts per facet field.

        Values are ordered by count, the bucket of documents lacking the
        field comes last and is dropped when empty.
        """
        facet_fields = reply.get("facet_counts", {}).get("facet_fields")
        if not facet_fields:
            logger.debug("Reply has no facet section")
            return {}

        result = {}
        for field, counts in _pairs(facet_fields):
            buckets = [
                (name, _to_int(count))
                for name, count in _pairs(counts)
                if name is not None or _to_int(count) != 0
            ]
            buckets.sort(key=lambda b: (b[0] is None, -b[1]))
            result[field] = {
                (MISSING_FACET if name is None else str(name)): count
                for name, count in buckets
            }
        return result

    def extract_stats(self, reply: dict[str, Any]) -> dict[str, Stats]:
        stats_fields = (reply.get("stats") or {}).get("stats_fields")
        if not stats_fields:
            logger.debug("Reply has no stats section")
            return {}

        result = {}
        for field, info in _pairs(stats_fields):
            info = info or {}
            result[field] = Stats(
                min=_to_float(info.get("min")),
                max=_to_float(info.get("max")),
                count=_to_int(info.get("count")),
                missing=_to_int(info.get("missing")),
            )
        return result

    def extract_spell_correction(self, reply: dict[str, Any]) -> str | None:
        """Get the first collated correction, if any."""
        collations = (reply.get("spellcheck") or {}).get("collations")
        if not collations:
            logger.debug("Reply has no spellcheck collations")
            return None
        for name, value in _pairs(collations):
            if name != "collation":
                continue
            if isinstance(value, dict):
                value = value.get("collationQuery")
            if value:
                return str(value)
        return None

    def extract_highlighting(self, reply: dict[str, Any]) -> Highlighting:
        """Get highlight fragments per document and canonical field.

        Exact variants are folded into their base field, a stemmed
        variant replaces the basic variant of the same field, and adjacent
        highlighted words are joined.
        """
        highlighting = reply.get("highlighting")
        if not highlighting:
            logger.debug("Reply has no highlighting section")
            return {}
        return {
            doc_id: self._prepare_highlighting(fields or {})
            for doc_id, fields in highlighting.items()
        }

    def _prepare_highlighting(self, fields: dict[str, list[str]]) -> dict[str, list[str]]:
        tag_name = self.highlight_config.tag_name
        fields = self._rekey(fields, self.resolver.remove_exact_suffix)
        fields = {
            name: values
            for name, values in fields.items()
            if self.resolver.stemmed_variant_of(name) not in fields
        }
        fields = self._rekey(fields, self.resolver.remove_stemmed_suffix)

        result = {
            name: [merge_contiguous(value, tag_name) for value in values]
            for name, values in fields.items()
        }
        padding = self.highlight_config.padding
        if padding is not None:
            snippets = SnippetGenerator(tag_name, padding)
            result = {
                name: [fragment for value in values for fragment in snippets.fragment(value)]
                for name, values in result.items()
            }
        return result

    def _rekey(
        self, fields: dict[str, list[str]], rename: Callable[[str], str]
    ) -> dict[str, list[str]]:
        result: dict[str, list[str]] = {}
        for name, values in fields.items():
            key = rename(name)
            if key in result:
                result[key] = merge_list(result[key], values, self.highlight_config.tag_name)
            else:
                result[key] = list(values or [])
        return result

    def extract_metadata(self, reply: dict[str, Any]) -> MetaData:
        return MetaData(
            num_found=self.extract_num_found(reply),
            start=_to_int(self.get_header_value(reply, "start")),
            rows=_to_int(self.get_header_value(reply, "rows")),
            facets=self.extract_facets(reply),
            stats=self.extract_stats(reply),
            highlighting=self.extract_highlighting(reply),
            spell_corrected_term=self.extract_spell_correction(reply),
        )

    def extract_documents(self, reply: dict[str, Any]) -> list[dict[str, Any]]:
        """Get the documents of an ungrouped reply."""
        response = reply.get("response")
        if not isinstance(response, dict):
            return []
        return [doc for doc in response.get("docs", []) if self._is_document(doc)]

    def extract_group_ids(self, reply: dict[str, Any]) -> list[str]:
        """Get the group ids of a collapsed or grouped reply, in reply order."""
        grouped = self._first_grouping(reply)
        if grouped is not None:
            return [
                str(group["groupValue"])
                for group in grouped.get("groups", [])
                if group.get("groupValue") is not None
            ]
        return [
            str(doc[self.id_field])
            for doc in self.extract_documents(reply)
            if doc.get(self.id_field) is not None
        ]

    def extract_groups(self, reply: dict[str, Any]) -> list[ObjectGroup]:
        """Rebuild one object group per backend group.

        Members are slotted by their type field; groups without a primary
        object are left out.
        """
        grouped = self._first_grouping(reply)
        if grouped is None:
            return []

        result = []
        for group in grouped.get("groups", []):
            docs = (group.get("doclist") or {}).get("docs", [])
            object_group = self._extract_group(docs, group.get("groupValue"))
            if object_group is not None:
                result.append(object_group)
        return result

    def _extract_group(self, docs: list[Any], group_value: Any) -> ObjectGroup | None:
        primary = None
        descriptions = []
        digitizeds = []
        for doc in docs:
            if not self._is_document(doc):
                continue
            doc_type = doc.get(self.type_field)
            if doc_type == ItemType.OBJECT.value:
                primary = doc
            elif doc_type in (ItemType.DESCRIPTION.value, ItemType.DESCRIPTION_RETRO.value):
                descriptions.append(doc)
            elif doc_type == ItemType.DIGITIZED.value:
                digitizeds.append(doc)

        if primary is None:
            return None
        group_id = primary.get(self.id_field, group_value)
        return ObjectGroup(
            group_id=str(group_id) if group_id is not None else None,
            object=primary,
            descriptions=descriptions,
            digitizeds=digitizeds,
        )

    def _is_document(self, doc: Any) -> bool:
        if isinstance(doc, dict):
            return True
        logger.warning("Skipping undecodable document: %r", doc)
        return False

    def _first_grouping(self, reply: dict[str, Any]) -> dict[str, Any] | None:
        grouped = reply.get("grouped")
        if not isinstance(grouped, dict) or not grouped:
            return None
        return next(iter(grouped.values()))
