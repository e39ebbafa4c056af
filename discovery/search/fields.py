"""Field name resolution for search fields.

The index carries several physical fields per searchable field, told
apart by suffix:

    title-search                   basic (tokenized) variant
    title-search-exact             exact phrase variant
    title-search-exact-no-punctuation
    title-search-stemmed           stemmed variant

Configured names may carry a boost factor (``title-search^3``).
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from rapidfuzz import fuzz, process

from .backends.base import QueryError
from .models import FieldVariant

FIELD_GROUP_ALL = "FIELD-GROUP-ALL"

# Minimum similarity (0 to 100) of a suggested name
SUGGESTION_CUTOFF = 70

BOOST_PATTERN = re.compile(r"\^\d+$")

# Stats sharing one filter tag
STAT_TAG_ALIASES = {
    "orig-date-from-facet": "orig-date-facet",
    "orig-date-to-facet": "orig-date-facet",
}


@dataclass(frozen=True)
class FieldSuffixes:
    """Naming convention of the physical field variants."""

    search: str = "-search"
    exact: str = "-exact"
    exact_no_punctuation: str = "-exact-no-punctuation"
    stemmed: str = "-stemmed"


def remove_boosting_factor(field_name: str) -> str:
    """Strip a trailing ``^N`` boost factor."""
    return BOOST_PATTERN.sub("", field_name)


def remove_boosting_factors(field_names: Iterable[str]) -> list[str]:
    return [remove_boosting_factor(name) for name in field_names]


def get_stat_tag(stat: str) -> str:
    """Get the filter tag a stat field is excluded by."""
    return STAT_TAG_ALIASES.get(stat, stat)


class FieldNameResolver:
    """Resolves canonical search field names to their physical variants.

    Built once from the flat list of configured field names and read-only
    afterwards.
    """

    def __init__(
        self,
        field_names: Iterable[str],
        groups: Mapping[str, Iterable[str]] | None = None,
        suffixes: FieldSuffixes | None = None,
    ):
        """Initialize the resolver.

        Args:
            field_names: All configured backend field names, optionally boosted
            groups: Named field lists used when a request names no fields
            suffixes: Field naming convention (default: ``-search`` family)
        """
        self.suffixes = suffixes or FieldSuffixes()
        names = list(field_names)
        self._boostings = self._create_boosting_map(names)
        self._fields = self._create_variant_map(remove_boosting_factors(names))
        self._groups = {name: list(fields) for name, fields in (groups or {}).items()}
        self._base_pattern = re.compile(
            rf"^([a-z]+(?:-[a-z]+){{0,5}}{re.escape(self.suffixes.search)})"
        )

    @staticmethod
    def _create_boosting_map(field_names: list[str]) -> dict[str, int]:
        result = {}
        for field_name in field_names:
            name, sep, boost = field_name.partition("^")
            if sep and boost.isdigit():
                result[name] = int(boost)
        return result

    def _create_variant_map(self, field_names: list[str]) -> dict[str, FieldVariant]:
        base_pattern = re.compile(
            rf"^([a-z]+(?:-[a-z]+){{0,5}}?{re.escape(self.suffixes.search)})"
        )
        known = set(field_names)
        result: dict[str, FieldVariant] = {}
        for field_name in field_names:
            match = base_pattern.match(field_name)
            if not match or match.group(1) in result:
                continue
            base = match.group(1)
            result[base] = FieldVariant(
                basic=base if base in known else None,
                exact=self._find(field_names, base + self.suffixes.exact),
                exact_no_punctuation=self._find(
                    field_names, base + self.suffixes.exact_no_punctuation
                ),
                stemmed=self._find(field_names, base + self.suffixes.stemmed),
            )
        return result

    @staticmethod
    def _find(field_names: list[str], name: str) -> str | None:
        return name if name in field_names else None

    def is_valid(self, field_name: str | None) -> bool:
        """Check if a field name is one of the configured canonical fields."""
        return field_name is not None and field_name in self._fields

    def get_variant(self, field_name: str) -> FieldVariant | None:
        return self._fields.get(field_name)

    def get_boosting(self, field_name: str) -> str:
        """Get the ``^N`` boost suffix of a field, or an empty string."""
        boost = self._boostings.get(field_name)
        return f"^{boost}" if boost is not None else ""

    def get_field_name_with_boosting(self, field_name: str) -> str:
        return f"{field_name}{self.get_boosting(field_name)}"

    def get_basic_name(self, field_name: str) -> str | None:
        return self._get_name(field_name, "basic")

    def get_exact_name(self, field_name: str) -> str | None:
        return self._get_name(field_name, "exact")

    def get_exact_no_punctuation_name(self, field_name: str) -> str | None:
        return self._get_name(field_name, "exact_no_punctuation")

    def get_stemmed_name(self, field_name: str) -> str | None:
        return self._get_name(field_name, "stemmed")

    def get_basic_names(self, field_names: Iterable[str]) -> list[str]:
        """Get the boosted basic variants; fields without one are dropped."""
        return self._get_names(field_names, "basic")

    def get_exact_names(self, field_names: Iterable[str]) -> list[str]:
        """Get the boosted exact variants; fields without one are dropped."""
        return self._get_names(field_names, "exact")

    def get_exact_no_punctuation_names(self, field_names: Iterable[str]) -> list[str]:
        return self._get_names(field_names, "exact_no_punctuation")

    def get_stemmed_names(self, field_names: Iterable[str]) -> list[str]:
        """Get the boosted stemmed variants; fields without one are dropped."""
        return self._get_names(field_names, "stemmed")

    def _get_name(self, field_name: str, variant: str) -> str | None:
        field = self._fields.get(field_name)
        if field is None:
            return None
        name = getattr(field, variant)
        if name is None:
            return None
        return self.get_field_name_with_boosting(name)

    def _get_names(self, field_names: Iterable[str], variant: str) -> list[str]:
        result = []
        for field_name in field_names:
            name = self._get_name(field_name, variant)
            if name is not None:
                result.append(name)
        return result

    def get_field_names(self) -> list[str]:
        """Get all basic field names, in configuration order."""
        return [f.basic for f in self._fields.values() if f.basic is not None]

    def get_canonical_names(self) -> list[str]:
        """Get every base name a variant was derived for."""
        return list(self._fields)

    def get_group_names(self) -> list[str]:
        return list(self._groups)

    def get_field_names_for_group(self, group_name: str) -> list[str]:
        return list(self._groups.get(group_name, []))

    def get_field_names_for_group_all(self) -> list[str]:
        return self.get_field_names_for_group(FIELD_GROUP_ALL)

    def group_exists(self, group_name: str | None) -> bool:
        return group_name is not None and group_name in self._groups

    def resolve_group(self, group_name: str) -> list[str]:
        """Get the fields of a group.

        Raises:
            QueryError: If the group is unknown
        """
        if not self.group_exists(group_name):
            message = f"Unknown field group: {group_name}"
            suggestions = self.suggest_groups(group_name)
            if suggestions:
                message += f" (did you mean {', '.join(suggestions)}?)"
            raise QueryError(message)
        return self.get_field_names_for_group(group_name)

    def suggest_fields(self, name: str, limit: int = 3) -> list[str]:
        """Suggest canonical field names similar to an unknown one."""
        return _suggest(name, self.get_canonical_names(), limit)

    def suggest_groups(self, name: str, limit: int = 3) -> list[str]:
        return _suggest(name, self.get_group_names(), limit)

    def get_default_search_fields(self) -> list[str]:
        """Fields searched when a request names none."""
        return self.get_field_names_for_group_all() or self.get_field_names()

    def remove_optional_suffix(self, field_name: str) -> str:
        """Cut everything after the search suffix of a field name."""
        match = self._base_pattern.match(field_name)
        return match.group(1) if match else field_name

    def remove_exact_suffix(self, field_name: str) -> str:
        """Turn an exact or exact-no-punctuation name into its base name."""
        for suffix in (self.suffixes.exact_no_punctuation, self.suffixes.exact):
            if field_name.endswith(suffix):
                base = field_name[: -len(suffix)]
                if base.endswith(self.suffixes.search):
                    return base
        return field_name

    def remove_stemmed_suffix(self, field_name: str) -> str:
        suffix = self.suffixes.stemmed
        if field_name.endswith(suffix) and field_name[: -len(suffix)].endswith(
            self.suffixes.search
        ):
            return field_name[: -len(suffix)]
        return field_name

    def stemmed_variant_of(self, field_name: str) -> str:
        return field_name + self.suffixes.stemmed


def _suggest(name: str, choices: list[str], limit: int) -> list[str]:
    if not choices:
        return []
    matches = process.extract(
        name, choices, scorer=fuzz.ratio, limit=limit, score_cutoff=SUGGESTION_CUTOFF
    )
    return [match for match, _score, _index in matches]
