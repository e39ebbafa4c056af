"""Pytest configuration and fixtures."""

import os
from typing import Any
from unittest.mock import Mock

import pytest

from discovery.search import SearchBackend

FIELD_NAMES = [
    "title-search^3",
    "title-search-exact",
    "title-search-exact-no-punctuation",
    "title-search-stemmed",
    "repository-search",
    "repository-search-exact",
    "repository-search-stemmed",
    "settlement-search",
    "group-id-search",
]

FIELD_GROUPS = {
    "FIELD-GROUP-ALL": ["title-search", "repository-search"],
    "FIELD-GROUP-TITLE": ["title-search"],
}


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Isolate environment variables for each test.

    This prevents test pollution where one test's environment
    changes affect other tests.
    """
    original_env = os.environ.copy()
    monkeypatch.delenv("DISCOVERY_SOLR_URL", raising=False)
    monkeypatch.delenv("DISCOVERY_SOLR_TIMEOUT", raising=False)

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def field_names() -> list[str]:
    """Configured backend field names, some boosted."""
    return list(FIELD_NAMES)


@pytest.fixture
def field_groups() -> dict[str, list[str]]:
    return {name: list(fields) for name, fields in FIELD_GROUPS.items()}


@pytest.fixture
def mock_backend():
    """Wire client stand-in; set ``search.return_value`` or ``side_effect``."""
    return Mock(spec=SearchBackend)


@pytest.fixture
def collapsed_reply():
    """Build a flat (collapsed) reply with one document per group."""

    def build(*group_ids: str, start: int = 0, rows: int = 10, **sections: Any):
        docs = [{"id": f"o-{gid}", "group-id-display": gid} for gid in group_ids]
        reply = {
            "responseHeader": {
                "status": 0,
                "params": {"start": str(start), "rows": str(rows)},
            },
            "response": {"numFound": len(docs), "start": start, "docs": docs},
        }
        reply.update(sections)
        return reply

    return build


@pytest.fixture
def grouped_reply():
    """Build a grouped reply; each group is ``(group id, member docs)``."""

    def build(*groups: tuple[str, list[dict[str, Any]]], **sections: Any):
        reply = {
            "responseHeader": {
                "status": 0,
                "params": {"start": "0", "rows": "2147483647", "group": "true"},
            },
            "grouped": {
                "group-id-search": {
                    "matches": sum(len(docs) for _, docs in groups),
                    "ngroups": len(groups),
                    "groups": [
                        {"groupValue": gid, "doclist": {"numFound": len(docs), "docs": docs}}
                        for gid, docs in groups
                    ],
                }
            },
        }
        reply.update(sections)
        return reply

    return build


@pytest.fixture
def object_group_docs():
    """Member documents of a complete group."""

    def build(group_id: str, descriptions: int = 1, digitizeds: int = 0):
        docs = [
            {"id": f"o-{group_id}", "type-display": "hsp:object", "group-id-display": group_id}
        ]
        docs += [
            {
                "id": f"d{i}-{group_id}",
                "type-display": "hsp:description",
                "group-id-display": group_id,
            }
            for i in range(descriptions)
        ]
        docs += [
            {
                "id": f"z{i}-{group_id}",
                "type-display": "hsp:digitized",
                "group-id-display": group_id,
            }
            for i in range(digitizeds)
        ]
        return docs

    return build
