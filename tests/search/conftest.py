"""Shared fixtures for search module tests."""

import pytest

from discovery.search import (
    FieldNameResolver,
    HighlightConfig,
    ParamsAssembler,
    ResponseExtractor,
    SearchService,
)


@pytest.fixture
def resolver(field_names, field_groups) -> FieldNameResolver:
    return FieldNameResolver(field_names, field_groups)


@pytest.fixture
def assembler(resolver) -> ParamsAssembler:
    return ParamsAssembler(resolver)


@pytest.fixture
def extractor(resolver) -> ResponseExtractor:
    return ResponseExtractor(resolver)


@pytest.fixture
def service(mock_backend, assembler, extractor) -> SearchService:
    return SearchService(mock_backend, assembler, extractor)


@pytest.fixture
def padded_extractor(resolver) -> ResponseExtractor:
    return ResponseExtractor(resolver, HighlightConfig(padding=5))
