"""Tests for assembling backend parameters."""

import pytest

from discovery.search import (
    BackendParams,
    HighlightConfig,
    ParamsAssembler,
    QueryError,
    create_request,
)


class TestBackendParams:
    """Test the ordered multi-valued parameter container."""

    def test_set_and_add(self):
        params = BackendParams()
        params.set("q", "foo")
        params.add("fq", "a")
        params.add("fq", "b")

        assert list(params) == [("q", "foo"), ("fq", "a"), ("fq", "b")]
        assert params.get("fq") == "a"
        assert params.get_all("fq") == ["a", "b"]
        assert params.get("missing") is None

    def test_booleans_are_lowercase(self):
        params = BackendParams()
        params.set("facet", True)
        params.set("facet.missing", False)

        assert params.to_dict() == {"facet": ["true"], "facet.missing": ["false"]}

    def test_add_if_absent(self):
        params = BackendParams()
        params.set("qf", "a", "b")
        params.add_if_absent("qf", "b", "c")

        assert params.get_all("qf") == ["a", "b", "c"]

    def test_equality(self):
        first, second = BackendParams(), BackendParams()
        first.set("q", "x")
        second.set("q", "x")

        assert first == second
        assert "q" in first


class TestCreateRequest:
    """Test the validating request factory."""

    def test_phrase_and_query_are_exclusive(self):
        with pytest.raises(QueryError):
            create_request(phrase="foo", query="bar")

    def test_negative_paging(self):
        with pytest.raises(QueryError, match="start"):
            create_request(start=-1)
        with pytest.raises(QueryError, match="rows"):
            create_request(rows=-5)

    def test_missing_paging_uses_defaults(self):
        request = create_request(phrase="foo", start=None, rows=None)

        assert request.start == 0
        assert request.rows == 10

    def test_lists_become_tuples(self):
        request = create_request(phrase="foo", search_fields=["a"], facets=["f"])

        assert request.search_fields == ("a",)
        assert request.facets == ("f",)
        assert request.phrase == "foo"
        assert request.query is None

    def test_operator_from_string(self):
        assert create_request(operator="or").operator.value == "OR"


class TestQueryResolution:
    """Test the query and query fields of assembled parameters."""

    def test_plain_phrase(self, assembler):
        params = assembler.assemble(create_request(phrase="foo", search_fields=["title-search"]))

        assert list(params) == [
            ("q", "foo"),
            ("qf", "title-search^3"),
            ("qf", "title-search-stemmed"),
            ("defType", "edismax"),
            ("uf", "* _query_"),
            ("q.op", "AND"),
            ("spellcheck", "true"),
            ("spellcheck.q", "foo"),
            ("start", "0"),
            ("rows", "10"),
            ("facet.excludeTerms", ""),
        ]

    def test_exact_phrase_uses_exact_fields(self, assembler):
        params = assembler.assemble(
            create_request(phrase='"foo"', search_fields=["title-search"])
        )

        assert params.get_all("qf") == [
            "title-search-exact",
            "title-search-exact-no-punctuation",
        ]
        assert "spellcheck" not in params

    def test_mixed_phrase_uses_all_variants(self, assembler):
        params = assembler.assemble(
            create_request(phrase='foo "bar"', search_fields=["title-search"])
        )

        assert params.get_all("qf") == [
            "title-search^3",
            "title-search-exact",
            "title-search-exact-no-punctuation",
            "title-search-stemmed",
        ]
        assert params.get("spellcheck.q") == "foo"

    def test_match_all(self, assembler):
        params = assembler.assemble(create_request(search_fields=["repository-search"]))

        assert params.get("q") == "*:*"
        assert params.get_all("qf") == ["repository-search", "repository-search-stemmed"]
        assert "spellcheck" not in params

    def test_raw_query_is_verbatim(self, assembler):
        params = assembler.assemble(
            create_request(query="title-search:(a b)", search_fields=["title-search"])
        )

        assert params.get("q") == "title-search:(a b)"
        assert params.get_all("qf") == ["title-search"]

    def test_phrase_is_escaped(self, assembler):
        params = assembler.assemble(create_request(phrase="a+b"))

        assert params.get("q") == r"a\+b"

    def test_default_search_fields(self, assembler):
        params = assembler.assemble(create_request(phrase="foo"))

        assert params.get_all("qf") == [
            "title-search^3",
            "repository-search",
            "title-search-stemmed",
            "repository-search-stemmed",
        ]

    def test_spellcheck_disabled(self, assembler):
        params = assembler.assemble(create_request(phrase="foo", spellcheck=False))

        assert "spellcheck" not in params
        assert "spellcheck.q" not in params

    def test_display_fields(self, assembler):
        params = assembler.assemble(create_request(display_fields=["id", "title-display"]))

        assert params.get_all("fl") == ["id", "title-display"]


class TestPagingAndSort:
    """Test paging, sort and operator parameters."""

    def test_paging(self, assembler):
        params = assembler.assemble(create_request(start=20, rows=5))

        assert params.get("start") == "20"
        assert params.get("rows") == "5"

    def test_recognized_sort(self, assembler):
        params = assembler.assemble(create_request(sort="publish-year-sort desc"))

        assert params.get("sort") == "publish-year-sort desc"

    def test_unrecognized_sort_is_omitted(self, assembler):
        params = assembler.assemble(create_request(sort="title asc"))

        assert "sort" not in params

    def test_operator(self, assembler):
        params = assembler.assemble(create_request(operator="OR"))

        assert params.get("q.op") == "OR"


class TestFiltersFacetsStats:
    """Test filter queries and their exclusion tags."""

    def test_filters(self, assembler):
        request = create_request(
            filters={
                'settlement-facet:("Berlin")': "settlement-facet",
                "type-facet:x": "",
            }
        )
        params = assembler.assemble(request)

        assert params.get_all("fq") == [
            '{!tag=solr_fq_settlement-facet}settlement-facet:("Berlin")',
            "type-facet:x",
        ]

    def test_facets(self, assembler):
        params = assembler.assemble(create_request(facets=["settlement-facet"]))

        assert params.get("facet") == "true"
        assert params.get("facet.limit") == "-1"
        assert params.get("facet.method") == "enum"
        assert params.get("facet.mincount") == "1"
        assert params.get("facet.missing") == "true"
        assert params.get("facet.sort") == "count"
        assert params.get_all("facet.field") == [
            "{!ex=solr_fq_settlement-facet}settlement-facet"
        ]

    def test_facet_options(self, assembler):
        params = assembler.assemble(
            create_request(
                facets=["a"],
                facet_min_count=0,
                facet_missing=False,
                facet_terms_excluded=["x", "y"],
            )
        )

        assert params.get("facet.mincount") == "0"
        assert params.get("facet.missing") == "false"
        assert params.get("facet.excludeTerms") == "x y"

    def test_no_facets(self, assembler):
        params = assembler.assemble(create_request())

        assert "facet" not in params
        assert params.get("facet.excludeTerms") == ""

    def test_stats(self, assembler):
        params = assembler.assemble(
            create_request(stats=["orig-date-from-facet", "leaves-count-facet"])
        )

        assert params.get("stats") == "true"
        assert params.get_all("stats.field") == [
            "{!ex=solr_fq_orig-date-facet min=true max=true count=true missing=true}"
            "orig-date-from-facet",
            "{!ex=solr_fq_leaves-count-facet min=true max=true count=true missing=true}"
            "leaves-count-facet",
        ]


class TestHighlighting:
    """Test highlight parameters."""

    def test_no_highlighting_by_default(self, assembler):
        params = assembler.assemble(create_request(phrase="foo"))

        assert "hl" not in params

    def test_highlighting(self, assembler):
        params = assembler.assemble(
            create_request(
                phrase="foo",
                search_fields=["title-search", "group-id-search"],
                highlight=True,
            )
        )

        assert params.get("hl") == "on"
        assert params.get("hl.q") == "foo"
        assert params.get_all("hl.fl") == ["title-search", "title-search-stemmed"]
        assert params.get("hl.qparser") == "edismax"
        assert params.get("hl.highlightMultiTerm") == "true"
        assert params.get("hl.snippets") == "10"
        assert params.get("hl.maxAnalyzedChars") == "2147483646"
        assert params.get("hl.mergeContiguous") == "true"
        assert params.get("hl.simple.pre") == "<em>"
        assert params.get("hl.simple.post") == "</em>"
        assert params.get("hl.requireFieldMatch") == "true"

    def test_group_field_is_never_highlighted(self, assembler):
        params = assembler.assemble(
            create_request(phrase="x", search_fields=["group-id-search"], highlight=True)
        )

        assert params.get_all("hl.fl") == []

    def test_highlight_fields_are_query_fields(self, assembler):
        params = assembler.assemble(
            create_request(
                phrase="foo",
                search_fields=["title-search"],
                highlight=True,
                highlight_fields=["repository-search"],
            )
        )

        qf = params.get_all("qf")
        assert "repository-search" in qf
        assert "repository-search-stemmed" in qf
        assert qf.count("title-search-stemmed") == 1

    def test_highlight_phrase(self, assembler):
        params = assembler.assemble(
            create_request(
                query="group-id-search:(g1)",
                highlight=True,
                highlight_phrase='"bar"',
                highlight_fields=["title-search"],
            )
        )

        assert params.get("q") == "group-id-search:(g1)"
        assert params.get("hl.q").startswith('_query_:"{!complexphrase')
        assert params.get_all("hl.fl") == [
            "title-search-exact",
            "title-search-exact-no-punctuation",
        ]

    def test_snippet_count_and_tag(self, resolver):
        assembler = ParamsAssembler(resolver, HighlightConfig(tag_name="mark", snippet_count=3))
        params = assembler.assemble(create_request(phrase="x", highlight=True))

        assert params.get("hl.snippets") == "3"
        assert params.get("hl.simple.pre") == "<mark>"

        params = assembler.assemble(create_request(phrase="x", highlight=True, snippet_count=7))
        assert params.get("hl.snippets") == "7"


class TestGrouping:
    """Test grouping and collapsing."""

    def test_grouping(self, assembler):
        params = assembler.assemble(create_request(grouping=True))

        assert params.get("group") == "true"
        assert params.get("group.field") == "group-id-search"
        assert params.get("group.limit") == "100"
        assert params.get("group.ngroups") == "true"
        assert "{!collapse field=group-id-search}" not in params.get_all("fq")

    def test_collapse(self, assembler):
        params = assembler.assemble(create_request(collapse=True))

        assert params.get_all("fq") == ["{!collapse field=group-id-search}"]
        assert "group" not in params

    def test_grouping_and_collapse(self, assembler):
        params = assembler.assemble(create_request(grouping=True, collapse=True))

        assert params.get("group") == "true"
        assert "{!collapse field=group-id-search}" in params.get_all("fq")


class TestAssemble:
    """Test whole-request properties."""

    def test_idempotent(self, assembler):
        request = create_request(
            phrase='Herzog "August*" Bibliothek',
            filters={"settlement-facet:x": "settlement-facet"},
            facets=["settlement-facet"],
            stats=["orig-date-from-facet"],
            highlight=True,
            grouping=True,
        )

        first = assembler.assemble(request)
        second = assembler.assemble(request)

        assert first == second
        assert list(first) == list(second)

    def test_grouped_phrase_search(self, assembler):
        params = assembler.assemble(
            create_request(
                phrase="Herzog August Bibliothek",
                search_fields=["repository-search"],
                grouping=True,
                facets=["settlement-facet"],
            )
        )

        assert params.get("q") == "Herzog August Bibliothek"
        assert params.get("q.op") == "AND"
        assert params.get_all("qf") == ["repository-search", "repository-search-stemmed"]
        assert params.get("spellcheck.q") == "Herzog August Bibliothek"
        assert params.get("group") == "true"
        assert params.get_all("facet.field") == [
            "{!ex=solr_fq_settlement-facet}settlement-facet"
        ]
