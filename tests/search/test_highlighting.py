"""Tests for highlight fragment merging."""

from discovery.search.highlighting import (
    Interval,
    SnippetGenerator,
    add_highlighting,
    gather_highlight_positions,
    left_boundary,
    merge_contiguous,
    merge_intervals,
    merge_list,
    merge_two,
    remove_highlighting,
    right_boundary,
)


class TestIntervals:
    """Test interval merging."""

    def test_gap_of_one_is_contiguous(self):
        assert merge_intervals([Interval(0, 5), Interval(6, 10)]) == [Interval(0, 10)]

    def test_gap_of_two_is_separate(self):
        assert merge_intervals([Interval(0, 5), Interval(7, 10)]) == [
            Interval(0, 5),
            Interval(7, 10),
        ]

    def test_overlapping_and_nested(self):
        intervals = [Interval(4, 8), Interval(0, 10), Interval(2, 3)]

        assert merge_intervals(intervals) == [Interval(0, 10)]

    def test_input_is_not_modified(self):
        intervals = [Interval(0, 5), Interval(6, 10)]
        merge_intervals(intervals)

        assert intervals == [Interval(0, 5), Interval(6, 10)]

    def test_empty(self):
        assert merge_intervals([]) == []


class TestPositions:
    """Test finding highlighted spans."""

    def test_positions_without_tags(self):
        positions = gather_highlight_positions("a <em>bc</em> <em>d</em>", "em")

        assert positions == [Interval(2, 4), Interval(5, 6)]

    def test_positions_with_tags(self):
        positions = gather_highlight_positions("a <em>bc</em>", "em", ignore_tags=False)

        assert positions == [Interval(2, 13)]

    def test_remove_and_add(self):
        highlighted = "a <em>bc</em> d"
        plain = remove_highlighting(highlighted, "em")

        assert plain == "a bc d"
        assert add_highlighting(plain, "em", [Interval(2, 4)]) == highlighted


class TestMergeContiguous:
    """Test joining adjacent highlighted spans."""

    def test_adjacent_spans(self):
        assert merge_contiguous("<em>foo</em><em>bar</em>", "em") == "<em>foobar</em>"

    def test_spans_separated_by_space(self):
        assert merge_contiguous("<em>foo</em> <em>bar</em>") == "<em>foo bar</em>"

    def test_distant_spans(self):
        text = "<em>foo</em> and <em>bar</em>"

        assert merge_contiguous(text) == text

    def test_custom_tag(self):
        assert merge_contiguous("<mark>a</mark> <mark>b</mark>", "mark") == "<mark>a b</mark>"

    def test_other_tags_are_ignored(self):
        assert merge_contiguous("<b>a</b> <em>b</em>") == "<b>a</b> <em>b</em>"


class TestMergeTwo:
    """Test merging two highlighted variants of one text."""

    def test_union_of_spans(self):
        merged = merge_two("<em>foo</em> bar baz", "foo bar <em>baz</em>")

        assert merged == "<em>foo</em> bar <em>baz</em>"

    def test_touching_spans(self):
        assert merge_two("<em>A</em> B", "A <em>B</em>") == "<em>A B</em>"


class TestMergeList:
    """Test merging lists of highlighted strings keyed by plain text."""

    def test_same_plain_text(self):
        assert merge_list(["<em>A</em> B"], ["A <em>B</em>"]) == ["<em>A B</em>"]

    def test_keyed_not_zipped(self):
        merged = merge_list(["<em>x</em> y", "p <em>q</em>"], ["<em>p</em> q"])

        assert merged == ["<em>x</em> y", "<em>p q</em>"]

    def test_items_only_in_second_list(self):
        assert merge_list(["<em>a</em>"], ["<em>b</em>"]) == ["<em>a</em>", "<em>b</em>"]

    def test_empty_lists(self):
        assert merge_list([], ["x"]) == ["x"]
        assert merge_list(["x"], None) == ["x"]
        assert merge_list(None, None) == []

    def test_duplicates_are_removed(self):
        assert merge_list(["a", "a"], []) == ["a"]


class TestSnippets:
    """Test padded fragment generation."""

    def test_window_is_snapped_to_words(self):
        snippets = SnippetGenerator("em", padding=5)

        assert snippets.fragment("aaa bbb <em>ccc</em> ddd eee") == ["bbb <em>ccc</em> ddd"]

    def test_window_reaching_the_ends(self):
        snippets = SnippetGenerator("em", padding=8)
        text = "aaa bbb <em>ccc</em> ddd eee"

        assert snippets.fragment(text) == [text]

    def test_distant_matches(self):
        snippets = SnippetGenerator("em", padding=2)
        text = "<em>a</em> " + "x " * 30 + "<em>b</em>"

        assert snippets.fragment(text) == ["<em>a</em>", "<em>b</em>"]

    def test_no_matches(self):
        assert SnippetGenerator().fragment("plain text") == []

    def test_boundaries(self):
        text = "one two three"

        assert left_boundary(text, 0, 5) == 0
        assert left_boundary(text, 1, 8) == 4
        assert right_boundary(text, 0, 20) == len(text)
        assert right_boundary(text, 0, 9) == 7
