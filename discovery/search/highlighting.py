"""Highlight fragment merging and snippet generation.

The backend wraps matched text in a marker tag (``<em>`` by default).
Two highlighting passes over the same text, or adjacent matches within
one pass, yield fragments that have to be reconciled into one. Offsets
are computed on the text with the marker tags left out, so the same
plain text produces comparable intervals no matter how it was tagged.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import lru_cache

DIVIDER_PATTERN = re.compile(r"[\s,.;\t\n()]+")


@dataclass
class Interval:
    """A highlighted span ``[start, end)`` within a string."""

    start: int
    end: int


def opening_tag(tag_name: str) -> str:
    return f"<{tag_name}>"


def closing_tag(tag_name: str) -> str:
    return f"</{tag_name}>"


def wrap_with_tag(text: str, tag_name: str) -> str:
    return f"{opening_tag(tag_name)}{text}{closing_tag(tag_name)}"


@lru_cache(maxsize=16)
def _tag_pattern(tag_name: str) -> re.Pattern[str]:
    tag = re.escape(tag_name)
    return re.compile(f"<{tag}>(.*?)</{tag}>")


def gather_highlight_positions(
    highlighted: str, tag_name: str, ignore_tags: bool = True
) -> list[Interval]:
    """Find the spans wrapped in ``tag_name``.

    Args:
        highlighted: Text containing marker tags
        tag_name: Name of the marker tag
        ignore_tags: Compute offsets as if no marker tags were present;
            otherwise the spans include the tags themselves

    Returns:
        One interval per tagged span, in text order
    """
    total_tag_size = len(opening_tag(tag_name)) + len(closing_tag(tag_name))
    result = []
    for count, match in enumerate(_tag_pattern(tag_name).finditer(highlighted)):
        if ignore_tags:
            start = match.start() - count * total_tag_size
            end = match.end() - (count + 1) * total_tag_size
        else:
            start, end = match.start(), match.end()
        result.append(Interval(start, end))
    return result


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Merge overlapping or touching intervals.

    A gap of a single character (e.g. the space between two words) still
    counts as touching: ``[0, 5]`` and ``[6, 10]`` give ``[0, 10]``, while
    ``[0, 5]`` and ``[7, 10]`` stay apart.
    """
    ordered = sorted((Interval(i.start, i.end) for i in intervals), key=lambda i: i.start)
    if not ordered:
        return []

    stack = [ordered[0]]
    for current in ordered[1:]:
        top = stack[-1]
        if top.end + 1 < current.start:
            stack.append(current)
        elif top.end < current.end:
            top.end = current.end
    return stack


def remove_highlighting(highlighted: str, tag_name: str) -> str:
    return _tag_pattern(tag_name).sub(lambda m: m.group(1), highlighted)


def add_highlighting(text: str, tag_name: str, intervals: Sequence[Interval]) -> str:
    """Wrap each interval of a plain text in marker tags."""
    result = text
    offset = 0
    for interval in intervals:
        start, end = interval.start + offset, interval.end + offset
        highlighted = wrap_with_tag(result[start:end], tag_name)
        result = result[:start] + highlighted + result[end:]
        offset += len(highlighted) - (end - start)
    return result


def merge_contiguous(highlighted: str, tag_name: str = "em") -> str:
    """Join tagged spans separated by at most one character.

    Example:
        >>> merge_contiguous("<em>foo</em> <em>bar</em>")
        '<em>foo bar</em>'
    """
    intervals = merge_intervals(gather_highlight_positions(highlighted, tag_name))
    return add_highlighting(remove_highlighting(highlighted, tag_name), tag_name, intervals)


def merge_two(highlighted: str, other: str, tag_name: str = "em") -> str:
    """Merge two highlighted variants of the same plain text."""
    intervals = merge_intervals(
        gather_highlight_positions(highlighted, tag_name)
        + gather_highlight_positions(other, tag_name)
    )
    return add_highlighting(remove_highlighting(highlighted, tag_name), tag_name, intervals)


def merge_list(
    highlights: Sequence[str] | None,
    other: Sequence[str] | None,
    tag_name: str = "em",
) -> list[str]:
    """Merge two lists of highlighted strings keyed by their plain text.

    Items whose plain text occurs in both lists are merged with
    :func:`merge_two`; all other items pass through. Items of the first
    list come first, followed by items found only in the second list.
    """
    first = _remove_duplicates(highlights)
    second = _remove_duplicates(other)
    if not first or not second:
        return first or second

    second_by_text: dict[str, str] = {}
    for item in second:
        second_by_text.setdefault(remove_highlighting(item, tag_name), item)

    result = []
    first_texts = set()
    for item in first:
        text = remove_highlighting(item, tag_name)
        first_texts.add(text)
        match = second_by_text.get(text)
        result.append(merge_two(item, match, tag_name) if match is not None else item)

    for item in second:
        if remove_highlighting(item, tag_name) not in first_texts:
            result.append(item)
    return result


def _remove_duplicates(items: Sequence[str] | None) -> list[str]:
    return list(dict.fromkeys(items)) if items else []


class SnippetGenerator:
    """Cuts highlighted text down to padded fragments around each match."""

    def __init__(self, tag_name: str = "em", padding: int = 30):
        """Initialize generator.

        Args:
            tag_name: Name of the marker tag
            padding: Characters of context kept on each side of a match;
                the window is shrunk to whole words
        """
        self.tag_name = tag_name
        self.padding = padding

    def fragment(self, highlighted: str) -> list[str]:
        """Get one fragment per (merged) padded match window."""
        intervals = [
            self._pad(highlighted, interval)
            for interval in gather_highlight_positions(
                highlighted, self.tag_name, ignore_tags=False
            )
        ]
        return [highlighted[i.start : i.end] for i in merge_intervals(intervals)]

    def _pad(self, text: str, interval: Interval) -> Interval:
        left = left_boundary(text, max(0, interval.start - self.padding), interval.start)
        right = right_boundary(text, interval.end, interval.end + self.padding)
        return Interval(left, right)


def left_boundary(text: str, start: int, end: int) -> int:
    """Get the start of the leftmost whole word within ``[start, end)``."""
    if start == 0:
        return 0
    end = min(len(text), end)
    match = DIVIDER_PATTERN.search(text, start, end)
    if match and match.end() < end:
        return match.end()
    return end


def right_boundary(text: str, start: int, end: int) -> int:
    """Get the end of the rightmost whole word within ``[start, end)``."""
    if end >= len(text):
        return len(text)
    result = end
    for match in DIVIDER_PATTERN.finditer(text, start, end):
        result = match.start()
    return result
