"""Unit tests for reading time, word counts and excerpts.

These tests drive ``compute_metadata`` and its helpers with small parsed
documents. They pin the rounding of reading time, the handling of CJK text,
the excerpt marker and the character budget.

Usage
-----
Run ``pytest tests/test_metadata.py -v``.

Examples
--------
- ``test_reading_time_rounds_up`` checks 400 words read in two minutes and
  401 words in three.
- ``test_excerpt_stops_at_marker`` asserts prose after ``<!-- more -->`` is
  excluded.
"""

from __future__ import annotations

import pytest

from df12_posts.metadata import (
    compute_metadata,
    count_text_words,
    count_words,
    estimate_reading_time,
    extract_excerpt,
)
from df12_posts.parser import parse_directives, parse_markdown
from df12_posts.tree import Document


@pytest.mark.parametrize(
    ("words", "minutes"),
    [(0, 0), (1, 1), (200, 1), (201, 2), (400, 2), (401, 3)],
)
def test_reading_time_rounds_up(words: int, minutes: int) -> None:
    """Reading time is the word count over 200 words per minute, rounded up."""
    document = parse_markdown(" ".join(["word"] * words))

    metadata = compute_metadata(document)

    assert metadata.word_count == words
    assert metadata.reading_time_minutes == minutes


def test_reading_time_respects_rate() -> None:
    """A custom rate changes the estimate."""
    assert estimate_reading_time(400, words_per_minute=100) == 4


def test_reading_time_is_monotonic() -> None:
    """More words never read faster."""
    estimates = [estimate_reading_time(count) for count in range(0, 1200, 7)]

    assert estimates == sorted(estimates)


def test_empty_document_is_total() -> None:
    """An empty document yields zeroes and an empty excerpt."""
    metadata = compute_metadata(Document())

    assert metadata.word_count == 0
    assert metadata.reading_time_minutes == 0
    assert metadata.excerpt == ""


def test_markup_does_not_inflate_counts() -> None:
    """Emphasis markers and link targets are not counted as words."""
    document = parse_markdown("Read *the* [docs](https://example.com/very/long) now")

    assert count_words(document) == 4


def test_cjk_characters_count_individually() -> None:
    """Each ideograph counts as one word next to whitespace-separated words."""
    assert count_text_words("日本語 text") == 4


def test_code_and_math_are_not_prose() -> None:
    """Code blocks and formulas do not add to the word count."""
    source = "One two\n\n```python\nprint('not counted')\n```\n\n$$\nx + y\n$$\n"
    document = parse_directives(parse_markdown(source))

    assert count_words(document) == 2


def test_excerpt_stops_at_marker() -> None:
    """Prose after the excerpt marker is excluded."""
    source = "First para.\n\nSecond para.\n\n<!-- more -->\n\nThird para.\n"

    excerpt = extract_excerpt(parse_markdown(source))

    assert excerpt == "First para. Second para."


def test_excerpt_skips_headings_and_code() -> None:
    """Only paragraphs, quotes and lists contribute to the excerpt."""
    source = "# Title\n\n```\ncode\n```\n\nBody *text*.\n"

    assert extract_excerpt(parse_markdown(source)) == "Body text."


def test_excerpt_respects_budget() -> None:
    """The excerpt is cut at the character budget."""
    source = "First para.\n\nSecond para.\n"

    assert extract_excerpt(parse_markdown(source), budget=10) == "First para"


def test_excerpt_budget_zero() -> None:
    """A zero budget disables the excerpt."""
    assert extract_excerpt(parse_markdown("Some text"), budget=0) == ""


def test_table_cells_are_counted() -> None:
    """Pipe table cells count as words and read in at least a minute."""
    source = "| Name | Role |\n|---|---|\n| Alice Smith | Lead engineer |\n"

    metadata = compute_metadata(parse_markdown(source))

    assert metadata.word_count == 6
    assert metadata.reading_time_minutes == 1


def test_html_blocks_are_counted_without_markup() -> None:
    """Text inside HTML blocks counts; tags, scripts and comments do not."""
    source = (
        "<div class=\"aside\">\n<p>Two words</p><p>and three more</p>\n</div>\n\n"
        "<script>\nlet ignored = true;\n</script>\n\n"
        "<!-- not counted either -->\n"
    )

    assert count_words(parse_markdown(source)) == 5


def test_excerpt_marker_is_not_counted() -> None:
    """The excerpt marker comment adds no words."""
    source = "One two.\n\n<!-- more -->\n\nThree.\n"

    assert compute_metadata(parse_markdown(source)).word_count == 3


def test_references_and_footnotes_read_as_prose() -> None:
    """Reference links read as their text and footnote markers vanish."""
    source = (
        "See [the docs][docs].[^1]\n\n"
        "[docs]: https://example.com/a/long/path\n\n"
        "[^1]: A short note.\n"
    )

    metadata = compute_metadata(parse_markdown(source))

    assert metadata.excerpt == "See the docs."
    assert metadata.word_count == 6
