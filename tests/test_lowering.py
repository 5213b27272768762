"""Unit tests for lowering the markdown tree into an HTML fragment.

Usage
-----
Run ``pytest tests/test_lowering.py -v``.

Examples
--------
- ``test_code_block_lines_are_marked`` checks every source line becomes a
  ``span.line`` carrying its 1-based number.
- ``test_unparsed_fence_is_rejected`` asserts a tree that skipped directive
  parsing fails loudly.
"""

from __future__ import annotations

import msgspec.json as msgspec_json
import pytest

from df12_posts.errors import TreeShapeError
from df12_posts.lowering import HtmlContentRenderer, lower_document
from df12_posts.parser import parse_directives, parse_markdown
from df12_posts.sections import group_sections
from df12_posts.tree import Document, LeafFence, Paragraph, Text


def _lower(source: str) -> str:
    document = parse_directives(parse_markdown(source))
    assert isinstance(document, Document)
    return str(lower_document(document, HtmlContentRenderer()))


@pytest.fixture
def renderer() -> HtmlContentRenderer:
    """Return a fresh renderer for each test."""
    return HtmlContentRenderer()


def test_paragraph_inline_markdown() -> None:
    """Inline markdown inside paragraphs is rendered."""
    assert _lower("Hi *there* [link](https://example.com)") == (
        '<p>Hi <em>there</em> <a href="https://example.com">link</a></p>'
    )


def test_explicit_heading_id(renderer: HtmlContentRenderer) -> None:
    """A trailing ``{#id}`` sets the heading id and is removed from the text."""
    fragment = lower_document(parse_markdown("## Setup {#install}\n"), renderer)

    heading = fragment.find("h2")
    assert heading is not None
    assert heading["id"] == "install"
    assert heading.get_text() == "Setup"


def test_sections_carry_depth(renderer: HtmlContentRenderer) -> None:
    """Grouped sections lower to ``section`` elements with their depth."""
    document = group_sections(parse_markdown("# A\n\n## B\n"))

    fragment = lower_document(document, renderer)

    outer = fragment.find("section")
    assert outer is not None
    assert outer["data-depth"] == "1"
    inner = outer.find("section")
    assert inner is not None
    assert inner["data-depth"] == "2"


def test_code_block_lines_are_marked(renderer: HtmlContentRenderer) -> None:
    """Highlighted code keeps one numbered span per source line."""
    fragment = lower_document(
        parse_markdown('```python title="x.py"\nx = 1\ny = 2\n```\n'), renderer
    )

    block = fragment.select_one("div.codehilite")
    assert block is not None
    assert block["data-language"] == "python"
    assert block["data-meta"] == 'title="x.py"'
    lines = block.select("span.line")
    assert [line["data-line"] for line in lines] == ["1", "2"]
    assert [line.get_text().rstrip("\n") for line in lines] == ["x = 1", "y = 2"]


def test_unknown_language_falls_back_to_text(renderer: HtmlContentRenderer) -> None:
    """An unknown language still renders the code verbatim."""
    fragment = lower_document(parse_markdown("```nosuchlang\n<tag>\n```\n"), renderer)

    block = fragment.select_one("div.codehilite")
    assert block is not None
    assert block.get_text().strip() == "<tag>"


def test_container_directive_placeholder() -> None:
    """Container directives become placeholders with their label first."""
    html = _lower(":::note[Heads *up*]{.wide}\nBody\n:::\n")

    assert 'data-directive="note"' in html
    assert 'data-directive-kind="container"' in html
    assert '<p data-directive-label="true">Heads <em>up</em></p><p>Body</p>' in html


def test_directive_payload_is_json(renderer: HtmlContentRenderer) -> None:
    """Arguments and attributes are stored as JSON on the placeholder."""
    document = parse_directives(parse_markdown('::github{repo="psf/requests"}\n'))

    fragment = lower_document(document, renderer)

    placeholder = fragment.find(attrs={"data-directive": "github"})
    assert placeholder is not None
    assert msgspec_json.decode(placeholder["data-directive-args"]) == []
    assert msgspec_json.decode(placeholder["data-directive-attrs"]) == {
        "repo": "psf/requests"
    }


def test_inline_math_and_directive_placeholders() -> None:
    """Inline formulas and directives are swapped back into the paragraph."""
    html = _lower("Mass $E=mc^2$ and :kbd[Ctrl]{.key} here")

    assert '<span class="math math-inline" data-formula="E=mc^2"></span>' in html
    assert 'data-directive="kbd"' in html
    assert ">Ctrl</span>" in html
    assert html.startswith("<p>Mass ")
    assert html.endswith(" here</p>")


def test_display_math_placeholder() -> None:
    """Display formulas become ``div.math-display`` placeholders."""
    html = _lower("$$\nx^2\n$$\n")

    assert html == '<div class="math math-display" data-formula="x^2"></div>'


def test_block_markers_in_text_stay_literal(renderer: HtmlContentRenderer) -> None:
    """Text that looks like block syntax is not re-parsed as a block."""
    document = Document(children=(Paragraph(children=(Text(value="# not a heading"),)),))

    assert str(lower_document(document, renderer)) == "<p># not a heading</p>"


def test_unparsed_fence_is_rejected(renderer: HtmlContentRenderer) -> None:
    """Directive fences must be parsed before lowering."""
    with pytest.raises(TreeShapeError):
        lower_document(Document(children=(LeafFence(info="note"),)), renderer)


def test_stylesheet_targets_codehilite(renderer: HtmlContentRenderer) -> None:
    """The pygments stylesheet is scoped to highlighted blocks."""
    assert ".codehilite" in renderer.stylesheet


def test_reference_links_resolve_across_blocks() -> None:
    """A definition in a later block resolves the reference and leaves no trace."""
    html = _lower("See [the docs][docs] for more.\n\n[docs]: https://example.com\n")

    assert html == '<p>See <a href="https://example.com">the docs</a> for more.</p>'


def test_reference_definitions_resolve_inside_containers() -> None:
    """Definitions inside a directive serve links elsewhere in the document."""
    html = _lower(
        "Read [the guide][Guide].\n\n:::note\n[guide]: /guide \"Guide\"\n:::\n"
    )

    assert html.startswith(
        '<p>Read <a href="/guide" title="Guide">the guide</a>.</p>'
    )
    assert "<p></p>" not in html


def test_footnotes_are_listed_in_order_of_use() -> None:
    """Footnote references are numbered and their bodies move to the end."""
    html = _lower(
        "First[^b] and second[^a], again[^b].\n\n"
        "[^a]: Alpha *note*.\n\n"
        "[^b]: Beta note.\n\n"
        "[^unused]: Never cited.\n"
    )

    assert html == (
        "<p>First"
        '<sup class="footnote-ref" id="fnref-b"><a href="#fn-b">1</a></sup>'
        " and second"
        '<sup class="footnote-ref" id="fnref-a"><a href="#fn-a">2</a></sup>'
        ", again"
        '<sup class="footnote-ref" id="fnref-b-2"><a href="#fn-b">1</a></sup>'
        ".</p>"
        '<section class="footnotes"><hr/><ol>'
        '<li id="fn-b"><p>Beta note. '
        '<a href="#fnref-b" class="footnote-backref">↩</a></p></li>'
        '<li id="fn-a"><p>Alpha <em>note</em>. '
        '<a href="#fnref-a" class="footnote-backref">↩</a></p></li>'
        "</ol></section>"
    )


@pytest.mark.parametrize(
    "source",
    [
        "Literal `[^1]` here.\n\n[^1]: Body.\n",
        "No definition[^missing] here.\n",
    ],
)
def test_footnote_syntax_without_citation_stays_literal(source: str) -> None:
    """Code spans and unknown labels are not turned into footnotes."""
    html = _lower(source)

    assert "footnote" not in html
    assert "[^" in html
