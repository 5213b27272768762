"""Unit tests for heading anchors, lazy images and math typesetting.

Usage
-----
Run ``pytest tests/test_postprocess.py -v``.

Examples
--------
- ``test_duplicate_headings_get_suffixes`` checks ``intro``, ``intro-2`` and
  ``intro-3`` for three headings with the same text.
- ``test_typesetter_failure_is_local`` asserts a broken formula only affects
  its own placeholder.
"""

from __future__ import annotations

import pytest
from bs4 import BeautifulSoup

from df12_posts.postprocess import (
    AnchorRegistry,
    MathJaxTypesetter,
    inject_heading_anchors,
    lazy_load_images,
    slugify,
    typeset_math,
)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Hello, World!", "hello-world"),
        ("  snake_case and  spaces ", "snake-case-and-spaces"),
        ("Ünïcödé Überschrift", "ünïcödé-überschrift"),
        ("!!!", "section"),
    ],
)
def test_slugify(text: str, expected: str) -> None:
    """Slugs are lowercase and hyphen separated."""
    assert slugify(text) == expected


def test_duplicate_headings_get_suffixes() -> None:
    """Repeated heading text gets numbered suffixes in document order."""
    fragment = _soup("<h1>Intro</h1><h2>Intro</h2><h1>Intro</h1>")

    slugs = inject_heading_anchors(fragment)

    assert slugs == ["intro", "intro-2", "intro-3"]
    assert [heading["id"] for heading in fragment.find_all(["h1", "h2"])] == slugs


def test_explicit_ids_are_kept_and_reserved() -> None:
    """An existing id is kept and generated slugs avoid it."""
    fragment = _soup('<h2 id="intro">Custom</h2><h2>Intro</h2>')

    assert inject_heading_anchors(fragment) == ["intro", "intro-2"]


def test_generated_slug_skips_taken_suffix() -> None:
    """A suffix already used by an explicit id is skipped."""
    registry = AnchorRegistry()
    registry.reserve("setup-2")

    assert [registry.claim("Setup"), registry.claim("Setup")] == ["setup", "setup-3"]


def test_anchor_link_is_appended() -> None:
    """Each heading ends with a link to itself."""
    fragment = _soup("<h3>Usage</h3>")

    inject_heading_anchors(fragment)

    assert str(fragment) == (
        '<h3 id="usage">Usage<a class="anchor" href="#usage">'
        '<span class="anchor-icon" data-pagefind-ignore="true">#</span></a></h3>'
    )


def test_images_are_deferred() -> None:
    """Images gain lazy loading, async decoding and an alt attribute."""
    fragment = _soup('<img src="a.png"/>')

    assert lazy_load_images(fragment) == 1

    image = fragment.img
    assert image is not None
    assert image["loading"] == "lazy"
    assert image["decoding"] == "async"
    assert image["alt"] == ""


@pytest.mark.parametrize(
    "html",
    [
        '<img src="a.png" loading="eager" alt="x"/>',
        '<img src="a.png" data-no-lazy alt="x"/>',
        '<img src="a.png" class="hero no-lazy" alt="x"/>',
    ],
)
def test_opted_out_images_are_untouched(html: str) -> None:
    """Explicit opt-outs keep the image eager."""
    fragment = _soup(html)

    assert lazy_load_images(fragment) == 0
    assert str(fragment) == html.replace("data-no-lazy ", 'data-no-lazy="" ')


def test_mathjax_delimiters() -> None:
    """Inline and display formulas use the matching MathJax delimiters."""
    fragment = _soup(
        '<span class="math math-inline" data-formula="a &lt; b"></span>'
        '<div class="math math-display" data-formula="x^2"></div>'
    )

    assert typeset_math(fragment, MathJaxTypesetter()) == []

    assert fragment.span is not None
    assert fragment.span.get_text() == "\\(a < b\\)"
    assert fragment.div is not None
    assert fragment.div.get_text() == "\\[x^2\\]"


class PickyTypesetter:
    """Reject any formula containing ``bad``."""

    def typeset(self, formula: str, *, display: bool) -> str:
        if "bad" in formula:
            msg = "unsupported command"
            raise ValueError(msg)
        return f"<em>{formula}</em>"


def test_typesetter_failure_is_local() -> None:
    """A formula that fails shows its source; the others still render."""
    fragment = _soup(
        '<span class="math math-inline" data-formula="\\bad"></span>'
        '<span class="math math-inline" data-formula="ok"></span>'
    )

    warnings = typeset_math(fragment, PickyTypesetter())

    assert len(warnings) == 1
    assert "unsupported command" in warnings[0]
    spans = fragment.select("span.math")
    assert str(spans[0].code) == '<code class="math-error">\\bad</code>'
    assert str(spans[1].em) == "<em>ok</em>"
