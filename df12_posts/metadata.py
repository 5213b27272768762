r"""Derive reading time, word count and excerpt from a parsed document.

Every function here is pure and total: empty documents yield a zero word
count, a zero reading time and an empty excerpt. The results travel next to
the tree as a :class:`DocumentMetadata` record and are never written into it.

Text leaves and raw blocks (pipe tables, HTML) hold markdown source, so they
are reduced to plain text with Python-Markdown and BeautifulSoup before
counting; link targets, emphasis markers and escapes therefore never inflate
the totals. HTML comments, including the excerpt marker, count as nothing.

Example
-------
>>> from df12_posts.parser import parse_markdown
>>> from df12_posts.metadata import compute_metadata
>>> compute_metadata(parse_markdown("Hello *brave* new world")).word_count
4
"""

from __future__ import annotations

import dataclasses as dc
import math
import re

from bs4 import BeautifulSoup
from markdown import Markdown

from df12_posts._constants import (
    DEFAULT_EXCERPT_BUDGET,
    DEFAULT_EXCERPT_MARKER,
    DEFAULT_WORDS_PER_MINUTE,
)
from df12_posts.references import (
    FOOTNOTE_DEFINITION_PATTERN,
    FOOTNOTE_REFERENCE_PATTERN,
    collect_references,
    footnote_definition,
)
from df12_posts.tree import (
    Blockquote,
    InlineMath,
    ListBlock,
    Node,
    Paragraph,
    RawBlock,
    Text,
    walk,
)

CJK_PATTERN = re.compile(
    "[\\u3040-\\u30ff\\u3400-\\u4dbf\\u4e00-\\u9fff\\uac00-\\ud7af\\uf900-\\ufaff]"
)
EXCERPT_BLOCKS = (Paragraph, Blockquote, ListBlock)
SEPARATED_TAGS = (
    "blockquote", "br", "caption", "dd", "div", "dt", "h1", "h2", "h3", "h4",
    "h5", "h6", "li", "p", "pre", "td", "th", "tr",
)  # fmt: skip
HIDDEN_TAGS = ("script", "style", "template")


@dc.dataclass(frozen=True, slots=True)
class DocumentMetadata:
    """Document-level facts computed once per transformation.

    Attributes
    ----------
    reading_time_minutes : int
        Estimated reading time, rounded up to whole minutes.
    excerpt : str
        Leading prose up to the excerpt marker or character budget.
    word_count : int
        Number of words across all text leaves and raw blocks.
    """

    reading_time_minutes: int
    excerpt: str
    word_count: int


class PlainTextRenderer:
    """Reduce inline markdown to plain text.

    Each instance owns its own :class:`markdown.Markdown` converter, so keep
    one per document transformation rather than sharing it across threads.
    Footnote markers are dropped, and block boundaries such as table cells
    become word breaks.
    """

    def __init__(
        self, link_references: dict[str, tuple[str, str | None]] | None = None
    ) -> None:
        self._md = Markdown(extensions=["tables", "sane_lists"])
        self._link_references = dict(link_references or {})

    def __call__(self, source: str) -> str:
        """Return the visible text of ``source`` with whitespace collapsed."""
        source = FOOTNOTE_DEFINITION_PATTERN.sub("", source, count=1)
        source = FOOTNOTE_REFERENCE_PATTERN.sub("", source)
        if not source.strip():
            return ""
        self._md.reset()
        self._md.references.update(self._link_references)
        soup = BeautifulSoup(self._md.convert(source), "html.parser")
        for hidden in soup.find_all(HIDDEN_TAGS):
            hidden.decompose()
        for block in soup.find_all(SEPARATED_TAGS):
            block.insert_after(" ")
        return " ".join(soup.get_text().split())


def count_text_words(text: str) -> int:
    """Count whitespace-delimited words, treating each CJK character as one."""
    ideographs = len(CJK_PATTERN.findall(text))
    return ideographs + len(CJK_PATTERN.sub(" ", text).split())


def count_words(node: Node, plain_text: PlainTextRenderer | None = None) -> int:
    """Return the number of words across every text leaf and raw block below ``node``."""
    renderer = plain_text or PlainTextRenderer()
    return sum(
        count_text_words(renderer(current.value))
        for current in walk(node)
        if isinstance(current, Text)
        or (isinstance(current, RawBlock) and not _is_comment(current))
    )


def estimate_reading_time(
    word_count: int, words_per_minute: int = DEFAULT_WORDS_PER_MINUTE
) -> int:
    """Return whole minutes needed to read ``word_count`` words.

    Examples
    --------
    >>> estimate_reading_time(400)
    2
    >>> estimate_reading_time(401)
    3
    >>> estimate_reading_time(0)
    0
    """
    if word_count <= 0:
        return 0
    return max(1, math.ceil(word_count / words_per_minute))


def extract_excerpt(
    document: Node,
    *,
    budget: int = DEFAULT_EXCERPT_BUDGET,
    marker: str = DEFAULT_EXCERPT_MARKER,
    plain_text: PlainTextRenderer | None = None,
) -> str:
    """Return leading prose from the top-level blocks of ``document``.

    Parameters
    ----------
    document : Node
        Parsed document; only its direct children are considered.
    budget : int, optional
        Maximum excerpt length in characters; the text is cut hard at this
        length without looking for sentence boundaries.
    marker : str, optional
        Raw block content that ends the excerpt early.
    plain_text : PlainTextRenderer, optional
        Converter reused across calls for the same document.

    Returns
    -------
    str
        The excerpt, possibly empty.
    """
    if budget <= 0:
        return ""
    renderer = plain_text or PlainTextRenderer()
    parts: list[str] = []
    length = 0
    for block in document.children:
        if isinstance(block, RawBlock) and block.value.strip() == marker.strip():
            break
        if not isinstance(block, EXCERPT_BLOCKS):
            continue
        if isinstance(block, Paragraph) and footnote_definition(block) is not None:
            continue
        text = _block_text(block, renderer)
        if not text:
            continue
        parts.append(text)
        length += len(text) + (1 if len(parts) > 1 else 0)
        if length >= budget:
            break
    return " ".join(parts)[:budget]


def compute_metadata(
    document: Node,
    *,
    words_per_minute: int = DEFAULT_WORDS_PER_MINUTE,
    excerpt_budget: int = DEFAULT_EXCERPT_BUDGET,
    excerpt_marker: str = DEFAULT_EXCERPT_MARKER,
) -> DocumentMetadata:
    """Compute the :class:`DocumentMetadata` record for ``document``."""
    renderer = PlainTextRenderer(collect_references(document).links)
    words = count_words(document, renderer)
    return DocumentMetadata(
        reading_time_minutes=estimate_reading_time(words, words_per_minute),
        excerpt=extract_excerpt(
            document, budget=excerpt_budget, marker=excerpt_marker, plain_text=renderer
        ),
        word_count=words,
    )


def _block_text(block: Node, renderer: PlainTextRenderer) -> str:
    """Return the plain text of every paragraph inside ``block``."""
    paragraphs = [node for node in walk(block) if isinstance(node, Paragraph)]
    texts = (renderer(_inline_source(paragraph)) for paragraph in paragraphs)
    return " ".join(text for text in texts if text)


def _is_comment(block: RawBlock) -> bool:
    return block.value.lstrip().startswith("<!--")


def _inline_source(paragraph: Paragraph) -> str:
    pieces: list[str] = []
    for node in walk(paragraph):
        if isinstance(node, Text):
            pieces.append(node.value)
        elif isinstance(node, InlineMath):
            pieces.append(node.value)
    return "".join(pieces)


__all__ = [
    "DocumentMetadata",
    "PlainTextRenderer",
    "compute_metadata",
    "count_text_words",
    "count_words",
    "estimate_reading_time",
    "extract_excerpt",
]
