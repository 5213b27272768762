r"""Lower the annotated markdown tree into a BeautifulSoup HTML fragment.

Block structure is built directly with BeautifulSoup; inline markdown goes
through Python-Markdown and code through pygments. Directives and formulas are
not rendered here. They become placeholder elements that later stages
(components, math typesetting) resolve in place:

``<div data-directive="warning" data-directive-kind="container" …>``
    Block directive; a label turns into a leading ``<p data-directive-label>``.
``<span class="math math-inline" data-formula="E = mc^2">``
    Formula awaiting the typesetter.

Link reference definitions and footnotes are collected for the whole document
before the first block is converted, so ``[text][ref]`` and ``[^note]`` resolve
wherever their definitions appear. Referenced footnotes are listed in a
trailing ``section.footnotes``.

Example
-------
>>> from df12_posts.lowering import HtmlContentRenderer, lower_document
>>> from df12_posts.parser import parse_markdown
>>> str(lower_document(parse_markdown("Hi *there*"), HtmlContentRenderer()))
'<p>Hi <em>there</em></p>'
"""

from __future__ import annotations

import re
import typing as typ

import msgspec.json as msgspec_json
from bs4 import BeautifulSoup, NavigableString, Tag
from markdown import Markdown
from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from df12_posts._constants import DEFAULT_PYGMENTS_STYLE
from df12_posts.errors import TreeShapeError
from df12_posts.references import (
    FOOTNOTE_REFERENCE_PATTERN,
    DocumentReferences,
    collect_references,
)
from df12_posts.tree import (
    Blockquote,
    CodeBlock,
    ContainerFence,
    Directive,
    DirectiveKind,
    Document,
    Heading,
    InlineMath,
    LeafFence,
    ListBlock,
    ListItem,
    MathBlock,
    Node,
    Paragraph,
    RawBlock,
    Section,
    Text,
    ThematicBreak,
    ensure_known,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from bs4 import PageElement

LEADING_BLOCK_MARKER = re.compile(
    r"^(?P<indent>\s*)"
    r"(?:(?P<marker>[#+*-])(?=[ \t]|$)|(?P<quote>>)|(?P<number>\d+)(?P<delim>[.)])(?=[ \t]|$))"
)
HEADING_ID_PATTERN = re.compile(r"[ \t]*\{#(?P<id>[\w-]+)\}[ \t]*$")
PLACEHOLDER_ATTR = "data-placeholder"
FOOTNOTE_ATTR = "data-footnote-placeholder"
FOOTNOTE_BACKREF = "\u21a9"
LINE_ID_PATTERN = re.compile(r"^line-(?P<number>\d+)$")
CODE_SPAN_PATTERN = re.compile(r"(`+).+?\1", re.DOTALL)


class HtmlContentRenderer:
    """Render markdown snippets and code blocks with consistent styling."""

    def __init__(self, pygments_style: str = DEFAULT_PYGMENTS_STYLE) -> None:
        """Initialise a renderer with an optional pygments style.

        Parameters
        ----------
        pygments_style : str, optional
            Name of the Pygments style used for syntax highlighting. Defaults
            to ``"monokai"``.

        Notes
        -----
        The renderer owns a :class:`markdown.Markdown` converter, which is not
        thread-safe; create one renderer per document transformation.
        ``link_references`` is merged into every conversion so reference-style
        links resolve across blocks.
        """
        self.pygments_style = pygments_style
        self._formatter = HtmlFormatter(
            style=pygments_style,
            cssclass="codehilite",
            wrapcode=True,
            linespans="line",
        )
        self._md = Markdown(extensions=["tables", "sane_lists"])
        self.link_references: dict[str, tuple[str, str | None]] = {}

    @property
    def stylesheet(self) -> str:
        """Return the CSS used for highlighted code blocks."""
        return self._formatter.get_style_defs(".codehilite")

    def markdown(self, text: str) -> str:
        """Render block-level markdown (tables, HTML blocks) into HTML."""
        if not text.strip():
            return ""
        self._md.reset()
        self._md.references.update(self.link_references)
        return self._md.convert(text)

    def inline(self, text: str) -> str:
        """Render inline markdown without a wrapping paragraph.

        A leading list, heading or quote marker is escaped first, since block
        structure has already been decided by the parser.
        """
        if not text.strip():
            return ""
        escaped = LEADING_BLOCK_MARKER.sub(_escape_block_marker, text, count=1)
        html = self.markdown(escaped)
        if html.startswith("<p>") and html.endswith("</p>"):
            return html[3:-4]
        return html

    def code_block(self, code: str, language: str | None = None) -> str:
        """Render ``code`` into highlighted HTML with one span per source line.

        Parameters
        ----------
        code : str
            Source snippet to highlight.
        language : str, optional
            Pygments lexer name; falls back to plain text when missing or
            unknown.

        Returns
        -------
        str
            HTML for a ``div.codehilite`` block. Leading and trailing blank
            lines are kept so the rendered lines match the source lines.
        """
        options = {"stripnl": False, "ensurenl": True}
        try:
            lexer = get_lexer_by_name(language or "text", **options)
        except ClassNotFound:
            lexer = get_lexer_by_name("text", **options)
        return highlight(code, lexer, self._formatter)


class DocumentLowerer:
    """Convert one document tree into a BeautifulSoup fragment."""

    def __init__(self, renderer: HtmlContentRenderer) -> None:
        self._renderer = renderer
        self.soup = BeautifulSoup("", "html.parser")
        self._references = DocumentReferences()
        self._footnote_order: list[str] = []
        self._footnote_uses: dict[str, int] = {}

    def lower(self, document: Node) -> BeautifulSoup:
        """Append the lowered ``document`` to the fragment and return it."""
        self._references = collect_references(document)
        self._renderer.link_references = self._references.links
        for element in self._blocks(document.children):
            self.soup.append(element)
        if self._footnote_order:
            self.soup.append(self._footnote_section())
        return self.soup

    def _blocks(self, nodes: cabc.Iterable[Node]) -> list[PageElement]:
        elements: list[PageElement] = []
        for node in nodes:
            elements.extend(self._block(node))
        return elements

    def _block(self, node: Node) -> list[PageElement]:  # noqa: C901, PLR0911
        ensure_known(node)
        match node:
            case Paragraph():
                return self._paragraph(node)
            case Heading(depth=depth):
                return [self._heading(node, depth)]
            case Section(depth=depth):
                section = self._element("section", self._blocks(node.children))
                section["data-depth"] = str(depth)
                return [section]
            case Blockquote():
                return [self._element("blockquote", self._blocks(node.children))]
            case ListBlock():
                return [self._list(node)]
            case ThematicBreak():
                return [self.soup.new_tag("hr")]
            case CodeBlock():
                return [self._code(node)]
            case MathBlock(value=value):
                return [self._math(value, display=True)]
            case RawBlock(value=value):
                return self._fragment(self._renderer.markdown(value))
            case Directive():
                return [self._directive(node)]
            case Text() | InlineMath():
                return self._inline((node,))
            case Document():
                return self._blocks(node.children)
            case ContainerFence() | LeafFence():
                msg = f"unparsed directive marker {node.info!r} reached lowering"
                raise TreeShapeError(msg)
            case _:  # pragma: no cover - ensure_known rejects other classes
                msg = f"cannot lower {type(node).__name__}"
                raise TreeShapeError(msg)

    def _paragraph(self, node: Paragraph) -> list[PageElement]:
        # Definitions render nothing in place; footnote bodies go to the list.
        if self._references.is_footnote_definition(node):
            return []
        elements = self._inline(node.children)
        if not elements:
            return []
        return [self._element("p", elements)]

    def _element(self, name: str, children: cabc.Iterable[PageElement]) -> Tag:
        tag = self.soup.new_tag(name)
        for child in children:
            tag.append(child)
        return tag

    def _heading(self, node: Heading, depth: int) -> Tag:
        children = node.children
        explicit_id: str | None = None
        if children and isinstance(children[-1], Text):
            match = HEADING_ID_PATTERN.search(children[-1].value)
            if match is not None:
                explicit_id = match.group("id")
                trimmed = Text(value=children[-1].value[: match.start()])
                children = (*children[:-1], trimmed)
        heading = self._element(f"h{depth}", self._inline(children))
        if explicit_id:
            heading["id"] = explicit_id
        return heading

    def _list(self, node: ListBlock) -> Tag:
        tag = self.soup.new_tag("ol" if node.ordered else "ul")
        if node.ordered and node.start not in (None, 1):
            tag["start"] = str(node.start)
        for item in node.children:
            ensure_known(item)
            if not isinstance(item, ListItem):
                msg = f"list holds {type(item).__name__} instead of list items"
                raise TreeShapeError(msg)
            li = self.soup.new_tag("li")
            for child in item.children:
                if self._references.is_footnote_definition(child):
                    continue
                if node.tight and isinstance(child, Paragraph):
                    for element in self._inline(child.children):
                        li.append(element)
                else:
                    for element in self._block(child):
                        li.append(element)
            tag.append(li)
        return tag

    def _code(self, node: CodeBlock) -> Tag:
        (block,) = [
            element
            for element in self._fragment(self._renderer.code_block(node.value, node.lang))
            if isinstance(element, Tag)
        ]
        if node.lang:
            block["data-language"] = node.lang
        if node.meta:
            block["data-meta"] = node.meta
        for span in block.find_all("span", id=LINE_ID_PATTERN):
            match = LINE_ID_PATTERN.match(span["id"])
            del span["id"]
            span["class"] = ["line"]
            span["data-line"] = match.group("number") if match else ""
        return block

    def _math(self, formula: str, *, display: bool) -> Tag:
        tag = self.soup.new_tag("div" if display else "span")
        tag["class"] = ["math", "math-display" if display else "math-inline"]
        tag["data-formula"] = formula
        return tag

    def _directive(self, node: Directive) -> Tag:
        inline = node.inline
        tag = self.soup.new_tag("span" if inline else "div")
        tag["data-directive"] = node.name
        tag["data-directive-kind"] = str(node.kind)
        tag["data-directive-args"] = msgspec_json.encode(list(node.args)).decode()
        tag["data-directive-attrs"] = msgspec_json.encode(dict(node.attributes)).decode()
        if node.kind is DirectiveKind.CONTAINER:
            if node.args:
                label = self._element("p", self._fragment(self._renderer.inline(node.args[0])))
                label["data-directive-label"] = "true"
                tag.append(label)
            children = self._blocks(node.children)
        else:
            children = self._inline(node.children)
        for child in children:
            tag.append(child)
        return tag

    def _inline(self, nodes: cabc.Iterable[Node]) -> list[PageElement]:
        """Render inline nodes, swapping formulas and directives back in."""
        pieces: list[str] = []
        pending: list[Node] = []
        cites = False
        for node in nodes:
            ensure_known(node)
            if isinstance(node, Text):
                value = self._cite_footnotes(node.value)
                cites = cites or value != node.value
                pieces.append(value)
            elif isinstance(node, InlineMath | Directive):
                pieces.append(f'<span {PLACEHOLDER_ATTR}="{len(pending)}"></span>')
                pending.append(node)
            else:
                msg = f"{type(node).__name__} cannot appear in inline content"
                raise TreeShapeError(msg)
        elements = self._fragment(self._renderer.inline("".join(pieces)))
        if not pending and not cites:
            return elements
        holder = self._element("span", elements)
        for placeholder in holder.find_all(attrs={PLACEHOLDER_ATTR: True}):
            node = pending[int(placeholder[PLACEHOLDER_ATTR])]
            if isinstance(node, InlineMath):
                placeholder.replace_with(self._math(node.value, display=False))
            else:
                placeholder.replace_with(self._directive(node))
        for placeholder in holder.find_all(attrs={FOOTNOTE_ATTR: True}):
            placeholder.replace_with(self._footnote_ref(placeholder[FOOTNOTE_ATTR]))
        return list(holder.contents)

    def _cite_footnotes(self, text: str) -> str:
        """Swap known ``[^label]`` references outside code spans for placeholders."""
        if "[^" not in text:
            return text
        pieces: list[str] = []
        position = 0
        for span in CODE_SPAN_PATTERN.finditer(text):
            pieces.append(
                FOOTNOTE_REFERENCE_PATTERN.sub(
                    self._footnote_placeholder, text[position : span.start()]
                )
            )
            pieces.append(span.group(0))
            position = span.end()
        pieces.append(
            FOOTNOTE_REFERENCE_PATTERN.sub(self._footnote_placeholder, text[position:])
        )
        return "".join(pieces)

    def _footnote_placeholder(self, match: re.Match[str]) -> str:
        label = match.group("label")
        if label not in self._references.footnotes:
            return match.group(0)
        return f'<span {FOOTNOTE_ATTR}="{label}"></span>'

    def _footnote_ref(self, label: str) -> Tag:
        """Return the superscript link for one use of footnote ``label``."""
        if label not in self._footnote_uses:
            self._footnote_order.append(label)
        uses = self._footnote_uses.get(label, 0) + 1
        self._footnote_uses[label] = uses
        sup = self.soup.new_tag("sup")
        sup["class"] = ["footnote-ref"]
        sup["id"] = f"fnref-{label}" if uses == 1 else f"fnref-{label}-{uses}"
        link = self.soup.new_tag("a", href=f"#fn-{label}")
        link.string = str(self._footnote_order.index(label) + 1)
        sup.append(link)
        return sup

    def _footnote_section(self) -> Tag:
        """Return the list of referenced footnotes in order of first use."""
        section = self.soup.new_tag("section")
        section["class"] = ["footnotes"]
        section.append(self.soup.new_tag("hr"))
        items = self.soup.new_tag("ol")
        index = 0
        # Bodies may cite further footnotes, which extends the order.
        while index < len(self._footnote_order):
            label = self._footnote_order[index]
            body = self._references.footnotes[label]
            paragraph = self._element("p", self._inline(body.children))
            backref = self.soup.new_tag("a", href=f"#fnref-{label}")
            backref["class"] = ["footnote-backref"]
            backref.string = FOOTNOTE_BACKREF
            paragraph.append(" ")
            paragraph.append(backref)
            item = self.soup.new_tag("li", id=f"fn-{label}")
            item.append(paragraph)
            items.append(item)
            index += 1
        section.append(items)
        return section

    def _fragment(self, html: str) -> list[PageElement]:
        if not html:
            return []
        parsed = BeautifulSoup(html, "html.parser")
        return [
            element
            for element in list(parsed.contents)
            if not (isinstance(element, NavigableString) and element == "\n")
        ]


def _escape_block_marker(match: re.Match[str]) -> str:
    indent = match.group("indent")
    if match.group("number") is not None:
        return f"{indent}{match.group('number')}\\{match.group('delim')}"
    return f"{indent}\\{match.group('marker') or match.group('quote')}"


def lower_document(document: Node, renderer: HtmlContentRenderer) -> BeautifulSoup:
    """Return the HTML fragment for ``document``.

    Parameters
    ----------
    document : Node
        Tree after directive parsing and section grouping.
    renderer : HtmlContentRenderer
        Markdown and pygments front end owned by the current transformation.

    Raises
    ------
    TreeShapeError
        If the tree still holds unparsed fences or misplaced nodes.
    """
    return DocumentLowerer(renderer).lower(document)


__all__ = ["DocumentLowerer", "HtmlContentRenderer", "lower_document"]
