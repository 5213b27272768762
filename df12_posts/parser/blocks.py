r"""Split markdown source into the block structure of a :class:`Document`.

The parser is line oriented and recursive: container constructs (blockquotes,
list items and ``:::`` directive fences) collect their lines, strip their
markers and hand the remainder back to :func:`parse_markdown`. Inline markup
is left untouched inside :class:`~df12_posts.tree.Text` leaves; the directive
parser and the lowering step deal with it later.

Example
-------
>>> from df12_posts.parser.blocks import parse_markdown
>>> doc = parse_markdown("# Title\n\nBody text\n")
>>> [child.type for child in doc.children]
['heading', 'paragraph']
"""

from __future__ import annotations

import re

from df12_posts._constants import MAX_NESTING_DEPTH
from df12_posts.errors import InvalidSourceError
from df12_posts.tree import (
    Blockquote,
    CodeBlock,
    ContainerFence,
    Document,
    Heading,
    LeafFence,
    ListBlock,
    ListItem,
    MathBlock,
    Node,
    Paragraph,
    RawBlock,
    Text,
    ThematicBreak,
)

FENCE_OPEN_PATTERN = re.compile(
    r"^(?P<indent> {0,3})(?P<fence>`{3,}(?=[^`]*$)|~{3,})[ \t]*(?P<info>.*?)[ \t]*$"
)
ATX_HEADING_PATTERN = re.compile(r"^ {0,3}(?P<marks>#{1,6})(?P<body>[ \t].*)?$")
ATX_CLOSING_PATTERN = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")
SETEXT_PATTERN = re.compile(r"^ {0,3}(?P<line>=+|-+)[ \t]*$")
THEMATIC_BREAK_PATTERN = re.compile(
    r"^ {0,3}(?:(?:\*[ \t]*){3,}|(?:-[ \t]*){3,}|(?:_[ \t]*){3,})$"
)
BLOCKQUOTE_PATTERN = re.compile(r"^ {0,3}> ?(?P<body>.*)$")
LIST_ITEM_PATTERN = re.compile(
    r"^(?P<indent> {0,3})(?P<marker>[-+*]|\d{1,9}[.)])(?P<space>[ \t]+|$)(?P<rest>.*)$"
)
MATH_OPEN_PATTERN = re.compile(r"^ {0,3}\$\$(?P<rest>.*)$")
CONTAINER_OPEN_PATTERN = re.compile(
    r"^ {0,3}(?P<colons>:{3,})[ \t]*(?P<info>[A-Za-z].*?)[ \t]*$"
)
CONTAINER_CLOSE_PATTERN = re.compile(r"^ {0,3}(?P<colons>:{3,})[ \t]*$")
LEAF_FENCE_PATTERN = re.compile(r"^ {0,3}::(?P<info>[A-Za-z].*?)[ \t]*$")
HTML_COMMENT_PATTERN = re.compile(r"^ {0,3}<!--")
HTML_BLOCK_PATTERN = re.compile(r"^ {0,3}</?(?P<tag>[A-Za-z][A-Za-z0-9-]*)(?:[\s/>]|$)")
TABLE_DELIMITER_PATTERN = re.compile(
    r"^ {0,3}\|?[ \t]*:?-+:?[ \t]*(?:\|[ \t]*:?-+:?[ \t]*)*\|?[ \t]*$"
)

BLOCK_HTML_TAGS = frozenset(
    {
        "address", "article", "aside", "audio", "blockquote", "canvas", "center",
        "details", "dialog", "dd", "div", "dl", "dt", "fieldset", "figcaption",
        "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header",
        "hgroup", "hr", "iframe", "li", "main", "nav", "ol", "p", "picture",
        "pre", "script", "section", "style", "summary", "table", "tbody", "td",
        "tfoot", "th", "thead", "tr", "ul", "video",
    }
)  # fmt: skip

TAB_WIDTH = 4


def parse_markdown(text: str) -> Document:
    """Parse ``text`` into a :class:`Document` of block nodes.

    Parameters
    ----------
    text : str
        Markdown body without front matter.

    Returns
    -------
    Document
        Root node whose children are the top-level blocks in source order.

    Raises
    ------
    InvalidSourceError
        If blockquotes, list items or container fences nest deeper than
        ``MAX_NESTING_DEPTH`` levels.
    """
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return Document(children=_parse_lines(normalized.split("\n")))


def _parse_lines(lines: list[str], depth: int = 0) -> tuple[Node, ...]:
    """Parse a run of lines nested ``depth`` containers deep into block nodes."""
    if depth > MAX_NESTING_DEPTH:
        msg = f"document nesting too deep (more than {MAX_NESTING_DEPTH} levels)"
        raise InvalidSourceError(msg)
    blocks: list[Node] = []
    index = 0
    total = len(lines)
    while index < total:
        line = lines[index]
        if not line.strip():
            index += 1
            continue
        node, index = _parse_block(lines, index, depth)
        blocks.append(node)
    return tuple(blocks)


def _parse_block(  # noqa: PLR0911
    lines: list[str], index: int, depth: int
) -> tuple[Node, int]:
    """Parse the block starting at ``lines[index]`` and return it with the next index."""
    line = lines[index]
    if _leading_width(line) >= TAB_WIDTH:
        return _parse_indented_code(lines, index)
    if match := FENCE_OPEN_PATTERN.match(line):
        return _parse_fenced_code(lines, index, match)
    if match := MATH_OPEN_PATTERN.match(line):
        return _parse_math(lines, index, match)
    if match := CONTAINER_OPEN_PATTERN.match(line):
        return _parse_container(lines, index, match, depth)
    if match := LEAF_FENCE_PATTERN.match(line):
        return LeafFence(info=match.group("info")), index + 1
    if match := ATX_HEADING_PATTERN.match(line):
        return _atx_heading(match), index + 1
    if THEMATIC_BREAK_PATTERN.match(line):
        return ThematicBreak(), index + 1
    if BLOCKQUOTE_PATTERN.match(line):
        return _parse_blockquote(lines, index, depth)
    if LIST_ITEM_PATTERN.match(line):
        return _parse_list(lines, index, depth)
    if _starts_html_block(line):
        return _parse_html_block(lines, index)
    if _starts_table(lines, index):
        return _parse_until_blank(lines, index)
    return _parse_paragraph(lines, index)


def _leading_width(line: str) -> int:
    """Return the visual width of the leading whitespace of ``line``."""
    width = 0
    for char in line:
        if char == " ":
            width += 1
        elif char == "\t":
            width += TAB_WIDTH - (width % TAB_WIDTH)
        else:
            break
    return width


def _dedent(line: str, width: int) -> str:
    """Remove up to ``width`` columns of leading whitespace from ``line``."""
    removed = 0
    position = 0
    while position < len(line) and removed < width:
        char = line[position]
        if char == " ":
            removed += 1
        elif char == "\t":
            step = TAB_WIDTH - (removed % TAB_WIDTH)
            if removed + step > width:
                # Split the tab: keep the columns beyond ``width`` as spaces.
                return " " * (removed + step - width) + line[position + 1 :]
            removed += step
        else:
            break
        position += 1
    return line[position:]


def _parse_indented_code(lines: list[str], index: int) -> tuple[Node, int]:
    """Collect an indented code block."""
    collected: list[str] = []
    while index < len(lines):
        line = lines[index]
        if line.strip() and _leading_width(line) < TAB_WIDTH:
            break
        collected.append(_dedent(line, TAB_WIDTH))
        index += 1
    while collected and not collected[-1].strip():
        collected.pop()
    return CodeBlock(value="\n".join(collected)), index


def _split_info(info: str) -> tuple[str | None, str]:
    """Split a fence info string into language and meta."""
    if not info:
        return None, ""
    token, _, meta = info.partition(" ")
    lang = token.split(",", 1)[0].strip() or None
    return lang, meta.strip()


def _parse_fenced_code(
    lines: list[str], index: int, match: re.Match[str]
) -> tuple[Node, int]:
    """Collect a backtick or tilde fenced code block."""
    fence = match.group("fence")
    indent = len(match.group("indent"))
    lang, meta = _split_info(match.group("info"))
    closing = re.compile(rf"^ {{0,3}}{re.escape(fence[0])}{{{len(fence)},}}[ \t]*$")
    collected: list[str] = []
    index += 1
    while index < len(lines):
        line = lines[index]
        if closing.match(line):
            index += 1
            break
        collected.append(_dedent(line, indent))
        index += 1
    return CodeBlock(lang=lang, meta=meta, value="\n".join(collected)), index


def _parse_math(lines: list[str], index: int, match: re.Match[str]) -> tuple[Node, int]:
    """Collect a ``$$`` display math block."""
    rest = match.group("rest").strip()
    if rest.endswith("$$") and len(rest) >= 2:  # noqa: PLR2004
        return MathBlock(value=rest[:-2].strip()), index + 1
    collected: list[str] = [rest] if rest else []
    index += 1
    while index < len(lines):
        stripped = lines[index].strip()
        index += 1
        if stripped.endswith("$$"):
            if stripped[:-2].strip():
                collected.append(stripped[:-2].rstrip())
            break
        collected.append(lines[index - 1])
    return MathBlock(value="\n".join(collected).strip("\n")), index


def _parse_container(
    lines: list[str], index: int, match: re.Match[str], depth: int
) -> tuple[Node, int]:
    """Collect a ``:::`` container fence and parse its body recursively."""
    colons = len(match.group("colons"))
    info = match.group("info")
    open_fences = 1
    code_fence: re.Match[str] | None = None
    body: list[str] = []
    index += 1
    while index < len(lines):
        line = lines[index]
        index += 1
        if code_fence is not None:
            if _closes_code_fence(line, code_fence):
                code_fence = None
            body.append(line)
            continue
        if fence_match := FENCE_OPEN_PATTERN.match(line):
            code_fence = fence_match
        elif CONTAINER_OPEN_PATTERN.match(line):
            open_fences += 1
        elif close_match := CONTAINER_CLOSE_PATTERN.match(line):
            if open_fences == 1 and len(close_match.group("colons")) >= colons:
                break
            if open_fences > 1:
                open_fences -= 1
        body.append(line)
    children = _parse_lines(body, depth + 1)
    return ContainerFence(info=info, colons=colons, children=children), index


def _closes_code_fence(line: str, opening: re.Match[str]) -> bool:
    """Return ``True`` when ``line`` closes the fence captured in ``opening``."""
    fence = opening.group("fence")
    stripped = line.strip()
    return (
        _leading_width(line) < TAB_WIDTH
        and len(stripped) >= len(fence)
        and set(stripped) == {fence[0]}
    )


def _atx_heading(match: re.Match[str]) -> Heading:
    """Build a heading node from an ATX heading match."""
    body = (match.group("body") or "").strip()
    body = ATX_CLOSING_PATTERN.sub("", body).strip()
    depth = len(match.group("marks"))
    children = (Text(value=body),) if body else ()
    return Heading(depth=depth, children=children)


def _parse_blockquote(lines: list[str], index: int, depth: int) -> tuple[Node, int]:
    """Collect ``>`` prefixed lines (plus lazy continuations) into a blockquote."""
    body: list[str] = []
    while index < len(lines):
        line = lines[index]
        if match := BLOCKQUOTE_PATTERN.match(line):
            body.append(match.group("body"))
        elif line.strip() and body and body[-1].strip() and not _interrupts(line):
            body.append(line)
        else:
            break
        index += 1
    return Blockquote(children=_parse_lines(body, depth + 1)), index


def _same_list_type(first: re.Match[str], other: re.Match[str]) -> bool:
    """Return ``True`` when two list item markers belong to the same list."""
    a, b = first.group("marker"), other.group("marker")
    if a[0].isdigit() != b[0].isdigit():
        return False
    return a[-1] == b[-1]


def _parse_list(lines: list[str], index: int, depth: int) -> tuple[Node, int]:
    """Collect consecutive list items of the same marker type."""
    first = LIST_ITEM_PATTERN.match(lines[index])
    assert first is not None  # noqa: S101 - guarded by the dispatcher
    ordered = first.group("marker")[0].isdigit()
    start = int(first.group("marker")[:-1]) if ordered else None
    items: list[ListItem] = []
    loose = False
    while index < len(lines):
        match = LIST_ITEM_PATTERN.match(lines[index])
        if match is None or not _same_list_type(first, match):
            break
        item_lines, index, trailing_blank = _collect_item(lines, index, match)
        children = _parse_lines(item_lines, depth + 1)
        if len(children) > 1 and any(not line.strip() for line in item_lines):
            loose = True
        items.append(ListItem(children=children))
        if trailing_blank:
            following = LIST_ITEM_PATTERN.match(lines[index]) if index < len(lines) else None
            if following is not None and _same_list_type(first, following):
                loose = True
            else:
                break
    return ListBlock(ordered=ordered, start=start, tight=not loose, children=tuple(items)), index


def _collect_item(
    lines: list[str], index: int, match: re.Match[str]
) -> tuple[list[str], int, bool]:
    """Return an item's dedented lines, the next index and a trailing-blank flag."""
    marker_width = len(match.group("indent")) + len(match.group("marker"))
    space = match.group("space")
    rest = match.group("rest")
    if not rest.strip() or len(space) > TAB_WIDTH:
        content_indent = marker_width + 1
        first_line = " " * max(len(space) - 1, 0) + rest if rest.strip() else ""
    else:
        content_indent = marker_width + len(space)
        first_line = rest
    item_lines = [first_line]
    index += 1
    while index < len(lines):
        line = lines[index]
        if not line.strip():
            item_lines.append("")
        elif _leading_width(line) >= content_indent:
            item_lines.append(_dedent(line, content_indent))
        elif (
            item_lines[-1].strip()
            and not _interrupts(line)
            and not LIST_ITEM_PATTERN.match(line)
        ):
            item_lines.append(line.strip())
        else:
            break
        index += 1
    trailing_blank = False
    while item_lines and not item_lines[-1].strip():
        item_lines.pop()
        trailing_blank = True
    return item_lines, index, trailing_blank


def _starts_html_block(line: str) -> bool:
    """Return ``True`` when ``line`` opens an HTML block or comment."""
    if HTML_COMMENT_PATTERN.match(line):
        return True
    match = HTML_BLOCK_PATTERN.match(line)
    return bool(match and match.group("tag").lower() in BLOCK_HTML_TAGS)


def _parse_html_block(lines: list[str], index: int) -> tuple[Node, int]:
    """Collect an HTML block; comments run to ``-->``, tags to a blank line."""
    if HTML_COMMENT_PATTERN.match(lines[index]):
        collected: list[str] = []
        while index < len(lines):
            collected.append(lines[index])
            index += 1
            if "-->" in collected[-1]:
                break
        return RawBlock(value="\n".join(collected).strip()), index
    return _parse_until_blank(lines, index)


def _starts_table(lines: list[str], index: int) -> bool:
    """Return ``True`` when a pipe table header starts at ``index``."""
    if index + 1 >= len(lines) or "|" not in lines[index]:
        return False
    delimiter = lines[index + 1]
    return "-" in delimiter and bool(TABLE_DELIMITER_PATTERN.match(delimiter))


def _parse_until_blank(lines: list[str], index: int) -> tuple[Node, int]:
    """Collect lines verbatim until the next blank line."""
    collected: list[str] = []
    while index < len(lines) and lines[index].strip():
        collected.append(lines[index])
        index += 1
    return RawBlock(value="\n".join(collected)), index


def _interrupts(line: str) -> bool:
    """Return ``True`` when ``line`` starts a block that ends a paragraph."""
    if (
        FENCE_OPEN_PATTERN.match(line)
        or MATH_OPEN_PATTERN.match(line)
        or CONTAINER_OPEN_PATTERN.match(line)
        or CONTAINER_CLOSE_PATTERN.match(line)
        or LEAF_FENCE_PATTERN.match(line)
        or ATX_HEADING_PATTERN.match(line)
        or THEMATIC_BREAK_PATTERN.match(line)
        or BLOCKQUOTE_PATTERN.match(line)
        or _starts_html_block(line)
    ):
        return True
    match = LIST_ITEM_PATTERN.match(line)
    if match is None or not match.group("rest").strip():
        return False
    marker = match.group("marker")
    return not marker[0].isdigit() or marker[:-1] == "1"


def _parse_paragraph(lines: list[str], index: int) -> tuple[Node, int]:
    """Collect paragraph lines, promoting a setext underline to a heading."""
    collected = [lines[index].strip()]
    index += 1
    while index < len(lines):
        line = lines[index]
        if not line.strip():
            break
        if setext := SETEXT_PATTERN.match(line):
            depth = 1 if setext.group("line").startswith("=") else 2
            text = "\n".join(collected)
            return Heading(depth=depth, children=(Text(value=text),)), index + 1
        if _interrupts(line):
            break
        collected.append(line.strip())
        index += 1
    return Paragraph(children=(Text(value="\n".join(collected)),)), index


__all__ = ["parse_markdown"]
