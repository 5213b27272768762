r"""Parse canonical directive syntax into :class:`~df12_posts.tree.Directive` nodes.

Three spellings are recognised, following the generic directives proposal
used by remark-directive:

* container fences ``:::name[label]{attrs}`` … ``:::`` (already split out by
  the block parser as :class:`~df12_posts.tree.ContainerFence`),
* leaf lines ``::name[label]{attrs}`` (:class:`~df12_posts.tree.LeafFence`),
* inline spans ``:name[label]{attrs}`` inside paragraph or heading text.

Inline directives must be followed by a label or an attribute block so that
ordinary prose such as ``Note:this`` is never mistaken for markup. Inline
``$formula$`` spans are split out into :class:`~df12_posts.tree.InlineMath`
leaves in the same pass.

Parsing never fails: a malformed label or attribute block leaves the span as
literal text.

Example
-------
>>> from df12_posts.parser.directives import parse_directive_info
>>> spec = parse_directive_info('github{repo="owner/name"}')
>>> (spec.name, dict(spec.attributes))
('github', {'repo': 'owner/name'})
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

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
    with_children,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

NAME_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_-]*")
ATTRIBUTE_KEY_PATTERN = re.compile(r"[A-Za-z_:][A-Za-z0-9_.:-]*")
UNQUOTED_VALUE_PATTERN = re.compile(r"[^\s\"'=<>`}]+")
SHORTHAND_VALUE_PATTERN = re.compile(r"[^\s\"'=<>`}#.]+")


@dc.dataclass(frozen=True, slots=True)
class DirectiveSpec:
    """Name, label and attributes parsed from a directive marker.

    Attributes
    ----------
    name : str
        Bare identifier.
    label : str | None
        Text between the brackets, or ``None`` when no label was written.
    attributes : dict[str, str]
        Attribute mapping; ``class`` accumulates, other keys keep the last value.
    """

    name: str
    label: str | None
    attributes: dict[str, str]

    @property
    def args(self) -> tuple[str, ...]:
        """Return the positional arguments carried by the directive node."""
        return (self.label,) if self.label else ()


def parse_directive_info(info: str) -> DirectiveSpec | None:
    """Parse ``name[label]{attrs}`` and return ``None`` when it is malformed.

    Parameters
    ----------
    info : str
        Marker text after the leading colons.

    Returns
    -------
    DirectiveSpec | None
        Parsed marker, or ``None`` for an invalid name, an unbalanced label,
        an unterminated attribute block or trailing garbage.
    """
    parsed = _scan_marker(info, 0)
    if parsed is None:
        return None
    spec, end = parsed
    if info[end:].strip():
        return None
    return spec


def parse_directives(node: Node) -> Node:
    """Return a copy of ``node`` with directive markers replaced by directives.

    Parameters
    ----------
    node : Node
        Tree produced by the block parser (optionally normalised).

    Returns
    -------
    Node
        A new tree holding :class:`~df12_posts.tree.Directive` nodes in place
        of fences and inline markers.

    Raises
    ------
    TreeShapeError
        If the tree contains a node class the parser does not recognise.
    """
    parsed = _parse_node(node)
    if len(parsed) == 1:
        return parsed[0]
    return Document(children=parsed)


def _parse_children(children: cabc.Iterable[Node]) -> tuple[Node, ...]:
    """Parse each child, splicing literal fallbacks into the sequence."""
    parsed: list[Node] = []
    for child in children:
        parsed.extend(_parse_node(child))
    return tuple(parsed)


def _parse_node(node: Node) -> tuple[Node, ...]:
    """Parse one node; malformed fences expand to several literal nodes."""
    ensure_known(node)
    match node:
        case ContainerFence(info=info, colons=colons):
            body = _parse_children(node.children)
            spec = parse_directive_info(info)
            if spec is None:
                fence = ":" * colons
                return (
                    Paragraph(children=(Text(value=f"{fence}{info}"),)),
                    *body,
                    Paragraph(children=(Text(value=fence),)),
                )
            directive = Directive(
                kind=DirectiveKind.CONTAINER,
                name=spec.name,
                args=spec.args,
                attributes=spec.attributes,
                children=body,
            )
            return (directive,)
        case LeafFence(info=info):
            spec = parse_directive_info(info)
            if spec is None:
                return (Paragraph(children=(Text(value=f"::{info}"),)),)
            label = split_inline(spec.label) if spec.label else ()
            return (
                Directive(
                    kind=DirectiveKind.LEAF,
                    name=spec.name,
                    args=spec.args,
                    attributes=spec.attributes,
                    children=label,
                ),
            )
        case Paragraph() | Heading():
            inline: list[Node] = []
            for child in node.children:
                if isinstance(child, Text):
                    inline.extend(split_inline(child.value))
                else:
                    inline.append(child)
            return (with_children(node, inline),)
        case Document() | Blockquote() | ListBlock() | ListItem() | Section() | Directive():
            return (with_children(node, _parse_children(node.children)),)
        case CodeBlock() | MathBlock() | RawBlock() | ThematicBreak() | Text() | InlineMath():
            return (node,)
        case _:  # pragma: no cover - ensure_known rejects other classes
            return (node,)


def split_inline(text: str) -> tuple[Node, ...]:
    """Split inline markdown into text, inline directive and inline math nodes.

    Backtick code spans and backslash escapes are copied verbatim so their
    contents are never interpreted.
    """
    nodes: list[Node] = []
    buffer: list[str] = []
    position = 0
    length = len(text)

    def flush() -> None:
        if buffer:
            nodes.append(Text(value="".join(buffer)))
            buffer.clear()

    while position < length:
        char = text[position]
        if char == "\\" and position + 1 < length:
            buffer.append(text[position : position + 2])
            position += 2
        elif char == "`":
            end = _code_span_end(text, position)
            buffer.append(text[position:end])
            position = end
        elif char == "$" and (math := _scan_inline_math(text, position)) is not None:
            flush()
            nodes.append(InlineMath(value=math[0]))
            position = math[1]
        elif char == ":" and (found := _scan_inline_directive(text, position)) is not None:
            flush()
            nodes.append(found[0])
            position = found[1]
        else:
            buffer.append(char)
            position += 1
    flush()
    return tuple(nodes)


def _code_span_end(text: str, start: int) -> int:
    """Return the index just past the code span (or backtick run) at ``start``."""
    run_end = start
    while run_end < len(text) and text[run_end] == "`":
        run_end += 1
    fence = text[start:run_end]
    search = run_end
    while True:
        found = text.find(fence, search)
        if found == -1:
            return run_end
        after = found + len(fence)
        if after < len(text) and text[after] == "`":
            search = after
            while search < len(text) and text[search] == "`":
                search += 1
            continue
        return after


def _scan_inline_math(text: str, start: int) -> tuple[str, int] | None:
    """Return ``(formula, end)`` for a ``$formula$`` span starting at ``start``."""
    if start + 1 >= len(text) or text[start + 1] in " \t\n$":
        return None
    if start > 0 and text[start - 1] == "$":
        return None
    position = start + 1
    while position < len(text):
        char = text[position]
        if char == "\\":
            position += 2
            continue
        if char == "$":
            closing_ok = text[position - 1] not in " \t\n"
            next_char = text[position + 1] if position + 1 < len(text) else ""
            if closing_ok and not next_char.isdigit():
                return text[start + 1 : position], position + 1
            return None
        position += 1
    return None


def _scan_inline_directive(text: str, start: int) -> tuple[Directive, int] | None:
    """Return ``(directive, end)`` for a ``:name[label]{attrs}`` span."""
    if start > 0 and (text[start - 1].isalnum() or text[start - 1] in ":\\"):
        return None
    parsed = _scan_marker(text, start + 1)
    if parsed is None:
        return None
    spec, end = parsed
    if spec.label is None and end == start + 1 + len(spec.name):
        return None
    children = split_inline(spec.label) if spec.label else ()
    directive = Directive(
        kind=DirectiveKind.LEAF,
        name=spec.name,
        args=spec.args,
        attributes=spec.attributes,
        children=children,
        inline=True,
    )
    return directive, end


def _scan_marker(text: str, start: int) -> tuple[DirectiveSpec, int] | None:
    """Scan ``name[label]{attrs}`` from ``start``; return ``None`` when malformed."""
    name_match = NAME_PATTERN.match(text, start)
    if name_match is None:
        return None
    position = name_match.end()
    label: str | None = None
    if position < len(text) and text[position] == "[":
        scanned_label = _scan_label(text, position)
        if scanned_label is None:
            return None
        label, position = scanned_label
    attributes: dict[str, str] = {}
    if position < len(text) and text[position] == "{":
        scanned_attrs = _scan_attributes(text, position)
        if scanned_attrs is None:
            return None
        attributes, position = scanned_attrs
    return DirectiveSpec(name=name_match.group(), label=label, attributes=attributes), position


def _scan_label(text: str, start: int) -> tuple[str, int] | None:
    """Return the balanced ``[label]`` content and the index after ``]``."""
    depth = 0
    position = start
    while position < len(text):
        char = text[position]
        if char == "\\":
            position += 2
            continue
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return text[start + 1 : position], position + 1
        elif char == "\n" and position + 1 < len(text) and text[position + 1] == "\n":
            return None
        position += 1
    return None


def _scan_attributes(text: str, start: int) -> tuple[dict[str, str], int] | None:  # noqa: C901
    """Return the attribute mapping of a ``{…}`` block and the index after ``}``."""
    attributes: dict[str, str] = {}
    classes: list[str] = []
    position = start + 1
    while True:
        while position < len(text) and text[position] in " \t\n":
            position += 1
        if position >= len(text):
            return None
        char = text[position]
        if char == "}":
            position += 1
            break
        if char in "#.":
            value_match = SHORTHAND_VALUE_PATTERN.match(text, position + 1)
            if value_match is None:
                return None
            if char == "#":
                attributes["id"] = value_match.group()
            else:
                classes.append(value_match.group())
            position = value_match.end()
            continue
        key_match = ATTRIBUTE_KEY_PATTERN.match(text, position)
        if key_match is None:
            return None
        key = key_match.group()
        position = key_match.end()
        value = ""
        if position < len(text) and text[position] == "=":
            scanned = _scan_attribute_value(text, position + 1)
            if scanned is None:
                return None
            value, position = scanned
        if key == "class":
            classes.extend(value.split())
        else:
            attributes[key] = value
    if classes:
        attributes["class"] = " ".join(classes)
    return attributes, position


def _scan_attribute_value(text: str, start: int) -> tuple[str, int] | None:
    """Return a quoted or bare attribute value starting at ``start``."""
    if start >= len(text):
        return None
    quote = text[start]
    if quote in "\"'":
        end = text.find(quote, start + 1)
        if end == -1:
            return None
        return text[start + 1 : end], end + 1
    value_match = UNQUOTED_VALUE_PATTERN.match(text, start)
    if value_match is None:
        return None
    return value_match.group(), value_match.end()


__all__ = [
    "DirectiveSpec",
    "parse_directive_info",
    "parse_directives",
    "split_inline",
]
