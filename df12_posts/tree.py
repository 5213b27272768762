r"""Typed document tree for the markdown side of the posts pipeline.

Every node is a frozen, slotted dataclass with a class-level ``type`` tag and
an ordered ``children`` tuple. Stages never mutate nodes; they build new
trees with :func:`dataclasses.replace` and the helpers below, so a tree can be
handed to the next stage (or another worker) without aliasing concerns.

Example
-------
>>> from df12_posts.tree import Document, Paragraph, Text, iter_text
>>> doc = Document(children=(Paragraph(children=(Text(value="Hello world"),)),))
>>> [leaf.value for leaf in iter_text(doc)]
['Hello world']
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import enum
import typing as typ

from df12_posts.errors import TreeShapeError


class DirectiveKind(enum.StrEnum):
    """Structural kind of a parsed directive."""

    LEAF = "leaf"
    CONTAINER = "container"


@dc.dataclass(frozen=True, slots=True)
class Node:
    """Base class for every tree node."""

    type: typ.ClassVar[str] = "node"
    children: tuple[Node, ...] = ()


@dc.dataclass(frozen=True, slots=True)
class Document(Node):
    """Root of a parsed markdown document."""

    type: typ.ClassVar[str] = "document"


@dc.dataclass(frozen=True, slots=True)
class Text(Node):
    """Raw inline markdown source; always a leaf."""

    type: typ.ClassVar[str] = "text"
    value: str = ""


@dc.dataclass(frozen=True, slots=True)
class InlineMath(Node):
    """Inline formula delimited by single dollars."""

    type: typ.ClassVar[str] = "inlineMath"
    value: str = ""


@dc.dataclass(frozen=True, slots=True)
class Paragraph(Node):
    """Block of flowing inline content."""

    type: typ.ClassVar[str] = "paragraph"


@dc.dataclass(frozen=True, slots=True)
class Heading(Node):
    """ATX or setext heading."""

    type: typ.ClassVar[str] = "heading"
    depth: int = 1


@dc.dataclass(frozen=True, slots=True)
class ThematicBreak(Node):
    """Horizontal rule."""

    type: typ.ClassVar[str] = "thematicBreak"


@dc.dataclass(frozen=True, slots=True)
class CodeBlock(Node):
    """Fenced or indented code.

    Attributes
    ----------
    lang : str | None
        Language tag from the fence info string.
    meta : str
        Remainder of the info string after the language.
    value : str
        Code text without the fences.
    """

    type: typ.ClassVar[str] = "code"
    lang: str | None = None
    meta: str = ""
    value: str = ""


@dc.dataclass(frozen=True, slots=True)
class MathBlock(Node):
    """Display formula delimited by ``$$`` lines."""

    type: typ.ClassVar[str] = "math"
    value: str = ""


@dc.dataclass(frozen=True, slots=True)
class Blockquote(Node):
    """Quoted block content."""

    type: typ.ClassVar[str] = "blockquote"


@dc.dataclass(frozen=True, slots=True)
class ListItem(Node):
    """Single list entry holding block children."""

    type: typ.ClassVar[str] = "listItem"


@dc.dataclass(frozen=True, slots=True)
class ListBlock(Node):
    """Bullet or ordered list."""

    type: typ.ClassVar[str] = "list"
    ordered: bool = False
    start: int | None = None
    tight: bool = True


@dc.dataclass(frozen=True, slots=True)
class RawBlock(Node):
    """Markdown handed verbatim to the lowering step (HTML, tables, comments)."""

    type: typ.ClassVar[str] = "raw"
    value: str = ""


@dc.dataclass(frozen=True, slots=True)
class ContainerFence(Node):
    """Unparsed ``:::info`` container marker and its block body."""

    type: typ.ClassVar[str] = "containerFence"
    info: str = ""
    colons: int = 3


@dc.dataclass(frozen=True, slots=True)
class LeafFence(Node):
    """Unparsed ``::info`` leaf marker occupying a whole line."""

    type: typ.ClassVar[str] = "leafFence"
    info: str = ""


@dc.dataclass(frozen=True, slots=True)
class Directive(Node):
    """Parsed directive awaiting component rendering.

    Attributes
    ----------
    kind : DirectiveKind
        ``container`` for fenced blocks, ``leaf`` otherwise.
    name : str
        Bare identifier naming the directive.
    args : tuple[str, ...]
        Positional arguments; the bracketed label when present.
    attributes : Mapping[str, str]
        Attribute mapping with unique keys.
    inline : bool
        ``True`` when the directive sits inside flowing text.
    """

    type: typ.ClassVar[str] = "directive"
    kind: DirectiveKind = DirectiveKind.LEAF
    name: str = ""
    args: tuple[str, ...] = ()
    attributes: cabc.Mapping[str, str] = dc.field(default_factory=dict)
    inline: bool = False


@dc.dataclass(frozen=True, slots=True)
class Section(Node):
    """Synthetic wrapper around a heading and the content it governs."""

    type: typ.ClassVar[str] = "section"
    depth: int = 1


BLOCK_CONTAINERS: tuple[type[Node], ...] = (
    Document,
    Blockquote,
    ListBlock,
    ListItem,
    ContainerFence,
    Directive,
    Section,
)
INLINE_CONTAINERS: tuple[type[Node], ...] = (Paragraph, Heading)
LEAVES: tuple[type[Node], ...] = (
    Text,
    InlineMath,
    ThematicBreak,
    CodeBlock,
    MathBlock,
    RawBlock,
    LeafFence,
)
KNOWN_NODES: frozenset[type[Node]] = frozenset(
    BLOCK_CONTAINERS + INLINE_CONTAINERS + LEAVES
)


def ensure_known(node: Node) -> None:
    """Raise :class:`TreeShapeError` when ``node`` is not a recognised class."""
    if type(node) not in KNOWN_NODES:
        msg = f"unexpected tree node {type(node).__name__!r}"
        raise TreeShapeError(msg)


def with_children(node: Node, children: cabc.Iterable[Node]) -> Node:
    """Return a copy of ``node`` holding ``children``."""
    return dc.replace(node, children=tuple(children))


def walk(node: Node) -> cabc.Iterator[Node]:
    """Yield ``node`` and its descendants in document order."""
    stack: list[Node] = [node]
    while stack:
        current = stack.pop()
        ensure_known(current)
        yield current
        stack.extend(reversed(current.children))


def iter_text(node: Node) -> cabc.Iterator[Text]:
    """Yield every :class:`Text` leaf below ``node`` in document order."""
    for current in walk(node):
        if isinstance(current, Text):
            yield current


__all__ = [
    "BLOCK_CONTAINERS",
    "INLINE_CONTAINERS",
    "KNOWN_NODES",
    "LEAVES",
    "Blockquote",
    "CodeBlock",
    "ContainerFence",
    "Directive",
    "DirectiveKind",
    "Document",
    "Heading",
    "InlineMath",
    "LeafFence",
    "ListBlock",
    "ListItem",
    "MathBlock",
    "Node",
    "Paragraph",
    "RawBlock",
    "Section",
    "Text",
    "ThematicBreak",
    "ensure_known",
    "iter_text",
    "walk",
    "with_children",
]
