r"""Rewrite GitHub-style callouts into canonical container directive fences.

Authors often write admonitions the way GitHub renders them::

    > [!WARNING] Mind the gap
    > Do not do this.

:func:`normalize_callouts` turns such blockquotes into
:class:`~df12_posts.tree.ContainerFence` nodes equivalent to
``:::warning[Mind the gap]`` so the directive parser sees a single syntax.
Blockquotes that do not start with a recognised keyword pass through
unchanged, and the rewrite is idempotent because its output contains no
blockquote it would match again.

A callout whose body is already a directive of the same name is ambiguous
(it is encoded twice). Such blockquotes are left alone and reported by
:func:`find_double_encoded_callouts` instead of being guessed at.
"""

from __future__ import annotations

import re
import typing as typ

from df12_posts.parser.directives import parse_directive_info
from df12_posts.tree import (
    Blockquote,
    ContainerFence,
    Directive,
    LeafFence,
    Node,
    Paragraph,
    Text,
    ensure_known,
    walk,
    with_children,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

CALLOUT_KEYWORDS = ("note", "tip", "important", "warning", "caution")
CALLOUT_PATTERN = re.compile(
    r"^\[!(?P<keyword>" + "|".join(CALLOUT_KEYWORDS) + r")\][ \t]*(?P<label>[^\n]*)\n?",
    re.IGNORECASE,
)


def normalize_callouts(node: Node) -> Node:
    """Return a copy of ``node`` with callout blockquotes rewritten as fences.

    Parameters
    ----------
    node : Node
        Any tree node, usually the parsed :class:`~df12_posts.tree.Document`.

    Returns
    -------
    Node
        A new tree; nodes without callouts are reused as-is.
    """
    ensure_known(node)
    if not node.children:
        return node
    children = tuple(normalize_callouts(child) for child in node.children)
    if isinstance(node, Blockquote):
        rewritten = _callout_fence(with_children(node, children))
        if rewritten is not None:
            return rewritten
    if children == node.children:
        return node
    return with_children(node, children)


def find_double_encoded_callouts(node: Node) -> list[str]:
    """Return the keywords of callouts whose body repeats the same directive."""
    found: list[str] = []
    for current in walk(node):
        if not isinstance(current, Blockquote):
            continue
        parsed = _split_callout(current)
        if parsed is not None and parsed[2]:
            found.append(parsed[0])
    return found


def _callout_fence(blockquote: Blockquote) -> ContainerFence | None:
    """Return the fence replacing ``blockquote`` or ``None`` when it is no callout."""
    parsed = _split_callout(blockquote)
    if parsed is None:
        return None
    keyword, (label, body), double_encoded = parsed
    if double_encoded:
        return None
    info = f"{keyword}[{label}]" if label else keyword
    if parse_directive_info(info) is None:
        info = keyword
        body = (Paragraph(children=(Text(value=label),)), *body)
    return ContainerFence(info=info, colons=3, children=body)


def _split_callout(
    blockquote: Blockquote,
) -> tuple[str, tuple[str, tuple[Node, ...]], bool] | None:
    """Return ``(keyword, (label, body), double_encoded)`` for a callout blockquote."""
    if not blockquote.children:
        return None
    first = blockquote.children[0]
    if not isinstance(first, Paragraph) or not first.children:
        return None
    lead = first.children[0]
    if not isinstance(lead, Text):
        return None
    match = CALLOUT_PATTERN.match(lead.value)
    if match is None:
        return None
    keyword = match.group("keyword").lower()
    label = match.group("label").strip()
    remainder = lead.value[match.end() :]
    head: list[Node] = []
    if remainder.strip() or len(first.children) > 1:
        inline = ((Text(value=remainder),) if remainder.strip() else ()) + first.children[1:]
        head.append(with_children(first, inline))
    body = (*head, *blockquote.children[1:])
    return keyword, (label, body), _repeats_directive(keyword, body)


def _repeats_directive(keyword: str, body: cabc.Sequence[Node]) -> bool:
    """Return ``True`` when ``body`` consists of a directive named ``keyword``."""
    meaningful = [node for node in body if not _is_blank(node)]
    if len(meaningful) != 1:
        return False
    only = meaningful[0]
    match only:
        case ContainerFence(info=info) | LeafFence(info=info):
            spec = parse_directive_info(info)
            return spec is not None and spec.name.lower() == keyword
        case Directive(name=name):
            return name.lower() == keyword
        case _:
            return False


def _is_blank(node: Node) -> bool:
    """Return ``True`` for paragraphs holding only whitespace."""
    return isinstance(node, Paragraph) and all(
        isinstance(child, Text) and not child.value.strip() for child in node.children
    )


__all__ = [
    "CALLOUT_KEYWORDS",
    "find_double_encoded_callouts",
    "normalize_callouts",
]
