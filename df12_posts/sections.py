"""Group headings and the content they govern into nested sections.

:func:`group_sections` makes one left-to-right pass over a document's
top-level blocks while keeping a stack of open sections keyed by heading
depth. :func:`flatten_sections` undoes the grouping, so
``flatten_sections(group_sections(doc)) == doc`` for every document without
pre-existing sections.
"""

from __future__ import annotations

import dataclasses as dc

from df12_posts.tree import Document, Heading, Node, Section, with_children


@dc.dataclass(slots=True)
class _OpenSection:
    depth: int
    children: list[Node]

    def close(self) -> Section:
        return Section(depth=self.depth, children=tuple(self.children))


def group_sections(document: Document) -> Document:
    """Return a copy of ``document`` with heading ranges wrapped in sections.

    A heading at depth ``d`` closes every open section at depth ``d`` or
    deeper and opens a new one. Content before the first heading stays at the
    document root.
    """
    root: list[Node] = []
    stack: list[_OpenSection] = []

    def close_to(depth: int) -> None:
        while stack and stack[-1].depth >= depth:
            closed = stack.pop().close()
            (stack[-1].children if stack else root).append(closed)

    for block in document.children:
        if isinstance(block, Heading):
            close_to(block.depth)
            stack.append(_OpenSection(depth=block.depth, children=[block]))
        elif stack:
            stack[-1].children.append(block)
        else:
            root.append(block)
    close_to(0)
    return with_children(document, root)  # type: ignore[return-value]


def flatten_sections(node: Node) -> Node:
    """Return a copy of ``node`` with every section replaced by its children."""
    flattened: list[Node] = []
    for child in node.children:
        if isinstance(child, Section):
            flattened.extend(flatten_sections(child).children)
        else:
            flattened.append(child)
    return with_children(node, flattened)


__all__ = ["flatten_sections", "group_sections"]
