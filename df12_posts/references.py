r"""Collect link reference definitions and footnotes across a whole document.

A ``[text][ref]`` link or a ``[^note]`` footnote may point at a definition
anywhere in the post, while lowering converts one block at a time. The
definitions are therefore gathered once, before any block is rendered, and
handed to every conversion.

Example
-------
>>> from df12_posts.parser import parse_markdown
>>> from df12_posts.references import collect_references
>>> refs = collect_references(
...     parse_markdown("See [docs][d].[^1]\n\n[d]: /docs\n\n[^1]: A note.\n")
... )
>>> refs.links["d"][0], sorted(refs.footnotes)
('/docs', ['1'])
"""

from __future__ import annotations

import dataclasses as dc
import re

from markdown import Markdown

from df12_posts.tree import Node, Paragraph, Text, walk

LINK_DEFINITION_PATTERN = re.compile(r"^ {0,3}\[(?!\^)[^\]]+\]:", re.MULTILINE)
FOOTNOTE_LABEL = r"(?P<label>[^\]\s\"'<>&]+)"
FOOTNOTE_DEFINITION_PATTERN = re.compile(rf"^ {{0,3}}\[\^{FOOTNOTE_LABEL}\]:[ \t]*")
FOOTNOTE_REFERENCE_PATTERN = re.compile(rf"\[\^{FOOTNOTE_LABEL}\](?!:)")


@dc.dataclass(slots=True)
class DocumentReferences:
    """Definitions shared by every block of one document.

    Attributes
    ----------
    links : dict[str, tuple[str, str | None]]
        Lower-cased reference id mapped to ``(href, title)``, in the shape
        :attr:`markdown.Markdown.references` expects.
    footnotes : dict[str, Paragraph]
        Footnote label mapped to its body with the ``[^label]:`` prefix
        removed. The first definition of a label wins.
    definition_ids : set[int]
        Identities of the footnote definition paragraphs, which are rendered
        in the footnote list instead of in place.
    """

    links: dict[str, tuple[str, str | None]] = dc.field(default_factory=dict)
    footnotes: dict[str, Paragraph] = dc.field(default_factory=dict)
    definition_ids: set[int] = dc.field(default_factory=set)

    def is_footnote_definition(self, node: Node) -> bool:
        """Return ``True`` when ``node`` is a collected footnote definition."""
        return id(node) in self.definition_ids


def footnote_definition(paragraph: Paragraph) -> tuple[str, Paragraph] | None:
    """Split a ``[^label]: body`` paragraph into its label and body."""
    if not paragraph.children or not isinstance(paragraph.children[0], Text):
        return None
    first = paragraph.children[0]
    match = FOOTNOTE_DEFINITION_PATTERN.match(first.value)
    if match is None:
        return None
    body = Text(value=first.value[match.end() :])
    return match.group("label"), Paragraph(children=(body, *paragraph.children[1:]))


def collect_references(document: Node) -> DocumentReferences:
    """Gather link reference definitions and footnotes from ``document``.

    Link definitions are recognised by Python-Markdown itself, so titles,
    angle-bracketed targets and case folding follow its rules.
    """
    references = DocumentReferences()
    md: Markdown | None = None
    for node in walk(document):
        if not isinstance(node, Paragraph):
            continue
        if (definition := footnote_definition(node)) is not None:
            label, body = definition
            references.footnotes.setdefault(label, body)
            references.definition_ids.add(id(node))
            continue
        source = "".join(child.value for child in node.children if isinstance(child, Text))
        if not LINK_DEFINITION_PATTERN.search(source):
            continue
        md = md or Markdown()
        md.reset()
        md.convert(source)
        for key, value in md.references.items():
            references.links.setdefault(key, value)
    return references


__all__ = [
    "FOOTNOTE_DEFINITION_PATTERN",
    "FOOTNOTE_REFERENCE_PATTERN",
    "DocumentReferences",
    "collect_references",
    "footnote_definition",
]
