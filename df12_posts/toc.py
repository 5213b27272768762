"""Extract a nested table of contents from the lowered section structure."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from df12_posts.postprocess.anchors import HEADING_TAGS

if typ.TYPE_CHECKING:
    from bs4 import BeautifulSoup, Tag


@dc.dataclass(slots=True)
class TocEntry:
    """One heading in the table of contents.

    Attributes
    ----------
    text : str
        Heading text without the anchor icon.
    depth : int
        Heading level (1-6).
    slug : str
        Anchor target assigned to the heading.
    children : list[TocEntry]
        Entries for the subsections of this heading.
    """

    text: str
    depth: int
    slug: str
    children: list[TocEntry] = dc.field(default_factory=list)


def extract_toc(fragment: BeautifulSoup | Tag) -> list[TocEntry]:
    """Return the entries for every ``<section>`` directly below ``fragment``."""
    entries: list[TocEntry] = []
    for section in fragment.find_all("section", recursive=False):
        heading = section.find(HEADING_TAGS, recursive=False)
        if heading is None:
            entries.extend(extract_toc(section))
            continue
        entries.append(
            TocEntry(
                text=heading_text(heading),
                depth=int(heading.name[1]),
                slug=str(heading.get("id", "")),
                children=extract_toc(section),
            )
        )
    return entries


def heading_text(heading: Tag) -> str:
    """Return the visible heading text, skipping injected anchor links."""
    pieces = [
        str(piece)
        for piece in heading.find_all(string=True)
        if piece.find_parent("a", class_="anchor") is None
    ]
    return " ".join("".join(pieces).split())


__all__ = ["TocEntry", "extract_toc", "heading_text"]
