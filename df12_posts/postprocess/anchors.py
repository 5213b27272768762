r"""Assign unique slugs to headings and append anchor links.

Slugs are derived from the heading text: lowercased, every run of
non-alphanumeric characters collapsed to a single ``-`` and separators
trimmed from both ends. Unicode letters and digits are kept, so headings in
any script produce readable anchors.

Example
-------
>>> from df12_posts.postprocess.anchors import AnchorRegistry
>>> registry = AnchorRegistry()
>>> [registry.claim("Intro"), registry.claim("Intro"), registry.claim("intro")]
['intro', 'intro-2', 'intro-3']
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

if typ.TYPE_CHECKING:
    from bs4 import BeautifulSoup, Tag

HEADING_TAGS = tuple(f"h{level}" for level in range(1, 7))
SEPARATOR_PATTERN = re.compile(r"[\W_]+")
FALLBACK_SLUG = "section"


def slugify(text: str) -> str:
    """Return the URL-safe slug for ``text``, or ``"section"`` when empty."""
    slug = SEPARATOR_PATTERN.sub("-", text.strip().lower()).strip("-")
    return slug or FALLBACK_SLUG


@dc.dataclass(slots=True)
class AnchorRegistry:
    """Per-document record of slugs handed out so far.

    ``counts`` maps each base slug to the number of times it was requested;
    ``assigned`` holds every slug actually in use, including explicit ids.
    """

    counts: dict[str, int] = dc.field(default_factory=dict)
    assigned: set[str] = dc.field(default_factory=set)

    def claim(self, text: str) -> str:
        """Return a unique slug for ``text`` and record it."""
        base = slugify(text)
        count = self.counts.get(base, 0)
        candidate = base if count == 0 else f"{base}-{count + 1}"
        while candidate in self.assigned:
            count += 1
            candidate = f"{base}-{count + 1}"
        self.counts[base] = count + 1
        self.assigned.add(candidate)
        return candidate

    def reserve(self, slug: str) -> None:
        """Record an explicit id so generated slugs never collide with it."""
        self.assigned.add(slug)
        self.counts.setdefault(slug, 1)


def inject_heading_anchors(fragment: BeautifulSoup) -> list[str]:
    """Give every heading an id and a trailing anchor link.

    Parameters
    ----------
    fragment : BeautifulSoup
        HTML fragment of one document; modified in place.

    Returns
    -------
    list[str]
        Slugs in document order.
    """
    registry = AnchorRegistry()
    slugs: list[str] = []
    for heading in fragment.find_all(HEADING_TAGS):
        existing = heading.get("id")
        if existing:
            slug = str(existing)
            registry.reserve(slug)
        else:
            slug = registry.claim(heading.get_text())
            heading["id"] = slug
        heading.append(_anchor(fragment, slug))
        slugs.append(slug)
    return slugs


def _anchor(fragment: BeautifulSoup, slug: str) -> Tag:
    link = fragment.new_tag("a")
    link["class"] = ["anchor"]
    link["href"] = f"#{slug}"
    icon = fragment.new_tag("span")
    icon["class"] = ["anchor-icon"]
    icon["data-pagefind-ignore"] = "true"
    icon.string = "#"
    link.append(icon)
    return link


__all__ = ["AnchorRegistry", "inject_heading_anchors", "slugify"]
