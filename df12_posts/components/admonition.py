"""Render admonition directives as styled callout boxes."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from bs4 import BeautifulSoup, Tag


def render_admonition(
    soup: BeautifulSoup, kind: str, label: Tag | None, body: list[typ.Any]
) -> Tag:
    """Return ``blockquote.admonition.bdm-<kind>`` wrapping ``body``.

    Parameters
    ----------
    soup : BeautifulSoup
        Fragment that owns the new elements.
    kind : str
        Severity keyword (``note``, ``warning`` …) used for the class name.
    label : Tag | None
        Lowered label paragraph; its contents become the title. When absent
        the upper-cased kind is used instead.
    body : list
        Elements moved into the box after the title.
    """
    box = soup.new_tag("blockquote")
    box["class"] = ["admonition", f"bdm-{kind}"]
    title = soup.new_tag("span")
    title["class"] = ["bdm-title"]
    if label is not None and label.get_text(strip=True):
        for child in list(label.contents):
            title.append(child)
    else:
        title.string = kind.upper()
    box.append(title)
    for element in body:
        box.append(element)
    return box


def render_invalid(soup: BeautifulSoup, message: str) -> Tag:
    """Return the hidden diagnostic shown for a misused directive."""
    hidden = soup.new_tag("div")
    hidden["class"] = ["hidden"]
    hidden.string = message
    return hidden


__all__ = ["render_admonition", "render_invalid"]
