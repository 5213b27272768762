r"""Render ``::github{repo="owner/name"}`` directives as repository cards.

A resolved :class:`~df12_posts.components.cards.RepositoryPreview` renders as
a card anchor; a failed lookup renders as a plain link to the repository so
the document never loses the reference.

Example
-------
>>> from df12_posts.components.github_card import compact_number
>>> compact_number(1234), compact_number(999), compact_number(15_300)
('1.2K', '999', '15K')
"""

from __future__ import annotations

import re
import typing as typ

from df12_posts.components.cards import REPO_PATTERN

if typ.TYPE_CHECKING:
    from bs4 import BeautifulSoup, Tag

    from df12_posts.components.cards import RepositoryPreview

EMOJI_SHORTCODE_PATTERN = re.compile(r":[a-z0-9_+-]+:")
_COMPACT_UNITS = ("K", "M", "B", "T")
_COMPACT_STEP = 1000
_ONE_DECIMAL_LIMIT = 10

NO_DESCRIPTION = "No description provided"
NO_LICENSE = "no-license"


def card_usage_error(repo: str | None, *, has_body: bool) -> str | None:
    """Return a diagnostic for invalid card usage, or ``None`` when valid."""
    if has_body:
        return 'Invalid directive. ("github" directive must be leaf type "::github{repo="owner/repo"}")'
    if not repo or not REPO_PATTERN.match(repo.strip()):
        return 'Invalid repository. ("repo" attribute must be in the format "owner/repo")'
    return None


def compact_number(value: int | None) -> str:
    """Return ``value`` in compact notation (``1.2K``, ``15K``, ``3M``)."""
    if value is None or value < _COMPACT_STEP:
        return str(value or 0)
    scaled = float(value)
    unit_index = -1
    while scaled >= _COMPACT_STEP and unit_index < len(_COMPACT_UNITS) - 1:
        scaled /= _COMPACT_STEP
        unit_index += 1
    if scaled < _ONE_DECIMAL_LIMIT:
        text = f"{scaled:.1f}".removesuffix(".0")
    else:
        text = str(round(scaled))
    if text == str(_COMPACT_STEP) and unit_index < len(_COMPACT_UNITS) - 1:
        return f"1{_COMPACT_UNITS[unit_index + 1]}"
    return f"{text}{_COMPACT_UNITS[unit_index]}"


def strip_emoji_shortcodes(text: str) -> str:
    """Remove ``:shortcode:`` emoji markers and collapse whitespace."""
    return " ".join(EMOJI_SHORTCODE_PATTERN.sub("", text).split())


def render_card(soup: BeautifulSoup, repo: str, preview: RepositoryPreview) -> Tag:
    """Return the card anchor for ``repo`` populated from ``preview``."""
    owner, name = repo.strip().split("/", 1)
    card = _tag(soup, "a", "card-github no-styling")
    card["href"] = f"https://github.com/{owner}/{name}"
    card["target"] = "_blank"
    card["data-repo"] = f"{owner}/{name}"

    titlebar = _tag(soup, "div", "gc-titlebar")
    left = _tag(soup, "div", "gc-titlebar-left")
    owner_box = _tag(soup, "div", "gc-owner")
    avatar = _tag(soup, "div", "gc-avatar")
    if preview.owner_icon:
        avatar["style"] = f"background-image: url({preview.owner_icon})"
    owner_box.append(avatar)
    owner_box.append(_tag(soup, "div", "gc-user", owner))
    left.append(owner_box)
    left.append(_tag(soup, "div", "gc-divider", "/"))
    left.append(_tag(soup, "div", "gc-repo", preview.title or name))
    titlebar.append(left)
    titlebar.append(_tag(soup, "div", "github-logo"))
    card.append(titlebar)

    description = strip_emoji_shortcodes(preview.description or "")
    card.append(_tag(soup, "div", "gc-description", description or NO_DESCRIPTION))

    infobar = _tag(soup, "div", "gc-infobar")
    infobar.append(_tag(soup, "div", "gc-stars", compact_number(preview.stars)))
    infobar.append(_tag(soup, "div", "gc-forks", compact_number(preview.forks)))
    infobar.append(_tag(soup, "div", "gc-license", preview.license or NO_LICENSE))
    if preview.language:
        infobar.append(_tag(soup, "span", "gc-language", preview.language))
    card.append(infobar)
    return card


def render_fallback(soup: BeautifulSoup, repo: str) -> Tag:
    """Return the plain link used when the preview cannot be resolved."""
    normalized = repo.strip()
    link = _tag(soup, "a", "card-github-fallback", normalized)
    link["href"] = f"https://github.com/{normalized}"
    return link


def _tag(soup: BeautifulSoup, name: str, classes: str, text: str | None = None) -> Tag:
    tag = soup.new_tag(name)
    tag["class"] = classes.split()
    if text is not None:
        tag.string = text
    return tag


__all__ = [
    "NO_DESCRIPTION",
    "NO_LICENSE",
    "card_usage_error",
    "compact_number",
    "render_card",
    "render_fallback",
    "strip_emoji_shortcodes",
]
