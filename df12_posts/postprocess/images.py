"""Defer image loading unless an image explicitly opts out."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from bs4 import BeautifulSoup, Tag

OPT_OUT_ATTRIBUTES = ("loading", "data-no-lazy")
OPT_OUT_CLASS = "no-lazy"


def is_opted_out(image: Tag) -> bool:
    """Return ``True`` when ``image`` carries an explicit opt-out marker."""
    if any(image.has_attr(name) for name in OPT_OUT_ATTRIBUTES):
        return True
    return OPT_OUT_CLASS in (image.get("class") or [])


def lazy_load_images(fragment: BeautifulSoup) -> int:
    """Add ``loading="lazy"`` and ``decoding="async"`` to eligible images.

    Images without an ``alt`` attribute receive an empty one, opted out or
    not. Returns the number of images that were deferred.
    """
    deferred = 0
    for image in fragment.find_all("img"):
        if not image.has_attr("alt"):
            image["alt"] = ""
        if is_opted_out(image):
            continue
        image["loading"] = "lazy"
        image["decoding"] = "async"
        deferred += 1
    return deferred


__all__ = ["is_opted_out", "lazy_load_images"]
