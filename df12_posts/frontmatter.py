"""Split and parse the YAML front matter block at the top of a post.

The front matter is opaque to the pipeline: it is parsed into a mapping and
passed through untouched to the page renderer.

Example
-------
>>> from df12_posts.frontmatter import split_front_matter
>>> meta, body = split_front_matter("---\\ntitle: Hi\\n---\\nBody\\n")
>>> (meta["title"], body)
('Hi', 'Body\\n')
"""

from __future__ import annotations

import re
import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from df12_posts.errors import InvalidSourceError

FRONT_MATTER_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(?P<yaml>.*?)(?:^|\n)---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE
)


def split_front_matter(source: str) -> tuple[dict[str, typ.Any], str]:
    """Return ``(front_matter, body)`` for ``source``.

    Raises
    ------
    InvalidSourceError
        If the block is not valid YAML or does not hold a mapping.
    """
    match = FRONT_MATTER_PATTERN.match(source)
    if match is None:
        return {}, source
    loader = YAML(typ="safe")
    loader.version = (1, 2)
    try:
        loaded = loader.load(match.group("yaml"))
    except YAMLError as exc:
        msg = f"front matter is not valid YAML: {exc}"
        raise InvalidSourceError(msg) from exc
    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        msg = f"front matter must be a mapping, got {type(loaded).__name__}"
        raise InvalidSourceError(msg)
    return dict(loaded), source[match.end() :]


__all__ = ["split_front_matter"]
