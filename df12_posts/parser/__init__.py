"""Markdown front end: block parsing, callout normalisation and directives."""

from __future__ import annotations

from .blocks import parse_markdown
from .directives import DirectiveSpec, parse_directive_info, parse_directives
from .normalizer import find_double_encoded_callouts, normalize_callouts

__all__ = [
    "DirectiveSpec",
    "find_double_encoded_callouts",
    "normalize_callouts",
    "parse_directive_info",
    "parse_directives",
    "parse_markdown",
]
