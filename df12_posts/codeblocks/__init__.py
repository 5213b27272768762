"""Presentation decorators for highlighted code blocks."""

from __future__ import annotations

from .decorators import (
    CodeBlockDecorator,
    CollapsibleRegions,
    CopyButton,
    LanguageBadge,
    LineNumbers,
    decorate,
    decorate_code_blocks,
    default_decorators,
)
from .descriptor import CodeBlockDescriptor, Control, Decoration, parse_meta

__all__ = [
    "CodeBlockDecorator",
    "CodeBlockDescriptor",
    "CollapsibleRegions",
    "Control",
    "CopyButton",
    "Decoration",
    "LanguageBadge",
    "LineNumbers",
    "decorate",
    "decorate_code_blocks",
    "default_decorators",
    "parse_meta",
]
