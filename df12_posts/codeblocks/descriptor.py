"""Read-only view of a highlighted code block and the decoration it receives."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import re
import types
import typing as typ

if typ.TYPE_CHECKING:
    from bs4 import Tag

META_TOKEN_PATTERN = re.compile(
    r"""(?P<key>[A-Za-z_][\w-]*)(?:=(?P<value>"[^"]*"|'[^']*'|\{[^}]*\}|\S+))?"""
)


def parse_meta(meta: str) -> dict[str, str]:
    """Parse a fence meta string such as ``title="app.py" collapse={1-3}``.

    Bare flags map to ``"true"``; quotes around values are removed while
    braces are kept.

    Examples
    --------
    >>> parse_meta('title="app.py" showLineNumbers collapse={1-3}')
    {'title': 'app.py', 'showLineNumbers': 'true', 'collapse': '{1-3}'}
    """
    parsed: dict[str, str] = {}
    for match in META_TOKEN_PATTERN.finditer(meta):
        value = match.group("value")
        if value is None:
            parsed[match.group("key")] = "true"
        elif value[:1] in "\"'" and value[-1:] == value[:1]:
            parsed[match.group("key")] = value[1:-1]
        else:
            parsed[match.group("key")] = value
    return parsed


@dc.dataclass(frozen=True, slots=True)
class CodeBlockDescriptor:
    """What decorators may inspect about a code block.

    Attributes
    ----------
    language : str | None
        Declared language tag, or ``None`` when the fence had none.
    meta : Mapping[str, str]
        Parsed fence meta options.
    lines : tuple[str, ...]
        Source lines in order, without line terminators.
    """

    language: str | None
    meta: cabc.Mapping[str, str]
    lines: tuple[str, ...]

    @classmethod
    def from_block(cls, block: Tag) -> CodeBlockDescriptor:
        """Build a descriptor from a lowered ``div.codehilite`` element."""
        language = block.get("data-language") or None
        meta = parse_meta(str(block.get("data-meta", "")))
        lines = tuple(
            span.get_text().removesuffix("\n") for span in block.select("span.line")
        )
        return cls(
            language=str(language) if language else None,
            meta=types.MappingProxyType(meta),
            lines=lines,
        )


@dc.dataclass(frozen=True, slots=True)
class Control:
    """Toolbar element contributed by a decorator."""

    tag: str
    classes: tuple[str, ...] = ()
    attributes: cabc.Mapping[str, str] = dc.field(default_factory=dict)
    text: str = ""


@dc.dataclass(frozen=True, slots=True)
class Decoration:
    """Attributes and controls one or more decorators add to a block.

    Attributes
    ----------
    block_attrs : Mapping[str, str]
        Attributes for the ``div.codehilite`` element.
    line_attrs : Mapping[int, Mapping[str, str]]
        Attributes per 1-based line number.
    controls : Mapping[str, Control]
        Toolbar controls keyed by a stable identifier.
    """

    block_attrs: cabc.Mapping[str, str] = dc.field(default_factory=dict)
    line_attrs: cabc.Mapping[int, cabc.Mapping[str, str]] = dc.field(default_factory=dict)
    controls: cabc.Mapping[str, Control] = dc.field(default_factory=dict)

    def merge(self, other: Decoration) -> Decoration:
        """Return the disjoint union of two decorations.

        Raises
        ------
        ValueError
            If both decorations set the same block attribute, the same
            attribute on the same line or the same control key.
        """
        line_attrs: dict[int, dict[str, str]] = {
            number: dict(attrs) for number, attrs in self.line_attrs.items()
        }
        for number, attrs in other.line_attrs.items():
            target = line_attrs.setdefault(number, {})
            _require_disjoint(target, attrs, f"line {number} attribute")
            target.update(attrs)
        _require_disjoint(self.block_attrs, other.block_attrs, "block attribute")
        _require_disjoint(self.controls, other.controls, "control")
        return Decoration(
            block_attrs={**self.block_attrs, **other.block_attrs},
            line_attrs=line_attrs,
            controls={**self.controls, **other.controls},
        )


def _require_disjoint(
    left: cabc.Mapping[typ.Any, typ.Any], right: cabc.Mapping[typ.Any, typ.Any], what: str
) -> None:
    overlap = sorted(str(key) for key in left.keys() & right.keys())
    if overlap:
        msg = f"decorators disagree on {what} {', '.join(overlap)}"
        raise ValueError(msg)


__all__ = ["CodeBlockDescriptor", "Control", "Decoration", "parse_meta"]
