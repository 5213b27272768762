r"""Independent code-block decorators and the pass that applies them.

Each decorator is a pure function of a
:class:`~df12_posts.codeblocks.descriptor.CodeBlockDescriptor` returning a
:class:`~df12_posts.codeblocks.descriptor.Decoration`. Decorators never see
each other's output: their decorations are merged as a disjoint union and
written in one pass with attributes and controls in sorted order, so any
permutation of decorators produces the same HTML.

Example
-------
>>> from df12_posts.codeblocks.decorators import LanguageBadge
>>> from df12_posts.codeblocks.descriptor import CodeBlockDescriptor
>>> badge = LanguageBadge()(CodeBlockDescriptor(None, {}, ("ls",)))
>>> badge.block_attrs["data-language-badge"]
'plaintext'
"""

from __future__ import annotations

import dataclasses as dc
import re
import typing as typ

from df12_posts._constants import DEFAULT_LINE_NUMBER_EXEMPT
from df12_posts.codeblocks.descriptor import CodeBlockDescriptor, Control, Decoration

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from bs4 import BeautifulSoup, Tag

COLLAPSE_MARKER_PATTERN = re.compile(
    r"^\s*(?:#|//|--|;|/\*|<!--)\s*collapse-(?P<edge>start|end)\s*(?:\*/|-->)?\s*$"
)
RANGE_PATTERN = re.compile(r"^\s*(?P<first>\d+)\s*(?:-\s*(?P<last>\d+))?\s*$")
PLAINTEXT = "plaintext"


class CodeBlockDecorator(typ.Protocol):
    """Derive presentation metadata from a code block."""

    def __call__(self, descriptor: CodeBlockDescriptor) -> Decoration:
        """Return the decoration for ``descriptor``."""
        ...


@dc.dataclass(frozen=True, slots=True)
class LanguageBadge:
    """Label the block with its language, falling back to ``plaintext``."""

    def __call__(self, descriptor: CodeBlockDescriptor) -> Decoration:
        label = descriptor.language or PLAINTEXT
        badge = Control(tag="span", classes=("language-badge",), text=label)
        return Decoration(
            block_attrs={"data-language-badge": label},
            controls={"language-badge": badge},
        )


@dc.dataclass(frozen=True, slots=True)
class LineNumbers:
    """Number every line unless the language is exempt.

    A ``showLineNumbers`` meta flag overrides the exemption either way.
    """

    exempt: frozenset[str] = DEFAULT_LINE_NUMBER_EXEMPT

    def enabled(self, descriptor: CodeBlockDescriptor) -> bool:
        """Return ``True`` when ``descriptor`` should show line numbers."""
        override = descriptor.meta.get("showLineNumbers")
        if override is not None:
            return override.lower() != "false"
        return (descriptor.language or "").lower() not in self.exempt

    def __call__(self, descriptor: CodeBlockDescriptor) -> Decoration:
        enabled = self.enabled(descriptor)
        line_attrs = (
            {
                number: {"data-line-number": str(number)}
                for number in range(1, len(descriptor.lines) + 1)
            }
            if enabled
            else {}
        )
        return Decoration(
            block_attrs={"data-line-numbers": "true" if enabled else "false"},
            line_attrs=line_attrs,
        )


@dc.dataclass(frozen=True, slots=True)
class CollapsibleRegions:
    """Mark regions bracketed by ``collapse-start``/``collapse-end`` comments.

    Ranges from a ``collapse={1-5, 9}`` meta option are marked as well. A
    start marker without a matching end is ignored.
    """

    def regions(self, descriptor: CodeBlockDescriptor) -> list[tuple[int, int]]:
        """Return sorted, non-overlapping 1-based inclusive ``(first, last)`` ranges."""
        found = self._marker_regions(descriptor)
        found.extend(_meta_ranges(descriptor.meta.get("collapse", ""), len(descriptor.lines)))
        return _merge_ranges(found)

    def _marker_regions(self, descriptor: CodeBlockDescriptor) -> list[tuple[int, int]]:
        found: list[tuple[int, int]] = []
        open_at: int | None = None
        for number, line in enumerate(descriptor.lines, start=1):
            match = COLLAPSE_MARKER_PATTERN.match(line)
            if match is None:
                continue
            if match.group("edge") == "start":
                open_at = number
            elif open_at is not None:
                found.append((open_at, number))
                open_at = None
        return found

    def __call__(self, descriptor: CodeBlockDescriptor) -> Decoration:
        regions = self.regions(descriptor)
        if not regions:
            return Decoration()
        line_attrs: dict[int, dict[str, str]] = {}
        for index, (first, last) in enumerate(regions, start=1):
            for number in range(first, last + 1):
                line_attrs[number] = {"data-collapse-region": str(index)}
        for first, last in self._marker_regions(descriptor):
            line_attrs[first]["data-collapse-marker"] = "start"
            line_attrs[last]["data-collapse-marker"] = "end"
        return Decoration(
            block_attrs={"data-collapsible": str(len(regions))},
            line_attrs=line_attrs,
        )


@dc.dataclass(frozen=True, slots=True)
class CopyButton:
    """Offer a copy button carrying the raw source."""

    def __call__(self, descriptor: CodeBlockDescriptor) -> Decoration:
        button = Control(
            tag="button",
            classes=("copy-btn",),
            attributes={
                "aria-label": "Copy code",
                "data-code": "\n".join(descriptor.lines),
                "type": "button",
            },
        )
        return Decoration(
            block_attrs={"data-copyable": "true"},
            controls={"copy-button": button},
        )


def default_decorators(
    line_number_exempt: cabc.Iterable[str] = DEFAULT_LINE_NUMBER_EXEMPT,
) -> tuple[CodeBlockDecorator, ...]:
    """Return the standard decorator set."""
    exempt = frozenset(language.lower() for language in line_number_exempt)
    return (CollapsibleRegions(), LineNumbers(exempt=exempt), LanguageBadge(), CopyButton())


def decorate(
    descriptor: CodeBlockDescriptor, decorators: cabc.Iterable[CodeBlockDecorator]
) -> Decoration:
    """Merge the decorations of every decorator for ``descriptor``."""
    merged = Decoration()
    for decorator in decorators:
        merged = merged.merge(decorator(descriptor))
    return merged


def decorate_code_blocks(
    fragment: BeautifulSoup, decorators: cabc.Sequence[CodeBlockDecorator]
) -> int:
    """Decorate every ``div.codehilite`` block in ``fragment``.

    Returns
    -------
    int
        Number of blocks decorated.
    """
    blocks = fragment.select("div.codehilite")
    for block in blocks:
        descriptor = CodeBlockDescriptor.from_block(block)
        apply_decoration(fragment, block, decorate(descriptor, decorators))
    return len(blocks)


def apply_decoration(fragment: BeautifulSoup, block: Tag, decoration: Decoration) -> None:
    """Write ``decoration`` onto ``block`` without touching line order or text."""
    for key in sorted(decoration.block_attrs):
        block[key] = decoration.block_attrs[key]
    for number, span in enumerate(block.select("span.line"), start=1):
        attrs = decoration.line_attrs.get(number, {})
        for key in sorted(attrs):
            span[key] = attrs[key]
    if not decoration.controls:
        return
    toolbar = fragment.new_tag("div")
    toolbar["class"] = ["code-toolbar"]
    for key in sorted(decoration.controls):
        control = decoration.controls[key]
        element = fragment.new_tag(control.tag)
        if control.classes:
            element["class"] = list(control.classes)
        for name in sorted(control.attributes):
            element[name] = control.attributes[name]
        if control.text:
            element.string = control.text
        toolbar.append(element)
    block.insert(0, toolbar)


def _meta_ranges(spec: str, line_count: int) -> list[tuple[int, int]]:
    """Parse ``{1-5, 9}`` into inclusive ranges clamped to the block."""
    ranges: list[tuple[int, int]] = []
    for part in spec.strip().strip("{}").split(","):
        match = RANGE_PATTERN.match(part)
        if match is None:
            continue
        first = int(match.group("first"))
        last = int(match.group("last") or first)
        first, last = max(first, 1), min(last, line_count)
        if first <= last:
            ranges.append((first, last))
    return ranges


def _merge_ranges(ranges: cabc.Iterable[tuple[int, int]]) -> list[tuple[int, int]]:
    """Return ``ranges`` sorted with overlapping ranges joined."""
    merged: list[tuple[int, int]] = []
    for first, last in sorted(ranges):
        if merged and first <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], last))
        else:
            merged.append((first, last))
    return merged


__all__ = [
    "CodeBlockDecorator",
    "CollapsibleRegions",
    "CopyButton",
    "LanguageBadge",
    "LineNumbers",
    "apply_decoration",
    "decorate",
    "decorate_code_blocks",
    "default_decorators",
]
