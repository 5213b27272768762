"""Typed dataclasses describing the posts pipeline configuration."""

from __future__ import annotations

import dataclasses as dc

from df12_posts._constants import (
    ADMONITION_KINDS,
    DEFAULT_API_BASE,
    DEFAULT_CARD_TIMEOUT,
    DEFAULT_EXCERPT_BUDGET,
    DEFAULT_EXCERPT_MARKER,
    DEFAULT_LINE_NUMBER_EXEMPT,
    DEFAULT_PYGMENTS_STYLE,
    DEFAULT_WORDS_PER_MINUTE,
    GITHUB_CARD_DIRECTIVE,
)
from df12_posts.components.renderer import RendererKind
from df12_posts.errors import PipelineConfigError


def default_directives() -> dict[str, RendererKind]:
    """Return the built-in directive registration table."""
    table = dict.fromkeys(ADMONITION_KINDS, RendererKind.ADMONITION)
    table[GITHUB_CARD_DIRECTIVE] = RendererKind.GITHUB_CARD
    return table


@dc.dataclass(slots=True)
class ExcerptConfig:
    """Excerpt extraction settings."""

    budget: int = DEFAULT_EXCERPT_BUDGET
    marker: str = DEFAULT_EXCERPT_MARKER


@dc.dataclass(slots=True)
class CodeBlockConfig:
    """Code highlighting and decoration settings."""

    pygments_style: str = DEFAULT_PYGMENTS_STYLE
    line_number_exempt: frozenset[str] = DEFAULT_LINE_NUMBER_EXEMPT


@dc.dataclass(slots=True)
class CardConfig:
    """Repository card resolution settings.

    Attributes
    ----------
    timeout : float
        Seconds allowed for all card lookups of one document.
    api_base : str
        GitHub REST API base URL.
    token : str | None
        Optional API token; falls back to ``GITHUB_TOKEN``/``GH_TOKEN``.
    """

    timeout: float = DEFAULT_CARD_TIMEOUT
    api_base: str = DEFAULT_API_BASE
    token: str | None = None


@dc.dataclass(slots=True)
class PipelineConfig:
    """Static configuration consumed by :class:`~df12_posts.pipeline.PostPipeline`."""

    directives: dict[str, RendererKind] = dc.field(default_factory=default_directives)
    words_per_minute: int = DEFAULT_WORDS_PER_MINUTE
    excerpt: ExcerptConfig = dc.field(default_factory=ExcerptConfig)
    code: CodeBlockConfig = dc.field(default_factory=CodeBlockConfig)
    cards: CardConfig = dc.field(default_factory=CardConfig)

    def validate(self) -> None:
        """Raise :class:`PipelineConfigError` when a value is out of range."""
        if self.words_per_minute <= 0:
            msg = f"words_per_minute must be positive, got {self.words_per_minute}"
            raise PipelineConfigError(msg)
        if self.excerpt.budget < 0:
            msg = f"excerpt budget cannot be negative, got {self.excerpt.budget}"
            raise PipelineConfigError(msg)
        if self.cards.timeout < 0:
            msg = f"card timeout cannot be negative, got {self.cards.timeout}"
            raise PipelineConfigError(msg)


__all__ = [
    "CardConfig",
    "CodeBlockConfig",
    "ExcerptConfig",
    "PipelineConfig",
    "PipelineConfigError",
    "default_directives",
]
