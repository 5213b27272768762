"""Component renderers resolving directive placeholders into HTML."""

from __future__ import annotations

from .cards import CardResolver, GitHubRepositoryClient, RepositoryPreview
from .renderer import ComponentRenderer, RendererKind

__all__ = [
    "CardResolver",
    "ComponentRenderer",
    "GitHubRepositoryClient",
    "RendererKind",
    "RepositoryPreview",
]
