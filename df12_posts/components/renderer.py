r"""Replace directive placeholders in the HTML fragment with rendered components.

Dispatch is closed: a registration table maps directive names to one of the
:class:`RendererKind` variants, and any name missing from the table is
treated as unrecognised. Unrecognised directives are unwrapped in place, so
their content survives without a wrapper and the label is dropped.

Placeholders are processed in reverse document order, which renders nested
directives before the directive that contains them. Card lookups for the
whole document are issued up front on a small thread pool and collected
against one shared deadline; a slow API therefore delays a document by at
most the configured timeout.

Example
-------
>>> from bs4 import BeautifulSoup
>>> from df12_posts.components.renderer import ComponentRenderer, RendererKind
>>> soup = BeautifulSoup(
...     '<div data-directive="note" data-directive-kind="container" '
...     'data-directive-args="[]" data-directive-attrs="{}"><p>Hi</p></div>',
...     "html.parser",
... )
>>> _ = ComponentRenderer({"note": RendererKind.ADMONITION}).render(soup)
>>> soup.blockquote["class"]
['admonition', 'bdm-note']
"""

from __future__ import annotations

import concurrent.futures as cf
import dataclasses as dc
import enum
import typing as typ

import msgspec
import msgspec.json as msgspec_json

from df12_posts._constants import DEFAULT_CARD_TIMEOUT
from df12_posts.components.admonition import render_admonition, render_invalid
from df12_posts.components.github_card import (
    card_usage_error,
    render_card,
    render_fallback,
)
from df12_posts.logging import get_logger
from df12_posts.tree import DirectiveKind

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from bs4 import BeautifulSoup, Tag

    from df12_posts.components.cards import CardResolver, RepositoryPreview

LOGGER = get_logger("components")
MAX_CARD_WORKERS = 8
LABEL_ATTR = "data-directive-label"


class RendererKind(enum.StrEnum):
    """Closed set of component renderers a directive name can map to."""

    ADMONITION = "admonition"
    GITHUB_CARD = "github-card"


@dc.dataclass(frozen=True, slots=True)
class DirectivePlaceholder:
    """Decoded view of a directive placeholder element."""

    element: Tag
    name: str
    kind: DirectiveKind
    args: tuple[str, ...]
    attributes: dict[str, str]

    @classmethod
    def from_element(cls, element: Tag) -> DirectivePlaceholder:
        """Decode the ``data-directive-*`` attributes written during lowering."""
        try:
            args = msgspec_json.decode(
                element.get("data-directive-args", "[]"), type=list[str]
            )
            attributes = msgspec_json.decode(
                element.get("data-directive-attrs", "{}"), type=dict[str, str]
            )
        except msgspec.DecodeError:
            args, attributes = [], {}
        kind_value = element.get("data-directive-kind", DirectiveKind.LEAF.value)
        kind = (
            DirectiveKind.CONTAINER
            if kind_value == DirectiveKind.CONTAINER.value
            else DirectiveKind.LEAF
        )
        return cls(
            element=element,
            name=str(element["data-directive"]),
            kind=kind,
            args=tuple(args),
            attributes=attributes,
        )

    @property
    def has_body(self) -> bool:
        """Return ``True`` when the directive carries content beyond its label."""
        if self.kind is DirectiveKind.CONTAINER:
            return True
        return bool(self.element.get_text(strip=True))


class ComponentRenderer:
    """Render every directive placeholder of one document."""

    def __init__(
        self,
        registry: cabc.Mapping[str, RendererKind],
        *,
        card_resolver: CardResolver | None = None,
        card_timeout: float = DEFAULT_CARD_TIMEOUT,
    ) -> None:
        """Create a renderer.

        Parameters
        ----------
        registry : Mapping[str, RendererKind]
            Directive name to renderer table; names are matched exactly.
        card_resolver : CardResolver, optional
            Source of repository previews. Without one, every card renders as
            its fallback link.
        card_timeout : float, optional
            Seconds allowed for all card lookups of a document together.
        """
        self._registry = dict(registry)
        self._card_resolver = card_resolver
        self._card_timeout = card_timeout

    def render(self, fragment: BeautifulSoup) -> list[str]:
        """Replace placeholders in ``fragment`` and return warning messages."""
        warnings: list[str] = []
        placeholders = [
            DirectivePlaceholder.from_element(element)
            for element in fragment.find_all(attrs={"data-directive": True})
        ]
        repos = [
            placeholder.attributes["repo"].strip()
            for placeholder in placeholders
            if self._registry.get(placeholder.name) is RendererKind.GITHUB_CARD
            and card_usage_error(
                placeholder.attributes.get("repo"), has_body=placeholder.has_body
            )
            is None
        ]
        previews = self._resolve_cards(list(dict.fromkeys(repos)), warnings)
        for placeholder in reversed(placeholders):
            self._render_one(fragment, placeholder, previews)
        return warnings

    def _render_one(
        self,
        fragment: BeautifulSoup,
        placeholder: DirectivePlaceholder,
        previews: cabc.Mapping[str, RepositoryPreview | None],
    ) -> None:
        element = placeholder.element
        match self._registry.get(placeholder.name):
            case RendererKind.ADMONITION:
                if placeholder.kind is not DirectiveKind.CONTAINER:
                    message = (
                        f'Invalid directive. ("{placeholder.name}" directive must '
                        "be a container)"
                    )
                    element.replace_with(render_invalid(fragment, message))
                    return
                label = _take_label(element)
                body = list(element.contents)
                element.replace_with(
                    render_admonition(fragment, placeholder.name, label, body)
                )
            case RendererKind.GITHUB_CARD:
                repo = placeholder.attributes.get("repo")
                problem = card_usage_error(repo, has_body=placeholder.has_body)
                if problem is not None or repo is None:
                    element.replace_with(render_invalid(fragment, problem or ""))
                    return
                preview = previews.get(repo.strip())
                if preview is None:
                    element.replace_with(render_fallback(fragment, repo))
                else:
                    element.replace_with(render_card(fragment, repo, preview))
            case None:
                _take_label(element)
                element.unwrap()

    def _resolve_cards(
        self, repos: list[str], warnings: list[str]
    ) -> dict[str, RepositoryPreview | None]:
        results: dict[str, RepositoryPreview | None] = dict.fromkeys(repos)
        if not repos or self._card_resolver is None:
            return results
        executor = cf.ThreadPoolExecutor(
            max_workers=min(len(repos), MAX_CARD_WORKERS),
            thread_name_prefix="df12-cards",
        )
        futures = {
            executor.submit(self._card_resolver.resolve, repo): repo for repo in repos
        }
        try:
            done, pending = cf.wait(futures, timeout=self._card_timeout)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        for future in done:
            repo = futures[future]
            try:
                results[repo] = future.result()
            except Exception as exc:  # noqa: BLE001 - any lookup failure falls back
                _warn(warnings, f"card for {repo} fell back to a link: {exc}")
        for future in pending:
            _warn(
                warnings,
                f"card for {futures[future]} timed out after {self._card_timeout}s",
            )
        return results


def _take_label(element: Tag) -> Tag | None:
    """Detach and return the lowered label paragraph of ``element``."""
    label = element.find("p", attrs={LABEL_ATTR: True}, recursive=False)
    if label is None:
        return None
    return label.extract()


def _warn(warnings: list[str], message: str) -> None:
    LOGGER.warning(message)
    warnings.append(message)


__all__ = ["ComponentRenderer", "DirectivePlaceholder", "RendererKind"]
