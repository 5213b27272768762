"""Behaviour tests for repository cards and their fallback.

These scenarios swap the GitHub client for in-memory card sources: one that
answers immediately and one that never answers, which must be cut off by the
card timeout.

Usage
-----
Run ``pytest tests/bdd/test_repository_cards.py -v``. The blocking source is
released after each scenario so no worker thread outlives the test.
"""

from __future__ import annotations

import threading
import typing as typ
from pathlib import Path

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from df12_posts.components import RepositoryPreview
from df12_posts.config import default_pipeline_config
from df12_posts.pipeline import PostPipeline

if typ.TYPE_CHECKING:
    import collections.abc as cabc

FEATURE_FILE = (
    Path(__file__).resolve().parents[2] / "features" / "repository_cards.feature"
)
scenarios(FEATURE_FILE)


class KnownRepositories:
    """Answer immediately for a fixed set of repositories."""

    def __init__(self, repos: cabc.Iterable[str]) -> None:
        self._repos = set(repos)

    def resolve(self, repo: str) -> RepositoryPreview:
        if repo not in self._repos:
            msg = f"unknown repository {repo}"
            raise LookupError(msg)
        return RepositoryPreview(title=repo.split("/")[1], stars=1200)


class SilentSource:
    """Never answer until released."""

    def __init__(self) -> None:
        self.release = threading.Event()

    def resolve(self, repo: str) -> RepositoryPreview:
        self.release.wait(5)
        return RepositoryPreview(title=repo)


@pytest.fixture
def silent_source() -> cabc.Iterator[SilentSource]:
    """Yield a blocking card source and release it afterwards."""
    source = SilentSource()
    yield source
    source.release.set()


@given(parsers.parse('a card source that knows "{repo}"'))
def given_known_source(repo: str, scenario_state: dict[str, object]) -> None:
    """Use a card source that resolves ``repo``."""
    scenario_state["resolver"] = KnownRepositories([repo])


@given("a card source that never answers")
def given_silent_source(
    silent_source: SilentSource, scenario_state: dict[str, object]
) -> None:
    """Use a card source that blocks past the deadline."""
    scenario_state["resolver"] = silent_source


@when("the post is transformed with cards")
def when_transformed_with_cards(scenario_state: dict[str, object]) -> None:
    """Transform the post with a short card deadline."""
    config = default_pipeline_config()
    config.cards.timeout = 0.1
    pipeline = PostPipeline(config, card_resolver=scenario_state["resolver"])
    scenario_state["result"] = pipeline.transform(
        str(scenario_state["source"]), doc_id="cards.md"
    )


@then(parsers.parse('the fragment contains a card for "{repo}"'))
def then_card(repo: str, scenario_state: dict[str, object]) -> None:
    """Assert a full card for ``repo`` was rendered."""
    fragment = scenario_state["result"].fragment  # type: ignore[attr-defined]
    card = fragment.select_one(f'a.card-github[data-repo="{repo}"]')
    assert card is not None
    assert card.select_one(".gc-stars").get_text() == "1.2K"


@then(parsers.parse('the fragment contains a fallback link to "{repo}"'))
def then_fallback(repo: str, scenario_state: dict[str, object]) -> None:
    """Assert ``repo`` was rendered as a plain link."""
    fragment = scenario_state["result"].fragment  # type: ignore[attr-defined]
    link = fragment.select_one("a.card-github-fallback")
    assert link is not None
    assert link["href"] == f"https://github.com/{repo}"
