"""Behaviour tests for GitHub callouts and admonition directives.

These pytest-bdd scenarios check that callout blockquotes and ``:::`` fences
produce the same admonition markup, that normalisation can be repeated safely
and that ambiguous, double-encoded callouts are reported.

Usage
-----
Run ``pytest tests/bdd/test_callouts.py -v``. Sample posts and the shared
steps live in ``tests/bdd/conftest.py``; no network access is needed.
"""

from __future__ import annotations

from pathlib import Path

from pytest_bdd import parsers, scenarios, then, when

from df12_posts.parser import normalize_callouts, parse_markdown
from df12_posts.pipeline import PostPipeline

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "callouts.feature"
scenarios(FEATURE_FILE)


@when("both posts are transformed")
def when_both_transformed(scenario_state: dict[str, object]) -> None:
    """Transform the first and second post with the same pipeline."""
    pipeline = PostPipeline(card_resolver=None)
    scenario_state["first"] = pipeline.transform(
        str(scenario_state["source"]), doc_id="first.md"
    )
    scenario_state["second"] = pipeline.transform(
        str(scenario_state["second_source"]), doc_id="second.md"
    )


@when("the callouts are normalised twice")
def when_normalised_twice(scenario_state: dict[str, object]) -> None:
    """Normalise the parsed post once, then normalise the result again."""
    once = normalize_callouts(parse_markdown(str(scenario_state["source"])))
    scenario_state["once"] = once
    scenario_state["twice"] = normalize_callouts(once)


@then(parsers.parse('the fragment contains a "{kind}" admonition titled "{title}"'))
def then_admonition(kind: str, title: str, scenario_state: dict[str, object]) -> None:
    """Assert the fragment holds an admonition of ``kind`` with ``title``."""
    fragment = scenario_state["result"].fragment  # type: ignore[attr-defined]
    heading = fragment.select_one(f"blockquote.admonition.bdm-{kind} > span.bdm-title")
    assert heading is not None
    assert heading.get_text() == title


@then("both fragments are identical")
def then_identical(scenario_state: dict[str, object]) -> None:
    """Assert both spellings produced the same HTML."""
    first = scenario_state["first"]
    second = scenario_state["second"]
    assert first.html == second.html  # type: ignore[attr-defined]


@then("both normalised trees are equal")
def then_trees_equal(scenario_state: dict[str, object]) -> None:
    """Assert the second normalisation changed nothing."""
    assert scenario_state["once"] == scenario_state["twice"]
