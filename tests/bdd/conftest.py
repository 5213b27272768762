"""Shared fixtures and steps for the posts pipeline behaviour tests.

Sample posts are kept here rather than in Gherkin doc strings so that the
feature files read as prose; scenarios refer to them by name.

Usage
-----
Loaded automatically by pytest for every module under ``tests/bdd``.
"""

from __future__ import annotations

import pytest
from pytest_bdd import given, parsers, then, when

from df12_posts.pipeline import PostPipeline

SAMPLE_POSTS = {
    "labelled callout": "> [!WARNING] Mind the gap\n> Do not do this.\n",
    "note callout": "> [!NOTE]\n> Same body.\n",
    "note directive": ":::note\nSame body.\n:::\n",
    "nested callouts": "> [!TIP] Outer\n> > [!CAUTION]\n> > Inner\n",
    "double-encoded callout": "> [!NOTE]\n> :::note\n> inner\n> :::\n",
    "repeated headings": "# Intro\n\n## Intro\n\n# Intro\n",
    "explicit heading id": "## Install {#setup}\n\n## Setup\n",
    "requests card": '::github{repo="psf/requests"}\n',
    "slow card": '::github{repo="slow/repo"}\n',
    "collapsible python": (
        "```python collapse={1}\n"
        "import os\n"
        "# collapse-start\n"
        "x = 1\n"
        "# collapse-end\n"
        "```\n"
    ),
    "shell session": "```shellsession\n$ ls\n```\n",
}


@pytest.fixture
def scenario_state() -> dict[str, object]:
    """Return a mutable dict used to share scenario state across BDD steps."""
    return {}


@given(parsers.parse('the "{name}" post'))
def given_post(name: str, scenario_state: dict[str, object]) -> None:
    """Select a sample post by name."""
    scenario_state["source"] = SAMPLE_POSTS[name]


@given(parsers.parse('the "{name}" post as a second post'))
def given_second_post(name: str, scenario_state: dict[str, object]) -> None:
    """Select a second sample post for comparisons."""
    scenario_state["second_source"] = SAMPLE_POSTS[name]


@when("the post is transformed")
def when_transformed(scenario_state: dict[str, object]) -> None:
    """Run the post through an offline pipeline."""
    source = scenario_state["source"]
    assert isinstance(source, str)
    scenario_state["result"] = PostPipeline(card_resolver=None).transform(
        source, doc_id="post.md"
    )


@then(parsers.parse('a warning mentions "{text}"'))
def then_warning_mentions(text: str, scenario_state: dict[str, object]) -> None:
    """Assert at least one warning contains ``text``."""
    result = scenario_state["result"]
    assert any(text in message for message in result.warnings)  # type: ignore[attr-defined]


@then("no warnings are reported")
def then_no_warnings(scenario_state: dict[str, object]) -> None:
    """Assert the transformation produced no warnings."""
    assert scenario_state["result"].warnings == []  # type: ignore[attr-defined]
