"""Behaviour tests for failure isolation in batch builds.

Usage
-----
Run ``pytest tests/bdd/test_batch_build.py -v``. Posts are written into
pytest's ``tmp_path``.
"""

from __future__ import annotations

from pathlib import Path

from pytest_bdd import given, parsers, scenarios, then, when

from df12_posts.build import BuildReport, PostBuilder
from df12_posts.pipeline import PostPipeline

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "batch_build.feature"
scenarios(FEATURE_FILE)


@given("a folder with two valid posts and one undecodable post")
def given_folder(tmp_path: Path, scenario_state: dict[str, object]) -> None:
    """Write the posts used by the build scenario."""
    posts = tmp_path / "posts"
    posts.mkdir()
    (posts / "first.md").write_text("# First\n\nHello.\n", encoding="utf-8")
    (posts / "second.md").write_text(":::tip\nHi\n:::\n", encoding="utf-8")
    broken = posts / "broken.md"
    broken.write_bytes(b"\xff\xfe\x00broken")
    scenario_state["paths"] = sorted(posts.glob("*.md"))
    scenario_state["broken"] = broken
    scenario_state["output_dir"] = tmp_path / "public"


@given("a folder with two valid posts and one deeply nested post")
def given_nested_folder(tmp_path: Path, scenario_state: dict[str, object]) -> None:
    """Write two valid posts and one blockquote nested six hundred levels deep."""
    posts = tmp_path / "posts"
    posts.mkdir()
    (posts / "first.md").write_text("# First\n\nHello.\n", encoding="utf-8")
    (posts / "second.md").write_text("Plain text.\n", encoding="utf-8")
    nested = posts / "nested.md"
    nested.write_text(">" * 600 + " deep\n", encoding="utf-8")
    scenario_state["paths"] = sorted(posts.glob("*.md"))
    scenario_state["broken"] = nested
    scenario_state["output_dir"] = tmp_path / "public"


@when(parsers.parse("the folder is built with {workers:d} workers"))
def when_built(workers: int, scenario_state: dict[str, object]) -> None:
    """Build every post into the output directory."""
    scenario_state["report"] = PostBuilder(PostPipeline(card_resolver=None)).build(
        scenario_state["paths"],  # type: ignore[arg-type]
        scenario_state["output_dir"],  # type: ignore[arg-type]
        workers=workers,
    )


@then(parsers.parse("{count:d} posts are written"))
def then_posts_written(count: int, scenario_state: dict[str, object]) -> None:
    """Assert the number of posts written and that their files exist."""
    report = scenario_state["report"]
    assert isinstance(report, BuildReport)
    assert len(report.posts) == count
    assert all(path.exists() for path in report.written)


@then("the undecodable post is reported as failed")
def then_failed(scenario_state: dict[str, object]) -> None:
    """Assert exactly the broken post failed."""
    report = scenario_state["report"]
    assert isinstance(report, BuildReport)
    assert [failure.doc_id for failure in report.failures] == [
        str(scenario_state["broken"])
    ]


@then("the deeply nested post is reported as failed")
def then_nested_failed(scenario_state: dict[str, object]) -> None:
    """Assert the nested post failed with a nesting diagnostic."""
    report = scenario_state["report"]
    assert isinstance(report, BuildReport)
    (failure,) = report.failures
    assert failure.doc_id == str(scenario_state["broken"])
    assert "nesting too deep" in failure.reason
