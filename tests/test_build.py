"""Tests for batch builds and the ``posts render`` command.

These tests write posts into ``tmp_path``, build them sequentially and on a
thread pool, and check that a broken post is reported without stopping the
others. The CLI tests invoke the Cyclopts app directly and inspect the
printed summary with ``capsys``.

Usage
-----
Run ``pytest tests/test_build.py -v``. Cards are disabled
through ``--offline`` or ``card_resolver=None``.

Examples
--------
- ``test_failure_is_isolated`` mixes valid posts with undecodable bytes.
- ``test_cli_exits_non_zero_on_failure`` checks the exit status and output.
"""

from __future__ import annotations

import typing as typ

import msgspec.json as msgspec_json
import pytest

from df12_posts.build import PostBuilder
from df12_posts.cli import app
from df12_posts.pipeline import PostPipeline

if typ.TYPE_CHECKING:
    from pathlib import Path


def _write_posts(root: Path) -> list[Path]:
    root.mkdir(parents=True, exist_ok=True)
    good = root / "hello-world.md"
    good.write_text("# Hello\n\nFirst post.\n", encoding="utf-8")
    custom = root / "second.md"
    custom.write_text(
        "---\nslug: Custom Slug\n---\n:::tip\nTip body\n:::\n", encoding="utf-8"
    )
    broken = root / "broken.md"
    broken.write_bytes(b"# Caf\xe9\n")
    return [good, broken, custom]


@pytest.mark.parametrize("workers", [1, 3])
def test_failure_is_isolated(tmp_path: Path, workers: int) -> None:
    """A broken post fails alone and the others are written."""
    paths = _write_posts(tmp_path / "posts")
    output_dir = tmp_path / "public"

    report = PostBuilder(PostPipeline(card_resolver=None)).build(
        paths, output_dir, workers=workers
    )

    assert not report.ok
    assert [post.slug for post in report.posts] == ["hello-world", "custom-slug"]
    assert [failure.doc_id for failure in report.failures] == [str(paths[1])]
    assert "not valid UTF-8" in report.failures[0].reason
    assert (output_dir / "hello-world.html").read_text(encoding="utf-8").startswith(
        '<section data-depth="1"><h1 id="hello">'
    )
    assert "bdm-tip" in (output_dir / "custom-slug.html").read_text(encoding="utf-8")
    assert (output_dir / "codehilite.css").exists()
    assert not (output_dir / "broken.html").exists()


def test_meta_file_contents(tmp_path: Path) -> None:
    """The metadata file carries front matter, metadata and the table of contents."""
    paths = _write_posts(tmp_path / "posts")
    output_dir = tmp_path / "public"

    PostBuilder(PostPipeline(card_resolver=None)).build(paths, output_dir)

    meta = msgspec_json.decode((output_dir / "hello-world.meta.json").read_bytes())
    assert meta["slug"] == "hello-world"
    assert meta["front_matter"] == {}
    assert meta["metadata"] == {
        "reading_time_minutes": 1,
        "excerpt": "First post.",
        "word_count": 3,
    }
    assert meta["toc"] == [{"text": "Hello", "depth": 1, "slug": "hello", "children": []}]
    assert meta["warnings"] == []


def _run(tokens: list[str]) -> int | str | None:
    """Invoke the CLI and return its exit status (``0`` when it returns)."""
    try:
        app(tokens)
    except SystemExit as exc:
        return exc.code
    return 0


def test_cli_renders_directory(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    """A directory argument renders every markdown file inside it."""
    monkeypatch.chdir(tmp_path)
    posts = tmp_path / "posts"
    posts.mkdir()
    (posts / "one.md").write_text("One\n", encoding="utf-8")
    (posts / "notes.txt").write_text("ignored\n", encoding="utf-8")

    status = _run(["render", str(posts), "--output-dir", "out", "--offline"])

    assert status in (0, None)
    captured = capsys.readouterr().out.splitlines()
    assert captured == ["wrote out/one.html", "wrote out/one.meta.json"]
    assert (tmp_path / "out" / "one.html").read_text(encoding="utf-8") == "<p>One</p>"


def test_cli_exits_non_zero_on_failure(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    """Any failed post makes the command exit with status 1."""
    monkeypatch.chdir(tmp_path)
    paths = _write_posts(tmp_path / "posts")

    status = _run(
        ["render", *(str(path) for path in paths), "--output-dir", "out", "--offline"]
    )

    assert status == 1
    output = capsys.readouterr().out
    assert f"failed {paths[1]}: " in output
    assert "wrote out/hello-world.html" in output


def test_cli_uses_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """An explicit configuration file changes the rendering."""
    monkeypatch.chdir(tmp_path)
    config = tmp_path / "posts.yaml"
    config.write_text("directives:\n  aside: admonition\n", encoding="utf-8")
    post = tmp_path / "aside.md"
    post.write_text(":::aside\nText\n:::\n", encoding="utf-8")

    status = _run(
        ["render", str(post), "--config", str(config), "--output-dir", "out", "--offline"]
    )

    assert status in (0, None)
    html = (tmp_path / "out" / "aside.html").read_text(encoding="utf-8")
    assert 'class="admonition bdm-aside"' in html


@pytest.mark.parametrize("workers", [1, 2])
def test_deeply_nested_post_fails_alone(tmp_path: Path, workers: int) -> None:
    """A post nested too deeply is reported and the batch still completes."""
    posts = tmp_path / "posts"
    posts.mkdir()
    good = posts / "a-ok.md"
    good.write_text("Fine.\n", encoding="utf-8")
    deep = posts / "b-deep.md"
    deep.write_text(">" * 600 + " deep\n", encoding="utf-8")

    report = PostBuilder(PostPipeline(card_resolver=None)).build(
        [good, deep], tmp_path / "public", workers=workers
    )

    assert [post.slug for post in report.posts] == ["a-ok"]
    assert [failure.doc_id for failure in report.failures] == [str(deep)]
    assert "nesting too deep" in report.failures[0].reason
