"""Cyclopts CLI entrypoint for rendering blog posts into HTML fragments.

The ``posts`` console script defined here runs markdown posts through the
transformation pipeline and writes one HTML fragment plus one JSON metadata
file per post. Typical usage is ``posts render content/posts`` locally or in
CI; each option can also be supplied through an ``INPUT_`` environment
variable.

Examples
--------
Render every post of a directory:

>>> from df12_posts.cli import main
>>> main()  # doctest: +SKIP

Render two posts into a custom directory without contacting GitHub:

>>> from df12_posts.cli import app
>>> app(
...     ["render", "a.md", "b.md", "--output-dir", "dist", "--offline"]
... )  # doctest: +SKIP
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from .build import PostBuilder
from .config import default_pipeline_config, load_pipeline_config
from .logging import configure_logging
from .pipeline import PostPipeline

DEFAULT_CONFIG = Path("config/posts.yaml")
DEFAULT_OUTPUT_DIR = Path("public/posts")
MARKDOWN_SUFFIXES = (".md", ".markdown")

app = App(name="posts", config=cyclopts.config.Env("INPUT_", command=False))  # type: ignore[unknown-argument]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _collect_sources(paths: typ.Iterable[Path]) -> list[Path]:
    """Expand directories into their markdown files, keeping the given order."""
    sources: list[Path] = []
    for path in paths:
        if path.is_dir():
            sources.extend(
                sorted(
                    child
                    for child in path.rglob("*")
                    if child.is_file() and child.suffix.lower() in MARKDOWN_SUFFIXES
                )
            )
        else:
            sources.append(path)
    return sources


@app.command(help="Render markdown posts into HTML fragments and metadata.")
def render(
    *paths: typ.Annotated[Path, Parameter(help="Markdown files or directories")],
    config: typ.Annotated[
        Path | None, Parameter(help="Path to pipeline config", env_var="INPUT_CONFIG")
    ] = None,
    output_dir: typ.Annotated[
        Path, Parameter(help="Output folder", env_var="INPUT_OUTPUT_DIR")
    ] = DEFAULT_OUTPUT_DIR,
    workers: typ.Annotated[
        int, Parameter(help="Posts transformed concurrently", env_var="INPUT_WORKERS")
    ] = 1,
    offline: typ.Annotated[
        bool,
        Parameter(help="Render repository cards as plain links", env_var="INPUT_OFFLINE"),
    ] = False,
    verbose: typ.Annotated[
        bool, Parameter(help="Enable debug logging", env_var="INPUT_VERBOSE")
    ] = False,
) -> None:
    """Render posts and report which ones failed.

    Parameters
    ----------
    *paths : Path
        Markdown files, or directories searched recursively for ``.md`` files.
    config : Path or None, optional
        Pipeline configuration file. When omitted, ``config/posts.yaml`` is
        used if present and the built-in defaults otherwise.
    output_dir : Path, optional
        Destination folder for the rendered fragments.
    workers : int, optional
        Number of posts transformed concurrently.
    offline : bool, optional
        Skip GitHub lookups so every card renders as its fallback link.
    verbose : bool, optional
        Log debug messages.

    Raises
    ------
    SystemExit
        With status ``1`` when at least one post failed.
    """
    configure_logging(verbose=verbose)
    if config is not None:
        pipeline_config = load_pipeline_config(config)
    elif DEFAULT_CONFIG.exists():
        pipeline_config = load_pipeline_config(DEFAULT_CONFIG)
    else:
        pipeline_config = default_pipeline_config()

    pipeline = (
        PostPipeline(pipeline_config, card_resolver=None)
        if offline
        else PostPipeline(pipeline_config)
    )
    report = PostBuilder(pipeline).build(
        _collect_sources(paths), output_dir, workers=workers
    )
    for path in report.written:
        print(f"wrote {_format_path(path)}")
    for failure in report.failures:
        print(f"failed {failure.doc_id}: {failure.reason}")
    if not report.ok:
        raise SystemExit(1)


def main() -> None:
    """Invoke the Cyclopts application that powers the `posts` console command.

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
