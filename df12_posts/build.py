r"""Build many posts, isolating failures to the document that caused them.

:class:`PostBuilder` reads each source file, runs it through a shared
:class:`~df12_posts.pipeline.PostPipeline` and writes two files per post into
the output directory:

``<slug>.html``
    The finished HTML fragment.
``<slug>.meta.json``
    Front matter, metadata, table of contents and warnings as JSON.

Documents are independent, so they can be transformed on a thread pool. A
document that fails is recorded in the :class:`BuildReport` and the rest of
the build carries on.

Example
-------
>>> from pathlib import Path
>>> from df12_posts.build import PostBuilder
>>> from df12_posts.pipeline import PostPipeline
>>> report = PostBuilder(PostPipeline()).build(
...     [Path("posts/hello.md")], Path("public/posts"), workers=4
... )  # doctest: +SKIP
>>> report.ok  # doctest: +SKIP
True
"""

from __future__ import annotations

import concurrent.futures as cf
import dataclasses as dc
import typing as typ

import msgspec
import msgspec.json as msgspec_json

from df12_posts._constants import HTML_FILENAME_TEMPLATE, META_FILENAME_TEMPLATE
from df12_posts.errors import DocumentError
from df12_posts.logging import get_logger
from df12_posts.postprocess.anchors import slugify

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from df12_posts.pipeline import PostPipeline, RenderedDocument

LOGGER = get_logger("build")
STYLESHEET_FILENAME = "codehilite.css"


@dc.dataclass(slots=True)
class BuildFailure:
    """A document that could not be built and the reason why."""

    doc_id: str
    reason: str


@dc.dataclass(slots=True)
class BuiltPost:
    """Files written for one successfully built document."""

    doc_id: str
    slug: str
    html_path: Path
    meta_path: Path
    warnings: list[str] = dc.field(default_factory=list)


@dc.dataclass(slots=True)
class BuildReport:
    """Outcome of a build run, in input order."""

    posts: list[BuiltPost] = dc.field(default_factory=list)
    failures: list[BuildFailure] = dc.field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Return ``True`` when every document was built."""
        return not self.failures

    @property
    def written(self) -> list[Path]:
        """Return every file written for the built posts."""
        return [path for post in self.posts for path in (post.html_path, post.meta_path)]


class PostBuilder:
    """Transform and write a batch of posts with one shared pipeline."""

    def __init__(self, pipeline: PostPipeline) -> None:
        self._pipeline = pipeline

    def build(
        self,
        paths: cabc.Sequence[Path],
        output_dir: Path,
        *,
        workers: int = 1,
    ) -> BuildReport:
        """Build every post in ``paths`` into ``output_dir``.

        Parameters
        ----------
        paths : Sequence[Path]
            Markdown source files.
        output_dir : Path
            Destination directory; created when missing.
        workers : int, optional
            Number of documents transformed concurrently. Defaults to ``1``.

        Returns
        -------
        BuildReport
            Built posts and failures, each in input order.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        (output_dir / STYLESHEET_FILENAME).write_text(
            self._pipeline.stylesheet, encoding="utf-8"
        )
        outcomes: list[BuiltPost | BuildFailure | None] = [None] * len(paths)
        if workers <= 1:
            for index, path in enumerate(paths):
                outcomes[index] = self._build_one(path, output_dir)
        else:
            with cf.ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="df12-posts"
            ) as executor:
                futures = {
                    executor.submit(self._build_one, path, output_dir): index
                    for index, path in enumerate(paths)
                }
                for future in cf.as_completed(futures):
                    outcomes[futures[future]] = future.result()

        report = BuildReport()
        for outcome in outcomes:
            if isinstance(outcome, BuiltPost):
                report.posts.append(outcome)
            elif isinstance(outcome, BuildFailure):
                report.failures.append(outcome)
        return report

    def _build_one(self, path: Path, output_dir: Path) -> BuiltPost | BuildFailure:
        doc_id = str(path)
        try:
            source = path.read_bytes()
            rendered = self._pipeline.transform(source, doc_id=doc_id)
            return _write_outputs(rendered, output_dir, _post_slug(rendered, path))
        except DocumentError as exc:
            reason = exc.reason
        except OSError as exc:
            reason = f"{exc.strerror or exc}"
        except msgspec.EncodeError as exc:
            reason = f"metadata is not JSON serialisable: {exc}"
        LOGGER.error("Error building post %s: %s", doc_id, reason)
        return BuildFailure(doc_id=doc_id, reason=reason)


def _post_slug(rendered: RenderedDocument, path: Path) -> str:
    """Return the output slug: front matter ``slug`` or the file stem."""
    explicit = rendered.front_matter.get("slug")
    if isinstance(explicit, str) and explicit.strip():
        return slugify(explicit)
    return slugify(path.stem)


def _write_outputs(rendered: RenderedDocument, output_dir: Path, slug: str) -> BuiltPost:
    html_path = output_dir / HTML_FILENAME_TEMPLATE.format(slug=slug)
    meta_path = output_dir / META_FILENAME_TEMPLATE.format(slug=slug)
    html_path.write_text(rendered.html, encoding="utf-8")
    payload = {
        "doc_id": rendered.doc_id,
        "slug": slug,
        "front_matter": rendered.front_matter,
        "metadata": rendered.metadata,
        "toc": rendered.toc,
        "warnings": rendered.warnings,
    }
    meta_path.write_bytes(msgspec_json.format(msgspec_json.encode(payload), indent=2))
    return BuiltPost(
        doc_id=rendered.doc_id,
        slug=slug,
        html_path=html_path,
        meta_path=meta_path,
        warnings=list(rendered.warnings),
    )


__all__ = ["BuildFailure", "BuildReport", "BuiltPost", "PostBuilder"]
