r"""Run one post through every transformation stage.

Stages run strictly in order, each consuming the previous stage's output:

1. split front matter and parse the markdown blocks;
2. rewrite GitHub-style callouts into directive fences;
3. parse directives and inline math;
4. compute reading time, word count and excerpt;
5. group headings into sections;
6. lower the tree into an HTML fragment;
7. render directive components (admonitions, repository cards);
8. inject heading anchors, defer images and typeset math;
9. decorate code blocks;
10. extract the table of contents.

A :class:`PostPipeline` holds only immutable configuration and thread-safe
collaborators. Everything mutable (the Markdown converter, the anchor
registry, the HTML fragment) is created per call to
:meth:`PostPipeline.transform`, so one pipeline can serve many documents
concurrently.

Example
-------
>>> from df12_posts.pipeline import PostPipeline
>>> result = PostPipeline(card_resolver=None).transform("# Hi\\n", doc_id="hi")
>>> result.toc[0].slug
'hi'
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from df12_posts.codeblocks import decorate_code_blocks, default_decorators
from df12_posts.components import ComponentRenderer, GitHubRepositoryClient
from df12_posts.config import PipelineConfig, default_pipeline_config
from df12_posts.errors import DocumentError, InvalidSourceError
from df12_posts.frontmatter import split_front_matter
from df12_posts.logging import get_logger
from df12_posts.lowering import HtmlContentRenderer, lower_document
from df12_posts.metadata import DocumentMetadata, compute_metadata
from df12_posts.parser import (
    find_double_encoded_callouts,
    normalize_callouts,
    parse_directives,
    parse_markdown,
)
from df12_posts.postprocess import (
    MathJaxTypesetter,
    inject_heading_anchors,
    lazy_load_images,
    typeset_math,
)
from df12_posts.sections import group_sections
from df12_posts.toc import TocEntry, extract_toc
from df12_posts.tree import Document

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from bs4 import BeautifulSoup

    from df12_posts.codeblocks import CodeBlockDecorator
    from df12_posts.components import CardResolver
    from df12_posts.postprocess import FormulaTypesetter

LOGGER = get_logger("pipeline")
_DEFAULT = object()


@dc.dataclass(slots=True)
class RenderedDocument:
    """Everything the page renderer needs for one post.

    Attributes
    ----------
    doc_id : str
        Identifier supplied by the caller (usually the source path).
    front_matter : dict[str, Any]
        Parsed front matter, passed through untouched.
    fragment : BeautifulSoup
        Final HTML fragment.
    html : str
        Serialised ``fragment``.
    metadata : DocumentMetadata
        Reading time, excerpt and word count.
    toc : list[TocEntry]
        Nested table of contents.
    warnings : list[str]
        Recoverable problems met while transforming the post.
    """

    doc_id: str
    front_matter: dict[str, typ.Any]
    fragment: BeautifulSoup
    html: str
    metadata: DocumentMetadata
    toc: list[TocEntry]
    warnings: list[str] = dc.field(default_factory=list)


def decode_source(source: str | bytes) -> str:
    """Return ``source`` as text, rejecting input that is not well-formed text.

    Raises
    ------
    InvalidSourceError
        If ``source`` is neither ``str`` nor UTF-8 ``bytes`` or contains NUL
        characters.
    """
    if isinstance(source, bytes):
        try:
            text = source.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            msg = f"source is not valid UTF-8: {exc.reason} at byte {exc.start}"
            raise InvalidSourceError(msg) from exc
    elif isinstance(source, str):
        text = source
    else:
        msg = f"source must be text, got {type(source).__name__}"
        raise InvalidSourceError(msg)
    if "\x00" in text:
        msg = "source contains NUL characters"
        raise InvalidSourceError(msg)
    return text.replace("\r\n", "\n").replace("\r", "\n")


class PostPipeline:
    """Transform markdown posts into HTML fragments plus metadata."""

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        card_resolver: CardResolver | None | object = _DEFAULT,
        typesetter: FormulaTypesetter | None = None,
        decorators: cabc.Sequence[CodeBlockDecorator] | None = None,
    ) -> None:
        """Create a pipeline.

        Parameters
        ----------
        config : PipelineConfig, optional
            Pipeline configuration; defaults to :func:`default_pipeline_config`.
        card_resolver : CardResolver | None, optional
            Repository preview source. Defaults to a
            :class:`~df12_posts.components.GitHubRepositoryClient` built from
            ``config.cards``; pass ``None`` to render every card as a link.
        typesetter : FormulaTypesetter, optional
            Formula renderer; defaults to MathJax delimiters.
        decorators : Sequence[CodeBlockDecorator], optional
            Code-block decorators; defaults to the standard set.
        """
        self.config = config or default_pipeline_config()
        self.config.validate()
        if card_resolver is _DEFAULT:
            card_resolver = GitHubRepositoryClient(
                token=self.config.cards.token,
                api_base=self.config.cards.api_base,
                timeout=self.config.cards.timeout,
            )
        self._card_resolver = typ.cast("CardResolver | None", card_resolver)
        self._typesetter = typesetter or MathJaxTypesetter()
        self._decorators = tuple(
            decorators
            if decorators is not None
            else default_decorators(self.config.code.line_number_exempt)
        )

    @property
    def stylesheet(self) -> str:
        """Return the pygments CSS matching the configured style."""
        return HtmlContentRenderer(self.config.code.pygments_style).stylesheet

    def transform(self, source: str | bytes, *, doc_id: str) -> RenderedDocument:
        """Transform one post.

        Parameters
        ----------
        source : str | bytes
            Markdown text with optional front matter.
        doc_id : str
            Identifier used in warnings and errors.

        Returns
        -------
        RenderedDocument
            Final fragment with its side records.

        Raises
        ------
        DocumentError
            If the input is not well-formed text, the front matter is invalid
            or a stage receives a tree it does not recognise. The error
            carries ``doc_id``.
        """
        try:
            return self._transform(source, doc_id)
        except DocumentError as exc:
            raise exc.for_document(doc_id) from exc
        except RecursionError as exc:
            msg = "document nesting too deep"
            raise InvalidSourceError(msg, doc_id=doc_id) from exc

    def _transform(self, source: str | bytes, doc_id: str) -> RenderedDocument:
        config = self.config
        warnings: list[str] = []
        text = decode_source(source)
        front_matter, body = split_front_matter(text)

        parsed = parse_markdown(body)
        normalized = normalize_callouts(parsed)
        for keyword in find_double_encoded_callouts(normalized):
            message = (
                f"{doc_id}: callout [!{keyword.upper()}] already wraps a "
                f"'{keyword}' directive; left as a blockquote"
            )
            LOGGER.warning(message)
            warnings.append(message)
        document = parse_directives(normalized)
        if not isinstance(document, Document):
            document = Document(children=(document,))

        metadata = compute_metadata(
            document,
            words_per_minute=config.words_per_minute,
            excerpt_budget=config.excerpt.budget,
            excerpt_marker=config.excerpt.marker,
        )

        renderer = HtmlContentRenderer(config.code.pygments_style)
        fragment = lower_document(group_sections(document), renderer)

        components = ComponentRenderer(
            config.directives,
            card_resolver=self._card_resolver,
            card_timeout=config.cards.timeout,
        )
        warnings.extend(f"{doc_id}: {message}" for message in components.render(fragment))
        inject_heading_anchors(fragment)
        lazy_load_images(fragment)
        warnings.extend(
            f"{doc_id}: {message}" for message in typeset_math(fragment, self._typesetter)
        )
        decorate_code_blocks(fragment, self._decorators)
        toc = extract_toc(fragment)
        LOGGER.debug(
            "transformed %s (%d words, %d warnings)", doc_id, metadata.word_count, len(warnings)
        )
        return RenderedDocument(
            doc_id=doc_id,
            front_matter=front_matter,
            fragment=fragment,
            html=str(fragment),
            metadata=metadata,
            toc=toc,
            warnings=warnings,
        )


__all__ = ["PostPipeline", "RenderedDocument", "decode_source"]
