"""Exception types shared across the df12 posts pipeline.

Recoverable problems (a malformed directive, an unreachable card API) never
surface as exceptions from the pipeline; they degrade to fallback rendering.
The classes below cover the failures that abort a single document, plus the
configuration and transport errors raised by collaborators.
"""

from __future__ import annotations


class DocumentError(RuntimeError):
    """Raised when one document cannot be transformed at all.

    Attributes
    ----------
    doc_id : str | None
        Identifier of the failing document, when known.
    reason : str
        Human-readable explanation without the document prefix.
    """

    def __init__(self, reason: str, *, doc_id: str | None = None) -> None:
        self.doc_id = doc_id
        self.reason = reason
        prefix = f"{doc_id}: " if doc_id else ""
        super().__init__(f"{prefix}{reason}")

    def for_document(self, doc_id: str) -> DocumentError:
        """Return a copy of this error tagged with ``doc_id``."""
        error = type(self)(self.reason, doc_id=doc_id)
        error.__cause__ = self.__cause__
        return error


class InvalidSourceError(DocumentError):
    """Raised when the input is not well-formed text."""


class TreeShapeError(DocumentError):
    """Raised when a stage receives a node it does not recognise."""


class PipelineConfigError(ValueError):
    """Raised when the pipeline configuration is invalid or incomplete."""


class CardResolutionError(RuntimeError):
    """Raised when a repository preview cannot be fetched or decoded."""


__all__ = [
    "CardResolutionError",
    "DocumentError",
    "InvalidSourceError",
    "PipelineConfigError",
    "TreeShapeError",
]
