"""Transform markdown blog posts into HTML fragments with metadata.

This package exposes the CLI entry points used by ``posts render`` together
with the pipeline that parses directives, computes reading time and excerpts,
renders admonitions and repository cards, and decorates code blocks.

Exports
-------
- ``app``: Cyclopts application entry for subcommands.
- ``main``: Convenience function that invokes the Cyclopts app.

Examples
--------
>>> from df12_posts import main
>>> main()  # doctest: +SKIP
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
