r"""Hand math placeholders to a formula typesetter.

The pipeline never parses formula syntax. Each ``.math[data-formula]``
placeholder is passed verbatim to a :class:`FormulaTypesetter`; the default
:class:`MathJaxTypesetter` wraps the formula in MathJax delimiters so the
client-side MathJax runtime renders it.

Example
-------
>>> from df12_posts.postprocess.math import MathJaxTypesetter
>>> MathJaxTypesetter().typeset("a^2", display=False)
'\\(a^2\\)'
"""

from __future__ import annotations

import html
import typing as typ

from bs4 import BeautifulSoup

from df12_posts.logging import get_logger

if typ.TYPE_CHECKING:
    from bs4 import Tag

LOGGER = get_logger("math")


class FormulaTypesetter(typ.Protocol):
    """Turn a raw formula into an HTML snippet."""

    def typeset(self, formula: str, *, display: bool) -> str:
        """Return HTML for ``formula``; raise on unrecoverable syntax."""
        ...


class MathJaxTypesetter:
    """Emit MathJax delimiters around the raw formula."""

    def typeset(self, formula: str, *, display: bool) -> str:
        """Return ``\\[formula\\]`` for display math and ``\\(formula\\)`` otherwise."""
        escaped = html.escape(formula, quote=False)
        if display:
            return f"\\[{escaped}\\]"
        return f"\\({escaped}\\)"


def typeset_math(fragment: BeautifulSoup, typesetter: FormulaTypesetter) -> list[str]:
    """Render every math placeholder in ``fragment``; return warning messages.

    A typesetter failure is recoverable: the placeholder then shows the raw
    formula inside ``code.math-error``.
    """
    warnings: list[str] = []
    for placeholder in fragment.select(".math[data-formula]"):
        formula = str(placeholder["data-formula"])
        display = "math-display" in (placeholder.get("class") or [])
        try:
            rendered = typesetter.typeset(formula, display=display)
        except Exception as exc:  # noqa: BLE001 - typesetter errors stay local
            message = f"could not typeset {formula!r}: {exc}"
            LOGGER.warning(message)
            warnings.append(message)
            _replace_contents(placeholder, _error(fragment, formula))
            continue
        _replace_contents(placeholder, BeautifulSoup(rendered, "html.parser"))
    return warnings


def _error(fragment: BeautifulSoup, formula: str) -> Tag:
    code = fragment.new_tag("code")
    code["class"] = ["math-error"]
    code.string = formula
    return code


def _replace_contents(placeholder: Tag, content: Tag) -> None:
    placeholder.clear()
    if isinstance(content, BeautifulSoup):
        for child in list(content.contents):
            placeholder.append(child)
    else:
        placeholder.append(content)


__all__ = ["FormulaTypesetter", "MathJaxTypesetter", "typeset_math"]
