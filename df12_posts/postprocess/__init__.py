"""Post-processors that operate on the lowered HTML fragment."""

from __future__ import annotations

from .anchors import AnchorRegistry, inject_heading_anchors, slugify
from .images import lazy_load_images
from .math import FormulaTypesetter, MathJaxTypesetter, typeset_math

__all__ = [
    "AnchorRegistry",
    "FormulaTypesetter",
    "MathJaxTypesetter",
    "inject_heading_anchors",
    "lazy_load_images",
    "slugify",
    "typeset_math",
]
