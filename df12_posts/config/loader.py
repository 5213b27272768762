"""Load pipeline configuration YAML into typed dataclasses."""

from __future__ import annotations

import typing as typ

from ruamel.yaml import YAML

from df12_posts.errors import PipelineConfigError

from .helpers import (
    _build_card_config,
    _build_code_config,
    _build_directives,
    _build_excerpt_config,
    _coerce_number,
    _section,
)
from .models import PipelineConfig

if typ.TYPE_CHECKING:
    from pathlib import Path


def load_pipeline_config(path: Path) -> PipelineConfig:
    """Load the YAML configuration for the posts pipeline.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML configuration file (for example,
        ``posts.yaml``).

    Returns
    -------
    PipelineConfig
        Parsed configuration with defaults applied for missing keys.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    PipelineConfigError
        If the top-level structure is not a mapping, a directive maps to an
        unknown renderer, or a numeric setting is out of range.
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> from df12_posts.config import load_pipeline_config
    >>> config = load_pipeline_config(Path("posts.yaml"))  # doctest: +SKIP
    >>> config.words_per_minute  # doctest: +SKIP
    200
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise PipelineConfigError(msg)
    return pipeline_config_from_mapping(loaded)


def pipeline_config_from_mapping(raw: typ.Mapping[str, typ.Any]) -> PipelineConfig:
    """Build and validate a :class:`PipelineConfig` from a plain mapping."""
    base = PipelineConfig()
    directives = raw.get("directives")
    if directives is not None and not isinstance(directives, dict):
        msg = "'directives' must be a mapping of directive name to renderer."
        raise PipelineConfigError(msg)
    config = PipelineConfig(
        directives=_build_directives(directives),
        words_per_minute=_coerce_number(
            raw.get("words_per_minute", base.words_per_minute), "words_per_minute", int
        ),
        excerpt=_build_excerpt_config(_section(raw, "excerpt")),
        code=_build_code_config(_section(raw, "code")),
        cards=_build_card_config(_section(raw, "cards")),
    )
    config.validate()
    return config


def default_pipeline_config() -> PipelineConfig:
    """Return the built-in configuration, honouring token environment variables."""
    return pipeline_config_from_mapping({})


__all__ = [
    "default_pipeline_config",
    "load_pipeline_config",
    "pipeline_config_from_mapping",
]
