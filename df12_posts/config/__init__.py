"""Load and validate configuration for the posts pipeline.

This subpackage parses the optional ``posts.yaml`` file, merges it over the
built-in defaults and produces typed dataclasses (:class:`PipelineConfig`,
:class:`ExcerptConfig` and friends) that the pipeline consumes. The primary
entry point is :func:`load_pipeline_config`; :func:`default_pipeline_config`
returns the configuration used when no file is given.

Examples
--------
>>> from df12_posts.config import default_pipeline_config
>>> config = default_pipeline_config()
>>> config.directives["warning"].value
'admonition'
>>> sorted(config.code.line_number_exempt)
['shellsession']
"""

from .loader import (
    default_pipeline_config,
    load_pipeline_config,
    pipeline_config_from_mapping,
)
from .models import (
    CardConfig,
    CodeBlockConfig,
    ExcerptConfig,
    PipelineConfig,
    PipelineConfigError,
    default_directives,
)

__all__ = [
    "CardConfig",
    "CodeBlockConfig",
    "ExcerptConfig",
    "PipelineConfig",
    "PipelineConfigError",
    "default_directives",
    "default_pipeline_config",
    "load_pipeline_config",
    "pipeline_config_from_mapping",
]
