"""Utility helpers shared by the posts configuration loader."""

from __future__ import annotations

import os
import typing as typ

from df12_posts.components.renderer import RendererKind
from df12_posts.errors import PipelineConfigError

from .models import CardConfig, CodeBlockConfig, ExcerptConfig, default_directives

TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _section(raw: typ.Mapping[str, typ.Any], key: str) -> typ.Mapping[str, typ.Any]:
    """Return the mapping stored under ``key`` or an empty mapping."""
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        msg = f"'{key}' must be a mapping."
        raise PipelineConfigError(msg)
    return value


def _coerce_number(value: object, key: str, kind: type[int] | type[float]) -> typ.Any:
    """Convert ``value`` to ``kind`` or raise :class:`PipelineConfigError`."""
    if isinstance(value, bool):
        msg = f"'{key}' must be a number, got {value!r}"
        raise PipelineConfigError(msg)
    try:
        return kind(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        msg = f"'{key}' must be a number, got {value!r}"
        raise PipelineConfigError(msg) from exc


def _build_directives(
    payload: typ.Mapping[str, typ.Any] | None,
) -> dict[str, RendererKind]:
    """Merge directive registrations over the defaults; ``null`` removes one."""
    table = default_directives()
    for name, kind in (payload or {}).items():
        if kind is None:
            table.pop(str(name), None)
            continue
        try:
            table[str(name)] = RendererKind(str(kind))
        except ValueError as exc:
            known = ", ".join(member.value for member in RendererKind)
            msg = f"Directive '{name}' maps to unknown renderer '{kind}' (known: {known})."
            raise PipelineConfigError(msg) from exc
    return table


def _build_excerpt_config(payload: typ.Mapping[str, typ.Any]) -> ExcerptConfig:
    """Build an ExcerptConfig from the provided mapping payload."""
    base = ExcerptConfig()
    return ExcerptConfig(
        budget=_coerce_number(payload.get("budget", base.budget), "excerpt.budget", int),
        marker=str(payload.get("marker", base.marker)),
    )


def _build_code_config(payload: typ.Mapping[str, typ.Any]) -> CodeBlockConfig:
    """Build a CodeBlockConfig from the provided mapping payload."""
    base = CodeBlockConfig()
    exempt = payload.get("line_number_exempt")
    return CodeBlockConfig(
        pygments_style=str(payload.get("pygments_style", base.pygments_style)),
        line_number_exempt=(
            base.line_number_exempt
            if exempt is None
            else frozenset(str(language).lower() for language in exempt)
        ),
    )


def _build_card_config(payload: typ.Mapping[str, typ.Any]) -> CardConfig:
    """Build a CardConfig, falling back to token environment variables."""
    base = CardConfig()
    token = _optional_str(payload.get("token"))
    if token is None:
        token = next(
            (value for name in TOKEN_ENV_VARS if (value := _optional_str(os.environ.get(name)))),
            None,
        )
    return CardConfig(
        timeout=_coerce_number(payload.get("timeout", base.timeout), "cards.timeout", float),
        api_base=str(payload.get("api_base", base.api_base)),
        token=token,
    )
