r"""Fetch repository previews for GitHub card directives.

This module wraps the single GitHub REST endpoint the card renderer needs,
``GET /repos/:owner/:repo``, and normalises the payload into a
:class:`RepositoryPreview`. Every preview field is optional; the renderer
supplies fallbacks for whatever the API leaves out.

Example
-------
>>> from df12_posts.components.cards import GitHubRepositoryClient
>>> client = GitHubRepositoryClient(timeout=3)  # doctest: +SKIP
>>> preview = client.resolve("psf/requests")  # doctest: +SKIP
>>> preview.title  # doctest: +SKIP
'requests'
"""

from __future__ import annotations

import dataclasses as dc
import json
import re
import typing as typ
from http import HTTPStatus

import requests

from df12_posts._constants import DEFAULT_API_BASE, DEFAULT_CARD_TIMEOUT
from df12_posts.errors import CardResolutionError

_ACCEPT_HEADER = "application/vnd.github+json"
REPO_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


@dc.dataclass(slots=True)
class RepositoryPreview:
    """Metadata shown on a repository card.

    Attributes
    ----------
    title : str | None
        Repository name as reported by GitHub.
    description : str | None
        Repository description, possibly containing emoji shortcodes.
    owner_icon : str | None
        Avatar URL of the owning account.
    stars : int | None
        Stargazer count.
    forks : int | None
        Fork count.
    license : str | None
        SPDX identifier of the licence.
    language : str | None
        Primary language.
    """

    title: str | None = None
    description: str | None = None
    owner_icon: str | None = None
    stars: int | None = None
    forks: int | None = None
    license: str | None = None
    language: str | None = None


class CardResolver(typ.Protocol):
    """Resolve an ``owner/name`` identifier into a :class:`RepositoryPreview`."""

    def resolve(self, repo: str) -> RepositoryPreview:
        """Return the preview for ``repo`` or raise :class:`CardResolutionError`."""
        ...


class GitHubRepositoryClient:
    """Thin wrapper around the GitHub repository endpoint.

    The client centralises authentication, timeouts and error handling.
    Without an injected session every lookup opens and closes its own
    :class:`requests.Session`, since sessions are not safe to share between
    the worker threads that resolve cards concurrently.
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        api_base: str = DEFAULT_API_BASE,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_CARD_TIMEOUT,
    ) -> None:
        """Initialise the client with optional authentication and transport.

        Parameters
        ----------
        token : str | None, optional
            Personal access token; raises the API rate limit when provided.
        api_base : str, optional
            Base URL for the GitHub API; override for GitHub Enterprise.
        session : requests.Session, optional
            Preconfigured session used for every lookup. The caller must keep
            it thread-safe when documents are built concurrently. Defaults to
            a new session per lookup.
        timeout : float, optional
            Per-request timeout in seconds. Defaults to ``3.0``.
        """
        self._api_base = api_base.rstrip("/") or DEFAULT_API_BASE
        self._session = session
        self.timeout = timeout
        self._headers = {
            "Accept": _ACCEPT_HEADER,
            "User-Agent": "df12-posts/0.1",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    def resolve(self, repo: str) -> RepositoryPreview:
        """Return the preview for ``owner/name``.

        Raises
        ------
        CardResolutionError
            When the repository identifier is malformed, the API cannot be
            reached, responds with an error status or returns invalid JSON.
        """
        normalized = repo.strip()
        if not REPO_PATTERN.match(normalized):
            msg = f"Repository identifier must be 'owner/name', got {repo!r}"
            raise CardResolutionError(msg)

        url = f"{self._api_base}/repos/{normalized}"
        try:
            if self._session is not None:
                response = self._get(self._session, url)
            else:
                with requests.Session() as session:
                    response = self._get(session, url)
        except requests.RequestException as exc:
            msg = f"Failed to reach GitHub for '{normalized}': {exc}"
            raise CardResolutionError(msg) from exc

        if response.status_code >= HTTPStatus.BAD_REQUEST:
            snippet = response.text[:200]
            msg = (
                f"GitHub repository lookup for '{normalized}' failed with "
                f"status {response.status_code}: {snippet}"
            )
            raise CardResolutionError(msg)

        try:
            payload = response.json()
        except (json.JSONDecodeError, requests.JSONDecodeError) as exc:
            msg = f"GitHub response for '{normalized}' was not valid JSON"
            raise CardResolutionError(msg) from exc
        if not isinstance(payload, dict):
            msg = f"GitHub response for '{normalized}' was not an object"
            raise CardResolutionError(msg)
        return preview_from_payload(payload)

    def _get(self, session: requests.Session, url: str) -> requests.Response:
        return session.get(url, headers=self._headers, timeout=self.timeout)


def preview_from_payload(payload: dict[str, typ.Any]) -> RepositoryPreview:
    """Build a :class:`RepositoryPreview` from a GitHub repository object."""
    owner = payload.get("owner")
    license_info = payload.get("license")
    return RepositoryPreview(
        title=_coerce_str(payload.get("name")),
        description=_coerce_str(payload.get("description")),
        owner_icon=_coerce_str(owner.get("avatar_url")) if isinstance(owner, dict) else None,
        stars=_coerce_int(payload.get("stargazers_count")),
        forks=_coerce_int(payload.get("forks")),
        license=(
            _coerce_str(license_info.get("spdx_id"))
            if isinstance(license_info, dict)
            else None
        ),
        language=_coerce_str(payload.get("language")),
    )


def _coerce_str(value: object) -> str | None:
    """Return the string representation of ``value`` or None."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def _coerce_int(value: object) -> int | None:
    """Return ``value`` as an integer or None when it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


__all__ = [
    "REPO_PATTERN",
    "CardResolver",
    "GitHubRepositoryClient",
    "RepositoryPreview",
    "preview_from_payload",
]
