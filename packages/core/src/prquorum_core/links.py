"""URL generation for pull request references."""

from __future__ import annotations

from prquorum_core.codec import encode

GITHUB_WEB = "https://github.com"


def pull_request_url(repo: str, item_id: int) -> str:
    return f"{GITHUB_WEB}/{repo}/pull/{item_id}"


def short_url(item_id: int, base: str) -> str:
    """Compact link: ``<base>/pr/<base-62 id>``, for a redirector that routes ``/pr/{token}``."""
    return f"{base.rstrip('/')}/pr/{encode(item_id)}"


def item_url(repo: str, item_id: int, short_base: str | None = None) -> str:
    if short_base:
        return short_url(item_id, short_base)
    return pull_request_url(repo, item_id)
