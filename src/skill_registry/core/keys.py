"""
Deterministic keys and source identifiers.

Partition keys, owner filenames and source identities are all derived from
catalog text, so the same input always lands under the same key. These
helpers are the only place that derivation happens.

Examples:
    >>> name_to_key("Foo Bar")
    'foo-bar'
    >>> name_to_key("foo-bar")
    'foo-bar'
    >>> url_to_source("https://github.com/acme/tools/tree/main/skills/pdf")
    'github:acme/tools/skills/pdf'
    >>> source_to_url("github:acme/tools")
    'https://github.com/acme/tools'
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_GITHUB_URL = re.compile(r"github\.com/([^/]+)/([^/]+)(?:/tree/[^/]+)?(?:/(.+))?")

GITHUB_PREFIX = "github:"
UNKNOWN_OWNER = "unknown"


def name_to_key(name: str) -> str:
    """Case-fold, collapse non-alphanumeric runs to ``-`` and trim the ends."""
    return _NON_ALNUM.sub("-", name.lower()).strip("-")


def owner_key(owner: str | None) -> str:
    """Normalize an owner hint into a filename-safe key."""
    key = name_to_key(owner or "")
    return key or UNKNOWN_OWNER


def url_to_source(url: str) -> str:
    """Convert a GitHub URL to ``github:owner/repo[/path]``; other URLs pass through."""
    match = _GITHUB_URL.search(url)
    if not match:
        return url
    owner, repo, path = match.groups()
    if path:
        return f"{GITHUB_PREFIX}{owner}/{repo}/{path}"
    return f"{GITHUB_PREFIX}{owner}/{repo}"


def source_to_url(source: str) -> str:
    """Expand a ``github:`` source back to a browsable URL."""
    if source.startswith(GITHUB_PREFIX):
        return f"https://github.com/{source[len(GITHUB_PREFIX):]}"
    return source


def github_owner(url: str) -> str | None:
    """Return the GitHub account that owns ``url``, if it is a GitHub URL."""
    match = _GITHUB_URL.search(url)
    return match.group(1) if match else None


def is_checkable_url(url: str) -> bool:
    """True when ``url`` is an absolute http(s) URL with a host."""
    if not url or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def truncate_description(text: str, limit: int = 200) -> str:
    """Bound description size: over ``limit`` chars keeps ``limit - 3`` plus ``...``."""
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


__all__ = [
    "GITHUB_PREFIX",
    "UNKNOWN_OWNER",
    "name_to_key",
    "owner_key",
    "url_to_source",
    "source_to_url",
    "github_owner",
    "is_checkable_url",
    "truncate_description",
]
