"""
Parsers that turn raw catalog files into candidate records.

Two catalog formats are understood:

- awesome-claude-skills ``domains/<domain>.md``: markdown tables whose rows
  read ``| [name](url) | description | author |``. Badge images hosted on
  ``img.shields.io`` match the same pattern and are ignored.
- code-assistant-manager ``servers/<key>.json``: one MCP server per file.

Parsers are pure functions. A record that cannot be interpreted raises
:class:`~skill_registry.core.errors.MalformedRecordError`; the caller decides
whether to skip it.
"""

from __future__ import annotations

import re
from typing import Any

from skill_registry.core.errors import MalformedRecordError
from skill_registry.core.keys import UNKNOWN_OWNER, github_owner, owner_key
from skill_registry.core.models import CandidateRecord, RecordKind

_TABLE_ROW = re.compile(r"\|\s*\[([^\]]+)\]\(([^)]+)\)\s*\|\s*([^|]+)\s*\|\s*([^|]+)\s*\|")
_LINK_TEXT = re.compile(r"\[([^\]]*)\]")
_BADGE_HOST = "img.shields.io"
_EMPTY_AUTHORS = {"", "-", "n/a", "unknown"}


def author_to_owner(author: str) -> str | None:
    """Extract an owner hint from an author column value.

    ``[@acme](https://github.com/acme)`` and ``@acme`` both yield ``acme``.
    """
    text = author.strip()
    link = _LINK_TEXT.search(text)
    if link:
        text = link.group(1)
    text = text.strip().lstrip("@").strip()
    if text.lower() in _EMPTY_AUTHORS:
        return None
    return text


def parse_skills_markdown(markdown: str, domain_tag: str) -> list[CandidateRecord]:
    """Extract skill records from one domain markdown file, in document order."""
    records: list[CandidateRecord] = []
    for match in _TABLE_ROW.finditer(markdown):
        name, url, description, author = (part.strip() for part in match.groups())
        if not name or not url or _BADGE_HOST in url:
            continue
        owner = author_to_owner(author) or github_owner(url)
        records.append(
            CandidateRecord(
                kind=RecordKind.SKILL,
                owner=owner_key(owner),
                name=name,
                source_url=url,
                description=description,
                tags=(domain_tag, "community"),
            )
        )
    return records


def _mcp_servers(data: dict[str, Any], key: str, locator: str) -> list[dict[str, Any]]:
    installations = data.get("installations") or {}
    if not isinstance(installations, dict):
        raise MalformedRecordError("'installations' must be an object", locator=locator)

    servers: list[dict[str, Any]] = []
    for install_type, config in installations.items():
        if not isinstance(config, dict):
            continue
        command, args = config.get("command"), config.get("args")
        if not command or not isinstance(args, list):
            continue
        if not isinstance(command, str):
            raise MalformedRecordError(f"installation {install_type!r}: 'command' must be a string", locator=locator)
        env = config.get("env") or {}
        if not isinstance(env, dict):
            raise MalformedRecordError(f"installation {install_type!r}: 'env' must be an object", locator=locator)
        servers.append({
            "name": f"{data.get('name') or key}-{install_type}",
            "command": command,
            "args": [str(a) for a in args],
            "env": {str(k): str(v) for k, v in env.items()},
        })
    return servers


def _string_list(data: dict[str, Any], field: str, locator: str) -> list[str]:
    value = data.get(field) or []
    if not isinstance(value, list):
        raise MalformedRecordError(f"'{field}' must be a list", locator=locator)
    return [str(v) for v in value]


def parse_mcp_server(data: Any, key: str) -> CandidateRecord:
    """Build a connector record from one server JSON document.

    Args:
        data: Decoded JSON document.
        key: File stem, used when the document carries no name.

    Raises:
        MalformedRecordError: ``data`` is not an object or a field has the
            wrong shape.
    """
    locator = f"{key}.json"
    if not isinstance(data, dict):
        raise MalformedRecordError("server document must be a JSON object", locator=locator)

    repository = data.get("repository")
    repo_url = repository.get("url") if isinstance(repository, dict) else None
    source_url = repo_url or data.get("homepage") or ""
    if not isinstance(source_url, str):
        raise MalformedRecordError("repository url must be a string", locator=locator)

    author = data.get("author")
    if isinstance(author, dict):
        author = author.get("name")
    owner = github_owner(source_url) or (author if isinstance(author, str) else None) or UNKNOWN_OWNER

    tags = ["mcp", *_string_list(data, "tags", locator), *_string_list(data, "categories", locator)]
    servers = _mcp_servers(data, key, locator)

    return CandidateRecord(
        kind=RecordKind.CONNECTOR,
        owner=owner_key(owner),
        name=str(data.get("display_name") or data.get("name") or key),
        source_url=source_url,
        description=str(data.get("description") or f"{key} MCP server"),
        tags=tuple(tags),
        extra={"mcp_servers": servers} if servers else {},
    )


__all__ = ["author_to_owner", "parse_skills_markdown", "parse_mcp_server"]
