"""
Catalog sources backed by the GitHub contents API.

Each source lists one repository directory, downloads the matching files
with bounded concurrency, and parses them into candidate records.

Design Principles:
- Protocol over Inheritance: the pipeline only needs ``CatalogSource``
- Failure isolation: a listing failure empties that source for the run, a
  download or parse failure drops one file
- Deterministic: records come back in listing order, whatever order the
  downloads finish in

Usage:
    async with GitHubContentsClient(api_url=settings.github_api_url) as client:
        source = AwesomeSkillsSource(client, repo="Chat2AnyLLM/awesome-claude-skills")
        result = await source.fetch()
        print(result.success, len(result))
"""

from __future__ import annotations

import asyncio
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

from skill_registry.core.errors import MalformedRecordError, RegistryError, UpstreamUnavailableError
from skill_registry.core.logging import get_logger
from skill_registry.core.models import CandidateRecord, RecordKind
from skill_registry.sync.parsers import parse_mcp_server, parse_skills_markdown

logger = get_logger(__name__)


@dataclass(frozen=True)
class ContentItem:
    """One entry of a GitHub directory listing."""

    name: str
    type: str
    download_url: str | None = None

    @property
    def stem(self) -> str:
        return self.name.rsplit(".", 1)[0]


@dataclass
class SourceResult:
    """Records produced by one catalog source, plus fetch diagnostics."""

    source_name: str
    kind: RecordKind
    records: list[CandidateRecord] = field(default_factory=list)
    files_seen: int = 0
    files_skipped: int = 0
    duration_ms: int | None = None
    success: bool = True
    error: RegistryError | None = None

    @classmethod
    def fail(cls, source_name: str, kind: RecordKind, error: RegistryError) -> SourceResult:
        return cls(source_name=source_name, kind=kind, success=False, error=error)

    def __len__(self) -> int:
        return len(self.records)


class GitHubContentsClient:
    """Minimal async client for directory listings and raw file downloads."""

    def __init__(
        self,
        *,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        user_agent: str = "skill-registry-sync/1.0",
        max_concurrency: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._max_concurrency = max_concurrency
        self._client = httpx.AsyncClient(
            follow_redirects=True,
            headers={"User-Agent": user_agent, "Accept": "application/vnd.github+json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    async def __aenter__(self) -> GitHubContentsClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_directory(self, repo: str, path: str, branch: str = "main") -> list[ContentItem]:
        """List ``path`` in ``repo`` at ``branch``.

        Raises:
            UpstreamUnavailableError: non-2xx status, transport failure or a
                response that is not a directory listing.
        """
        url = f"{self._api_url}/repos/{repo}/contents/{path}"
        payload = await self._get_json(url, params={"ref": branch})
        if not isinstance(payload, list):
            raise UpstreamUnavailableError(f"{repo}/{path} is not a directory").with_context(url=url)
        return [
            ContentItem(
                name=str(item.get("name", "")),
                type=str(item.get("type", "")),
                download_url=item.get("download_url"),
            )
            for item in payload
            if isinstance(item, dict)
        ]

    async def download_text(self, url: str) -> str:
        response = await self._request(url)
        return response.text

    async def _get_json(self, url: str, params: dict[str, str] | None = None) -> Any:
        response = await self._request(url, params=params)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailableError(f"Invalid JSON from {url}", cause=e).with_context(url=url)

    async def _request(self, url: str, params: dict[str, str] | None = None) -> httpx.Response:
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(f"{type(e).__name__} fetching {url}", cause=e).with_context(url=url)
        if not response.is_success:
            raise UpstreamUnavailableError(
                f"GitHub API error: {response.status_code} for {url}"
            ).with_context(url=url, http_status=response.status_code)
        return response


@runtime_checkable
class CatalogSource(Protocol):
    """What the pipeline needs from a catalog."""

    @property
    def name(self) -> str: ...

    @property
    def kind(self) -> RecordKind: ...

    async def fetch(self) -> SourceResult: ...


class GitHubCatalogSource(ABC):
    """Shared list / download / parse flow. Subclasses implement :meth:`parse`."""

    kind: RecordKind
    suffix: str

    def __init__(self, client: GitHubContentsClient, *, repo: str, path: str, branch: str = "main") -> None:
        self._client = client
        self._repo = repo
        self._path = path
        self._branch = branch

    @property
    def name(self) -> str:
        return self._repo.rsplit("/", 1)[-1]

    @abstractmethod
    def parse(self, item: ContentItem, text: str) -> list[CandidateRecord]:
        """Turn one downloaded file into candidate records."""
        ...

    async def fetch(self) -> SourceResult:
        started = time.monotonic()
        logger.info("source.fetch_start", source=self.name, repo=self._repo, path=self._path)

        try:
            listing = await self._client.list_directory(self._repo, self._path, self._branch)
        except UpstreamUnavailableError as e:
            e.with_context(source_name=self.name)
            logger.error("source.listing_failed", source=self.name, **e.to_dict())
            return SourceResult.fail(self.name, self.kind, e)

        files = [i for i in listing if i.type == "file" and i.name.endswith(self.suffix) and i.download_url]
        texts = await self._download_all(files)

        result = SourceResult(source_name=self.name, kind=self.kind, files_seen=len(files))
        for item, text in zip(files, texts):
            if text is None:
                result.files_skipped += 1
                continue
            try:
                parsed = self.parse(item, text)
            except MalformedRecordError as e:
                logger.debug("source.malformed_file", source=self.name, file=item.name, error=e.message)
                result.files_skipped += 1
                continue
            logger.debug("source.file_parsed", source=self.name, file=item.name, records=len(parsed))
            result.records.extend(parsed)

        result.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "source.fetch_complete",
            source=self.name,
            files=result.files_seen,
            skipped=result.files_skipped,
            records=len(result.records),
            duration_ms=result.duration_ms,
        )
        return result

    async def _download_all(self, files: list[ContentItem]) -> list[str | None]:
        sem = asyncio.Semaphore(self._client.max_concurrency)

        async def _one(item: ContentItem) -> str | None:
            async with sem:
                try:
                    return await self._client.download_text(item.download_url)
                except UpstreamUnavailableError as e:
                    logger.debug("source.download_failed", source=self.name, file=item.name, error=e.message)
                    return None

        return list(await asyncio.gather(*(_one(item) for item in files)))


class AwesomeSkillsSource(GitHubCatalogSource):
    """Skill tables from awesome-claude-skills ``domains/*.md``."""

    kind = RecordKind.SKILL
    suffix = ".md"

    def __init__(
        self,
        client: GitHubContentsClient,
        *,
        repo: str = "Chat2AnyLLM/awesome-claude-skills",
        path: str = "domains",
        branch: str = "main",
    ) -> None:
        super().__init__(client, repo=repo, path=path, branch=branch)

    def parse(self, item: ContentItem, text: str) -> list[CandidateRecord]:
        return parse_skills_markdown(text, item.stem)


class McpServerSource(GitHubCatalogSource):
    """One MCP server definition per JSON file in code-assistant-manager."""

    kind = RecordKind.CONNECTOR
    suffix = ".json"

    def __init__(
        self,
        client: GitHubContentsClient,
        *,
        repo: str = "Chat2AnyLLM/code-assistant-manager",
        path: str = "code_assistant_manager/mcp/registry/servers",
        branch: str = "main",
    ) -> None:
        super().__init__(client, repo=repo, path=path, branch=branch)

    def parse(self, item: ContentItem, text: str) -> list[CandidateRecord]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedRecordError(f"Invalid JSON: {e}", locator=item.name, cause=e)
        return [parse_mcp_server(data, item.stem)]


__all__ = [
    "AwesomeSkillsSource",
    "CatalogSource",
    "ContentItem",
    "GitHubCatalogSource",
    "GitHubContentsClient",
    "McpServerSource",
    "SourceResult",
]
