"""Link Validator — bounded async reachability checks with one retry.

Every candidate record carries a reference link. Before a record is
published the validator confirms the link still answers, without letting a
large catalog open hundreds of sockets at once.

ARCHITECTURE
────────────
::

    LinkValidator.validate_all([LinkCheck(id, url), ...])
      │
      ├── bypass (options.enabled is False) ─► every id → True, no I/O
      ├── malformed url                      ─► id → False, no attempt
      │
      └── scheduler loop
            pending  (FIFO deque of jobs)
            active   (attempt tasks, len ≤ concurrency_limit)
            backoff  (sleep tasks, hold no slot)

            admit while pending and slot free
            asyncio.wait(FIRST_COMPLETED)
              attempt done  ─► status < 400 → True
                               status ≥ 400 → False (final)
                               timeout / transport → backoff → head of pending
              backoff done  ─► job.appendleft(pending)

The active set bounds *attempts*. A job waiting out its backoff is parked
outside the active set, so a slow retry never starves fresh admissions, and
the retry of a job can only start after its previous attempt has finished.

Related modules:
    retry.py       — ConstantBackoff policy consulted after a failed attempt

Example::

    options = ValidatorOptions(enabled=True, concurrency_limit=10)
    async with HttpLinkChecker(user_agent=options.user_agent) as checker:
        reachable = await LinkValidator(options, checker).validate_all(checks)
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx

from skill_registry.core.errors import (
    NetworkError,
    RegistryError,
    RequestTimeoutError,
    categorize_error,
    is_retryable,
)
from skill_registry.core.keys import is_checkable_url
from skill_registry.core.logging import get_logger
from skill_registry.core.models import LinkCheck, ValidationOutcome
from skill_registry.core.settings import ValidatorOptions
from skill_registry.execution.retry import ConstantBackoff, RetryStrategy

logger = get_logger(__name__)


@runtime_checkable
class LinkChecker(Protocol):
    """Anything that can perform one network attempt against a URL.

    Implementations return the final HTTP status (after redirects) and raise
    :class:`~skill_registry.core.errors.TransientError` subclasses for
    timeouts and transport failures.
    """

    async def fetch_status(self, url: str) -> int: ...


class HttpLinkChecker:
    """Production checker backed by a shared :class:`httpx.AsyncClient`.

    Issues a GET (body read, redirects followed) with a custom ``User-Agent``.
    Connection limits follow the validator's concurrency budget.
    """

    def __init__(
        self,
        *,
        user_agent: str = "skill-registry-sync/1.0",
        max_connections: int = 10,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            follow_redirects=True,
            headers={"User-Agent": user_agent},
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections,
            ),
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_options(cls, options: ValidatorOptions) -> HttpLinkChecker:
        return cls(
            user_agent=options.user_agent,
            max_connections=options.concurrency_limit,
            timeout=options.attempt_timeout,
        )

    async def __aenter__(self) -> HttpLinkChecker:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_status(self, url: str) -> int:
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"Timed out fetching {url}", cause=e).with_context(url=url)
        except httpx.TransportError as e:
            raise NetworkError(f"{type(e).__name__} fetching {url}", cause=e).with_context(url=url)
        except httpx.InvalidURL as e:
            raise NetworkError(f"Invalid URL {url}", retryable=False, cause=e).with_context(url=url)
        return response.status_code


@dataclass
class _Job:
    id: str
    url: str
    attempts: int = 0


class LinkValidator:
    """Validate a batch of links with bounded concurrency.

    Parameters
    ----------
    options : ValidatorOptions
        Concurrency limit, per-attempt timeout, attempt budget and backoff.
    checker : LinkChecker, optional
        Network checker. When omitted and validation is enabled, an
        :class:`HttpLinkChecker` is opened for the duration of the batch.
    retry : RetryStrategy, optional
        Defaults to :class:`ConstantBackoff` built from ``options``.
    """

    def __init__(
        self,
        options: ValidatorOptions,
        checker: LinkChecker | None = None,
        *,
        retry: RetryStrategy | None = None,
    ) -> None:
        self._options = options
        self._checker = checker
        self._retry = retry or ConstantBackoff.for_attempts(options.max_attempts, options.retry_backoff)

    @property
    def options(self) -> ValidatorOptions:
        return self._options

    async def validate_all(self, entries: Iterable[LinkCheck]) -> dict[str, bool]:
        """Map every submitted id to whether its link is reachable."""
        outcomes = await self.run(entries)
        return {id_: outcome.reachable for id_, outcome in outcomes.items()}

    async def run(self, entries: Iterable[LinkCheck]) -> dict[str, ValidationOutcome]:
        """Validate ``entries`` and return one :class:`ValidationOutcome` per unique id.

        Duplicate ids are checked once, using the first URL submitted for
        them. No exception escapes: failures the checker did not classify
        are logged and resolve to unreachable.
        """
        unique: dict[str, str] = {}
        for entry in entries:
            unique.setdefault(entry.id, entry.url)

        if not self._options.enabled:
            logger.debug("link_validator.bypass", entries=len(unique))
            return {id_: ValidationOutcome(id_, True, 0) for id_ in unique}

        results: dict[str, ValidationOutcome] = {}
        jobs: deque[_Job] = deque()
        for id_, url in unique.items():
            if is_checkable_url(url):
                jobs.append(_Job(id_, url.strip()))
            else:
                logger.debug("link_validator.malformed_url", id=id_, url=url)
                results[id_] = ValidationOutcome(id_, False, 0)

        started = time.monotonic()
        logger.info(
            "link_validator.start",
            entries=len(unique),
            checks=len(jobs),
            concurrency_limit=self._options.concurrency_limit,
        )

        if jobs:
            if self._checker is not None:
                await self._schedule(self._checker, jobs, results)
            else:
                async with HttpLinkChecker.from_options(self._options) as checker:
                    await self._schedule(checker, jobs, results)

        ordered = {id_: results[id_] for id_ in unique}
        reachable = sum(1 for o in ordered.values() if o.reachable)
        logger.info(
            "link_validator.complete",
            entries=len(ordered),
            reachable=reachable,
            unreachable=len(ordered) - reachable,
            duration_seconds=round(time.monotonic() - started, 3),
        )
        return ordered

    # ── Scheduling ───────────────────────────────────────────────────

    async def _schedule(
        self,
        checker: LinkChecker,
        pending: deque[_Job],
        results: dict[str, ValidationOutcome],
    ) -> None:
        limit = self._options.concurrency_limit
        active: dict[asyncio.Task, _Job] = {}
        backoff: dict[asyncio.Task, _Job] = {}

        try:
            while pending or active or backoff:
                while pending and len(active) < limit:
                    job = pending.popleft()
                    job.attempts += 1
                    active[asyncio.create_task(self._attempt(checker, job.url))] = job

                done, _ = await asyncio.wait(
                    [*active, *backoff],
                    return_when=asyncio.FIRST_COMPLETED,
                )
                for task in done:
                    if task in backoff:
                        pending.appendleft(backoff.pop(task))
                        continue

                    job = active.pop(task)
                    error = task.exception()
                    if error is None:
                        status = task.result()
                        self._resolve(job, status < 400, results, status=status)
                    elif is_retryable(error) and self._retry.should_retry(job.attempts, error):
                        delay = self._retry.next_delay(job.attempts)
                        logger.debug(
                            "link_validator.retry",
                            id=job.id,
                            attempt=job.attempts,
                            delay=delay,
                            error=str(error),
                        )
                        backoff[asyncio.create_task(asyncio.sleep(delay))] = job
                    else:
                        if not isinstance(error, RegistryError):
                            logger.warning(
                                "link_validator.unexpected_error",
                                id=job.id,
                                url=job.url,
                                error_type=type(error).__name__,
                                category=categorize_error(error).value,
                                error=str(error),
                            )
                        self._resolve(job, False, results, error=str(error))
        finally:
            for task in (*active, *backoff):
                task.cancel()

    async def _attempt(self, checker: LinkChecker, url: str) -> int:
        try:
            async with asyncio.timeout(self._options.attempt_timeout):
                return await checker.fetch_status(url)
        except TimeoutError as e:
            raise RequestTimeoutError(
                f"No response within {self._options.attempt_timeout}s", cause=e
            ).with_context(url=url)

    @staticmethod
    def _resolve(
        job: _Job,
        reachable: bool,
        results: dict[str, ValidationOutcome],
        **details,
    ) -> None:
        results[job.id] = ValidationOutcome(job.id, reachable, job.attempts)
        if not reachable:
            logger.debug("link_validator.unreachable", id=job.id, url=job.url, attempts=job.attempts, **details)


__all__ = [
    "LinkChecker",
    "HttpLinkChecker",
    "LinkValidator",
]
