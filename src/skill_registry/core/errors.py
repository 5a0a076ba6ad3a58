"""
Structured error types for the skill registry.

Every failure the sync job can meet is expressed as a typed RegistryError
carrying its category, retry semantics and structured context, so the
validator can decide locally whether an attempt deserves a retry and the CLI
can decide whether a failure ends the run.

Manifesto:
    - **Typed Error Hierarchy:** Transient, source, storage and config errors
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry the stage, source, URL and path involved
    - **Error Chaining:** Preserve original exceptions while adding context

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       RegistryError                              │
        │  (category, retryable, retry_after, context, cause)             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  TransientError       SourceError             StorageError      │
        │  (retryable=True)     (SOURCE)                (STORAGE)         │
        │       │                   │                        │             │
        │  NetworkError         UpstreamUnavailable     PersistenceError  │
        │  RequestTimeoutError  ParseError                                │
        │                        ├─ MalformedRecordError                  │
        │                        └─ ManifestError                         │
        │                                                                  │
        │  ConfigError                                                     │
        │       │                                                          │
        │  InvalidConfigError                                              │
        └─────────────────────────────────────────────────────────────────┘

Handling policy:
    - TransientError: recovered inside the link validator (one retry, then
      the link is recorded unreachable). Never reaches the caller.
    - MalformedRecordError: the record is skipped, processing continues.
    - UpstreamUnavailableError: the source contributes nothing this run; the
      run aborts only when every source is unavailable.
    - PersistenceError / ManifestError / ConfigError: fatal, non-zero exit.

Examples:
    >>> error = NetworkError("connection reset", retry_after=1)
    >>> error.retryable
    True
    >>> error.with_context(url="https://github.com/acme/tool").context.url
    'https://github.com/acme/tool'

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Where a failure came from. Drives log routing and the CLI message."""

    NETWORK = "NETWORK"           # link checks, catalog downloads
    STORAGE = "STORAGE"           # registry directory writes
    SOURCE = "SOURCE"             # upstream catalog listing
    PARSE = "PARSE"               # markdown / JSON / manifest decoding
    CONFIG = "CONFIG"             # settings and component options
    INTERNAL = "INTERNAL"         # default for RegistryError itself
    UNKNOWN = "UNKNOWN"           # foreign exceptions we cannot place


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Attributes:
        stage: Pipeline stage where the error occurred (e.g. "validate")
        kind: Record kind being processed ("skill" or "connector")
        source_name: Name of the catalog source
        url: URL that was being accessed
        path: Filesystem path that was being read or written
        http_status: HTTP status code if applicable
        metadata: Additional key-value pairs
    """

    stage: str | None = None
    kind: str | None = None
    source_name: str | None = None
    url: str | None = None
    path: str | None = None
    http_status: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Flatten to log fields; unset attributes are omitted."""
        result = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "metadata" and getattr(self, f.name) is not None
        }
        result.update(self.metadata)
        return result



class RegistryError(Exception):
    """
    Base exception for all skill registry errors.

    Subclasses set ``default_category`` and ``default_retryable`` so call
    sites only pass what differs from the defaults.

    Examples:
        >>> error = RegistryError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: float | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RegistryError:
        """Attach context and return ``self`` so it can be raised inline.

        Known :class:`ErrorContext` attributes are set directly; anything
        else lands in ``context.metadata``::

            raise UpstreamUnavailableError("listing failed").with_context(
                source_name="awesome-claude-skills", attempt=2
            )
        """
        known = {f.name for f in fields(self.context)} - {"metadata"}
        for key, value in kwargs.items():
            if key in known:
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Log-ready view: type, message, category and retry flags, plus context."""
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        optional = {
            "retry_after": self.retry_after,
            "context": self.context.to_dict() or None,
            "cause": str(self.cause) if self.cause is not None else None,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Usually Retryable)
# =============================================================================


class TransientError(RegistryError):
    """
    Temporary error that may succeed on retry.

    Raised by link checkers for timeouts and transport failures. The
    validator consumes these: one retry after a fixed backoff, then the link
    is recorded unreachable.
    """

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class NetworkError(TransientError):
    """Connection refused, reset, DNS failure."""

    default_category = ErrorCategory.NETWORK


class RequestTimeoutError(TransientError):
    """A single network attempt exceeded its deadline."""

    default_category = ErrorCategory.NETWORK


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class SourceError(RegistryError):
    """
    Error from an upstream catalog.

    Default not retryable (e.g. 404 on a directory listing).
    """

    default_category = ErrorCategory.SOURCE
    default_retryable = False


class UpstreamUnavailableError(SourceError):
    """A catalog listing or download failed outright."""

    pass


class ParseError(SourceError):
    """Error parsing source data."""

    default_category = ErrorCategory.PARSE
    default_retryable = False


class MalformedRecordError(ParseError):
    """A single catalog entry could not be turned into a candidate record."""

    def __init__(self, message: str, *, locator: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.locator = locator

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.locator:
            result["locator"] = self.locator
        return result


class ManifestError(ParseError):
    """The persisted manifest exists but cannot be read as a manifest."""

    pass


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageError(RegistryError):
    """Storage-related error (disk, permissions)."""

    default_category = ErrorCategory.STORAGE
    default_retryable = False


class PersistenceError(StorageError):
    """Writing a partition, manifest or index file failed."""

    pass


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(RegistryError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, RegistryError):
        return error.retryable
    # Bare asyncio/OS level failures seen during a network attempt
    return isinstance(error, (TimeoutError, ConnectionError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Categorize an exception, including non-registry ones."""
    if isinstance(error, RegistryError):
        return error.category
    if isinstance(error, (TimeoutError, ConnectionError)):
        return ErrorCategory.NETWORK
    if isinstance(error, OSError):
        return ErrorCategory.STORAGE
    if isinstance(error, ValueError):
        return ErrorCategory.PARSE
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    # Base
    "RegistryError",
    # Transient
    "TransientError",
    "NetworkError",
    "RequestTimeoutError",
    # Source
    "SourceError",
    "UpstreamUnavailableError",
    "ParseError",
    "MalformedRecordError",
    "ManifestError",
    # Storage
    "StorageError",
    "PersistenceError",
    # Config
    "ConfigError",
    "InvalidConfigError",
    # Utilities
    "is_retryable",
    "categorize_error",
]
