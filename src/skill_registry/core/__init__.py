"""Skill Registry Core -- errors, models, storage and the manifest.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (RegistryError, TransientError)
        models.py          CandidateRecord, RegistryEntry, ValidationOutcome
        keys.py            Deterministic keys and source identifiers

    Layer 2 -- Storage
        storage.py         JSON documents under the registry root (dry-run aware)
        manifest.py        index.json model + ManifestReconciler

    Layer 3 -- Cross-Cutting Concerns
        logging.py         Structured logging (structlog)
        settings.py        RegistrySettings + per-component option values
"""

from skill_registry.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    MalformedRecordError,
    ManifestError,
    NetworkError,
    ParseError,
    PersistenceError,
    RegistryError,
    RequestTimeoutError,
    SourceError,
    StorageError,
    TransientError,
    UpstreamUnavailableError,
    categorize_error,
    is_retryable,
)
from skill_registry.core.keys import name_to_key, owner_key, source_to_url, url_to_source
from skill_registry.core.manifest import Manifest, ManifestReconciler, load_manifest
from skill_registry.core.models import (
    CandidateRecord,
    LinkCheck,
    McpServerConfig,
    PartitionFile,
    RecordKind,
    RegistryEntry,
    ValidationOutcome,
)
from skill_registry.core.settings import (
    ManifestOptions,
    PartitionOptions,
    RegistrySettings,
    ValidatorOptions,
)
from skill_registry.core.storage import RegistryStore

__all__ = [
    # errors
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidConfigError",
    "MalformedRecordError",
    "ManifestError",
    "NetworkError",
    "ParseError",
    "PersistenceError",
    "RegistryError",
    "RequestTimeoutError",
    "SourceError",
    "StorageError",
    "TransientError",
    "UpstreamUnavailableError",
    "categorize_error",
    "is_retryable",
    # keys
    "name_to_key",
    "owner_key",
    "source_to_url",
    "url_to_source",
    # manifest
    "Manifest",
    "ManifestReconciler",
    "load_manifest",
    # models
    "CandidateRecord",
    "LinkCheck",
    "McpServerConfig",
    "PartitionFile",
    "RecordKind",
    "RegistryEntry",
    "ValidationOutcome",
    # settings
    "ManifestOptions",
    "PartitionOptions",
    "RegistrySettings",
    "ValidatorOptions",
    # storage
    "RegistryStore",
]
