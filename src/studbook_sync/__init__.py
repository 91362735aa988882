"""studbook-sync - Local-first data sync for conservation studbooks."""

from studbook_sync.app import StudbookContext
from studbook_sync.config import RemoteConfig, StoreConfig, StudbookConfig
from studbook_sync.core.collections import Collection
from studbook_sync.errors import (
    FailureKind,
    RemoteOperationError,
    RemoteUnavailableError,
    SchemaNotProvisionedError,
    StudbookSyncError,
    TransportError,
    classify_failure,
)
from studbook_sync.storage.record_store import LocalRecordStore
from studbook_sync.sync.orchestrator import SyncOrchestrator
from studbook_sync.sync.reconcile import SyncService
from studbook_sync.sync.transport import RemoteTransport

__version__ = "0.1.0"

__all__ = [
    # Wiring
    "StudbookContext",
    "StudbookConfig",
    "RemoteConfig",
    "StoreConfig",
    # Components
    "Collection",
    "LocalRecordStore",
    "RemoteTransport",
    "SyncOrchestrator",
    "SyncService",
    # Errors
    "FailureKind",
    "StudbookSyncError",
    "TransportError",
    "RemoteUnavailableError",
    "RemoteOperationError",
    "SchemaNotProvisionedError",
    "classify_failure",
    # Version
    "__version__",
]
