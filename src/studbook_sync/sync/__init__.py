"""Push, pull and reconciliation against the remote store."""

from studbook_sync.sync.background import BackgroundTasks
from studbook_sync.sync.orchestrator import SyncOrchestrator
from studbook_sync.sync.protocol import PullResult, ReconcileReport, RemoteSnapshot, SyncState
from studbook_sync.sync.reconcile import SyncService, apply_snapshot, split_organizations
from studbook_sync.sync.transport import RemoteResult, RemoteTransport

__all__ = [
    "BackgroundTasks",
    "SyncOrchestrator",
    "SyncService",
    "PullResult",
    "ReconcileReport",
    "RemoteSnapshot",
    "SyncState",
    "RemoteResult",
    "RemoteTransport",
    "apply_snapshot",
    "split_organizations",
]
