"""Reconciliation: folding the remote snapshot into the local store.

The policy is last-pull-wins per collection. A collection present in the
snapshot replaces the local one wholesale; an absent collection is left
alone. Local-only state (current project, session, token, notifications)
is never touched.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from studbook_sync.core.collections import Collection
from studbook_sync.errors import FailureKind, TransportError, classify_failure
from studbook_sync.sync.protocol import ReconcileReport, RemoteSnapshot, SyncState
from studbook_sync.utils.timeutils import utcnow

if TYPE_CHECKING:
    from studbook_sync.storage.record_store import LocalRecordStore
    from studbook_sync.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

PARTNERS = "partners"


def split_organizations(
    rows: list[dict[str, Any]],
    my_org_id: str,
) -> tuple[dict[str, Any] | None, list[dict[str, Any]]]:
    """Split remote organization rows into (mine, partners).

    Mine is the row whose id matches ``my_org_id``. Only when there is no
    local id at all does the first row become mine. Everyone else is a
    partner.
    """
    mine = next((row for row in rows if my_org_id and row.get("id") == my_org_id), None)
    if mine is None and not my_org_id and rows:
        mine = rows[0]

    own_id = mine.get("id") if mine is not None else my_org_id
    partners = [row for row in rows if row.get("id") != own_id]
    return mine, partners


def apply_snapshot(store: LocalRecordStore, snapshot: RemoteSnapshot) -> ReconcileReport:
    """Overwrite every collection present in ``snapshot`` without pushing it back."""
    pending = {collection.value for collection in store.pending_collections()}
    applied: list[str] = []

    if snapshot.org is not None:
        store.save_org(snapshot.org, skip_sync=True)
        applied.append(Collection.ORG.value)
    if snapshot.partners is not None:
        store.save_network_partners(snapshot.partners)
        applied.append(PARTNERS)
    if snapshot.projects is not None:
        store.save_projects(snapshot.projects, skip_sync=True)
        applied.append(Collection.PROJECTS.value)
    if snapshot.users is not None:
        store.save_users(snapshot.users, skip_sync=True)
        applied.append(Collection.USERS.value)
    if snapshot.species is not None:
        store.save_species(snapshot.species, skip_sync=True)
        applied.append(Collection.SPECIES.value)
    if snapshot.individuals is not None:
        store.save_individuals(snapshot.individuals, skip_sync=True)
        applied.append(Collection.INDIVIDUALS.value)
    if snapshot.breeding_events is not None:
        store.save_breeding_events(snapshot.breeding_events, skip_sync=True)
        applied.append(Collection.BREEDING_EVENTS.value)
    if snapshot.breeding_loans is not None:
        store.save_breeding_loans(snapshot.breeding_loans, skip_sync=True)
        applied.append(Collection.BREEDING_LOANS.value)
    if snapshot.partnerships is not None:
        store.save_partnerships(snapshot.partnerships, skip_sync=True)
        applied.append(Collection.PARTNERSHIPS.value)
    if snapshot.settings is not None:
        store.save_system_settings(snapshot.settings, skip_sync=True)
        applied.append(Collection.SETTINGS.value)
    if snapshot.languages is not None:
        store.save_languages(snapshot.languages, skip_sync=True)
        applied.append(Collection.LANGUAGES.value)

    overwrote = tuple(name for name in applied if name in pending)
    if overwrote:
        logger.warning("Pull overwrote unpushed local changes in: %s", ", ".join(overwrote))
    logger.info("Applied remote snapshot: %s", ", ".join(applied) or "nothing")
    return ReconcileReport(applied=tuple(applied), overwrote_pending=overwrote)


class SyncService:
    """Runs pulls and pending pushes, and keeps the sync indicator state."""

    def __init__(self, store: LocalRecordStore, orchestrator: SyncOrchestrator) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._state = SyncState.from_dict(store.get_sync_state())
        store.tasks.add_failure_listener(self._on_push_failure)

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def orchestrator(self) -> SyncOrchestrator:
        return self._orchestrator

    def _persist(self) -> None:
        self._store.save_sync_state(self._state.to_dict())

    def _record_failure(self, message: str, kind: FailureKind | None) -> None:
        if kind is None or kind is FailureKind.SERVER_ERROR:
            kind = classify_failure(message)
        self._state.last_error = message
        self._state.last_failure_kind = kind
        self._state.needs_schema_setup = kind is FailureKind.SCHEMA_NOT_PROVISIONED
        self._persist()

    def _on_push_failure(self, name: str, exc: BaseException) -> None:
        self._state.pushes_failed += 1
        if isinstance(exc, TransportError):
            self._record_failure(exc.message, exc.kind)
        else:
            self._record_failure(str(exc), FailureKind.SERVER_ERROR)

    async def pull(self) -> ReconcileReport | None:
        """Fetch the remote snapshot and apply it. Returns None on failure."""
        self._state.is_syncing = True
        self._state.last_attempt = utcnow()
        try:
            result = await self._orchestrator.fetch_remote_data(self._store.get_org().id)
            if not result.success or result.data is None:
                if result.kind is FailureKind.NOT_CONFIGURED:
                    logger.info("No remote store configured, skipping pull")
                else:
                    logger.warning("Pull failed: %s", result.message)
                self._record_failure(result.message, result.kind)
                return None

            report = apply_snapshot(self._store, result.data)
            self._state.last_success = utcnow()
            self._state.last_error = None
            self._state.last_failure_kind = None
            self._state.needs_schema_setup = False
            return report
        finally:
            self._state.is_syncing = False
            self._persist()

    async def push(self, collections: Iterable[Collection] | None = None) -> list[Collection]:
        """Push the current local value of each collection (all by default).

        Returns the collections that reached the remote store. Failures are
        recorded and leave the collection in the pending ledger.
        """
        targets = list(Collection) if collections is None else list(collections)
        pushed: list[Collection] = []
        for collection in targets:
            value = self._store.load_collection(collection)
            try:
                await self._orchestrator.push_collection(collection, value)
            except TransportError as e:
                logger.warning("Push of %s failed: %s", collection, e.message)
                self._store.mark_pending(collection)
                self._record_failure(e.message, e.kind)
                continue
            self._store.clear_pending(collection)
            pushed.append(collection)
        return pushed

    async def push_pending(self) -> list[Collection]:
        """Re-push every collection whose last push did not land."""
        pending = self._store.pending_collections()
        if not pending:
            return []
        logger.info("Re-pushing pending collections: %s", ", ".join(pending))
        return await self.push(pending)

    async def sync(self) -> ReconcileReport | None:
        """Push pending local changes, then pull."""
        await self.push_pending()
        return await self.pull()
