"""Local record store: the source of truth for every read.

Each collection lives as one JSON document under an ``os_`` key. Saves are
full-collection replaces that complete synchronously; the matching remote
push is then scheduled in the background unless the caller passes
``skip_sync=True`` (which reconciliation always does).
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, TypeVar
from uuid import uuid4

from pydantic import TypeAdapter

from studbook_sync.core.collections import Collection, LocalKey
from studbook_sync.core.defaults import (
    default_system_settings,
    empty_organization,
    seed_languages,
)
from studbook_sync.core.records import (
    BreedingEvent,
    BreedingLoan,
    ExternalPartner,
    Individual,
    LanguageConfig,
    Notification,
    NotificationType,
    Organization,
    Partnership,
    Project,
    Species,
    SystemSettings,
    User,
)
from studbook_sync.errors import BackendError, RemoteNotConfiguredError, TransportError
from studbook_sync.storage.base import KeyValueBackend
from studbook_sync.storage.codec import dump, parse_or_default
from studbook_sync.sync.background import BackgroundTasks
from studbook_sync.utils.timeutils import today_iso

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CollectionPusher(Protocol):
    """What the store needs from the remote side."""

    async def push_collection(self, collection: Collection, value: Any) -> None: ...

    async def soft_delete(self, collection: Collection, key: str) -> None: ...


_ADAPTERS: dict[Collection, TypeAdapter[Any]] = {
    Collection.ORG: TypeAdapter(Organization),
    Collection.USERS: TypeAdapter(list[User]),
    Collection.PROJECTS: TypeAdapter(list[Project]),
    Collection.SPECIES: TypeAdapter(list[Species]),
    Collection.INDIVIDUALS: TypeAdapter(list[Individual]),
    Collection.BREEDING_EVENTS: TypeAdapter(list[BreedingEvent]),
    Collection.BREEDING_LOANS: TypeAdapter(list[BreedingLoan]),
    Collection.PARTNERSHIPS: TypeAdapter(list[Partnership]),
    Collection.LANGUAGES: TypeAdapter(list[LanguageConfig]),
    Collection.SETTINGS: TypeAdapter(SystemSettings),
}

_PARTNERS = TypeAdapter(list[ExternalPartner])
_NOTIFICATIONS = TypeAdapter(list[Notification])
_SESSION = TypeAdapter(User | None)
_ORG_BACKUP = TypeAdapter(Organization | None)
_TEXT = TypeAdapter(str)
_NAMES = TypeAdapter(list[str])


def _empty(collection: Collection) -> Any:
    if collection is Collection.ORG:
        return empty_organization()
    if collection is Collection.SETTINGS:
        return default_system_settings()
    return []


class LocalRecordStore:
    """Typed accessors over a key-value backend.

    Attributes:
        backend: Durable string store
        tasks: Registry the background pushes are spawned into
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        pusher: CollectionPusher | None = None,
        tasks: BackgroundTasks | None = None,
    ) -> None:
        self._backend = backend
        self._pusher = pusher
        self._tasks = tasks if tasks is not None else BackgroundTasks()

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    @property
    def tasks(self) -> BackgroundTasks:
        return self._tasks

    # ── Raw access ──

    def get(self, key: str, default: T, adapter: TypeAdapter[T] | None = None) -> T:
        """Read and decode ``key``; any failure yields ``default``."""
        try:
            raw = self._backend.read(key)
        except BackendError as e:
            logger.warning("Local read of %s failed: %s", key, e)
            return default
        return parse_or_default(raw, default, adapter, key=key)

    def set(self, key: str, value: Any, adapter: TypeAdapter[Any] | None = None) -> None:
        self._backend.write(key, dump(value, adapter))

    def remove(self, key: str) -> None:
        self._backend.remove(key)

    def load_collection(self, collection: Collection) -> Any:
        """Stored value of ``collection``, soft-deleted records included."""
        return self.get(collection.storage_key, _empty(collection), _ADAPTERS[collection])

    def _live(self, collection: Collection) -> list[Any]:
        return [record for record in self.load_collection(collection) if not record.deleted]

    def save_collection(self, collection: Collection, value: Any, skip_sync: bool = False) -> None:
        """Overwrite ``collection`` locally, then schedule its push unless skipped."""
        self.set(collection.storage_key, value, _ADAPTERS[collection])
        if not skip_sync:
            self.schedule_push(collection, value)

    # ── Background push ──

    def schedule_push(self, collection: Collection, value: Any) -> None:
        if self._pusher is None:
            logger.debug("No remote attached, %s kept local only", collection)
            return
        task = self._tasks.spawn(self._push(collection, value), name=f"push:{collection}")
        if task is None:
            self.mark_pending(collection)

    async def _push(self, collection: Collection, value: Any) -> None:
        if self._pusher is None:
            return
        try:
            await self._pusher.push_collection(collection, value)
        except Exception:
            self.mark_pending(collection)
            raise
        self.clear_pending(collection)

    # ── Pending-push ledger ──

    def pending_collections(self) -> list[Collection]:
        result: list[Collection] = []
        for name in self.get(LocalKey.SYNC_PENDING, [], _NAMES):
            try:
                result.append(Collection(name))
            except ValueError:
                logger.warning("Ignoring unknown pending collection %r", name)
        return result

    def mark_pending(self, collection: Collection) -> None:
        names = {c.value for c in self.pending_collections()}
        names.add(collection.value)
        self.set(LocalKey.SYNC_PENDING, sorted(names), _NAMES)

    def clear_pending(self, collection: Collection) -> None:
        names = {c.value for c in self.pending_collections()}
        if collection.value in names:
            names.discard(collection.value)
            self.set(LocalKey.SYNC_PENDING, sorted(names), _NAMES)

    # ── Organization ──

    def get_org(self) -> Organization:
        org: Organization = self.load_collection(Collection.ORG)
        if org.deleted:
            return empty_organization()
        return org

    def save_org(self, org: Organization, skip_sync: bool = False) -> None:
        self.save_collection(Collection.ORG, org, skip_sync)

    # ── Users & projects ──

    def get_users(self) -> list[User]:
        return self._live(Collection.USERS)

    def save_users(self, users: list[User], skip_sync: bool = False) -> None:
        self.save_collection(Collection.USERS, users, skip_sync)

    def get_projects(self) -> list[Project]:
        return self._live(Collection.PROJECTS)

    def save_projects(self, projects: list[Project], skip_sync: bool = False) -> None:
        self.save_collection(Collection.PROJECTS, projects, skip_sync)

    # ── Species & individuals ──

    def get_species(self) -> list[Species]:
        return self._live(Collection.SPECIES)

    def save_species(self, species: list[Species], skip_sync: bool = False) -> None:
        self.save_collection(Collection.SPECIES, species, skip_sync)

    def get_individuals(self) -> list[Individual]:
        return self._live(Collection.INDIVIDUALS)

    def save_individuals(self, individuals: list[Individual], skip_sync: bool = False) -> None:
        self.save_collection(Collection.INDIVIDUALS, individuals, skip_sync)

    # ── Breeding ──

    def get_breeding_events(self) -> list[BreedingEvent]:
        return self._live(Collection.BREEDING_EVENTS)

    def save_breeding_events(self, events: list[BreedingEvent], skip_sync: bool = False) -> None:
        self.save_collection(Collection.BREEDING_EVENTS, events, skip_sync)

    def get_breeding_loans(self) -> list[BreedingLoan]:
        return self._live(Collection.BREEDING_LOANS)

    def save_breeding_loans(self, loans: list[BreedingLoan], skip_sync: bool = False) -> None:
        self.save_collection(Collection.BREEDING_LOANS, loans, skip_sync)

    def get_partnerships(self) -> list[Partnership]:
        return self._live(Collection.PARTNERSHIPS)

    def save_partnerships(self, partnerships: list[Partnership], skip_sync: bool = False) -> None:
        self.save_collection(Collection.PARTNERSHIPS, partnerships, skip_sync)

    # ── Languages & settings ──

    def get_languages(self) -> list[LanguageConfig]:
        """Stored languages, seeding (and pushing) the defaults on first use."""
        stored: list[LanguageConfig] = self.load_collection(Collection.LANGUAGES)
        if not stored:
            seeded = seed_languages()
            logger.info("Seeding %d default languages", len(seeded))
            self.save_languages(seeded)
            return seeded
        return [language for language in stored if not language.deleted]

    def save_languages(self, languages: list[LanguageConfig], skip_sync: bool = False) -> None:
        self.save_collection(Collection.LANGUAGES, languages, skip_sync)

    def get_system_settings(self) -> SystemSettings:
        settings: SystemSettings = self.load_collection(Collection.SETTINGS)
        return settings

    def save_system_settings(self, settings: SystemSettings, skip_sync: bool = False) -> None:
        self.save_collection(Collection.SETTINGS, settings, skip_sync)

    # ── Local-only state ──

    def get_network_partners(self) -> list[ExternalPartner]:
        partners = self.get(LocalKey.PARTNERS, [], _PARTNERS)
        return [partner for partner in partners if not partner.deleted]

    def save_network_partners(self, partners: list[ExternalPartner]) -> None:
        self.set(LocalKey.PARTNERS, partners, _PARTNERS)

    def get_current_project_id(self) -> str:
        return self.get(LocalKey.CURRENT_PROJECT, "", _TEXT)

    def save_current_project_id(self, project_id: str) -> None:
        self.set(LocalKey.CURRENT_PROJECT, project_id, _TEXT)

    def get_session(self) -> User | None:
        return self.get(LocalKey.SESSION, None, _SESSION)

    def save_session(self, user: User | None) -> None:
        if user is None:
            self.remove(LocalKey.SESSION)
        else:
            self.set(LocalKey.SESSION, user, _SESSION)

    def get_token(self) -> str | None:
        token = self.get(LocalKey.TOKEN, "", _TEXT)
        return token or None

    def save_token(self, token: str) -> None:
        self.set(LocalKey.TOKEN, token, _TEXT)

    def logout(self) -> None:
        self.remove(LocalKey.SESSION)
        self.remove(LocalKey.TOKEN)
        self.remove(LocalKey.IMPERSONATING)
        self.remove(LocalKey.ORG_BACKUP)

    # ── Partner view ──

    def is_impersonating(self) -> bool:
        return bool(self.get(LocalKey.IMPERSONATING, "", _TEXT))

    def switch_organization(
        self, partner_id: str, partner: ExternalPartner | Organization | None = None
    ) -> bool:
        """View a partner organization in place of our own.

        The current org is backed up (only once, so chained switches still
        restore the main org) and replaced locally by the partner. The
        replacement is never pushed.

        Args:
            partner_id: Id of the partner to view
            partner: Explicit partner record; looked up among the network
                partners when omitted

        Returns:
            False if the partner is unknown (nothing changes)
        """
        if partner is None:
            partner = next((p for p in self.get_network_partners() if p.id == partner_id), None)
        if partner is None:
            logger.warning("Cannot switch to unknown partner %s", partner_id)
            return False

        if not self.is_impersonating():
            self.set(LocalKey.ORG_BACKUP, self.get_org(), _ADAPTERS[Collection.ORG])
        self.set(LocalKey.IMPERSONATING, partner_id, _TEXT)

        view = Organization.model_validate(partner.model_dump(exclude={"deleted"}))
        view = view.model_copy(
            update={
                "founded_year": view.founded_year or 2000,
                "description": view.description or "Partner Organization View",
                "breeding_request_contact_id": None,
            }
        )
        self.save_org(view, skip_sync=True)
        logger.info("Viewing partner organization %s", partner_id)
        return True

    def restore_main_org(self) -> None:
        """Leave the partner view and put our own org back."""
        if not self.is_impersonating():
            return
        backup = self.get(LocalKey.ORG_BACKUP, None, _ORG_BACKUP)
        if backup is not None:
            self.save_org(backup, skip_sync=True)
        self.remove(LocalKey.IMPERSONATING)
        self.remove(LocalKey.ORG_BACKUP)

    def get_notifications(self, recipient_id: str | None = None) -> list[Notification]:
        notifications = self.get(LocalKey.NOTIFICATIONS, [], _NOTIFICATIONS)
        if recipient_id is None:
            return notifications
        return [n for n in notifications if n.recipient_id == recipient_id]

    def save_notifications(self, notifications: list[Notification]) -> None:
        self.set(LocalKey.NOTIFICATIONS, notifications, _NOTIFICATIONS)

    def get_sync_state(self) -> dict[str, Any]:
        state = self.get(LocalKey.SYNC_STATE, {})
        return state if isinstance(state, dict) else {}

    def save_sync_state(self, state: dict[str, Any]) -> None:
        self.set(LocalKey.SYNC_STATE, state)

    def add_notification(
        self,
        recipient_id: str,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.SYSTEM,
        sender_org_name: str = "System",
    ) -> Notification:
        """Queue a local notification, newest first."""
        notification = Notification(
            id=f"notif-{uuid4().hex[:12]}",
            recipient_id=recipient_id,
            sender_org_name=sender_org_name,
            title=title,
            message=message,
            date=today_iso(),
            type=notification_type,
        )
        self.save_notifications([notification, *self.get_notifications()])
        return notification

    # ── Deletes ──

    async def delete_language(self, code: str) -> None:
        """Remove a language locally, then soft-delete it remotely."""
        stored: list[LanguageConfig] = self.load_collection(Collection.LANGUAGES)
        remaining = [language for language in stored if language.code != code]
        self.save_languages(remaining, skip_sync=True)
        await self._remote_soft_delete(Collection.LANGUAGES, code)

    async def delete_individual(self, individual_id: str) -> bool:
        """Mark an individual deleted locally and remotely.

        Returns False if no such individual is stored.
        """
        individuals: list[Individual] = self.load_collection(Collection.INDIVIDUALS)
        if not any(ind.id == individual_id for ind in individuals):
            return False
        updated = [
            ind.model_copy(update={"deleted": True}) if ind.id == individual_id else ind
            for ind in individuals
        ]
        self.save_individuals(updated, skip_sync=True)
        await self._remote_soft_delete(Collection.INDIVIDUALS, individual_id)
        return True

    async def delete_organization(self, org_id: str) -> None:
        """Soft-delete an organization remotely, then drop it from local partners.

        Raises:
            TransportError: The remote delete failed for a reason other than
                the remote store not being configured.
        """
        if self._pusher is not None:
            try:
                await self._pusher.soft_delete(Collection.ORG, org_id)
            except RemoteNotConfiguredError:
                logger.info("No remote configured, removing organization %s locally", org_id)
        partners = self.get(LocalKey.PARTNERS, [], _PARTNERS)
        self.save_network_partners([p for p in partners if p.id != org_id])

    async def _remote_soft_delete(self, collection: Collection, key: str) -> None:
        if self._pusher is None:
            return
        try:
            await self._pusher.soft_delete(collection, key)
        except RemoteNotConfiguredError:
            logger.debug("No remote configured, %s %s deleted locally only", collection, key)
        except TransportError as e:
            logger.warning("Remote delete of %s %s failed: %s", collection, key, e)
