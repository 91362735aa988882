"""Push and pull of domain collections against the remote store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import ValidationError

from studbook_sync.core.collections import Collection
from studbook_sync.core.records import (
    SETTINGS_RECORD_ID,
    BreedingEvent,
    BreedingLoan,
    Individual,
    LanguageConfig,
    Organization,
    Partnership,
    Project,
    Species,
    SystemSettings,
    User,
)
from studbook_sync.errors import (
    FailureKind,
    RemoteNotConfiguredError,
    SchemaNotProvisionedError,
)
from studbook_sync.sync import mappers
from studbook_sync.sync.protocol import PullResult, RemoteSnapshot
from studbook_sync.sync.reconcile import split_organizations

if TYPE_CHECKING:
    from studbook_sync.sync.transport import RemoteTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")

SNAPSHOT_PATH = "/api/sync"

# Collections whose remote rows carry an is_deleted flag
_SOFT_DELETABLE = frozenset({Collection.ORG, Collection.INDIVIDUALS, Collection.LANGUAGES})


def _rows(data: dict[str, Any], table: str) -> list[dict[str, Any]] | None:
    value = data.get(table)
    if value is None:
        return None
    if not isinstance(value, list):
        logger.warning(
            "Ignoring %s in snapshot: expected a list, got %s", table, type(value).__name__
        )
        return None
    return [row for row in value if isinstance(row, dict)]


def _map_rows(
    rows: list[dict[str, Any]],
    mapper: Callable[[dict[str, Any]], T],
    table: str,
) -> list[T]:
    """Map rows, skipping (and logging) any that fail validation."""
    result: list[T] = []
    for row in rows:
        try:
            result.append(mapper(row))
        except (KeyError, TypeError, ValidationError) as e:
            logger.warning("Skipping malformed %s row %r: %s", table, row.get("id"), e)
    return result


def _live(records: list[T]) -> list[T]:
    return [record for record in records if not getattr(record, "deleted", False)]


class SyncOrchestrator:
    """
    Maps local collections to remote rows and moves them over the transport.

    Every push is one batched upsert, except individuals which need two
    (see ``push_individuals``). When no remote is configured every push is a
    silent no-op and pulls report ``NOT_CONFIGURED``.
    """

    def __init__(self, transport: RemoteTransport | None, *, configured: bool = True) -> None:
        self._transport = transport
        self._configured = configured and transport is not None

    @property
    def is_configured(self) -> bool:
        return self._configured

    @property
    def transport(self) -> RemoteTransport | None:
        return self._transport

    async def _upsert(self, collection: Collection, body: Any) -> None:
        assert self._transport is not None
        await self._transport.write("POST", f"/rest/v1/{collection.remote_table}", body=body)

    # ========== Push ==========

    async def push_org(self, org: Organization) -> None:
        if not self._configured:
            return
        if not org.id:
            logger.debug("Organization has no id yet, not pushing")
            return
        await self._upsert(Collection.ORG, mappers.organization_to_remote(org))

    async def push_users(self, users: list[User]) -> None:
        if not self._configured or not users:
            return
        await self._upsert(Collection.USERS, [mappers.user_to_remote(u) for u in users])

    async def push_projects(self, projects: list[Project]) -> None:
        if not self._configured or not projects:
            return
        await self._upsert(Collection.PROJECTS, [mappers.project_to_remote(p) for p in projects])

    async def push_species(self, species: list[Species]) -> None:
        if not self._configured or not species:
            return
        await self._upsert(Collection.SPECIES, [mappers.species_to_remote(s) for s in species])

    async def push_individuals(self, individuals: list[Individual]) -> None:
        """Two-phase upsert of individuals.

        Pass 1 writes every individual with its parent links nulled, so each
        row exists before anything references it. Pass 2 then restores the
        real sire/dam ids on the individuals that have them.
        """
        if not self._configured or not individuals:
            return

        first_pass = [
            mappers.individual_to_remote(ind, include_parents=False) for ind in individuals
        ]
        await self._upsert(Collection.INDIVIDUALS, first_pass)

        with_parents = [ind for ind in individuals if ind.has_parents]
        if not with_parents:
            return
        logger.debug("Restoring parent links on %d individuals", len(with_parents))
        await self._upsert(
            Collection.INDIVIDUALS,
            [mappers.individual_to_remote(ind) for ind in with_parents],
        )

    async def push_breeding_events(self, events: list[BreedingEvent]) -> None:
        if not self._configured or not events:
            return
        await self._upsert(
            Collection.BREEDING_EVENTS, [mappers.breeding_event_to_remote(e) for e in events]
        )

    async def push_breeding_loans(self, loans: list[BreedingLoan]) -> None:
        if not self._configured or not loans:
            return
        await self._upsert(
            Collection.BREEDING_LOANS, [mappers.breeding_loan_to_remote(loan) for loan in loans]
        )

    async def push_partnerships(self, partnerships: list[Partnership]) -> None:
        if not self._configured or not partnerships:
            return
        await self._upsert(
            Collection.PARTNERSHIPS, [mappers.partnership_to_remote(p) for p in partnerships]
        )

    async def push_settings(self, settings: SystemSettings) -> None:
        if not self._configured:
            return
        await self._upsert(Collection.SETTINGS, mappers.settings_to_remote(settings))

    async def push_languages(self, languages: list[LanguageConfig]) -> None:
        """Push languages; a missing languages table only logs a warning."""
        if not self._configured or not languages:
            return
        try:
            await self._upsert(
                Collection.LANGUAGES, [mappers.language_to_remote(lang) for lang in languages]
            )
        except SchemaNotProvisionedError as e:
            logger.warning("Languages table not provisioned, skipping language push: %s", e)

    async def push_collection(self, collection: Collection, value: Any) -> None:
        """Push one collection by name."""
        if collection is Collection.ORG:
            await self.push_org(value)
        elif collection is Collection.USERS:
            await self.push_users(value)
        elif collection is Collection.PROJECTS:
            await self.push_projects(value)
        elif collection is Collection.SPECIES:
            await self.push_species(value)
        elif collection is Collection.INDIVIDUALS:
            await self.push_individuals(value)
        elif collection is Collection.BREEDING_EVENTS:
            await self.push_breeding_events(value)
        elif collection is Collection.BREEDING_LOANS:
            await self.push_breeding_loans(value)
        elif collection is Collection.PARTNERSHIPS:
            await self.push_partnerships(value)
        elif collection is Collection.SETTINGS:
            await self.push_settings(value)
        elif collection is Collection.LANGUAGES:
            await self.push_languages(value)
        else:
            raise ValueError(f"Unknown collection: {collection}")

    async def soft_delete(self, collection: Collection, key: str) -> None:
        """Mark a remote row deleted.

        Raises:
            RemoteNotConfiguredError: No remote store is configured
            ValueError: The collection has no soft-delete flag
        """
        if collection not in _SOFT_DELETABLE:
            raise ValueError(f"{collection} does not support soft delete")
        if not self._configured:
            raise RemoteNotConfiguredError("Remote store not configured")
        assert self._transport is not None

        logger.info("Soft deleting %s %s", collection, key)
        await self._transport.write(
            "PATCH",
            f"/rest/v1/{collection.remote_table}",
            params={collection.key_field: f"eq.{key}"},
            body={"is_deleted": True},
        )

    # ========== Pull ==========

    async def fetch_remote_data(self, my_org_id: str) -> PullResult:
        """Read the whole remote snapshot and map it to local records.

        Never raises. Soft-deleted records of every collection are dropped.
        Organizations split into the local one and partners.
        """
        if not self._configured:
            return PullResult(
                success=False,
                message="Remote store not configured",
                kind=FailureKind.NOT_CONFIGURED,
            )
        assert self._transport is not None

        result = await self._transport.read(SNAPSHOT_PATH)
        if not result.success:
            return PullResult(success=False, message=result.message, kind=result.kind)

        payload = result.data
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            return PullResult(
                success=False,
                message="Snapshot response has no data object",
                kind=FailureKind.MALFORMED_RESPONSE,
            )

        return PullResult(success=True, data=self._map_snapshot(data, my_org_id))

    def _map_snapshot(self, data: dict[str, Any], my_org_id: str) -> RemoteSnapshot:
        snapshot = RemoteSnapshot()

        org_rows = _rows(data, "organizations")
        if org_rows is not None:
            live_rows = [row for row in org_rows if not row.get("is_deleted")]
            mine, partner_rows = split_organizations(live_rows, my_org_id)
            if mine is not None:
                orgs = _map_rows([mine], mappers.organization_from_remote, "organizations")
                snapshot.org = orgs[0] if orgs else None
            snapshot.partners = _map_rows(
                partner_rows, mappers.organization_to_partner, "organizations"
            )

        rows = _rows(data, "users")
        if rows is not None:
            snapshot.users = _live(_map_rows(rows, mappers.user_from_remote, "users"))
        rows = _rows(data, "projects")
        if rows is not None:
            snapshot.projects = _live(_map_rows(rows, mappers.project_from_remote, "projects"))
        rows = _rows(data, "species")
        if rows is not None:
            snapshot.species = _live(_map_rows(rows, mappers.species_from_remote, "species"))
        rows = _rows(data, "individuals")
        if rows is not None:
            snapshot.individuals = _live(
                _map_rows(rows, mappers.individual_from_remote, "individuals")
            )
        rows = _rows(data, "breeding_events")
        if rows is not None:
            snapshot.breeding_events = _live(
                _map_rows(rows, mappers.breeding_event_from_remote, "breeding_events")
            )
        rows = _rows(data, "breeding_loans")
        if rows is not None:
            snapshot.breeding_loans = _live(
                _map_rows(rows, mappers.breeding_loan_from_remote, "breeding_loans")
            )
        rows = _rows(data, "partnerships")
        if rows is not None:
            snapshot.partnerships = _live(
                _map_rows(rows, mappers.partnership_from_remote, "partnerships")
            )
        rows = _rows(data, "languages")
        if rows is not None:
            snapshot.languages = _live(
                _map_rows(rows, mappers.language_from_remote, "languages")
            )

        rows = _rows(data, "app_config")
        if rows is not None:
            settings_row = next((r for r in rows if r.get("id") == SETTINGS_RECORD_ID), None)
            if settings_row is not None and settings_row.get("settings"):
                mapped = _map_rows([settings_row], mappers.settings_from_remote, "app_config")
                snapshot.settings = mapped[0] if mapped else None

        return snapshot
