"""Tests for storage/record_store.py: local-first collections and background pushes."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from studbook_sync.core.collections import Collection, LocalKey
from studbook_sync.core.records import (
    ExternalPartner,
    Individual,
    LanguageConfig,
    NotificationType,
    Organization,
    Species,
    SystemSettings,
    User,
)
from studbook_sync.errors import (
    RemoteNotConfiguredError,
    RemoteOperationError,
    RemoteUnavailableError,
)
from studbook_sync.storage.memory_backend import InMemoryBackend
from studbook_sync.storage.record_store import LocalRecordStore

# ─────────── Read / write ───────────


class TestReadWrite:
    """Tests for the typed accessors."""

    def test_empty_store_defaults(self, store: LocalRecordStore) -> None:
        assert store.get_org().id == ""
        assert store.get_org().name == "New Organization"
        assert store.get_species() == []
        assert store.get_individuals() == []
        assert store.get_system_settings().about_page.title == "About Us"
        assert store.get_network_partners() == []
        assert store.get_current_project_id() == ""

    def test_write_then_read(self, store: LocalRecordStore, species: Species) -> None:
        store.save_species([species])
        assert store.get_species() == [species]

    def test_org_round_trip(self, store: LocalRecordStore, organization: Organization) -> None:
        store.save_org(organization)
        assert store.get_org() == organization

    def test_persisted_shape_is_camel_case(
        self, store: LocalRecordStore, backend: InMemoryBackend, species: Species
    ) -> None:
        store.save_species([species])
        raw = json.loads(backend.read("os_species") or "[]")
        assert raw[0]["commonName"] == "Snow Leopard"
        assert raw[0]["scientificName"] == "Panthera uncia"
        assert "common_name" not in raw[0]

    def test_save_is_full_replace(self, store: LocalRecordStore, species: Species) -> None:
        other = species.model_copy(update={"id": "sp-2", "common_name": "Amur Tiger"})
        store.save_species([species, other])
        store.save_species([other])
        assert [s.id for s in store.get_species()] == ["sp-2"]

    def test_settings_round_trip(self, store: LocalRecordStore) -> None:
        settings = SystemSettings(smtp_host="mail.example.org", smtp_port=2525)
        store.save_system_settings(settings)
        assert store.get_system_settings().smtp_host == "mail.example.org"
        assert store.get_system_settings().smtp_port == 2525


# ─────────── Soft delete filtering ───────────


class TestSoftDeleteFiltering:
    """Soft-deleted records stay stored but never reach typed readers."""

    def test_deleted_individual_hidden(
        self,
        store: LocalRecordStore,
        backend: InMemoryBackend,
        individuals: list[Individual],
    ) -> None:
        gone = individuals[1].model_copy(update={"deleted": True})
        store.save_individuals([individuals[0], gone])

        assert [ind.id for ind in store.get_individuals()] == ["ind-a"]

        raw = json.loads(backend.read("os_individuals") or "[]")
        assert len(raw) == 2
        assert raw[1]["deleted"] is True

    def test_load_collection_keeps_deleted(
        self, store: LocalRecordStore, individuals: list[Individual]
    ) -> None:
        gone = individuals[0].model_copy(update={"deleted": True})
        store.save_individuals([gone])
        assert len(store.load_collection(Collection.INDIVIDUALS)) == 1
        assert store.get_individuals() == []

    def test_deleted_org_reads_as_empty(
        self, store: LocalRecordStore, organization: Organization
    ) -> None:
        store.save_org(organization.model_copy(update={"deleted": True}))
        assert store.get_org().id == ""

    def test_deleted_partner_hidden(self, store: LocalRecordStore) -> None:
        store.save_network_partners(
            [
                ExternalPartner(id="org-2", name="Zoo A"),
                ExternalPartner(id="org-3", name="Zoo B", deleted=True),
            ]
        )
        assert [p.id for p in store.get_network_partners()] == ["org-2"]


# ─────────── Corrupted cache ───────────


class TestCorruptedCache:
    """Unreadable entries fall back to defaults instead of raising."""

    def test_invalid_json_returns_default(
        self, store: LocalRecordStore, backend: InMemoryBackend
    ) -> None:
        backend.write("os_species", "{not json")
        assert store.get_species() == []

    def test_schema_mismatch_returns_default(
        self, store: LocalRecordStore, backend: InMemoryBackend
    ) -> None:
        # Records without an id do not validate
        backend.write("os_individuals", json.dumps([{"name": "Nameless"}]))
        assert store.get_individuals() == []

    def test_corrupt_org_returns_empty_org(
        self, store: LocalRecordStore, backend: InMemoryBackend
    ) -> None:
        backend.write("os_org", "[1, 2, 3]")
        assert store.get_org().id == ""

    def test_corrupt_settings_returns_defaults(
        self, store: LocalRecordStore, backend: InMemoryBackend
    ) -> None:
        backend.write("os_settings", "null")
        assert store.get_system_settings().theme_primary_color == "#059669"

    def test_corrupt_entry_logs_warning(
        self,
        store: LocalRecordStore,
        backend: InMemoryBackend,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        backend.write("os_species", "{not json")
        with caplog.at_level("WARNING"):
            store.get_species()
        assert "os_species" in caplog.text

    def test_unknown_fields_ignored(
        self, store: LocalRecordStore, backend: InMemoryBackend
    ) -> None:
        backend.write("os_species", json.dumps([{"id": "sp-9", "legacyField": 1}]))
        assert [s.id for s in store.get_species()] == ["sp-9"]


# ─────────── Background push ───────────


class TestBackgroundPush:
    """Saves schedule exactly one push unless skip_sync is set."""

    @pytest.mark.asyncio
    async def test_save_schedules_one_push(
        self, synced_store: LocalRecordStore, pusher: AsyncMock, species: Species
    ) -> None:
        synced_store.save_species([species])
        await synced_store.tasks.drain()

        pusher.push_collection.assert_awaited_once_with(Collection.SPECIES, [species])

    @pytest.mark.asyncio
    async def test_skip_sync_schedules_nothing(
        self, synced_store: LocalRecordStore, pusher: AsyncMock, species: Species
    ) -> None:
        synced_store.save_species([species], skip_sync=True)
        await synced_store.tasks.drain()

        pusher.push_collection.assert_not_awaited()
        assert synced_store.get_species() == [species]

    @pytest.mark.asyncio
    async def test_local_write_visible_before_push_completes(
        self, synced_store: LocalRecordStore, species: Species
    ) -> None:
        synced_store.save_species([species])
        # Push not yet run; local read already sees the write
        assert synced_store.tasks.pending == 1
        assert synced_store.get_species() == [species]

    @pytest.mark.asyncio
    async def test_failed_push_keeps_local_data(
        self, synced_store: LocalRecordStore, pusher: AsyncMock, species: Species
    ) -> None:
        pusher.push_collection.side_effect = RemoteUnavailableError("Connection error: refused")

        synced_store.save_species([species])
        await synced_store.tasks.drain()

        assert synced_store.get_species() == [species]

    def test_no_pusher_keeps_everything_local(
        self, store: LocalRecordStore, species: Species
    ) -> None:
        store.save_species([species])
        assert store.pending_collections() == []
        assert store.tasks.pending == 0


# ─────────── Pending-push ledger ───────────


class TestPendingLedger:
    """Collections whose push did not land are remembered for a retry."""

    @pytest.mark.asyncio
    async def test_failed_push_marks_pending(
        self, synced_store: LocalRecordStore, pusher: AsyncMock, species: Species
    ) -> None:
        pusher.push_collection.side_effect = RemoteOperationError("boom", status_code=500)

        synced_store.save_species([species])
        await synced_store.tasks.drain()

        assert synced_store.pending_collections() == [Collection.SPECIES]

    @pytest.mark.asyncio
    async def test_successful_push_clears_pending(
        self, synced_store: LocalRecordStore, pusher: AsyncMock, species: Species
    ) -> None:
        synced_store.mark_pending(Collection.SPECIES)

        synced_store.save_species([species])
        await synced_store.tasks.drain()

        assert synced_store.pending_collections() == []

    def test_no_running_loop_marks_pending(
        self, backend: InMemoryBackend, pusher: AsyncMock, species: Species
    ) -> None:
        store = LocalRecordStore(backend, pusher=pusher)
        store.save_species([species])

        assert store.pending_collections() == [Collection.SPECIES]
        assert store.get_species() == [species]
        pusher.push_collection.assert_not_called()

    def test_mark_pending_is_idempotent(self, store: LocalRecordStore) -> None:
        store.mark_pending(Collection.USERS)
        store.mark_pending(Collection.USERS)
        store.mark_pending(Collection.INDIVIDUALS)
        assert store.pending_collections() == [Collection.INDIVIDUALS, Collection.USERS]

    def test_unknown_pending_names_ignored(
        self, store: LocalRecordStore, backend: InMemoryBackend
    ) -> None:
        backend.write(LocalKey.SYNC_PENDING, json.dumps(["species", "bogus"]))
        assert store.pending_collections() == [Collection.SPECIES]


# ─────────── Language seeding ───────────


class TestLanguageSeeding:
    """First read of languages seeds the defaults once."""

    def test_seeds_defaults(self, store: LocalRecordStore) -> None:
        languages = store.get_languages()
        codes = [lang.code for lang in languages]
        assert codes == ["en-GB", "es", "fr"]
        assert [lang.code for lang in languages if lang.is_default] == ["en-GB"]

    @pytest.mark.asyncio
    async def test_seeding_is_idempotent(
        self, synced_store: LocalRecordStore, pusher: AsyncMock
    ) -> None:
        first = synced_store.get_languages()
        second = synced_store.get_languages()
        await synced_store.tasks.drain()

        assert first == second
        pusher.push_collection.assert_awaited_once()
        collection, value = pusher.push_collection.await_args.args
        assert collection is Collection.LANGUAGES
        assert [lang.code for lang in value] == ["en-GB", "es", "fr"]

    def test_stored_languages_not_reseeded(self, store: LocalRecordStore) -> None:
        store.save_languages([LanguageConfig(code="de", name="Deutsch")])
        assert [lang.code for lang in store.get_languages()] == ["de"]


# ─────────── Local-only state ───────────


class TestLocalOnlyState:
    """Session, token, current project and notifications never sync."""

    @pytest.mark.asyncio
    async def test_local_state_never_pushed(
        self, synced_store: LocalRecordStore, pusher: AsyncMock
    ) -> None:
        synced_store.save_current_project_id("proj-1")
        synced_store.save_token("tok-123")
        synced_store.save_session(User(id="u-1", name="Keeper", email="k@example.org"))
        synced_store.save_network_partners([ExternalPartner(id="org-2")])
        await synced_store.tasks.drain()

        pusher.push_collection.assert_not_awaited()

    def test_session_round_trip(self, store: LocalRecordStore) -> None:
        user = User(id="u-1", name="Keeper", email="k@example.org")
        store.save_session(user)
        assert store.get_session() == user

        store.save_session(None)
        assert store.get_session() is None

    def test_logout_clears_session_and_token(self, store: LocalRecordStore) -> None:
        store.save_session(User(id="u-1"))
        store.save_token("tok-123")

        store.logout()

        assert store.get_session() is None
        assert store.get_token() is None

    def test_current_project(self, store: LocalRecordStore) -> None:
        store.save_current_project_id("proj-7")
        assert store.get_current_project_id() == "proj-7"

    def test_add_notification_newest_first(self, store: LocalRecordStore) -> None:
        store.add_notification("u-1", "First", "hello")
        latest = store.add_notification(
            "u-1", "Loan", "updated", notification_type=NotificationType.LOAN_UPDATE
        )
        store.add_notification("u-2", "Other", "not yours")

        mine = store.get_notifications("u-1")
        assert [n.title for n in mine] == ["Loan", "First"]
        assert mine[0].id == latest.id
        assert mine[0].type is NotificationType.LOAN_UPDATE
        assert len(store.get_notifications()) == 3


# ─────────── Partner view ───────────


class TestPartnerView:
    """Switching to a partner organization and back."""

    @pytest.mark.asyncio
    async def test_switch_and_restore(
        self,
        synced_store: LocalRecordStore,
        pusher: AsyncMock,
        organization: Organization,
    ) -> None:
        synced_store.save_org(organization, skip_sync=True)
        synced_store.save_network_partners(
            [ExternalPartner(id="org-2", name="Lakeside Zoo", location="Zurich")]
        )

        assert synced_store.switch_organization("org-2") is True
        assert synced_store.is_impersonating() is True
        view = synced_store.get_org()
        assert (view.id, view.name, view.location) == ("org-2", "Lakeside Zoo", "Zurich")
        assert view.description == "Partner Organization View"
        assert view.founded_year == 2000

        synced_store.restore_main_org()
        await synced_store.tasks.drain()

        assert synced_store.is_impersonating() is False
        assert synced_store.get_org() == organization
        assert synced_store.backend.read(LocalKey.ORG_BACKUP) is None
        pusher.push_collection.assert_not_awaited()

    def test_chained_switch_restores_main_org(
        self, store: LocalRecordStore, organization: Organization
    ) -> None:
        store.save_org(organization)
        store.switch_organization("org-2", ExternalPartner(id="org-2", name="Lakeside Zoo"))
        store.switch_organization("org-3", ExternalPartner(id="org-3", name="Desert Park"))

        assert store.get_org().id == "org-3"
        store.restore_main_org()
        assert store.get_org() == organization

    def test_unknown_partner(self, store: LocalRecordStore, organization: Organization) -> None:
        store.save_org(organization)

        assert store.switch_organization("org-404") is False
        assert store.is_impersonating() is False
        assert store.get_org() == organization

    def test_restore_without_switch_is_noop(
        self, store: LocalRecordStore, organization: Organization
    ) -> None:
        store.save_org(organization)
        store.restore_main_org()
        assert store.get_org() == organization

    def test_logout_ends_partner_view(self, store: LocalRecordStore) -> None:
        store.switch_organization("org-2", ExternalPartner(id="org-2"))

        store.logout()

        assert store.is_impersonating() is False
        assert store.backend.read(LocalKey.ORG_BACKUP) is None


# ─────────── Deletes ───────────


class TestDeletes:
    """Local delete first, remote soft delete second."""

    @pytest.mark.asyncio
    async def test_delete_individual(
        self,
        synced_store: LocalRecordStore,
        pusher: AsyncMock,
        individuals: list[Individual],
    ) -> None:
        synced_store.save_individuals(individuals, skip_sync=True)

        assert await synced_store.delete_individual("ind-b") is True

        assert [ind.id for ind in synced_store.get_individuals()] == ["ind-a", "ind-c"]
        assert len(synced_store.load_collection(Collection.INDIVIDUALS)) == 3
        pusher.soft_delete.assert_awaited_once_with(Collection.INDIVIDUALS, "ind-b")

    @pytest.mark.asyncio
    async def test_delete_unknown_individual(
        self, synced_store: LocalRecordStore, pusher: AsyncMock
    ) -> None:
        assert await synced_store.delete_individual("missing") is False
        pusher.soft_delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_language(
        self, synced_store: LocalRecordStore, pusher: AsyncMock
    ) -> None:
        synced_store.save_languages(
            [LanguageConfig(code="en-GB"), LanguageConfig(code="fr")], skip_sync=True
        )

        await synced_store.delete_language("fr")

        assert [lang.code for lang in synced_store.get_languages()] == ["en-GB"]
        pusher.soft_delete.assert_awaited_once_with(Collection.LANGUAGES, "fr")

    @pytest.mark.asyncio
    async def test_remote_delete_failure_keeps_local_delete(
        self, synced_store: LocalRecordStore, pusher: AsyncMock
    ) -> None:
        synced_store.save_languages(
            [LanguageConfig(code="en-GB"), LanguageConfig(code="fr")], skip_sync=True
        )
        pusher.soft_delete.side_effect = RemoteUnavailableError("Connection error")

        await synced_store.delete_language("fr")

        assert [lang.code for lang in synced_store.get_languages()] == ["en-GB"]

    @pytest.mark.asyncio
    async def test_delete_organization_drops_partner(
        self, synced_store: LocalRecordStore, pusher: AsyncMock
    ) -> None:
        synced_store.save_network_partners(
            [ExternalPartner(id="org-2"), ExternalPartner(id="org-3")]
        )

        await synced_store.delete_organization("org-2")

        pusher.soft_delete.assert_awaited_once_with(Collection.ORG, "org-2")
        assert [p.id for p in synced_store.get_network_partners()] == ["org-3"]

    @pytest.mark.asyncio
    async def test_delete_organization_without_remote(
        self, synced_store: LocalRecordStore, pusher: AsyncMock
    ) -> None:
        synced_store.save_network_partners([ExternalPartner(id="org-2")])
        pusher.soft_delete.side_effect = RemoteNotConfiguredError("Remote store not configured")

        await synced_store.delete_organization("org-2")

        assert synced_store.get_network_partners() == []

    @pytest.mark.asyncio
    async def test_delete_organization_remote_failure_propagates(
        self, synced_store: LocalRecordStore, pusher: AsyncMock
    ) -> None:
        synced_store.save_network_partners([ExternalPartner(id="org-2")])
        pusher.soft_delete.side_effect = RemoteOperationError("denied", status_code=500)

        with pytest.raises(RemoteOperationError):
            await synced_store.delete_organization("org-2")

        assert [p.id for p in synced_store.get_network_partners()] == ["org-2"]
