"""Registry of synchronized collections and local-only storage keys."""

from __future__ import annotations

from enum import StrEnum

STORAGE_PREFIX = "os_"


class Collection(StrEnum):
    """A domain collection that is cached locally and pushed remotely."""

    ORG = "org"
    USERS = "users"
    PROJECTS = "projects"
    SPECIES = "species"
    INDIVIDUALS = "individuals"
    BREEDING_EVENTS = "breeding"
    BREEDING_LOANS = "breeding_loans"
    PARTNERSHIPS = "partnerships"
    LANGUAGES = "languages"
    SETTINGS = "settings"

    @property
    def storage_key(self) -> str:
        return f"{STORAGE_PREFIX}{self.value}"

    @property
    def remote_table(self) -> str:
        return _REMOTE_TABLES[self]

    @property
    def key_field(self) -> str:
        """Natural key the remote store upserts on."""
        return "code" if self is Collection.LANGUAGES else "id"


_REMOTE_TABLES: dict[Collection, str] = {
    Collection.ORG: "organizations",
    Collection.USERS: "users",
    Collection.PROJECTS: "projects",
    Collection.SPECIES: "species",
    Collection.INDIVIDUALS: "individuals",
    Collection.BREEDING_EVENTS: "breeding_events",
    Collection.BREEDING_LOANS: "breeding_loans",
    Collection.PARTNERSHIPS: "partnerships",
    Collection.LANGUAGES: "languages",
    Collection.SETTINGS: "app_config",
}


class LocalKey(StrEnum):
    """Storage keys for local-only state that is never pushed."""

    PARTNERS = f"{STORAGE_PREFIX}partners"
    CURRENT_PROJECT = f"{STORAGE_PREFIX}current_project"
    SESSION = f"{STORAGE_PREFIX}session"
    TOKEN = f"{STORAGE_PREFIX}token"
    NOTIFICATIONS = f"{STORAGE_PREFIX}notifications"
    SYNC_PENDING = f"{STORAGE_PREFIX}sync_pending"
    SYNC_STATE = f"{STORAGE_PREFIX}sync_state"
    IMPERSONATING = f"{STORAGE_PREFIX}impersonating"
    ORG_BACKUP = f"{STORAGE_PREFIX}backup"
