"""Value types exchanged between the orchestrator, reconciliation and callers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from studbook_sync.core.records import (
    BreedingEvent,
    BreedingLoan,
    ExternalPartner,
    Individual,
    LanguageConfig,
    Organization,
    Partnership,
    Project,
    Species,
    SystemSettings,
    User,
)
from studbook_sync.errors import FailureKind


@dataclass
class RemoteSnapshot:
    """Mapped remote state. ``None`` means the collection was absent."""

    org: Organization | None = None
    partners: list[ExternalPartner] | None = None
    users: list[User] | None = None
    projects: list[Project] | None = None
    species: list[Species] | None = None
    individuals: list[Individual] | None = None
    breeding_events: list[BreedingEvent] | None = None
    breeding_loans: list[BreedingLoan] | None = None
    partnerships: list[Partnership] | None = None
    settings: SystemSettings | None = None
    languages: list[LanguageConfig] | None = None


@dataclass(frozen=True)
class PullResult:
    """Outcome of ``fetch_remote_data``."""

    success: bool
    data: RemoteSnapshot | None = None
    message: str = ""
    kind: FailureKind | None = None


@dataclass(frozen=True)
class ReconcileReport:
    """Which local collections a snapshot overwrote."""

    applied: tuple[str, ...] = ()
    overwrote_pending: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "applied": list(self.applied),
            "overwrote_pending": list(self.overwrote_pending),
        }


@dataclass
class SyncState:
    """What the sync indicator shows."""

    is_syncing: bool = False
    last_attempt: datetime | None = None
    last_success: datetime | None = None
    last_error: str | None = None
    last_failure_kind: FailureKind | None = None
    needs_schema_setup: bool = False
    pushes_failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_syncing": self.is_syncing,
            "last_attempt": self.last_attempt.isoformat() if self.last_attempt else None,
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_error": self.last_error,
            "last_failure_kind": self.last_failure_kind.value if self.last_failure_kind else None,
            "needs_schema_setup": self.needs_schema_setup,
            "pushes_failed": self.pushes_failed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncState:
        """Restore persisted state; unreadable fields fall back to defaults."""

        def _when(value: Any) -> datetime | None:
            try:
                return datetime.fromisoformat(value) if value else None
            except (TypeError, ValueError):
                return None

        try:
            kind = FailureKind(data["last_failure_kind"]) if data.get("last_failure_kind") else None
        except ValueError:
            kind = None
        return cls(
            last_attempt=_when(data.get("last_attempt")),
            last_success=_when(data.get("last_success")),
            last_error=data.get("last_error"),
            last_failure_kind=kind,
            needs_schema_setup=bool(data.get("needs_schema_setup", False)),
            pushes_failed=int(data.get("pushes_failed", 0) or 0),
        )
