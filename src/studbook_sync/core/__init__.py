"""Domain records and reference data."""

from studbook_sync.core.records import (
    SETTINGS_RECORD_ID,
    BreedingEvent,
    BreedingLoan,
    ExternalPartner,
    Individual,
    LanguageConfig,
    LoanChangeRequest,
    Notification,
    Organization,
    Partnership,
    Project,
    Session,
    Species,
    SystemSettings,
    User,
)

__all__ = [
    "SETTINGS_RECORD_ID",
    "BreedingEvent",
    "BreedingLoan",
    "ExternalPartner",
    "Individual",
    "LanguageConfig",
    "LoanChangeRequest",
    "Notification",
    "Organization",
    "Partnership",
    "Project",
    "Session",
    "Species",
    "SystemSettings",
    "User",
]
