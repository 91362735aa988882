"""Backup export/import and CSV export of the local store."""

from __future__ import annotations

import csv
import io
import logging
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter

from studbook_sync.core.collections import Collection
from studbook_sync.core.records import (
    BreedingEvent,
    Individual,
    LanguageConfig,
    Organization,
    Species,
    SystemSettings,
    User,
)
from studbook_sync.utils.timeutils import utcnow

if TYPE_CHECKING:
    from studbook_sync.storage.record_store import LocalRecordStore

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"

CSV_HEADER = (
    "Studbook ID",
    "Individual Name",
    "Common Name",
    "Scientific Name",
    "Type",
    "Sex",
    "Birth/Plant Date",
    "Current Weight (kg)",
    "Height (cm)",
    "Status",
    "Project",
    "Sire ID",
    "Dam ID",
    "Location",
    "Notes",
)

_USERS = TypeAdapter(list[User])
_SPECIES = TypeAdapter(list[Species])
_INDIVIDUALS = TypeAdapter(list[Individual])
_EVENTS = TypeAdapter(list[BreedingEvent])
_LANGUAGES = TypeAdapter(list[LanguageConfig])


def _validated(adapter: TypeAdapter[list[Any]], value: Any) -> list[Any] | None:
    return adapter.validate_python(value) if value is not None else None


def _local(records: list[Any]) -> list[dict[str, Any]]:
    return [record.to_local() for record in records]


def export_full_data(store: LocalRecordStore) -> dict[str, Any]:
    """Backup document in the local JSON shape."""
    return {
        "org": store.get_org().to_local(),
        "users": _local(store.get_users()),
        "species": _local(store.get_species()),
        "individuals": _local(store.get_individuals()),
        "breedingEvents": _local(store.get_breeding_events()),
        "settings": store.get_system_settings().to_local(),
        "languages": _local(store.get_languages()),
        "version": BACKUP_VERSION,
    }


def import_full_data(store: LocalRecordStore, data: dict[str, Any]) -> None:
    """Restore a backup. Every restored collection is pushed.

    The whole document is validated before anything is saved, so a bad
    collection leaves the store untouched.

    Raises:
        ValueError: The document has no organization
        pydantic.ValidationError: A collection does not match its schema
    """
    if not isinstance(data, dict) or not data.get("org"):
        raise ValueError("Invalid backup file: missing org")

    org = Organization.model_validate(data["org"])
    users = _validated(_USERS, data.get("users"))
    species = _validated(_SPECIES, data.get("species"))
    individuals = _validated(_INDIVIDUALS, data.get("individuals"))
    events = _validated(_EVENTS, data.get("breedingEvents"))
    settings = (
        SystemSettings.model_validate(data["settings"])
        if data.get("settings") is not None
        else None
    )
    languages = _validated(_LANGUAGES, data.get("languages"))

    store.save_org(org)
    if users is not None:
        store.save_users(users)
    if species is not None:
        store.save_species(species)
    if individuals is not None:
        store.save_individuals(individuals)
    if events is not None:
        store.save_breeding_events(events)
    if settings is not None:
        store.save_system_settings(settings)
    if languages is not None:
        store.save_languages(languages)
    logger.info("Imported backup version %s", data.get("version", "unknown"))


def export_species_data(store: LocalRecordStore, species_id: str) -> dict[str, Any] | None:
    """One species with its individuals, or None if the species is unknown."""
    species = next((s for s in store.get_species() if s.id == species_id), None)
    if species is None:
        return None
    individuals = [ind for ind in store.get_individuals() if ind.species_id == species_id]
    return {
        "species": species.to_local(),
        "individuals": _local(individuals),
        "exportDate": utcnow().isoformat(),
    }


def import_species_data(store: LocalRecordStore, data: dict[str, Any]) -> None:
    """Merge a species export into the store, replacing records with the same id.

    Soft-deleted records already in the store are kept.
    """
    if not isinstance(data, dict) or not data.get("species"):
        raise ValueError("Invalid species export: missing species")

    incoming = Species.model_validate(data["species"])
    incoming_individuals = (
        _INDIVIDUALS.validate_python(data["individuals"])
        if isinstance(data.get("individuals"), list)
        else None
    )

    species = [s for s in store.load_collection(Collection.SPECIES) if s.id != incoming.id]
    store.save_species([*species, incoming])

    if incoming_individuals is not None:
        by_id = {ind.id: ind for ind in store.load_collection(Collection.INDIVIDUALS)}
        for ind in incoming_individuals:
            by_id[ind.id] = ind
        store.save_individuals(list(by_id.values()))


def _status(individual: Individual) -> str:
    if individual.is_deceased:
        return "Deceased"
    if individual.loan_status in ("Loaned Out", "On Loan"):
        return individual.loan_status
    if individual.transferred_to_org_id:
        return "Transferred"
    return "Active"


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def export_csv(store: LocalRecordStore) -> str:
    """One row per individual, RFC 4180 quoting."""
    species = {s.id: s for s in store.get_species()}
    projects = {p.id: p for p in store.get_projects()}

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for ind in store.get_individuals():
        sp = species.get(ind.species_id)
        project = projects.get(ind.project_id)
        growth = ind.latest_growth()
        location = (
            f"{_cell(ind.latitude)}, {_cell(ind.longitude)}"
            if ind.latitude is not None and ind.longitude is not None
            else ""
        )
        writer.writerow(
            [
                ind.studbook_id,
                ind.name,
                sp.common_name if sp else "",
                sp.scientific_name if sp else "",
                sp.type.value if sp else "",
                ind.sex.value,
                _cell(ind.birth_date),
                _cell(ind.weight_kg),
                _cell(growth.height_cm) if growth else "",
                _status(ind),
                project.name if project else "",
                _cell(ind.sire_id),
                _cell(ind.dam_id),
                location,
                ind.notes,
            ]
        )
    return buffer.getvalue()
