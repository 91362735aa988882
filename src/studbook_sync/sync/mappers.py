"""Conversion between local records and remote (snake_case) rows.

Every function is total: absent optionals become ``None`` on the way out,
absent arrays become ``[]`` on the way in. Embedded sequences (histories,
change requests, dashboard blocks) travel in their local JSON shape.
"""

from __future__ import annotations

from typing import Any

from studbook_sync.core.records import (
    SETTINGS_RECORD_ID,
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


def _or_none(value: Any) -> Any:
    """Empty strings and missing values both go out as null."""
    return value if value not in (None, "") else None


# ========== Push direction ==========


def organization_to_remote(org: Organization) -> dict[str, Any]:
    return {
        "id": org.id,
        "name": org.name,
        "location": org.location,
        "latitude": org.latitude,
        "longitude": org.longitude,
        "founded_year": org.founded_year,
        "description": org.description,
        "focus": org.focus.value,
        "is_org_public": org.is_org_public,
        "is_species_public": org.is_species_public,
        "obscure_location": org.obscure_location,
        "hide_name": org.hide_name,
        "allow_breeding_requests": org.allow_breeding_requests,
        "breeding_request_contact_id": _or_none(org.breeding_request_contact_id),
        "show_native_status": org.show_native_status,
        "dashboard_block": org.dashboard_block.to_local() if org.dashboard_block else None,
        "is_deleted": org.deleted,
    }


def project_to_remote(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": _or_none(project.description),
        "org_id": _or_none(project.org_id),
    }


def user_to_remote(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "status": user.status.value,
        "password": _or_none(user.password),
        "avatar_url": _or_none(user.avatar_url),
        "allowed_project_ids": list(user.allowed_project_ids),
    }


def species_to_remote(species: Species) -> dict[str, Any]:
    return {
        "id": species.id,
        "project_id": species.project_id,
        "common_name": species.common_name,
        "scientific_name": species.scientific_name,
        "type": species.type.value,
        "plant_classification": _or_none(species.plant_classification),
        "conservation_status": species.conservation_status,
        "sexual_maturity_age_years": species.sexual_maturity_age_years,
        "average_adult_weight_kg": species.average_adult_weight_kg,
        "life_expectancy_years": species.life_expectancy_years,
        "breeding_season_start": species.breeding_season_start,
        "breeding_season_end": species.breeding_season_end,
        "image_url": _or_none(species.image_url),
        "native_status_country": _or_none(species.native_status_country),
        "native_status_local": _or_none(species.native_status_local),
    }


def individual_to_remote(individual: Individual, *, include_parents: bool = True) -> dict[str, Any]:
    """Map an individual; ``include_parents=False`` nulls the sire and dam links."""
    return {
        "id": individual.id,
        "project_id": individual.project_id,
        "species_id": individual.species_id,
        "studbook_id": individual.studbook_id,
        "name": individual.name,
        "sex": individual.sex.value,
        "birth_date": _or_none(individual.birth_date),
        "weight_kg": individual.weight_kg,
        "sire_id": _or_none(individual.sire_id) if include_parents else None,
        "dam_id": _or_none(individual.dam_id) if include_parents else None,
        "image_url": _or_none(individual.image_url),
        "dna_sequence": _or_none(individual.dna_sequence),
        "notes": _or_none(individual.notes),
        "source": _or_none(individual.source),
        "source_details": _or_none(individual.source_details),
        "latitude": individual.latitude,
        "longitude": individual.longitude,
        "is_deceased": individual.is_deceased,
        "death_date": _or_none(individual.death_date),
        "loan_status": _or_none(individual.loan_status),
        "transferred_to_org_id": _or_none(individual.transferred_to_org_id),
        "transfer_date": _or_none(individual.transfer_date),
        "transfer_note": _or_none(individual.transfer_note),
        "weight_history": [record.to_local() for record in individual.weight_history],
        "growth_history": [record.to_local() for record in individual.growth_history],
        "health_history": [record.to_local() for record in individual.health_history],
        "is_deleted": individual.deleted,
    }


def breeding_event_to_remote(event: BreedingEvent) -> dict[str, Any]:
    return {
        "id": event.id,
        "species_id": event.species_id,
        "sire_id": _or_none(event.sire_id),
        "dam_id": _or_none(event.dam_id),
        "date": event.date,
        "offspring_count": event.offspring_count,
        "successful_births": event.successful_births,
        "losses": event.losses,
        "notes": event.notes,
        "offspring_ids": list(event.offspring_ids),
    }


def breeding_loan_to_remote(loan: BreedingLoan) -> dict[str, Any]:
    return {
        "id": loan.id,
        "partner_org_id": loan.partner_org_id,
        "proposer_org_id": loan.proposer_org_id,
        "role": loan.role.value,
        "start_date": loan.start_date,
        "end_date": _or_none(loan.end_date),
        "status": loan.status.value,
        "individual_ids": list(loan.individual_ids),
        "terms": loan.terms,
        "notification_recipient_id": _or_none(loan.notification_recipient_id),
        "change_request": loan.change_request.to_local() if loan.change_request else None,
    }


def partnership_to_remote(partnership: Partnership) -> dict[str, Any]:
    return {
        "id": partnership.id,
        "org_id_1": partnership.org_id1,
        "org_id_2": partnership.org_id2,
        "status": partnership.status,
        "established_date": partnership.established_date,
    }


def language_to_remote(language: LanguageConfig) -> dict[str, Any]:
    return {
        "code": language.code,
        "name": language.name,
        "translations": dict(language.translations),
        "is_default": language.is_default,
        "manual_overrides": list(language.manual_overrides),
        "is_deleted": language.deleted,
    }


def settings_to_remote(settings: SystemSettings) -> dict[str, Any]:
    """Settings are one row holding the whole document."""
    return {"id": SETTINGS_RECORD_ID, "settings": settings.to_local()}


# ========== Pull direction ==========


def organization_from_remote(data: dict[str, Any]) -> Organization:
    return Organization(
        id=data["id"],
        name=data.get("name") or "",
        location=data.get("location") or "",
        latitude=data.get("latitude"),
        longitude=data.get("longitude"),
        founded_year=data.get("founded_year"),
        description=data.get("description") or "",
        focus=data.get("focus") or "Animals",
        is_org_public=bool(data.get("is_org_public")),
        is_species_public=bool(data.get("is_species_public")),
        obscure_location=bool(data.get("obscure_location")),
        hide_name=bool(data.get("hide_name")),
        allow_breeding_requests=bool(data.get("allow_breeding_requests")),
        breeding_request_contact_id=data.get("breeding_request_contact_id"),
        show_native_status=data.get("show_native_status", True) is not False,
        dashboard_block=data.get("dashboard_block"),
        deleted=bool(data.get("is_deleted")),
    )


def organization_to_partner(data: dict[str, Any]) -> ExternalPartner:
    """Project a remote organization row onto the partner view.

    Species ids and population counts are not part of the organization
    row, so they start empty.
    """
    return ExternalPartner(
        id=data["id"],
        name=data.get("name") or "",
        location=data.get("location") or "",
        latitude=data.get("latitude"),
        longitude=data.get("longitude"),
        is_org_public=bool(data.get("is_org_public")),
        is_species_public=bool(data.get("is_species_public")),
        obscure_location=bool(data.get("obscure_location")),
        hide_name=bool(data.get("hide_name")),
        allow_breeding_requests=bool(data.get("allow_breeding_requests")),
        species_ids=[],
        population_counts={},
        deleted=bool(data.get("is_deleted")),
    )


def project_from_remote(data: dict[str, Any]) -> Project:
    return Project(
        id=data["id"],
        name=data.get("name") or "",
        description=data.get("description"),
        org_id=data.get("org_id"),
    )


def user_from_remote(data: dict[str, Any]) -> User:
    return User(
        id=data["id"],
        name=data.get("name") or "",
        email=data.get("email") or "",
        role=data.get("role") or "Keeper",
        status=data.get("status") or "Active",
        password=data.get("password"),
        avatar_url=data.get("avatar_url"),
        allowed_project_ids=data.get("allowed_project_ids") or [],
    )


def species_from_remote(data: dict[str, Any]) -> Species:
    return Species(
        id=data["id"],
        project_id=data.get("project_id") or "",
        common_name=data.get("common_name") or "",
        scientific_name=data.get("scientific_name") or "",
        type=data.get("type") or "Animal",
        plant_classification=data.get("plant_classification"),
        conservation_status=data.get("conservation_status") or "",
        sexual_maturity_age_years=data.get("sexual_maturity_age_years") or 0,
        average_adult_weight_kg=data.get("average_adult_weight_kg") or 0,
        life_expectancy_years=data.get("life_expectancy_years") or 0,
        breeding_season_start=data.get("breeding_season_start"),
        breeding_season_end=data.get("breeding_season_end"),
        image_url=data.get("image_url"),
        native_status_country=data.get("native_status_country"),
        native_status_local=data.get("native_status_local"),
    )


def individual_from_remote(data: dict[str, Any]) -> Individual:
    return Individual(
        id=data["id"],
        project_id=data.get("project_id") or "",
        species_id=data.get("species_id") or "",
        studbook_id=data.get("studbook_id") or "",
        name=data.get("name") or "",
        sex=data.get("sex") or "Unknown",
        birth_date=data.get("birth_date"),
        weight_kg=data.get("weight_kg"),
        sire_id=data.get("sire_id"),
        dam_id=data.get("dam_id"),
        image_url=data.get("image_url"),
        dna_sequence=data.get("dna_sequence"),
        notes=data.get("notes") or "",
        source=data.get("source"),
        source_details=data.get("source_details"),
        latitude=data.get("latitude"),
        longitude=data.get("longitude"),
        is_deceased=bool(data.get("is_deceased")),
        death_date=data.get("death_date"),
        loan_status=data.get("loan_status"),
        transferred_to_org_id=data.get("transferred_to_org_id"),
        transfer_date=data.get("transfer_date"),
        transfer_note=data.get("transfer_note"),
        weight_history=data.get("weight_history") or [],
        growth_history=data.get("growth_history") or [],
        health_history=data.get("health_history") or [],
        deleted=bool(data.get("is_deleted")),
    )


def breeding_event_from_remote(data: dict[str, Any]) -> BreedingEvent:
    return BreedingEvent(
        id=data["id"],
        species_id=data.get("species_id") or "",
        sire_id=data.get("sire_id"),
        dam_id=data.get("dam_id"),
        date=data.get("date") or "",
        offspring_count=data.get("offspring_count") or 0,
        successful_births=data.get("successful_births") or 0,
        losses=data.get("losses") or 0,
        notes=data.get("notes") or "",
        offspring_ids=data.get("offspring_ids") or [],
    )


def breeding_loan_from_remote(data: dict[str, Any]) -> BreedingLoan:
    return BreedingLoan(
        id=data["id"],
        partner_org_id=data.get("partner_org_id") or "",
        proposer_org_id=data.get("proposer_org_id") or "",
        role=data.get("role") or "Provider",
        start_date=data.get("start_date") or "",
        end_date=data.get("end_date"),
        status=data.get("status") or "Proposed",
        individual_ids=data.get("individual_ids") or [],
        terms=data.get("terms") or "",
        notification_recipient_id=data.get("notification_recipient_id"),
        change_request=data.get("change_request"),
    )


def partnership_from_remote(data: dict[str, Any]) -> Partnership:
    return Partnership(
        id=data["id"],
        org_id1=data.get("org_id_1") or "",
        org_id2=data.get("org_id_2") or "",
        status=data.get("status") or "Active",
        established_date=data.get("established_date") or "",
    )


def language_from_remote(data: dict[str, Any]) -> LanguageConfig:
    return LanguageConfig(
        code=data["code"],
        name=data.get("name") or "",
        translations=data.get("translations") or {},
        is_default=bool(data.get("is_default")),
        manual_overrides=data.get("manual_overrides") or [],
        deleted=bool(data.get("is_deleted")),
    )


def settings_from_remote(data: dict[str, Any]) -> SystemSettings:
    return SystemSettings.model_validate(data.get("settings") or {})
