"""Domain records synchronized by the local-first layer.

Attributes are snake_case in Python; the persisted local JSON uses the
application's camelCase field names (``foundedYear``, ``sireId``...), which
is what the alias generator produces.  Remote column naming is handled
separately by :mod:`studbook_sync.sync.mappers`.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SETTINGS_RECORD_ID = "global-settings"


class UserRole(StrEnum):
    SUPER_ADMIN = "Super Admin"
    ADMIN = "Admin"
    KEEPER = "Keeper"
    RESEARCHER = "Researcher"
    VET = "Veterinarian"


class UserStatus(StrEnum):
    ACTIVE = "Active"
    INVITED = "Invited"


class OrganizationFocus(StrEnum):
    ANIMALS = "Animals"
    PLANTS = "Plants"


class SpeciesType(StrEnum):
    ANIMAL = "Animal"
    PLANT = "Plant"


class Sex(StrEnum):
    MALE = "Male"
    FEMALE = "Female"
    UNKNOWN = "Unknown"


class LoanRole(StrEnum):
    PROVIDER = "Provider"
    RECIPIENT = "Recipient"


class LoanAgreementStatus(StrEnum):
    PROPOSED = "Proposed"
    ACTIVE = "Active"
    REJECTED = "Rejected"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class ChangeRequestType(StrEnum):
    EXTENSION = "Extension"
    CONCLUSION = "Conclusion"
    CANCELLATION = "Cancellation"
    MODIFICATION = "Modification"


class NotificationType(StrEnum):
    BREEDING_REQUEST = "BreedingRequest"
    SYSTEM = "System"
    PARTNERSHIP = "Partnership"
    LOAN_UPDATE = "LoanUpdate"


class StudbookModel(BaseModel):
    """Base for every persisted record: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_local(self) -> dict[str, Any]:
        """Serialize to the local (camelCase) JSON shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SyncRecord(StudbookModel):
    """A record of a list collection, soft-deletable."""

    id: str
    deleted: bool = False


# ========== Organizations ==========


class DashboardBlock(StudbookModel):
    enabled: bool = False
    title: str = ""
    content: str = ""


class Organization(StudbookModel):
    """The tenant organization ("mine"). An empty local org has ``id == ""``."""

    id: str = ""
    name: str = "New Organization"
    location: str = ""
    latitude: float | None = None
    longitude: float | None = None
    is_org_public: bool = False
    is_species_public: bool = False
    obscure_location: bool = False
    hide_name: bool = False
    founded_year: int | None = None
    description: str = ""
    focus: OrganizationFocus = OrganizationFocus.ANIMALS
    allow_breeding_requests: bool = False
    breeding_request_contact_id: str | None = None
    show_native_status: bool = True
    dashboard_block: DashboardBlock | None = None
    deleted: bool = False


class ExternalPartner(SyncRecord):
    """Another organization as seen through the filtered remote listing."""

    name: str = ""
    location: str = ""
    latitude: float | None = None
    longitude: float | None = None
    species_ids: list[str] = Field(default_factory=list)
    is_org_public: bool = False
    is_species_public: bool = False
    obscure_location: bool = False
    hide_name: bool = False
    allow_breeding_requests: bool = False
    population_counts: dict[str, str] = Field(default_factory=dict)


# ========== Projects & Users ==========


class Project(SyncRecord):
    name: str = ""
    description: str | None = None
    org_id: str | None = None


class User(SyncRecord):
    """An application user.

    ``password`` holds whatever hash the credential service expects; this
    layer never inspects it.
    """

    name: str = ""
    email: str = ""
    role: UserRole = UserRole.KEEPER
    status: UserStatus = UserStatus.ACTIVE
    avatar_url: str | None = None
    password: str | None = None
    allowed_project_ids: list[str] = Field(default_factory=list)
    preferred_language: str | None = None

    def can_access_project(self, project_id: str) -> bool:
        """An empty allow-list means unrestricted."""
        return not self.allowed_project_ids or project_id in self.allowed_project_ids


# ========== Species ==========


class Species(SyncRecord):
    project_id: str = ""
    common_name: str = ""
    scientific_name: str = ""
    type: SpeciesType = SpeciesType.ANIMAL
    plant_classification: str | None = None
    conservation_status: str = ""
    sexual_maturity_age_years: float = 0
    average_adult_weight_kg: float = 0
    life_expectancy_years: float = 0
    breeding_season_start: int | None = None
    breeding_season_end: int | None = None
    image_url: str | None = None
    native_status_country: str | None = None
    native_status_local: str | None = None


# ========== Individuals ==========


class WeightRecord(StudbookModel):
    id: str
    date: str
    weight_kg: float | None = None
    note: str | None = None
    image_url: str | None = None


class GrowthRecord(StudbookModel):
    id: str
    date: str
    height_cm: float = 0
    image_url: str | None = None
    note: str | None = None


class HealthRecord(StudbookModel):
    id: str
    date: str
    type: str = "Other"
    description: str = ""
    performed_by: str | None = None


class Individual(SyncRecord):
    """One animal or plant.

    ``sire_id``/``dam_id`` are optional foreign ids into the arena of
    individuals. They may point at unknown or external individuals.
    """

    project_id: str = ""
    species_id: str = ""
    studbook_id: str = ""
    name: str = ""
    sex: Sex = Sex.UNKNOWN
    birth_date: str | None = None
    weight_kg: float | None = None
    sire_id: str | None = None
    dam_id: str | None = None
    image_url: str | None = None
    dna_sequence: str | None = None
    notes: str = ""
    source: str | None = None
    source_details: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    is_deceased: bool = False
    death_date: str | None = None
    loan_status: str | None = None
    transferred_to_org_id: str | None = None
    transfer_date: str | None = None
    transfer_note: str | None = None
    weight_history: list[WeightRecord] = Field(default_factory=list)
    growth_history: list[GrowthRecord] = Field(default_factory=list)
    health_history: list[HealthRecord] = Field(default_factory=list)

    @property
    def has_parents(self) -> bool:
        return bool(self.sire_id or self.dam_id)

    def latest_growth(self) -> GrowthRecord | None:
        if not self.growth_history:
            return None
        return max(self.growth_history, key=lambda record: record.date)


# ========== Breeding ==========


class BreedingEvent(SyncRecord):
    species_id: str = ""
    sire_id: str | None = None
    dam_id: str | None = None
    date: str = ""
    offspring_count: int = 0
    successful_births: int = 0
    losses: int = 0
    notes: str = ""
    offspring_ids: list[str] = Field(default_factory=list)


class LoanChangeRequest(StudbookModel):
    requester_org_id: str
    type: ChangeRequestType
    new_end_date: str | None = None
    new_terms: str | None = None
    note: str | None = None
    requested_date: str = ""


class BreedingLoan(SyncRecord):
    """A loan of individuals between two organizations.

    At most one change request is outstanding at a time.
    """

    partner_org_id: str = ""
    proposer_org_id: str = ""
    role: LoanRole = LoanRole.PROVIDER
    start_date: str = ""
    end_date: str | None = None
    status: LoanAgreementStatus = LoanAgreementStatus.PROPOSED
    individual_ids: list[str] = Field(default_factory=list)
    terms: str = ""
    notification_recipient_id: str | None = None
    change_request: LoanChangeRequest | None = None

    def request_change(self, request: LoanChangeRequest) -> BreedingLoan:
        """Return a copy carrying ``request``; fails if one is already pending."""
        if self.change_request is not None:
            raise ValueError(
                f"Loan {self.id} already has a pending {self.change_request.type} request"
            )
        return self.model_copy(update={"change_request": request})

    def resolve_change(self, approve: bool, today: str) -> BreedingLoan:
        """Apply (or reject) the pending change request and clear it."""
        request = self.change_request
        if request is None:
            return self

        update: dict[str, Any] = {"change_request": None}
        if approve:
            if request.type == ChangeRequestType.EXTENSION:
                update["end_date"] = request.new_end_date
            elif request.type == ChangeRequestType.MODIFICATION:
                update["terms"] = request.new_terms or self.terms
            elif request.type == ChangeRequestType.CONCLUSION:
                update["status"] = LoanAgreementStatus.COMPLETED
                update["end_date"] = today
            elif request.type == ChangeRequestType.CANCELLATION:
                update["status"] = LoanAgreementStatus.CANCELLED
                update["end_date"] = today
        return self.model_copy(update=update)


class Partnership(SyncRecord):
    """Symmetric relation between two organizations."""

    org_id1: str = Field(default="", alias="orgId1")
    org_id2: str = Field(default="", alias="orgId2")
    status: str = "Active"
    established_date: str = ""

    def links(self, org_a: str, org_b: str) -> bool:
        return {self.org_id1, self.org_id2} == {org_a, org_b}


# ========== Languages & Settings ==========


class LanguageConfig(StudbookModel):
    """A UI language, keyed by ``code`` rather than ``id``."""

    code: str
    name: str = ""
    translations: dict[str, str] = Field(default_factory=dict)
    is_default: bool = False
    manual_overrides: list[str] = Field(default_factory=list)
    deleted: bool = False


class StaticPageConfig(StudbookModel):
    enabled: bool = True
    title: str = ""
    content_html: str = ""


class LandingFeature(StudbookModel):
    id: str
    title: str = ""
    description: str = ""
    icon: str = ""


class LandingPageConfig(StudbookModel):
    hero_title: str | None = None
    hero_subtitle: str | None = None
    show_features: bool | None = None
    features: list[LandingFeature] = Field(default_factory=list)
    custom_content_html: str | None = None


class SystemSettings(StudbookModel):
    """Singleton configuration, synchronized under ``SETTINGS_RECORD_ID``."""

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_pass: str = ""
    smtp_secure: bool = True
    theme_primary_color: str = "#059669"
    theme_secondary_color: str = "#10b981"
    app_logo_url: str | None = None
    custom_css: str | None = None
    landing_page_config: LandingPageConfig | None = None
    about_page: StaticPageConfig = Field(default_factory=StaticPageConfig)
    privacy_page: StaticPageConfig = Field(default_factory=StaticPageConfig)
    terms_page: StaticPageConfig = Field(default_factory=StaticPageConfig)
    gemini_api_key: str | None = None
    open_ai_api_key: str | None = Field(default=None, alias="openAiApiKey")
    recaptcha_site_key: str | None = None
    recaptcha_secret_key: str | None = None
    enable_mfa: bool = False


# ========== Local-only ==========


class Notification(StudbookModel):
    id: str
    recipient_id: str
    sender_org_name: str = "System"
    title: str = ""
    message: str = ""
    date: str = ""
    is_read: bool = False
    type: NotificationType = NotificationType.SYSTEM


class Session(StudbookModel):
    """An authenticated session returned by the credential service."""

    token: str
    user: User
