"""Built-in reference data used on first run."""

from __future__ import annotations

from studbook_sync.core.records import (
    LanguageConfig,
    Organization,
    StaticPageConfig,
    SystemSettings,
)

# Translation keys every seeded language carries. The full string tables
# are maintained by the presentation layer; these are the keys the sync
# layer itself guarantees.
BASE_TRANSLATIONS: dict[str, str] = {
    "nav.dashboard": "Dashboard",
    "nav.species": "Species",
    "nav.individuals": "Individuals",
    "nav.breeding": "Breeding",
    "nav.network": "Network",
    "nav.settings": "Settings",
    "sync.syncing": "Syncing...",
    "sync.error": "Sync Error",
    "sync.offline": "Offline - changes saved locally",
    "sync.setupRequired": "Database setup required",
}

_SPANISH: dict[str, str] = {
    "nav.dashboard": "Panel",
    "nav.species": "Especies",
    "nav.individuals": "Individuos",
    "nav.breeding": "Reproducción",
    "nav.network": "Red",
    "nav.settings": "Configuración",
    "sync.syncing": "Sincronizando...",
    "sync.error": "Error de sincronización",
    "sync.offline": "Sin conexión - cambios guardados localmente",
    "sync.setupRequired": "Se requiere configurar la base de datos",
}

_FRENCH: dict[str, str] = {
    "nav.dashboard": "Tableau de bord",
    "nav.species": "Espèces",
    "nav.individuals": "Individus",
    "nav.breeding": "Reproduction",
    "nav.network": "Réseau",
    "nav.settings": "Paramètres",
    "sync.syncing": "Synchronisation...",
    "sync.error": "Erreur de synchronisation",
    "sync.offline": "Hors ligne - modifications enregistrées localement",
    "sync.setupRequired": "Configuration de la base de données requise",
}


def seed_languages() -> list[LanguageConfig]:
    """Default language set written when the local store has none."""
    return [
        LanguageConfig(
            code="en-GB",
            name="English (UK)",
            translations=dict(BASE_TRANSLATIONS),
            is_default=True,
        ),
        LanguageConfig(code="es", name="Español", translations=dict(_SPANISH)),
        LanguageConfig(code="fr", name="Français", translations=dict(_FRENCH)),
    ]


def default_system_settings() -> SystemSettings:
    return SystemSettings(
        about_page=StaticPageConfig(
            enabled=True, title="About Us", content_html="<p>About content...</p>"
        ),
        privacy_page=StaticPageConfig(
            enabled=True, title="Privacy Policy", content_html="<p>Privacy content...</p>"
        ),
        terms_page=StaticPageConfig(
            enabled=True, title="Terms & Conditions", content_html="<p>Terms content...</p>"
        ),
    )


def empty_organization() -> Organization:
    """Placeholder org before registration or the first pull."""
    return Organization(id="", name="New Organization")
