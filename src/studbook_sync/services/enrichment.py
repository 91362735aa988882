"""Species enrichment from open taxonomy data."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from studbook_sync.core.records import Species, SpeciesType

logger = logging.getLogger(__name__)

GBIF_MATCH_URL = "https://api.gbif.org/v1/species/match"


@dataclass(frozen=True)
class SpeciesEnrichment:
    """What a provider could tell us about a species."""

    scientific_name: str
    kingdom: str | None = None
    rank: str | None = None
    confidence: int | None = None


class EnrichmentProvider(Protocol):
    async def lookup(
        self, common_name: str, location: str | None = None
    ) -> SpeciesEnrichment | None: ...


class NullEnrichmentProvider:
    """Provider used when enrichment is disabled."""

    async def lookup(
        self, common_name: str, location: str | None = None
    ) -> SpeciesEnrichment | None:
        return None


class GbifEnrichmentProvider:
    """
    Looks names up with the GBIF species match API.

    Usage:
        async with GbifEnrichmentProvider() as gbif:
            match = await gbif.lookup("Snow Leopard")
    """

    def __init__(self, *, base_url: str = GBIF_MATCH_URL, timeout: float = 10.0) -> None:
        self._base_url = base_url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def connect(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> GbifEnrichmentProvider:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    async def lookup(
        self, common_name: str, location: str | None = None
    ) -> SpeciesEnrichment | None:
        """Match ``common_name``; None when GBIF has no match.

        ``location`` is accepted for interface compatibility; the match API
        is not location-aware.
        """
        if not self._session:
            await self.connect()
        assert self._session is not None

        async with self._session.get(
            self._base_url, params={"name": common_name, "verbose": "true"}
        ) as response:
            if response.status >= 400:
                logger.warning("GBIF lookup for %r returned HTTP %d", common_name, response.status)
                return None
            data = await response.json()

        if not isinstance(data, dict) or data.get("matchType", "NONE") == "NONE":
            return None
        scientific_name = data.get("scientificName")
        if not scientific_name:
            return None
        return SpeciesEnrichment(
            scientific_name=scientific_name,
            kingdom=data.get("kingdom"),
            rank=data.get("rank"),
            confidence=data.get("confidence"),
        )


async def enrich_species(
    species: Species,
    provider: EnrichmentProvider,
    location: str | None = None,
) -> Species:
    """Fill in taxonomy from ``provider``. Never raises.

    The species comes back unchanged when the provider has nothing or fails.
    """
    try:
        match = await provider.lookup(species.common_name, location)
    except Exception as e:
        logger.warning("Enrichment of %r failed: %s", species.common_name, e)
        return species

    if match is None:
        return species
    if species.type == SpeciesType.PLANT and (match.kingdom or "").lower() != "plantae":
        logger.warning(
            "Match for plant %r is in kingdom %s", species.common_name, match.kingdom
        )
    return species.model_copy(update={"scientific_name": match.scientific_name})
