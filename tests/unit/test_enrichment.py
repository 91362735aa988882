"""Tests for services/enrichment.py: GBIF species matching."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from studbook_sync.core.records import Species, SpeciesType
from studbook_sync.services.enrichment import (
    GBIF_MATCH_URL,
    GbifEnrichmentProvider,
    NullEnrichmentProvider,
    SpeciesEnrichment,
    enrich_species,
)


def _provider_returning(payload: Any, status: int = 200) -> tuple[GbifEnrichmentProvider, Any]:
    response = AsyncMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=False)

    session = AsyncMock()
    session.get = MagicMock(return_value=response)

    provider = GbifEnrichmentProvider()
    provider._session = session
    return provider, session


class TestGbifProvider:
    """Tests for GbifEnrichmentProvider.lookup()."""

    @pytest.mark.asyncio
    async def test_match(self) -> None:
        provider, session = _provider_returning(
            {
                "scientificName": "Panthera uncia (Schreber, 1775)",
                "kingdom": "Animalia",
                "rank": "SPECIES",
                "confidence": 97,
                "matchType": "EXACT",
            }
        )

        match = await provider.lookup("Snow Leopard")

        assert match == SpeciesEnrichment(
            scientific_name="Panthera uncia (Schreber, 1775)",
            kingdom="Animalia",
            rank="SPECIES",
            confidence=97,
        )
        session.get.assert_called_once_with(
            GBIF_MATCH_URL, params={"name": "Snow Leopard", "verbose": "true"}
        )

    @pytest.mark.asyncio
    async def test_no_match(self) -> None:
        provider, _ = _provider_returning({"matchType": "NONE", "confidence": 100})
        assert await provider.lookup("Dragon") is None

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        provider, _ = _provider_returning(None, status=503)
        assert await provider.lookup("Snow Leopard") is None

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        provider, session = _provider_returning({})
        await provider.close()
        session.close.assert_awaited_once()


class TestEnrichSpecies:
    """enrich_species() never raises."""

    @pytest.mark.asyncio
    async def test_sets_scientific_name(self, species: Species) -> None:
        provider = AsyncMock()
        provider.lookup = AsyncMock(
            return_value=SpeciesEnrichment(scientific_name="Panthera uncia", kingdom="Animalia")
        )
        bare = species.model_copy(update={"scientific_name": ""})

        enriched = await enrich_species(bare, provider, location="Nepal")

        assert enriched.scientific_name == "Panthera uncia"
        assert bare.scientific_name == ""
        provider.lookup.assert_awaited_once_with("Snow Leopard", "Nepal")

    @pytest.mark.asyncio
    async def test_provider_failure_returns_input(self, species: Species) -> None:
        provider = AsyncMock()
        provider.lookup = AsyncMock(side_effect=RuntimeError("quota exceeded"))

        assert await enrich_species(species, provider) is species

    @pytest.mark.asyncio
    async def test_null_provider(self, species: Species) -> None:
        assert await enrich_species(species, NullEnrichmentProvider()) is species

    @pytest.mark.asyncio
    async def test_plant_kingdom_mismatch_warns(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        plant = Species(id="sp-2", common_name="Ghost Orchid", type=SpeciesType.PLANT)
        provider = AsyncMock()
        provider.lookup = AsyncMock(
            return_value=SpeciesEnrichment(scientific_name="Phasmida", kingdom="Animalia")
        )

        with caplog.at_level("WARNING"):
            enriched = await enrich_species(plant, provider)

        assert enriched.scientific_name == "Phasmida"
        assert "Animalia" in caplog.text
