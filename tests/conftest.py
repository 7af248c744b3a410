"""Shared pytest fixtures for the places search tests."""

from __future__ import annotations

import asyncio
from typing import Dict, List

import pytest

from places_search.config import Settings
from places_search.models.schemas import Coordinate, Outcome, SearchQuery, SearchResult


class FakePlacesClient:
    """Stands in for PlacesClient; outcomes and gates are keyed by query text."""

    def __init__(self) -> None:
        self.queries: List[SearchQuery] = []
        self.outcomes: Dict[str, Outcome] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.autocomplete_outcome: Outcome = Outcome.empty([])
        self.details_outcomes: Dict[str, Outcome] = {}
        self.closed = False

    async def search(self, query: SearchQuery) -> Outcome:
        self.queries.append(query)
        gate = self.gates.get(query.text)
        if gate is not None:
            await gate.wait()
        return self.outcomes.get(query.text, Outcome.empty([]))

    async def autocomplete(self, query: SearchQuery) -> Outcome:
        self.queries.append(query)
        return self.autocomplete_outcome

    async def get_details(self, place_id: str, api_key: str | None = None) -> Outcome:
        return self.details_outcomes[place_id]

    async def aclose(self) -> None:
        self.closed = True


def make_result(name: str, lat: float = 40.758, lng: float = -73.9855) -> SearchResult:
    coordinate = Coordinate(lat=lat, lng=lng)
    return SearchResult(
        main_address=name,
        secondary_address=f"{name}, New York, NY, USA",
        coordinate=coordinate,
        location=coordinate,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="test-key")


@pytest.fixture
def biased_settings() -> Settings:
    return Settings(
        api_key="test-key",
        location_bias=Coordinate(lat=23.0259973, lng=72.5079086),
        radius=1500,
    )


@pytest.fixture
def fake_client() -> FakePlacesClient:
    return FakePlacesClient()


@pytest.fixture
def result_factory():
    return make_result
