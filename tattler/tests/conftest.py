from __future__ import annotations

import asyncio
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from tattler.app import create_app
from tattler.restaurants.mutations import RestaurantMutationService
from tattler.restaurants.search import RestaurantQueryService
from tattler.storage.memory import MemoryDocumentStore
from tattler.storage.predicates import Equals


def _grades(*scores: int) -> list[dict]:
    return [{"date": datetime(2024, 1, i + 1), "score": s} for i, s in enumerate(scores)]


def _doc(name, cuisine, borough, coord, business_id, grades=()) -> dict:
    return {
        "business_id": business_id,
        "name": name,
        "cuisine": cuisine,
        "borough": borough,
        "address": {"building": "1", "street": "Calle Juarez", "zipcode": "44100", "coord": list(coord)},
        "grades": _grades(*grades),
        "comments": [],
    }


def sample_documents() -> list[dict]:
    # Distances from the origin fixture: Tacos ~70 m, Sushi ~440 m, Birria ~750 m,
    # Mariscos ~4.5 km, Casa Italia ~5.3 km, La Trattoria ~8 km.
    return [
        _doc("Tacos El Güero", "Mexican", "Guadalajara", (-103.3490, 20.6600), 1001, (10, 20)),
        _doc("La Trattoria", "Italian", "Zapopan", (-103.3900, 20.7200), 1002, (25,)),
        _doc("Sushi Roll", "Japanese", "Guadalajara", (-103.3530, 20.6620), 1003, (5, 6, 7)),
        _doc("Casa Italia", "Italian", "Guadalajara", (-103.3000, 20.6500), 1004),
        _doc("Birria Express", "Mexican", "Guadalajara", (-103.3440, 20.6640), 1005, (18, 19)),
        _doc("Mariscos Chapala", "Seafood", "Tlaquepaque", (-103.3120, 20.6400), 1010, (30,)),
    ]


@pytest.fixture
def store() -> MemoryDocumentStore:
    s = MemoryDocumentStore()
    s.load(sample_documents())
    return s


@pytest.fixture
def origin() -> tuple[float, float]:
    """Reference point for proximity tests (Guadalajara centre)."""
    return (-103.3496, 20.6597)


@pytest.fixture
def sample_docs() -> list[dict]:
    return sample_documents()


@pytest.fixture
def id_of(store):
    """Look up a seeded restaurant's id by name."""

    def lookup(name: str) -> str:
        doc = asyncio.run(store.find_one(Equals("name", name)))
        return str(doc["_id"])

    return lookup


@pytest.fixture
def empty_store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def queries(store) -> RestaurantQueryService:
    return RestaurantQueryService(store)


@pytest.fixture
def mutations(store) -> RestaurantMutationService:
    return RestaurantMutationService(store)


@pytest.fixture
def client(store):
    with TestClient(create_app(lambda: store)) as c:
        yield c
