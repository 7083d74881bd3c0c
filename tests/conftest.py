"""Shared fixtures for tests."""

from __future__ import annotations

from typing import Callable

import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient

from catalog_service import OpenLibraryClient, get_catalog
from dataBase import ensure_indexes, get_db
from main import app


def search_doc(key: str, title: str, **extra) -> dict:
    doc = {
        "key": key,
        "title": title,
        "author_name": extra.pop("authors", ["Some Author"]),
        "first_publish_year": extra.pop("year", 2000),
        "cover_i": extra.pop("cover", 101),
        "isbn": extra.pop("isbn", ["9780000000001"]),
        "subject": extra.pop("subjects", ["Fiction", "Classics"]),
    }
    doc.update(extra)
    return doc


def make_catalog(handler: Callable[[httpx.Request], httpx.Response]) -> OpenLibraryClient:
    return OpenLibraryClient(
        base_url="https://openlibrary.test",
        covers_url="https://covers.test",
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["bookfinder_test"]
    await ensure_indexes(database)
    return database


@pytest.fixture
def catalog_requests() -> list:
    return []


@pytest.fixture
def catalog(catalog_requests) -> OpenLibraryClient:
    """Catalog answering every search with the same two works."""

    def handler(request: httpx.Request) -> httpx.Response:
        catalog_requests.append(request)
        if request.url.path.startswith("/works/"):
            return httpx.Response(200, json={
                "key": "/works/OL1W",
                "title": "1984",
                "description": {"type": "/type/text", "value": "A dystopian novel."},
                "subjects": ["Totalitarianism"],
                "covers": [123],
            })
        return httpx.Response(200, json={
            "numFound": 2,
            "docs": [
                search_doc("/works/OL1W", "1984", authors=["George Orwell"], year=1949),
                search_doc("/works/OL2W", "Animal Farm", authors=["George Orwell"], year=1945),
            ],
        })

    return make_catalog(handler)


@pytest.fixture
async def api(db, catalog):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_catalog] = lambda: catalog
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def register(api: httpx.AsyncClient, username: str = "reader", email: str = None) -> dict:
    resp = await api.post("/api/auth/register", json={
        "username": username,
        "email": email or f"{username}@example.com",
        "password": "secret123",
    })
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    data["headers"] = {"Authorization": f"Bearer {data['token']}"}
    return data
