import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from appshelf.api.server import create_app
from appshelf.catalog.models import Category

BASE_TIME = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _seed(store, drafts):
    ids = []
    for offset, draft in enumerate(drafts):
        data = draft.model_dump()
        data["created_at"] = BASE_TIME + timedelta(minutes=offset)
        ids.append(asyncio.run(store.create(data)))
    return ids


@pytest.fixture
def seeded(store, draft_factory):
    return _seed(
        store,
        [
            draft_factory(title="Pocket Notes"),
            draft_factory(
                title="Star Racer",
                description="Arcade racing",
                category=Category.GAMES,
                featured=True,
            ),
        ],
    )


@pytest.fixture
def client(settings, services):
    with TestClient(create_app(settings, services)) as client:
        yield client


def test_list_apps_newest_first(seeded, client):
    response = client.get("/catalog/apps")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [app["title"] for app in body["data"]] == ["Star Racer", "Pocket Notes"]


def test_list_apps_filters(seeded, client):
    body = client.get("/catalog/apps", params={"q": "ARCADE"}).json()
    assert [app["title"] for app in body["data"]] == ["Star Racer"]
    assert body["total"] == 2

    body = client.get("/catalog/apps", params={"category": "Productivity"}).json()
    assert [app["title"] for app in body["data"]] == ["Pocket Notes"]


def test_list_apps_rejects_unknown_category(client):
    response = client.get("/catalog/apps", params={"category": "Nope"})
    assert response.status_code == 422


def test_get_app(seeded, client):
    response = client.get(f"/catalog/apps/{seeded[0]}")
    assert response.status_code == 200
    assert response.json()["data"]["title"] == "Pocket Notes"


def test_get_missing_app(client):
    response = client.get("/catalog/apps/missing")
    assert response.status_code == 404


def test_download_returns_link_and_counts(seeded, client):
    response = client.post(f"/catalog/apps/{seeded[0]}/download")
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Download started!"
    assert body["data"]["apk_link"] == "https://downloads.example.com/pocket-notes.apk"
    assert body["data"]["downloads"] == 1

    detail = client.get(f"/catalog/apps/{seeded[0]}").json()
    assert detail["data"]["downloads"] == 1


def test_download_missing_app(client):
    response = client.post("/catalog/apps/missing/download")
    assert response.status_code == 404
