import asyncio

import pytest
from fastapi.testclient import TestClient

from appshelf.api.server import create_app


@pytest.fixture
def client(settings, services):
    with TestClient(create_app(settings, services)) as client:
        yield client


def _login(client, email="admin2@example.com", password="s3cret"):
    response = client.post("/admin/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['data']['token']}"}


def _payload(draft_factory, **overrides):
    return draft_factory(**overrides).model_dump(mode="json")


def test_login_returns_admin_session(client):
    response = client.post(
        "/admin/login", json={"email": "admin2@example.com", "password": "s3cret"}
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["is_admin"] is True
    assert data["token"]


def test_login_outside_allow_list(client):
    response = client.post(
        "/admin/login", json={"email": "random@x.com", "password": "s3cret"}
    )
    assert response.status_code == 401
    assert response.json()["detail"]["message"] == (
        "Access denied. Only authorized admin can log in."
    )


def test_admin_routes_require_session(client):
    assert client.get("/admin/apps").status_code == 401
    response = client.get("/admin/apps", headers={"Authorization": "Bearer bogus"})
    assert response.status_code == 403


def test_logout_invalidates_token(client):
    headers = _login(client)
    assert client.post("/admin/logout", headers=headers).status_code == 200
    assert client.get("/admin/apps", headers=headers).status_code == 403


def test_create_update_delete(client, draft_factory):
    headers = _login(client)

    response = client.post("/admin/apps", json=_payload(draft_factory), headers=headers)
    assert response.status_code == 201
    app_id = response.json()["data"]["id"]

    listed = client.get("/admin/apps", headers=headers).json()
    assert [app["id"] for app in listed["data"]] == [app_id]

    response = client.put(
        f"/admin/apps/{app_id}", json={"title": "Pocket Notes Pro"}, headers=headers
    )
    assert response.status_code == 200
    detail = client.get(f"/catalog/apps/{app_id}").json()["data"]
    assert detail["title"] == "Pocket Notes Pro"
    assert detail["description"] == "Take notes offline"

    response = client.delete(f"/admin/apps/{app_id}", headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["failed_assets"] == []
    assert client.get(f"/catalog/apps/{app_id}").status_code == 404


def test_create_rejects_invalid_apk_link(client, store, draft_factory):
    headers = _login(client)
    response = client.post(
        "/admin/apps", json=_payload(draft_factory, apk_link="not-a-url"), headers=headers
    )
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["message"] == "Valid APK download link is required"
    assert detail["details"]["field"] == "apk_link"
    assert asyncio.run(store.snapshot()) == []


def test_update_rejects_invalid_field_value(client, draft_factory):
    headers = _login(client)
    app_id = client.post(
        "/admin/apps", json=_payload(draft_factory), headers=headers
    ).json()["data"]["id"]

    response = client.put(
        f"/admin/apps/{app_id}", json={"website_link": "nope"}, headers=headers
    )
    assert response.status_code == 422


def test_update_and_delete_missing_app(client):
    headers = _login(client)
    response = client.put("/admin/apps/missing", json={"title": "x"}, headers=headers)
    assert response.status_code == 404
    response = client.delete("/admin/apps/missing", headers=headers)
    assert response.status_code == 404


def test_stats(client, draft_factory):
    headers = _login(client)
    client.post("/admin/apps", json=_payload(draft_factory), headers=headers)
    client.post(
        "/admin/apps",
        json=_payload(draft_factory, title="Star Racer", category="Games", featured=True),
        headers=headers,
    )

    data = client.get("/admin/stats", headers=headers).json()["data"]
    assert data["total_apps"] == 2
    assert data["featured_apps"] == 1
    assert data["categories"] == {"Productivity": 1, "Games": 1}


def test_upload_asset_and_cleanup_on_delete(client, blobs, draft_factory):
    headers = _login(client)
    response = client.post(
        "/admin/assets",
        params={"kind": "logos"},
        files={"file": ("logo.png", b"png-bytes", "image/png")},
        headers=headers,
    )
    assert response.status_code == 201
    url = response.json()["data"]["url"]
    assert blobs.owns(url)

    app_id = client.post(
        "/admin/apps", json=_payload(draft_factory, logo_url=url), headers=headers
    ).json()["data"]["id"]
    response = client.delete(f"/admin/apps/{app_id}", headers=headers)
    assert response.json()["data"]["failed_assets"] == []


def test_upload_rejects_non_images(client):
    headers = _login(client)
    response = client.post(
        "/admin/assets",
        files={"file": ("notes.txt", b"text", "text/plain")},
        headers=headers,
    )
    assert response.status_code == 422

    response = client.post(
        "/admin/assets",
        params={"kind": "videos"},
        files={"file": ("a.png", b"x", "image/png")},
        headers=headers,
    )
    assert response.status_code == 400
