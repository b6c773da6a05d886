from types import SimpleNamespace

import pytest

from appshelf.assets.blobs import LocalBlobStore
from appshelf.auth.provider import InMemoryAuthProvider
from appshelf.bootstrap.manager import build_services
from appshelf.catalog.models import CatalogDraft, Category
from appshelf.store.memory import InMemoryRecordStore

ASSET_BASE_URL = "https://assets.appshelf.test/files"
ADMIN_EMAILS = ["admin@example.com", "admin2@example.com", "admin3@example.com"]


def make_draft(**overrides) -> CatalogDraft:
    data = {
        "title": "Pocket Notes",
        "description": "Take notes offline",
        "apk_link": "https://downloads.example.com/pocket-notes.apk",
        "website_link": "https://pocketnotes.example.com",
        "logo_url": "https://cdn.example.com/pocket-notes/logo.png",
        "screenshots": ["https://cdn.example.com/pocket-notes/1.png"],
        "category": Category.PRODUCTIVITY,
        "tags": ["notes", "offline"],
        "featured": False,
        "version": "1.2.0",
        "size": "12 MB",
    }
    data.update(overrides)
    return CatalogDraft.model_validate(data)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStore(str(tmp_path / "assets"), ASSET_BASE_URL)


@pytest.fixture
def settings(tmp_path):
    return SimpleNamespace(
        database_url="",
        poll_interval_seconds=0,
        admin_emails=ADMIN_EMAILS,
        admin_credentials_file="",
        asset_directory=str(tmp_path / "assets"),
        asset_base_url=ASSET_BASE_URL,
        cors_origins=["http://localhost:3000"],
        log_level="INFO",
    )


@pytest.fixture
def services(settings, store, blobs):
    provider = InMemoryAuthProvider({"admin2@example.com": "s3cret", "random@x.com": "s3cret"})
    return build_services(settings, store=store, blobs=blobs, provider=provider)


@pytest.fixture
def draft_factory():
    return make_draft
