import logging
import os
from dataclasses import dataclass
from typing import List, Optional

import yaml

from appshelf.assets.blobs import BlobStore, LocalBlobStore
from appshelf.auth.gate import AdminGate
from appshelf.auth.provider import AuthProvider, InMemoryAuthProvider
from appshelf.catalog.errors import CatalogError
from appshelf.catalog.models import CatalogDraft
from appshelf.catalog.synchronizer import CatalogSynchronizer
from appshelf.config.settings import Config, config
from appshelf.db.manager import DatabaseManager
from appshelf.store.base import RecordStore
from appshelf.store.memory import InMemoryRecordStore
from appshelf.store.sql import SqlRecordStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: RecordStore
    blobs: BlobStore
    provider: AuthProvider
    gate: AdminGate
    synchronizer: CatalogSynchronizer


def build_store(settings: Config = config) -> RecordStore:
    if not settings.database_url:
        logger.info("No database configured, using in-memory catalog store")
        return InMemoryRecordStore()
    db = DatabaseManager(settings.database_url)
    db.init_schema()
    return SqlRecordStore(db, poll_interval=settings.poll_interval_seconds)


def build_auth_provider(settings: Config = config) -> AuthProvider:
    path = settings.admin_credentials_file
    if path and os.path.exists(path):
        return InMemoryAuthProvider.from_file(path)
    if path:
        logger.warning("Admin credentials file %s not found, no admin can log in", path)
    return InMemoryAuthProvider()


def build_services(
    settings: Config = config,
    store: Optional[RecordStore] = None,
    blobs: Optional[BlobStore] = None,
    provider: Optional[AuthProvider] = None,
) -> Services:
    """Wire the collaborators once; the admin allow-list is frozen here."""
    store = store or build_store(settings)
    blobs = blobs or LocalBlobStore(settings.asset_directory, settings.asset_base_url)
    provider = provider or build_auth_provider(settings)
    gate = AdminGate(provider, settings.admin_emails)
    synchronizer = CatalogSynchronizer(store, asset_store=blobs)
    return Services(
        store=store,
        blobs=blobs,
        provider=provider,
        gate=gate,
        synchronizer=synchronizer,
    )


def load_seed_file(path: str) -> List[CatalogDraft]:
    """Read catalog drafts from a YAML file with a top-level ``apps`` list."""
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    apps = data.get("apps") if isinstance(data, dict) else data
    if not isinstance(apps, list):
        raise ValueError("Seed file must contain a list of apps under 'apps'")

    drafts = []
    for index, app in enumerate(apps):
        if not isinstance(app, dict):
            raise ValueError(f"Seed app at index {index} must be a mapping")
        drafts.append(CatalogDraft.model_validate(app))
    return drafts


async def seed_catalog(synchronizer: CatalogSynchronizer, drafts: List[CatalogDraft]):
    """Create every draft; returns (created ids, [(title, error message)])."""
    created = []
    failed = []
    for draft in drafts:
        try:
            created.append(await synchronizer.create(draft))
        except CatalogError as exc:
            logger.warning("Skipping seed app '%s': %s", draft.title, exc)
            failed.append((draft.title, exc.message))
    return created, failed
