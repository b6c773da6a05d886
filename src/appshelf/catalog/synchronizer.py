import asyncio
import logging
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from pydantic import ValidationError

from appshelf.assets.blobs import BlobStore
from appshelf.catalog.errors import (
    AssetCleanupFailed,
    RemoteReadFailed,
    RemoteWriteFailed,
    ValidationFailed,
)
from appshelf.catalog.models import CatalogDraft, CatalogItem, SnapshotReceived, utcnow
from appshelf.catalog.validation import validate_draft
from appshelf.store.base import RecordNotFound, RecordStore, StoreEvent, Subscription

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    SUBSCRIBED = "subscribed"


class CatalogSynchronizer:
    """In-memory mirror of the catalog collection.

    The list is replaced wholesale by every snapshot the store pushes. The
    only local mutation is the speculative download counter bump done by
    ``increment_downloads``, which the next snapshot silently overwrites.
    Create, update and delete never touch the local list; their effect shows
    up with the push that follows the write.
    """

    def __init__(self, store: RecordStore, asset_store: Optional[BlobStore] = None):
        self.store = store
        self.asset_store = asset_store
        self.state = SyncState.IDLE
        self.local_revision = 0
        self._items: List[CatalogItem] = []
        self._version = 0
        self._subscription: Optional[Subscription] = None
        self._consumer: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()
        self._snapshot_applied = asyncio.Event()

    @property
    def items(self) -> Tuple[CatalogItem, ...]:
        return tuple(self._items)

    @property
    def version(self) -> int:
        """Number of snapshots applied so far."""
        return self._version

    def get(self, item_id: str) -> Optional[CatalogItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    async def start(self):
        if self.state is SyncState.SUBSCRIBED:
            return
        subscription = await self.store.subscribe()
        self._subscription = subscription
        self.state = SyncState.SUBSCRIBED
        self._consumer = asyncio.create_task(self._consume(subscription))
        logger.info("Catalog synchronizer subscribed")

    async def stop(self):
        if self.state is SyncState.IDLE and self._subscription is None:
            return
        self.state = SyncState.IDLE
        subscription, self._subscription = self._subscription, None
        consumer, self._consumer = self._consumer, None
        if subscription is not None:
            subscription.close()
        if consumer is not None:
            consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        logger.info("Catalog synchronizer stopped")

    def receive(self, subscription: Subscription, event: StoreEvent) -> bool:
        """Apply one event from ``subscription``.

        Returns False when the event was discarded because the subscription
        has been released or replaced.
        """
        if self.state is not SyncState.SUBSCRIBED or subscription is not self._subscription:
            logger.debug("Discarding event from released subscription")
            return False
        if isinstance(event, BaseException):
            logger.warning("%s", RemoteReadFailed(cause=event))
            return False
        if isinstance(event, SnapshotReceived):
            self._apply(event)
            return True
        return False

    def _apply(self, snapshot: SnapshotReceived):
        self._items = list(snapshot.items)
        self._version += 1
        waiters, self._snapshot_applied = self._snapshot_applied, asyncio.Event()
        waiters.set()
        logger.debug(
            "Applied catalog snapshot %d with %d items", self._version, len(self._items)
        )

    async def _consume(self, subscription: Subscription):
        while True:
            event = await subscription.get()
            if event is None:
                return
            self.receive(subscription, event)

    async def wait_for_snapshot(
        self, after_version: Optional[int] = None, timeout: float = 5.0
    ) -> Tuple[CatalogItem, ...]:
        """Wait until a snapshot newer than ``after_version`` has been applied."""
        target = self._version if after_version is None else after_version

        async def _wait():
            while self._version <= target:
                await self._snapshot_applied.wait()

        await asyncio.wait_for(_wait(), timeout)
        return self.items

    async def create(self, draft: CatalogDraft) -> str:
        draft = validate_draft(draft, self.asset_store)
        now = utcnow()
        data = draft.model_dump()
        data.update({"downloads": 0, "created_at": now, "updated_at": now})
        try:
            item_id = await self.store.create(data)
        except Exception as exc:
            logger.error("Error creating catalog item '%s': %s", draft.title, exc)
            raise RemoteWriteFailed("create", cause=exc) from exc
        logger.info("Created catalog item %s (%s)", item_id, draft.title)
        return item_id

    async def update(
        self, item_id: str, patch: Union[CatalogDraft, Dict[str, Any]]
    ):
        if isinstance(patch, CatalogDraft):
            patch = patch.model_dump()
        unknown = [key for key in patch if key not in CatalogDraft.model_fields]
        if unknown:
            raise ValidationFailed(unknown[0], f"Field '{unknown[0]}' cannot be edited")

        current = self.get(item_id)
        if current is None:
            current = await self._fetch(item_id)

        try:
            merged = CatalogDraft.model_validate({**current.to_draft().model_dump(), **patch})
        except ValidationError as exc:
            error = exc.errors()[0]
            field = str(error["loc"][0]) if error.get("loc") else "draft"
            raise ValidationFailed(field, error["msg"]) from exc
        merged = validate_draft(merged, self.asset_store)

        now = utcnow()
        if now <= current.updated_at:
            now = current.updated_at + timedelta(microseconds=1)
        fields = {key: getattr(merged, key) for key in patch}
        fields["updated_at"] = now
        try:
            await self.store.update(item_id, fields)
        except Exception as exc:
            logger.error("Error updating catalog item %s: %s", item_id, exc)
            raise RemoteWriteFailed("update", item_id, cause=exc) from exc
        logger.info("Updated catalog item %s", item_id)

    async def _fetch(self, item_id: str) -> CatalogItem:
        try:
            item = await self.store.get(item_id)
        except Exception as exc:
            raise RemoteWriteFailed("update", item_id, cause=exc) from exc
        if item is None:
            raise RemoteWriteFailed("update", item_id, cause=RecordNotFound(item_id))
        return item

    async def delete(self, item_id: str) -> List[str]:
        """Delete an item, then best-effort delete its uploaded assets.

        Returns the asset references that could not be removed.
        """
        item = self.get(item_id)
        if item is None:
            try:
                item = await self.store.get(item_id)
            except Exception as exc:
                logger.warning("Could not load catalog item %s before delete: %s", item_id, exc)

        try:
            await self.store.delete(item_id)
        except Exception as exc:
            logger.error("Error deleting catalog item %s: %s", item_id, exc)
            raise RemoteWriteFailed("delete", item_id, cause=exc) from exc
        logger.info("Deleted catalog item %s", item_id)

        if item is None or self.asset_store is None:
            return []
        return await self._cleanup_assets(item)

    async def _cleanup_assets(self, item: CatalogItem) -> List[str]:
        references = [ref for ref in item.asset_references() if self.asset_store.owns(ref)]
        if not references:
            return []
        results = await asyncio.gather(
            *(self.asset_store.delete(ref) for ref in references),
            return_exceptions=True,
        )
        failed = []
        for reference, result in zip(references, results):
            if isinstance(result, Exception):
                logger.warning("%s", AssetCleanupFailed(reference, cause=result))
                failed.append(reference)
        return failed

    def increment_downloads(self, item_id: str) -> "asyncio.Task[bool]":
        """Bump the local download counter now and the remote one in the background.

        Must be called from inside the running event loop. The returned task
        resolves to False when the remote increment failed; the local value is
        left as is in that case.
        """
        for index, item in enumerate(self._items):
            if item.id == item_id:
                self._items[index] = item.model_copy(
                    update={"downloads": item.downloads + 1}
                )
                self.local_revision += 1
                break
        task = asyncio.create_task(self._remote_increment(item_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _remote_increment(self, item_id: str) -> bool:
        try:
            await self.store.increment(item_id, "downloads", 1)
        except Exception as exc:
            logger.warning(
                "%s", RemoteWriteFailed("increment", item_id, cause=exc)
            )
            return False
        return True
