import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from appshelf.catalog.models import CatalogItem, SnapshotReceived

logger = logging.getLogger(__name__)

StoreEvent = Union[SnapshotReceived, BaseException, None]


class RecordNotFound(LookupError):
    def __init__(self, item_id: str):
        super().__init__(f"Catalog item '{item_id}' not found")
        self.item_id = item_id


class Subscription:
    """Queue of snapshot events for one subscriber.

    ``None`` on the queue marks the end of the stream; an exception instance
    reports a read failure without ending it.
    """

    def __init__(self, store: "RecordStore"):
        self._store = store
        self.queue: "asyncio.Queue[StoreEvent]" = asyncio.Queue()
        self.closed = False

    def deliver(self, event: StoreEvent):
        if not self.closed:
            self.queue.put_nowait(event)

    async def get(self) -> StoreEvent:
        if self.closed and self.queue.empty():
            return None
        return await self.queue.get()

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._store._unsubscribe(self)
        self.queue.put_nowait(None)


class RecordStore(ABC):
    """Document collection of catalog items.

    Every write is followed by a push of the complete collection, ordered by
    ``created_at`` descending, to all open subscriptions.
    """

    def __init__(self):
        self._subscribers: List[Subscription] = []
        # Held from snapshot read to delivery so pushes arrive in read order.
        self._publish_lock = asyncio.Lock()

    async def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        self._subscribers.append(subscription)
        if len(self._subscribers) == 1:
            await self._on_first_subscriber()
        await self.publish_to(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription):
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)
        if not self._subscribers:
            self._on_last_unsubscribe()

    async def _on_first_subscriber(self):
        pass

    def _on_last_unsubscribe(self):
        pass

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self):
        """Push the current snapshot to every subscriber."""
        if not self._subscribers:
            return
        async with self._publish_lock:
            event = await self._read_event()
            for subscription in list(self._subscribers):
                subscription.deliver(event)

    async def publish_to(self, subscription: Subscription):
        async with self._publish_lock:
            subscription.deliver(await self._read_event())

    async def _read_event(self) -> StoreEvent:
        try:
            items = await self.snapshot()
        except Exception as exc:
            logger.error("Failed to read catalog snapshot: %s", exc)
            return exc
        items.sort(key=lambda item: item.created_at, reverse=True)
        return SnapshotReceived(items=tuple(items))

    @abstractmethod
    async def snapshot(self) -> List[CatalogItem]:
        pass

    @abstractmethod
    async def create(self, data: Dict[str, Any]) -> str:
        """Insert a record and return its newly assigned id."""

    @abstractmethod
    async def update(self, item_id: str, fields: Dict[str, Any]):
        pass

    @abstractmethod
    async def delete(self, item_id: str):
        pass

    @abstractmethod
    async def increment(self, item_id: str, field: str, amount: int = 1):
        pass

    async def get(self, item_id: str) -> Optional[CatalogItem]:
        for item in await self.snapshot():
            if item.id == item_id:
                return item
        return None

    async def close(self):
        for subscription in list(self._subscribers):
            subscription.close()
