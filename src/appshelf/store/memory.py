import copy
import uuid
from typing import Any, Dict, List

from appshelf.catalog.models import CatalogItem, utcnow
from appshelf.store.base import RecordNotFound, RecordStore


class InMemoryRecordStore(RecordStore):
    """Process-local record store used for development and tests."""

    def __init__(self):
        super().__init__()
        self._documents: Dict[str, Dict[str, Any]] = {}

    async def snapshot(self) -> List[CatalogItem]:
        return [CatalogItem.model_validate(doc) for doc in self._documents.values()]

    async def create(self, data: Dict[str, Any]) -> str:
        item_id = uuid.uuid4().hex
        while item_id in self._documents:
            item_id = uuid.uuid4().hex
        document = copy.deepcopy(data)
        document["id"] = item_id
        document.setdefault("downloads", 0)
        document.setdefault("created_at", utcnow())
        document.setdefault("updated_at", document["created_at"])
        # Reject documents that would break the snapshot before storing them.
        CatalogItem.model_validate(document)
        self._documents[item_id] = document
        await self.publish()
        return item_id

    async def update(self, item_id: str, fields: Dict[str, Any]):
        document = self._documents.get(item_id)
        if document is None:
            raise RecordNotFound(item_id)
        updated = {**document, **copy.deepcopy(fields), "id": item_id}
        CatalogItem.model_validate(updated)
        self._documents[item_id] = updated
        await self.publish()

    async def delete(self, item_id: str):
        if self._documents.pop(item_id, None) is None:
            raise RecordNotFound(item_id)
        await self.publish()

    async def increment(self, item_id: str, field: str, amount: int = 1):
        document = self._documents.get(item_id)
        if document is None:
            raise RecordNotFound(item_id)
        document[field] = (document.get(field) or 0) + amount
        await self.publish()
