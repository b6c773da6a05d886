import asyncio
import json
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from appshelf.catalog.models import CatalogItem, utcnow
from appshelf.db.manager import DatabaseManager
from appshelf.store.base import RecordNotFound, RecordStore

logger = logging.getLogger(__name__)

TABLE = "catalog_items"
JSON_COLUMNS = ("screenshots", "tags")
COLUMNS = (
    "id",
    "title",
    "description",
    "apk_link",
    "website_link",
    "logo_url",
    "screenshots",
    "category",
    "tags",
    "featured",
    "downloads",
    "views",
    "rating",
    "version",
    "size",
    "created_at",
    "updated_at",
)
INCREMENTABLE = ("downloads", "views")


class SqlRecordStore(RecordStore):
    """Record store backed by the ``catalog_items`` table.

    Writes from this process publish a snapshot right away. With a non-zero
    ``poll_interval`` the table is also re-read periodically so writes from
    other processes reach subscribers.
    """

    def __init__(self, db: DatabaseManager, poll_interval: float = 0):
        super().__init__()
        self.db = db
        self.poll_interval = poll_interval
        self._poller: Optional[asyncio.Task] = None
        self._cancelled_pollers: List[asyncio.Task] = []
        self._last_rows: Optional[List[Dict[str, Any]]] = None

    async def snapshot(self) -> List[CatalogItem]:
        rows = await asyncio.to_thread(self._select_all)
        self._last_rows = rows
        return [self._row_to_item(row) for row in rows]

    async def create(self, data: Dict[str, Any]) -> str:
        item_id = uuid.uuid4().hex
        now = utcnow()
        row = self._to_row(
            {"downloads": 0, "created_at": now, "updated_at": now, **data, "id": item_id}
        )
        await asyncio.to_thread(self._insert, row)
        await self.publish()
        return item_id

    async def update(self, item_id: str, fields: Dict[str, Any]):
        values = self._to_row({k: v for k, v in fields.items() if k != "id"})
        if values:
            await asyncio.to_thread(self._update, item_id, values)
        await self.publish()

    async def delete(self, item_id: str):
        await asyncio.to_thread(
            self._execute_for_id,
            f"DELETE FROM {TABLE} WHERE id = {self.db.placeholder}",
            (item_id,),
            item_id,
        )
        await self.publish()

    async def increment(self, item_id: str, field: str, amount: int = 1):
        if field not in INCREMENTABLE:
            raise ValueError(f"Field '{field}' cannot be incremented")
        p = self.db.placeholder
        await asyncio.to_thread(
            self._execute_for_id,
            f"UPDATE {TABLE} SET {field} = COALESCE({field}, 0) + {p} WHERE id = {p}",
            (amount, item_id),
            item_id,
        )
        await self.publish()

    async def _on_first_subscriber(self):
        if self.poll_interval > 0 and self._poller is None:
            self._poller = asyncio.create_task(self._poll())

    def _on_last_unsubscribe(self):
        if self._poller is not None:
            self._poller.cancel()
            self._cancelled_pollers.append(self._poller)
            self._poller = None

    async def close(self):
        await super().close()
        pollers, self._cancelled_pollers = self._cancelled_pollers, []
        if pollers:
            await asyncio.gather(*pollers, return_exceptions=True)

    async def _poll(self):
        while True:
            await asyncio.sleep(self.poll_interval)
            previous = self._last_rows
            try:
                rows = await asyncio.to_thread(self._select_all)
            except Exception as exc:
                logger.warning("Catalog poll failed: %s", exc)
                continue
            if rows != previous:
                logger.debug("Catalog table changed, publishing snapshot")
                await self.publish()

    def _select_all(self) -> List[Dict[str, Any]]:
        conn = self.db.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {', '.join(COLUMNS)} FROM {TABLE} ORDER BY created_at DESC"
            )
            return [dict(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def _insert(self, row: Dict[str, Any]):
        columns = ", ".join(row.keys())
        placeholders = ", ".join([self.db.placeholder] * len(row))
        conn = self.db.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"INSERT INTO {TABLE} ({columns}) VALUES ({placeholders})",
                tuple(row.values()),
            )
            conn.commit()
        finally:
            conn.close()

    def _update(self, item_id: str, values: Dict[str, Any]):
        p = self.db.placeholder
        set_clause = ", ".join(f"{key} = {p}" for key in values)
        self._execute_for_id(
            f"UPDATE {TABLE} SET {set_clause} WHERE id = {p}",
            (*values.values(), item_id),
            item_id,
        )

    def _execute_for_id(self, query: str, params: tuple, item_id: str):
        conn = self.db.get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(query, params)
            if cursor.rowcount == 0:
                conn.rollback()
                raise RecordNotFound(item_id)
            conn.commit()
        finally:
            conn.close()

    def _to_row(self, data: Dict[str, Any]) -> Dict[str, Any]:
        row = {}
        for key, value in data.items():
            if key not in COLUMNS:
                continue
            if key in JSON_COLUMNS:
                value = json.dumps(list(value or []))
            elif isinstance(value, Enum):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            row[key] = value
        return row

    def _row_to_item(self, row: Dict[str, Any]) -> CatalogItem:
        payload = dict(row)
        for key in JSON_COLUMNS:
            raw = payload.get(key)
            payload[key] = json.loads(raw) if isinstance(raw, str) and raw else []
        payload["featured"] = bool(payload.get("featured"))
        return CatalogItem.model_validate(payload)
