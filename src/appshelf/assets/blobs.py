import asyncio
import logging
import os
import re
import uuid
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def asset_path(kind: str, filename: str) -> str:
    """Build a unique storage path such as ``screenshots/<hex>_shot.png``."""
    name = _UNSAFE_CHARS.sub("_", os.path.basename(filename or "")).strip("._")
    return f"{kind}/{uuid.uuid4().hex}_{name or 'upload'}"


class BlobStore(ABC):
    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store ``data`` under ``path`` and return a retrievable URL."""

    @abstractmethod
    async def delete(self, reference: str):
        pass

    @abstractmethod
    def owns(self, reference: str) -> bool:
        """Whether ``reference`` points at an asset uploaded to this store."""


class LocalBlobStore(BlobStore):
    """Stores uploads on disk and serves them below ``base_url``."""

    def __init__(self, directory: str, base_url: str):
        self.directory = os.path.abspath(directory)
        self.base_url = base_url.rstrip("/")

    def owns(self, reference: str) -> bool:
        return isinstance(reference, str) and reference.startswith(f"{self.base_url}/")

    def _resolve(self, path: str) -> str:
        target = os.path.abspath(os.path.join(self.directory, path.lstrip("/")))
        if os.path.commonpath([self.directory, target]) != self.directory:
            raise ValueError(f"Asset path '{path}' escapes the asset directory")
        return target

    def _path_for(self, reference: str) -> str:
        if not self.owns(reference):
            raise ValueError(f"'{reference}' is not an uploaded asset")
        return reference[len(self.base_url) + 1 :]

    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        target = self._resolve(path)
        await asyncio.to_thread(self._write, target, data)
        logger.info("Stored asset %s (%d bytes)", path, len(data))
        return f"{self.base_url}/{path.lstrip('/')}"

    async def delete(self, reference: str):
        target = self._resolve(self._path_for(reference))
        await asyncio.to_thread(os.remove, target)
        logger.info("Deleted asset %s", reference)

    def _write(self, target: str, data: bytes):
        os.makedirs(os.path.dirname(target), exist_ok=True)
        with open(target, "wb") as f:
            f.write(data)
