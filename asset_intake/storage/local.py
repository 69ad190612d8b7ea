"""Local-disk object store.

Files land in <storage_dir>/<bucket>/<name> and are served by the app's
`/media` static mount, so the public URL is <media_base_url>/<bucket>/<name>.
"""

import logging
from pathlib import Path

import aiofiles
import aiofiles.os

from asset_intake.config import settings
from asset_intake.middleware.exceptions import UploadError

logger = logging.getLogger(__name__)


class LocalObjectStore:
    def __init__(self, base_path: str, bucket: str, base_url: str):
        self.base_path = Path(base_path)
        self.bucket = bucket
        self.base_url = base_url.rstrip("/")
        self.bucket_path.mkdir(parents=True, exist_ok=True)

    @property
    def bucket_path(self) -> Path:
        return self.base_path / self.bucket

    def _object_path(self, name: str) -> Path:
        # Prevent path traversal
        if "/" in name or "\\" in name or ".." in name:
            raise UploadError(name, "Invalid object name")
        return self.bucket_path / name

    async def upload(self, data: bytes, name: str, content_type: str | None = None) -> None:
        path = self._object_path(name)
        if await aiofiles.os.path.exists(path):
            raise UploadError(name, "Object already exists")
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
        logger.debug(f"Stored {name} ({len(data)} bytes) in {self.bucket}")

    def public_url(self, name: str) -> str:
        return f"{self.base_url}/{self.bucket}/{name}"

    def name_from_url(self, url: str) -> str | None:
        """Object name behind one of our public URLs, None for foreign URLs."""
        prefix = self.public_url("")
        if not url.startswith(prefix):
            return None
        return url[len(prefix):] or None

    async def delete(self, name: str) -> bool:
        path = self._object_path(name)
        try:
            await aiofiles.os.remove(path)
            return True
        except FileNotFoundError:
            return False


_store: LocalObjectStore | None = None


def get_object_store() -> LocalObjectStore:
    """FastAPI dependency: one store per process."""
    global _store
    if _store is None:
        _store = LocalObjectStore(
            settings.storage_dir, settings.storage_bucket, settings.media_base_url
        )
    return _store
