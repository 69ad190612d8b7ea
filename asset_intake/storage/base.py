"""Object store contract for uploaded asset photos.

An object store takes the bytes of one image under a generated name and
can turn that name into a public URL. Names are collision resistant:
`<epoch-milliseconds>-<random suffix>.<ext>`.
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from typing import Protocol

from asset_intake.middleware.exceptions import UploadError

ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp", "heic", "bmp"}
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class ImageFile:
    """One file received from the client."""
    filename: str
    data: bytes
    content_type: str | None = None

    @property
    def extension(self) -> str:
        if "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[-1].lower()


class ObjectStore(Protocol):
    async def upload(self, data: bytes, name: str, content_type: str | None = None) -> None:
        ...

    def public_url(self, name: str) -> str:
        ...


def generate_object_name(filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(10))
    return f"{int(time.time() * 1000)}-{suffix}.{ext}"


def check_image(file: ImageFile, max_bytes: int) -> None:
    """Reject a file before upload. Raises UploadError."""
    if not file.data:
        raise UploadError(file.filename, "File is empty")
    if len(file.data) > max_bytes:
        raise UploadError(
            file.filename, f"File exceeds {max_bytes // (1024 * 1024)}MB limit"
        )
    if file.content_type and not file.content_type.startswith("image/"):
        raise UploadError(file.filename, "Only image files are accepted")
    if file.extension not in ALLOWED_EXTENSIONS:
        raise UploadError(file.filename, "Unsupported image type")
