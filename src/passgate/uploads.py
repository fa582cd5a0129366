"""Profile picture storage.

Learn: Registration accepts an optional multipart "profile_picture".
The file is checked by its magic bytes (the client-supplied content type
is not trusted), written under upload_dir with a random name, and only
that name is stored on the user as profile_image_ref.
"""

import asyncio
import uuid
from functools import lru_cache
from pathlib import Path
from typing import Optional

import structlog
from fastapi import UploadFile

from passgate.config import settings
from passgate.errors import InvalidProfileImageError

logger = structlog.get_logger()

_SIGNATURES: list[tuple[bytes, str]] = [
    (b"\xff\xd8\xff", ".jpg"),
    (b"\x89PNG\r\n\x1a\n", ".png"),
    (b"GIF87a", ".gif"),
    (b"GIF89a", ".gif"),
]


def detect_image_extension(head: bytes) -> Optional[str]:
    """Return the file extension for a supported image, or None."""
    for signature, ext in _SIGNATURES:
        if head.startswith(signature):
            return ext
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return ".webp"
    return None


class ProfileImageStorage:
    def __init__(self, upload_dir: str, max_bytes: int):
        self.root = Path(upload_dir)
        self.max_bytes = max_bytes

    async def save(self, upload: UploadFile) -> str:
        """Validate and store an uploaded image. Returns its reference."""
        content = await upload.read(self.max_bytes + 1)
        if not content:
            raise InvalidProfileImageError("Profile picture is empty")
        if len(content) > self.max_bytes:
            raise InvalidProfileImageError(
                f"Profile picture must be at most {self.max_bytes} bytes"
            )
        ext = detect_image_extension(content[:16])
        if ext is None:
            raise InvalidProfileImageError()

        ref = f"{uuid.uuid4().hex}{ext}"
        await asyncio.to_thread(self._write, ref, content)
        logger.info("upload.stored", ref=ref, size=len(content))
        return ref

    async def delete(self, ref: str) -> None:
        await asyncio.to_thread(self._unlink, ref)

    def path_for(self, ref: str) -> Path:
        # refs are generated here, but never trust a path component
        return self.root / Path(ref).name

    def _write(self, ref: str, content: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self.path_for(ref).write_bytes(content)

    def _unlink(self, ref: str) -> None:
        self.path_for(ref).unlink(missing_ok=True)


@lru_cache
def get_profile_storage() -> ProfileImageStorage:
    return ProfileImageStorage(settings.upload_dir, settings.max_upload_bytes)
