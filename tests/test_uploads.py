"""Profile picture storage tests."""

import io

import pytest
from fastapi import UploadFile

from passgate.errors import InvalidProfileImageError
from passgate.uploads import detect_image_extension

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 32
GIF = b"GIF89a" + b"\x00" * 32
WEBP = b"RIFF\x24\x00\x00\x00WEBPVP8 " + b"\x00" * 16


def _upload(content: bytes, filename: str = "pic.png") -> UploadFile:
    return UploadFile(file=io.BytesIO(content), filename=filename)


@pytest.mark.parametrize(
    "content, ext",
    [(PNG, ".png"), (JPEG, ".jpg"), (GIF, ".gif"), (WEBP, ".webp"), (b"%PDF-1.7", None), (b"", None)],
)
def test_detect_image_extension(content, ext):
    assert detect_image_extension(content[:16]) == ext


@pytest.mark.asyncio
async def test_save_and_delete(profile_storage):
    ref = await profile_storage.save(_upload(PNG))
    assert ref.endswith(".png")
    path = profile_storage.path_for(ref)
    assert path.read_bytes() == PNG

    await profile_storage.delete(ref)
    assert not path.exists()
    # Deleting twice is harmless
    await profile_storage.delete(ref)


@pytest.mark.asyncio
async def test_extension_comes_from_content(profile_storage):
    """A JPEG named .png is stored as .jpg."""
    ref = await profile_storage.save(_upload(JPEG, filename="avatar.png"))
    assert ref.endswith(".jpg")


@pytest.mark.asyncio
async def test_refs_are_random(profile_storage):
    a = await profile_storage.save(_upload(PNG))
    b = await profile_storage.save(_upload(PNG))
    assert a != b


@pytest.mark.asyncio
async def test_rejects_empty(profile_storage):
    with pytest.raises(InvalidProfileImageError):
        await profile_storage.save(_upload(b""))


@pytest.mark.asyncio
async def test_rejects_oversized(profile_storage):
    big = PNG + b"\x00" * profile_storage.max_bytes
    with pytest.raises(InvalidProfileImageError):
        await profile_storage.save(_upload(big))


@pytest.mark.asyncio
async def test_rejects_non_image(profile_storage):
    with pytest.raises(InvalidProfileImageError):
        await profile_storage.save(_upload(b"<?php echo 1; ?>", filename="shell.png"))


def test_path_for_strips_directories(profile_storage):
    path = profile_storage.path_for("../../etc/passwd")
    assert path.parent == profile_storage.root
    assert path.name == "passwd"
