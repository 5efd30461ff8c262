"""Utilities for storing uploaded files on local disk."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Final

from fastapi import HTTPException, UploadFile, status

from warbler.config import get_settings
from warbler.models import FileType

settings = get_settings()

_CHUNK_SIZE: Final[int] = 1024 * 1024  # 1 MiB
_WHITESPACE = re.compile(r"\s+")


@dataclass(slots=True)
class StoredFile:
    """Represents a file persisted by the storage backend."""

    original_name: str
    content_type: str | None
    file_type: FileType
    extension: str
    file_size: int
    absolute_path: Path
    relative_path: str


def _media_root() -> Path:
    root = settings.media_root
    root.mkdir(parents=True, exist_ok=True)
    return root


def _stored_name(original_name: str) -> str:
    safe_name = _WHITESPACE.sub("-", PurePosixPath(original_name).name.strip())
    return f"{int(time.time() * 1000)}-{safe_name or 'upload'}"


def _extension(original_name: str, content_type: str | None) -> str:
    suffix = Path(original_name).suffix.lstrip(".").lower()
    if suffix:
        return suffix
    if content_type and "/" in content_type:
        return content_type.split("/", 1)[1].lower()
    return ""


async def _write_upload(upload: UploadFile, absolute_path: Path, too_large_detail: str) -> int:
    total_size = 0
    try:
        with absolute_path.open("wb") as buffer:
            while True:
                chunk = await upload.read(_CHUNK_SIZE)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > settings.max_upload_size:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=too_large_detail,
                    )
                buffer.write(chunk)
    except HTTPException:
        if absolute_path.exists():
            absolute_path.unlink()
        raise
    finally:
        await upload.close()
    return total_size


async def store_upload(upload: UploadFile, *, category: str = "files") -> StoredFile:
    """Persist an uploaded file under a MIME-partitioned directory.

    Files land in ``<media root>/<category>/<images|audios|videos|others>/``
    with a millisecond timestamp prefixed to the original name.
    """

    file_type = FileType.from_mime(upload.content_type)
    target_dir = _media_root() / category / file_type.directory
    target_dir.mkdir(parents=True, exist_ok=True)

    original_name = upload.filename or "upload.bin"
    absolute_path = target_dir / _stored_name(original_name)
    file_size = await _write_upload(upload, absolute_path, "File exceeds allowed size")

    relative_path = absolute_path.relative_to(_media_root()).as_posix()
    return StoredFile(
        original_name=original_name,
        content_type=upload.content_type,
        file_type=file_type,
        extension=_extension(original_name, upload.content_type),
        file_size=file_size,
        absolute_path=absolute_path,
        relative_path=relative_path,
    )


async def store_avatar(upload: UploadFile) -> StoredFile:
    """Persist a user avatar; only image uploads are accepted."""

    if FileType.from_mime(upload.content_type) is not FileType.IMAGE:
        await upload.close()
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Avatar must be an image file",
        )
    return await store_upload(upload, category="avatars")


def delete_stored_file(relative_path: str) -> None:
    """Remove a stored blob; missing files are ignored."""

    candidate = (_media_root() / relative_path).resolve()
    if not candidate.is_relative_to(_media_root().resolve()):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file path")
    candidate.unlink(missing_ok=True)


def build_public_url(relative_path: str) -> str:
    """Construct the URL a stored file is served from."""

    base = settings.media_base_url.rstrip("/")
    return f"{base}/{relative_path}"
