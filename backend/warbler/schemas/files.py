"""Schemas for uploaded file metadata."""

from __future__ import annotations

from datetime import datetime

from warbler.schemas.common import CamelModel, StatusResponse


class FileRead(CamelModel):
    id: int
    owner_id: int
    original_name: str
    path: str
    url: str = ""
    type: str
    extension: str
    created_at: datetime
    last_edited: datetime


class FileResponse(StatusResponse):
    file: FileRead


class FilesResponse(StatusResponse):
    files: list[FileRead]
