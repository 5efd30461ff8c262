"""File upload endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File as FileParam, HTTPException, Query, UploadFile, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from warbler.api.deps import Pagination, get_pagination, require_active_user, require_user
from warbler.core.storage import build_public_url, delete_stored_file, store_upload
from warbler.database import get_db
from warbler.models import File, FileType, User
from warbler.schemas import FileRead, FileResponse, FilesResponse, StatusResponse

router = APIRouter(prefix="/files", tags=["files"])

logger = logging.getLogger(__name__)


def serialize_file(file: File) -> FileRead:
    return FileRead.model_validate(file).model_copy(update={"url": build_public_url(file.path)})


def _list(db: Session, owner_id: int, file_type: FileType | None, pagination: Pagination) -> FilesResponse:
    stmt = select(File).where(File.owner_id == owner_id)
    if file_type is not None:
        stmt = stmt.where(File.type == file_type.value)
    stmt = stmt.order_by(File.created_at.desc(), File.id.desc()).offset(pagination.skip).limit(pagination.limit)
    return FilesResponse(files=[serialize_file(file) for file in db.execute(stmt).scalars()])


def _get_file_or_404(db: Session, file_id: int) -> File:
    file = db.get(File, file_id)
    if file is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return file


@router.get("", response_model=FilesResponse)
def list_own_files(
    file_type: FileType | None = Query(default=None, alias="type"),
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> FilesResponse:
    return _list(db, user.id, file_type, pagination)


@router.get("/author/{user_id}", response_model=FilesResponse)
def list_author_files(
    user_id: int,
    file_type: FileType | None = Query(default=None, alias="type"),
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
) -> FilesResponse:
    return _list(db, user_id, file_type, pagination)


@router.get("/{file_id}", response_model=FileResponse)
def read_file(file_id: int, db: Session = Depends(get_db)) -> FileResponse:
    return FileResponse(file=serialize_file(_get_file_or_404(db, file_id)))


@router.post("", response_model=FileResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = FileParam(...),
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> FileResponse:
    """Store a multipart upload and record its metadata."""

    stored = await store_upload(file)
    record = File(
        owner_id=user.id,
        original_name=stored.original_name,
        path=stored.relative_path,
        type=stored.file_type.value,
        extension=stored.extension,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("User %s uploaded %s (%d bytes)", user.id, stored.relative_path, stored.file_size)
    return FileResponse(file=serialize_file(record))


@router.delete("/{file_id}", response_model=StatusResponse)
def delete_file(
    file_id: int,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> StatusResponse:
    record = _get_file_or_404(db, file_id)
    if record.owner_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not an owner of a file")
    delete_stored_file(record.path)
    db.delete(record)
    db.commit()
    return StatusResponse()
