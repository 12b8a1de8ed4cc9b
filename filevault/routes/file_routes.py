"""File operation API routes."""

import os
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from pydantic import ValidationError

from filevault.auth import get_current_user
from filevault.config import DEFAULT_PAGE_SIZE
from filevault.domain import FileMeta, FileRecord, Page
from filevault.exceptions import InvalidArgumentError
from filevault.schemas.files import FilePageResponse, FileResponse, RenameRequest, UploadMeta
from filevault.service_locator import get_object_store
from filevault.services.file_coordinator import FileCoordinator

router = APIRouter(prefix="/api/files", tags=["Files"])


def _coordinator() -> FileCoordinator:
    return FileCoordinator(get_object_store())


def _page_response(page: Page[FileRecord]) -> FilePageResponse:
    return FilePageResponse(
        content=[FileResponse.from_record(record) for record in page.items],
        page=page.page,
        size=page.size,
        total_elements=page.total,
        total_pages=page.total_pages,
    )


@router.post("", response_model=FileResponse, status_code=status.HTTP_201_CREATED)
def upload_file(
    file: UploadFile = File(...),
    meta: str = Form(...),
    current_user: str = Depends(get_current_user)
):
    """
    Upload a file with its metadata.

    Parameters:
        - file: File to upload (multipart/form-data)
        - meta: JSON object {"file_name"?, "visibility", "tags"?}
        - X-User-Id header (required)

    Returns:
        - File metadata including the download link

    Raises:
        - 400: Empty file, malformed meta or invalid tags
        - 401: Missing X-User-Id header
        - 409: Name or content already exists for this user
        - 500: Upload failed
    """
    try:
        upload_meta = UploadMeta.model_validate_json(meta)
    except ValidationError as e:
        raise InvalidArgumentError(f"Invalid meta: {e.errors(include_url=False)}")

    file.file.seek(0, os.SEEK_END)
    size = file.file.tell()
    file.file.seek(0)

    if size == 0:
        raise InvalidArgumentError("File must not be empty")

    file_meta = FileMeta(
        file_name=upload_meta.file_name if upload_meta.file_name is not None else file.filename,
        visibility=upload_meta.visibility,
        content_type=file.content_type,
        tags=upload_meta.tags or [],
    )

    record = _coordinator().upload(current_user, file.file, file_meta, size=size)
    return FileResponse.from_record(record)


@router.get("", response_model=FilePageResponse)
def list_own_files(
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    sort: Optional[str] = Query(None, description="field[,asc|desc]"),
    tag: Optional[str] = Query(None),
    current_user: str = Depends(get_current_user)
):
    """
    List the caller's READY files, optionally filtered by one tag.
    """
    result = _coordinator().list_own(current_user, tag=tag, page=page, size=size, sort=sort)
    return _page_response(result)


@router.get("/public", response_model=FilePageResponse)
def list_public_files(
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    sort: Optional[str] = Query(None, description="field[,asc|desc]"),
    tag: Optional[str] = Query(None),
):
    """
    List READY public files of all users.
    """
    result = _coordinator().list_public(tag=tag, page=page, size=size, sort=sort)
    return _page_response(result)


@router.put("/{file_id}", response_model=FileResponse)
def rename_file(
    file_id: str,
    request: RenameRequest,
    current_user: str = Depends(get_current_user)
):
    """
    Rename one of the caller's files.

    Raises:
        - 403: File is public but owned by someone else
        - 404: File not found
        - 409: Name already taken or file not READY
    """
    record = _coordinator().rename(file_id, current_user, request.new_name)
    return FileResponse.from_record(record)


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(
    file_id: str,
    current_user: str = Depends(get_current_user)
):
    """
    Delete one of the caller's files and its content.

    Raises:
        - 403: File owned by someone else
        - 404: File not found
        - 409: File not READY
        - 500: Delete failed, file restored to READY
    """
    _coordinator().delete(file_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
