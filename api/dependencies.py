"""
Dependency injection utilities for FastAPI.

This module provides reusable dependencies for upload handling, record type
lookup, and the import/export services.
"""

import logging
import os
from pathlib import Path

from fastapi import HTTPException, Request, status
from starlette.datastructures import UploadFile

from api.config import settings
from backend.models.registry import get_record_type
from services.exceptions import RecordTypeNotFoundError
from services.excel_export_service import ExcelExportService
from services.excel_import_service import ExcelImportService

logger = logging.getLogger(__name__)


def get_import_service() -> ExcelImportService:
    """New import service per request; it keeps per-read statistics."""
    return ExcelImportService()


def get_export_service() -> ExcelExportService:
    return ExcelExportService()


def resolve_record_type(record_type: str) -> type:
    """
    Resolve the ``record_type`` path parameter to a registered class.

    Raises:
        HTTPException: 404 if no record type is registered under that name
    """
    try:
        return get_record_type(record_type)
    except RecordTypeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


async def request_file(request: Request, name: str) -> UploadFile:
    """
    Get an uploaded file from a multipart form.

    Args:
        request: Incoming request with a multipart/form-data body
        name: Form field name of the file

    Returns:
        The uploaded file; its ``file`` attribute is a binary stream

    Raises:
        HTTPException: 400 if the body is not a form or the field holds no file
    """
    try:
        form = await request.form()
    except Exception as e:
        logger.warning(f"Could not parse multipart body: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Request body is not a valid multipart form: {e}"
        )

    upload = form.get(name)
    if not isinstance(upload, UploadFile):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"No file uploaded in form field '{name}'"
        )
    return upload


def verify_file_size(file_size: int) -> bool:
    """
    Verify uploaded file size is within limit.

    Args:
        file_size: File size in bytes

    Returns:
        True if size is acceptable

    Raises:
        HTTPException: If file is too large
    """
    max_size_bytes = settings.MAX_FILE_SIZE_MB * 1024 * 1024

    if file_size > max_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size ({file_size / 1024 / 1024:.1f} MB) exceeds maximum allowed "
                   f"({settings.MAX_FILE_SIZE_MB} MB)"
        )

    return True


def verify_file_extension(filename: str) -> bool:
    """
    Verify file has allowed extension.

    Args:
        filename: Name of uploaded file

    Returns:
        True if extension is allowed

    Raises:
        HTTPException: If extension is not allowed
    """
    ext = Path(filename or '').suffix.lower()

    if ext not in [e.lower() for e in settings.ALLOWED_EXTENSIONS]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File extension '{ext}' not allowed. "
                   f"Allowed extensions: {', '.join(settings.ALLOWED_EXTENSIONS)}"
        )

    return True


def verify_upload(upload: UploadFile) -> UploadFile:
    """Check extension and size of an upload, rewinding it for reading."""
    verify_file_extension(upload.filename)

    stream = upload.file
    stream.seek(0, os.SEEK_END)
    verify_file_size(stream.tell())
    stream.seek(0)

    return upload
