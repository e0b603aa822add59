"""
Workbook router - Parse uploaded sheets into records and export records.

This module provides endpoints for listing sheets of an uploaded workbook,
reading a sheet into a registered record type, and downloading records as
an xlsx file.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Form, HTTPException, Query, Request, status
from pydantic import TypeAdapter, ValidationError
from starlette.concurrency import run_in_threadpool

from api.config import settings
from api.dependencies import (
    get_export_service, get_import_service, request_file, resolve_record_type, verify_upload
)
from api.responses import stream_workbook, workbook_response
from api.schemas.workbook_schema import (
    ColumnInfo, RecordListResponse, RecordTypeDetail, RecordTypeListResponse, SheetListResponse
)
from backend.models.registry import list_record_types
from backend.models.schema import extract_schema, record_to_dict
from services.cell_reference import column_letter
from services.excel_export_service import ExcelExportService
from services.excel_import_service import ExcelImportService

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/workbooks', tags=['workbooks'])


@router.post('/sheets', response_model=SheetListResponse)
async def list_sheets(
    request: Request,
    service: ExcelImportService = Depends(get_import_service)
):
    """
    List the sheets of an uploaded workbook.

    **Form fields:**
    - `file`: the .xlsx workbook
    """
    upload = verify_upload(await request_file(request, settings.UPLOAD_FIELD_NAME))

    sheets = await run_in_threadpool(service.get_sheet_list, upload.file)
    if not sheets:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"'{upload.filename}' is not a readable workbook"
        )

    return SheetListResponse(filename=upload.filename, sheets=sheets)


@router.post('/records/{record_type}', response_model=RecordListResponse)
async def parse_records(
    request: Request,
    record_type: str,
    sheet_name: Optional[str] = Form(None, description="Sheet to read (default Sheet1)"),
    service: ExcelImportService = Depends(get_import_service)
):
    """
    Read one sheet of an uploaded workbook into records.

    Columns are matched to the record type's fields by header label.
    Cells that do not parse leave the field at its zero value (or null
    for optional fields); blank rows are skipped.

    **Form fields:**
    - `file`: the .xlsx workbook
    - `sheet_name`: sheet to read (optional)

    **Errors:**
    - 400 if the upload is not a workbook
    - 404 if the record type or sheet does not exist
    """
    record_class = resolve_record_type(record_type)
    upload = verify_upload(await request_file(request, settings.UPLOAD_FIELD_NAME))
    sheet = sheet_name or settings.DEFAULT_SHEET_NAME

    logger.info(f"Parsing {upload.filename} sheet '{sheet}' as {record_type}")
    records = await run_in_threadpool(service.read_upload, upload, record_class, sheet)

    return RecordListResponse(
        record_type=record_type,
        sheet_name=sheet,
        count=len(records),
        records=[record_to_dict(r) for r in records],
        stats=service.stats
    )


@router.post('/export/{record_type}')
async def export_records(
    record_type: str,
    rows: List[Dict[str, Any]] = Body(..., description="Records as JSON objects keyed by field name"),
    sheet_name: Optional[str] = Query(None, description="Sheet name (default Sheet1)"),
    filename: Optional[str] = Query(None, description="Download filename"),
    stream: bool = Query(False, description="Stream the file instead of buffering it"),
    service: ExcelExportService = Depends(get_export_service)
):
    """
    Export records as an xlsx download.

    The body is validated into the record type; columns follow the type's
    declared ordinals.

    **Errors:**
    - 400 if the body is an empty list
    - 404 if the record type does not exist
    - 422 if a row does not validate
    """
    record_class = resolve_record_type(record_type)

    try:
        records = TypeAdapter(List[record_class]).validate_python(rows)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    sheet = sheet_name or settings.DEFAULT_SHEET_NAME
    download_name = filename or settings.DEFAULT_EXPORT_FILENAME

    workbook = await run_in_threadpool(service.write, records, sheet)
    logger.info(f"Exporting {len(records)} {record_type} records as {download_name}")

    if stream:
        return stream_workbook(workbook, download_name)
    return await run_in_threadpool(workbook_response, workbook, download_name)


@router.get('/record-types', response_model=RecordTypeListResponse)
async def get_record_types():
    """List registered record type names."""
    return RecordTypeListResponse(record_types=list_record_types())


@router.get('/record-types/{record_type}', response_model=RecordTypeDetail)
async def describe_record_type(record_type: str):
    """Describe the column layout a record type is exported with."""
    schema = extract_schema(resolve_record_type(record_type))

    return RecordTypeDetail(
        name=record_type,
        columns=[
            ColumnInfo(
                column=column_letter(position),
                label=descriptor.label,
                field=descriptor.name,
                ordinal=descriptor.ordinal,
                kind=descriptor.kind.value,
                nullable=descriptor.nullable
            )
            for position, descriptor in enumerate(schema.ordered, 1)
        ]
    )
