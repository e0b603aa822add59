"""
Pydantic schemas for request/response validation.

This package contains all Pydantic models used for API request validation
and response serialization.
"""

from api.schemas.common import ErrorResponse, HealthCheckResponse
from api.schemas.workbook_schema import (
    SheetListResponse, RecordListResponse, ColumnInfo,
    RecordTypeDetail, RecordTypeListResponse
)

__all__ = [
    # Common
    'ErrorResponse',
    'HealthCheckResponse',

    # Workbook
    'SheetListResponse',
    'RecordListResponse',
    'ColumnInfo',
    'RecordTypeDetail',
    'RecordTypeListResponse',
]
