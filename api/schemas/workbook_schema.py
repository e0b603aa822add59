"""
Workbook-related Pydantic schemas.

This module contains schemas for sheet listing, parsed records, and
record type descriptions.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class SheetListResponse(BaseModel):
    """Sheet names of an uploaded workbook."""

    filename: Optional[str] = Field(None, description="Uploaded filename")
    sheets: List[str] = Field(..., description="Sheet names in workbook order")

    class Config:
        json_schema_extra = {
            "example": {
                "filename": "people.xlsx",
                "sheets": ["Sheet1", "Archive"]
            }
        }


class RecordListResponse(BaseModel):
    """Records parsed from one sheet."""

    record_type: str = Field(..., description="Registered record type name")
    sheet_name: str = Field(..., description="Sheet the records were read from")
    count: int = Field(..., description="Number of records")
    records: List[Dict[str, Any]] = Field(..., description="Parsed records, keyed by field name")
    stats: Dict[str, int] = Field(default_factory=dict, description="Read statistics")

    class Config:
        json_schema_extra = {
            "example": {
                "record_type": "person",
                "sheet_name": "Sheet1",
                "count": 1,
                "records": [{"name": "John Doe", "age": 25, "city": "New York"}],
                "stats": {"rows": 1, "records": 1, "skipped_rows": 0,
                          "unmatched_columns": 0, "coercion_skips": 0}
            }
        }


class ColumnInfo(BaseModel):
    """One mapped column of a record type."""

    column: str = Field(..., description="Column letters when exported")
    label: str = Field(..., description="Header label")
    field: str = Field(..., description="Record attribute name")
    ordinal: Optional[int] = Field(None, description="Declared ordinal")
    kind: str = Field(..., description="Semantic type")
    nullable: bool = Field(..., description="Whether unparsable cells become null")


class RecordTypeDetail(BaseModel):
    """Column layout of a registered record type."""

    name: str = Field(..., description="Registered record type name")
    columns: List[ColumnInfo] = Field(..., description="Columns in export order")


class RecordTypeListResponse(BaseModel):
    """Registered record type names."""

    record_types: List[str] = Field(..., description="Sorted record type names")
