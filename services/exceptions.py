"""
Exception hierarchy for the Excel mapping services.

Structural failures (the workbook cannot be opened, the sheet is missing,
row iteration breaks) abort the whole operation. Per-cell coercion failures
are not exceptions; see services.coercion.
"""

from typing import Optional


class ExcelMappingError(Exception):
    """Base exception for all Excel mapping errors."""


class OpenError(ExcelMappingError):
    """Source is not a readable workbook."""


class SheetNotFoundError(ExcelMappingError):
    """Requested sheet does not exist in the workbook."""

    def __init__(self, sheet_name: str, available: Optional[list] = None):
        self.sheet_name = sheet_name
        self.available = list(available or [])
        message = f"Sheet '{sheet_name}' not found"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class EmptyInputError(ExcelMappingError):
    """Writer was given no records, so there is no schema to lay out."""

    def __init__(self, sheet_name: Optional[str] = None):
        self.sheet_name = sheet_name
        if sheet_name:
            super().__init__(f"No records to write for sheet '{sheet_name}'")
        else:
            super().__init__("No records to write")


class RowIteratorError(ExcelMappingError):
    """Reading rows failed part-way through a sheet."""

    def __init__(self, sheet_name: str, row_number: int, message: str):
        self.sheet_name = sheet_name
        self.row_number = row_number
        super().__init__(f"Failed reading '{sheet_name}' after row {row_number}: {message}")


class UnsupportedRecordTypeError(ExcelMappingError):
    """Type is neither a dataclass nor a pydantic model."""


class RecordTypeNotFoundError(ExcelMappingError):
    """No record type registered under the requested name."""
