"""
Workbook adapter over openpyxl.

Wraps an openpyxl workbook behind the small interface the mapping services
need: open from a path, bytes or file object, list sheets, iterate rows as
text, create sheets, set cells by reference, and serialize. Opened
workbooks must be closed; Workbook is a context manager for that.
"""

import io
import logging
import os
import zipfile
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, BinaryIO, Iterator, List, Optional, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from services.coercion import TIMESTAMP_FORMAT
from services.exceptions import OpenError, RowIteratorError, SheetNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_SHEET_NAME = 'Sheet1'
CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

Source = Union[str, os.PathLike, bytes, bytearray, BinaryIO]

# Errors openpyxl surfaces for files that are not valid xlsx packages
OPEN_ERRORS = (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError, SyntaxError)

# Errors raised while lazily parsing sheet XML (read-only mode) or reading the archive
READ_ERRORS = (zipfile.BadZipFile, KeyError, ValueError, OSError, SyntaxError)


@dataclass
class WorkbookOptions:
    """Flags passed to openpyxl.load_workbook()."""
    read_only: bool = False
    data_only: bool = True
    keep_links: bool = False
    keep_vba: bool = False


def cell_text(value: Any) -> str:
    """
    Render a cell value as text.

    Matches what a spreadsheet displays for plain cells: empty cells are "",
    booleans TRUE/FALSE, whole floats without a decimal part, timestamps as
    "YYYY-MM-DD HH:MM:SS".
    """
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, datetime):
        return value.strftime(TIMESTAMP_FORMAT)
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def cell_value(value: Any) -> Any:
    """Convert a record value to something openpyxl can store in a cell."""
    if value is None or isinstance(value, (str, int, float, Decimal, datetime, date, time)):
        return value
    if isinstance(value, Enum):
        return value.value
    return str(value)


class RowCursor:
    """
    Forward-only cursor over the rows of one sheet.

    Each row is a list of cell texts. Supports both iteration and explicit
    has_next()/next()/columns() stepping.
    """

    _UNREAD = object()

    def __init__(self, worksheet, sheet_name: str):
        self.sheet_name = sheet_name
        self.row_number = 0
        self._rows = worksheet.iter_rows(values_only=True)
        self._pending: Any = self._UNREAD
        self._current: List[str] = []

    def _fetch(self):
        if self._pending is not self._UNREAD:
            return
        try:
            values = next(self._rows)
        except StopIteration:
            self._pending = None
        except READ_ERRORS as e:
            logger.error(f"Row iteration failed on '{self.sheet_name}' "
                         f"after row {self.row_number}: {e}")
            raise RowIteratorError(self.sheet_name, self.row_number, str(e)) from e
        else:
            self._pending = [cell_text(v) for v in values]

    def has_next(self) -> bool:
        """True if another row is available."""
        self._fetch()
        return self._pending is not None

    def next(self) -> List[str]:
        """
        Advance to the next row and return its cells.

        Raises:
            StopIteration: If the sheet has no more rows
            RowIteratorError: If the underlying file cannot be read
        """
        if not self.has_next():
            raise StopIteration
        self._current = self._pending
        self._pending = self._UNREAD
        self.row_number += 1
        return self._current

    def columns(self) -> List[str]:
        """Cells of the current row."""
        return self._current

    def __iter__(self) -> Iterator[List[str]]:
        return self

    def __next__(self) -> List[str]:
        return self.next()


class Workbook:
    """Handle on an openpyxl workbook."""

    def __init__(self, book: openpyxl.Workbook):
        self.book = book
        self._closed = False

    @classmethod
    def open(cls, source: Source, options: Optional[WorkbookOptions] = None) -> 'Workbook':
        """
        Open an existing workbook.

        Args:
            source: File path, raw bytes, or binary file object
            options: openpyxl load flags

        Returns:
            Opened Workbook (caller must close it)

        Raises:
            OpenError: If the source is not a readable xlsx workbook
        """
        options = options or WorkbookOptions()
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(source)

        try:
            book = openpyxl.load_workbook(
                source,
                read_only=options.read_only,
                data_only=options.data_only,
                keep_links=options.keep_links,
                keep_vba=options.keep_vba,
            )
        except OPEN_ERRORS as e:
            logger.error(f"Could not open workbook: {e}")
            raise OpenError(f"Could not open workbook: {e}") from e

        logger.debug(f"Opened workbook with sheets: {book.sheetnames}")
        return cls(book)

    @classmethod
    def new(cls, sheet_name: Optional[str] = None) -> 'Workbook':
        """Create an empty workbook; its default sheet is renamed to ``sheet_name``."""
        book = openpyxl.Workbook()
        if sheet_name:
            book.active.title = sheet_name
        return cls(book)

    def __enter__(self) -> 'Workbook':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def sheet_names(self) -> List[str]:
        return list(self.book.sheetnames)

    def worksheet(self, sheet_name: str):
        """
        Get a worksheet by name.

        Raises:
            SheetNotFoundError: If the workbook has no such sheet
        """
        if sheet_name not in self.book.sheetnames:
            raise SheetNotFoundError(sheet_name, self.book.sheetnames)
        return self.book[sheet_name]

    def rows(self, sheet_name: str) -> RowCursor:
        """Row cursor over a sheet, header row included."""
        return RowCursor(self.worksheet(sheet_name), sheet_name)

    def row_count(self, sheet_name: str) -> int:
        """Number of rows in the sheet's used range (0 for an untouched sheet)."""
        worksheet = self.worksheet(sheet_name)
        if worksheet.max_row == 1 and worksheet.max_column == 1 and worksheet['A1'].value is None:
            return 0
        return worksheet.max_row

    def new_sheet(self, sheet_name: str):
        """Create a sheet, or return the existing one with that name."""
        if sheet_name in self.book.sheetnames:
            return self.book[sheet_name]
        return self.book.create_sheet(sheet_name)

    def rename_sheet(self, old_name: str, new_name: str) -> None:
        self.worksheet(old_name).title = new_name

    def set_cell_value(self, sheet_name: str, cell_ref: str, value: Any) -> None:
        """
        Set one cell, e.g. set_cell_value('Sheet1', 'C12', 42).

        Text is always stored as a literal string, even when it starts with "=".
        """
        cell = self.worksheet(sheet_name)[cell_ref]
        cell.value = cell_value(value)
        if isinstance(cell.value, str):
            cell.data_type = 's'

    def get_cell_value(self, sheet_name: str, cell_ref: str) -> Any:
        return self.worksheet(sheet_name)[cell_ref].value

    def write(self, sink: Union[str, os.PathLike, BinaryIO]) -> None:
        """
        Serialize the workbook as xlsx.

        ``sink`` may be a path or any object with write(); it does not need
        to be seekable.
        """
        self.book.save(sink)

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.write(buffer)
        return buffer.getvalue()

    def close(self) -> None:
        if not self._closed:
            self.book.close()
            self._closed = True
