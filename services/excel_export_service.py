"""
Excel Export Service - Framework-agnostic record to sheet writing.

Lays records out in a fresh workbook: one header row of field labels, then
one row per record. Column order comes only from the record type's schema
(ordinal, then declaration order), so every export of a type has the same
layout.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from backend.models.schema import Schema, extract_schema
from services.cell_reference import cell_reference
from services.exceptions import EmptyInputError
from services.workbook import DEFAULT_SHEET_NAME, Workbook

logger = logging.getLogger(__name__)

SheetSpec = Union[Mapping[str, Sequence[Any]], Iterable[Tuple[str, Sequence[Any]]]]


class ExcelExportService:
    """Framework-agnostic Excel export service."""

    def write(self, records: Sequence[Any], sheet_name: str = DEFAULT_SHEET_NAME) -> Workbook:
        """
        Write records to a new single-sheet workbook.

        The schema is taken from the type of the first record.

        Args:
            records: Records to write (dataclass or pydantic instances)
            sheet_name: Name of the sheet to create

        Returns:
            In-memory Workbook holding the sheet

        Raises:
            EmptyInputError: If records is empty
        """
        records = list(records)
        if not records:
            raise EmptyInputError(sheet_name)

        workbook = Workbook.new(sheet_name)
        self.fill_sheet(workbook, sheet_name, records)
        return workbook

    def write_many(self, sheets: SheetSpec) -> Workbook:
        """
        Write several record lists, one sheet each, into a new workbook.

        Args:
            sheets: Mapping of sheet name to records, or (name, records) pairs.
                    Sheets are created in the given order.

        Raises:
            EmptyInputError: If no sheets are given or any record list is empty
        """
        items = list(sheets.items()) if isinstance(sheets, Mapping) else list(sheets)
        if not items:
            raise EmptyInputError()

        for name, records in items:
            if not records:
                raise EmptyInputError(name)

        first_name = items[0][0]
        workbook = Workbook.new(first_name)
        for name, records in items:
            workbook.new_sheet(name)
            self.fill_sheet(workbook, name, list(records))

        logger.info(f"Wrote {len(items)} sheets: {[name for name, _ in items]}")
        return workbook

    def fill_sheet(self, workbook: Workbook, sheet_name: str, records: List[Any],
                   schema: Optional[Schema] = None) -> None:
        """
        Write header and record rows into an existing sheet.

        Row 1 holds the labels; record i (0-based) is written to row i + 2.
        """
        if not records:
            raise EmptyInputError(sheet_name)

        schema = schema or extract_schema(type(records[0]))
        fields = schema.ordered
        if not fields:
            logger.warning(f"{schema.record_type.__name__} declares no labelled fields; "
                           f"sheet '{sheet_name}' will have no columns")

        for col, descriptor in enumerate(fields, 1):
            workbook.set_cell_value(sheet_name, cell_reference(col, 1), descriptor.label)

        for row, record in enumerate(records, 2):
            for col, descriptor in enumerate(fields, 1):
                workbook.set_cell_value(
                    sheet_name,
                    cell_reference(col, row),
                    getattr(record, descriptor.name)
                )

        logger.info(f"Wrote {len(records)} {schema.record_type.__name__} records "
                    f"to '{sheet_name}' with columns {schema.labels}")


def write(records: Sequence[Any], sheet_name: str = DEFAULT_SHEET_NAME) -> Workbook:
    """Write records to a new workbook with a one-off service instance."""
    return ExcelExportService().write(records, sheet_name)
