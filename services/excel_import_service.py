"""
Excel Import Service - Framework-agnostic sheet to record parsing.

Reads one sheet of a workbook into a list of typed records. Columns are
matched to record fields by header label, cell text is coerced to each
field's semantic type, and blank rows are skipped. Cell values that fail to
parse never abort a read; structural problems (bad file, missing sheet,
broken row stream) always do.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from backend.models.schema import (
    FieldDescriptor, Schema, build_record, extract_schema, initial_values
)
from services.coercion import coerce
from services.exceptions import OpenError
from services.text_service import normalize
from services.workbook import DEFAULT_SHEET_NAME, Source, Workbook, WorkbookOptions

logger = logging.getLogger(__name__)


def is_empty(cells: List[str]) -> bool:
    """True if the row has no cells or every cell is empty text."""
    return all(cell == '' for cell in cells)


def build_projection(header: List[str], schema: Schema) -> Dict[int, FieldDescriptor]:
    """
    Map column indexes to fields by normalized header label.

    Columns whose header matches no declared label are left out.
    """
    projection = {}
    for index, raw_label in enumerate(header):
        descriptor = schema.by_label(normalize(raw_label))
        if descriptor is not None:
            projection[index] = descriptor
    return projection


class ExcelImportService:
    """
    Framework-agnostic Excel import service.

    Stateless apart from its options and the statistics of the last read,
    so one instance can be reused for many reads (not concurrently).
    """

    def __init__(
        self,
        options: Optional[WorkbookOptions] = None,
        progress_callback: Optional[Callable[[str, float, str], None]] = None
    ):
        """
        Initialize Excel import service.

        Args:
            options: openpyxl load flags used for every read
            progress_callback: Optional callback for progress updates
                              Signature: callback(stage: str, percent: float, message: str)
        """
        self.options = options or WorkbookOptions()
        self.progress_callback = progress_callback or (lambda *args: None)
        self.stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            'rows': 0,
            'records': 0,
            'skipped_rows': 0,
            'unmatched_columns': 0,
            'coercion_skips': 0,
        }

    def _emit_progress(self, stage: str, percent: float, message: str):
        """Emit progress update via callback."""
        self.progress_callback(stage, percent, message)
        logger.debug(f"Progress: {stage} ({percent:.1f}%) - {message}")

    def _open(self, source: Source) -> Workbook:
        return Workbook.open(source, self.options)

    def get_sheet_list(self, source: Source) -> List[str]:
        """
        List sheet names of a workbook.

        Unreadable sources are logged and reported as having no sheets.
        """
        try:
            with self._open(source) as workbook:
                return workbook.sheet_names()
        except OpenError as e:
            logger.error(f"Could not list sheets: {e}")
            return []

    def read(self, source: Source, sheet_name: str, record_type: type) -> List[Any]:
        """
        Read a sheet into typed records.

        Row 1 is the header. Each later row that has at least one non-empty
        cell becomes one record, in row order.

        Empty cells are skipped, so their fields keep their initial value:
        an empty cell under an Optional[str] field reads as None, not "".

        Args:
            source: File path, raw bytes, or binary file object
            sheet_name: Sheet to read
            record_type: Dataclass or pydantic model class to build

        Returns:
            List of records

        Raises:
            OpenError: If the source is not a readable workbook
            SheetNotFoundError: If the sheet does not exist
            RowIteratorError: If reading rows fails part-way
            UnsupportedRecordTypeError: If record_type is not a record class
        """
        schema = extract_schema(record_type)
        self.stats = self._empty_stats()
        self._emit_progress('opening', 0.0, f"Opening workbook for sheet: {sheet_name}")

        records = []
        with self._open(source) as workbook:
            rows = workbook.rows(sheet_name)
            if not rows.has_next():
                logger.info(f"Sheet '{sheet_name}' is empty")
                self._emit_progress('complete', 100.0, "Sheet is empty")
                return records

            projection = build_projection(rows.next(), schema)
            matched = {i: d.label for i, d in projection.items()}
            logger.debug(f"Header projection for '{sheet_name}': {matched}")
            self._emit_progress('parsing', 10.0, f"Matched {len(projection)} columns")

            for cells in rows:
                self.stats['rows'] += 1
                if is_empty(cells):
                    self.stats['skipped_rows'] += 1
                    continue
                records.append(self._build(record_type, cells, projection))

        self.stats['records'] = len(records)
        logger.info(f"Read {len(records)} {record_type.__name__} records from '{sheet_name}' "
                    f"({self.stats['skipped_rows']} blank rows skipped, "
                    f"{self.stats['coercion_skips']} cells not coerced)")
        self._emit_progress('complete', 100.0, f"Read {len(records)} records")
        return records

    def _build(self, record_type: type, cells: List[str],
               projection: Dict[int, FieldDescriptor]):
        """Build one record from a non-empty row."""
        values = initial_values(record_type)
        for index, text in enumerate(cells):
            if text == '':
                continue
            descriptor = projection.get(index)
            if descriptor is None:
                self.stats['unmatched_columns'] += 1
                continue

            result = coerce(text, descriptor.kind)
            if result:
                values[descriptor.name] = result.value
            else:
                self.stats['coercion_skips'] += 1
                if descriptor.nullable:
                    # Unparsable means absent, never a stale default
                    values[descriptor.name] = None
        return build_record(record_type, values)

    def read_strings(self, source: Source, sheet_name: str, record_type: type) -> List[Any]:
        """
        Read a sheet positionally, assigning raw cell text.

        Header text is ignored: column i (0-based) fills the field whose
        ordinal is i + 1. No coercion is applied, so this suits record types
        whose mapped fields are all text. Blank rows are skipped.

        Raises:
            Same as read()
        """
        schema = extract_schema(record_type)
        self.stats = self._empty_stats()

        records = []
        with self._open(source) as workbook:
            rows = workbook.rows(sheet_name)
            if not rows.has_next():
                return records
            rows.next()  # Skip the header row

            for cells in rows:
                self.stats['rows'] += 1
                if is_empty(cells):
                    self.stats['skipped_rows'] += 1
                    continue
                values = initial_values(record_type)
                for index, text in enumerate(cells):
                    descriptor = schema.by_ordinal(index + 1)
                    if descriptor is not None:
                        values[descriptor.name] = text
                records.append(build_record(record_type, values))

        self.stats['records'] = len(records)
        logger.info(f"Read {len(records)} {record_type.__name__} records positionally "
                    f"from '{sheet_name}'")
        return records

    def read_rows(self, source: Source, on_row: Callable[[List[str]], None],
                  sheet_name: str = DEFAULT_SHEET_NAME) -> int:
        """
        Pass every row of a sheet, header included, to a callback.

        An exception raised by ``on_row`` stops the scan and propagates.

        Returns:
            Number of rows delivered
        """
        count = 0
        with self._open(source) as workbook:
            for cells in workbook.rows(sheet_name):
                on_row(cells)
                count += 1
        logger.debug(f"Delivered {count} rows from '{sheet_name}'")
        return count

    def read_upload(self, upload, record_type: type,
                    sheet_name: str = DEFAULT_SHEET_NAME) -> List[Any]:
        """
        Read records from an uploaded file.

        Args:
            upload: Object exposing a binary ``file`` attribute (e.g. a
                    FastAPI/Starlette UploadFile) or a binary file object
            record_type: Record class to build
            sheet_name: Sheet to read
        """
        stream = getattr(upload, 'file', upload)
        if hasattr(stream, 'seek'):
            stream.seek(0)
        return self.read(stream, sheet_name, record_type)


def read(source: Source, sheet_name: str, record_type: type,
         options: Optional[WorkbookOptions] = None) -> List[Any]:
    """Read a sheet into records with a one-off service instance."""
    return ExcelImportService(options).read(source, sheet_name, record_type)
