"""
Tests for ExcelExportService: writing typed records to sheets.
"""

from datetime import datetime

import pytest

from services import excel_export_service
from services.excel_export_service import ExcelExportService
from services.excel_import_service import ExcelImportService
from services.exceptions import EmptyInputError
from services.workbook import Workbook
from sample_records import Loose, Person, Product, Reading


@pytest.fixture
def service():
    return ExcelExportService()


def sheet_values(workbook: Workbook, sheet_name: str):
    """All cell values of a sheet as a list of row tuples."""
    return list(workbook.worksheet(sheet_name).iter_rows(values_only=True))


class NonSeekableSink:
    """Write-only sink without seek() or tell()."""

    def __init__(self):
        self.chunks = []

    def write(self, data):
        self.chunks.append(bytes(data))
        return len(data)

    def flush(self):
        pass


class TestWrite:
    """Test write() layout."""

    def test_header_and_rows(self, service, people):
        workbook = service.write(people)

        assert workbook.sheet_names() == ['Sheet1']
        assert workbook.row_count('Sheet1') == len(people) + 1
        assert sheet_values(workbook, 'Sheet1') == [
            ('Age', 'City', 'Name'),
            (25, 'New York', 'John Doe'),
            (30, 'San Francisco', 'Jane Doe'),
            (22, 'Chicago', 'Bob Smith'),
        ]

    def test_header_cells(self, service, people):
        workbook = service.write(people, 'People')
        assert workbook.get_cell_value('People', 'A1') == 'Age'
        assert workbook.get_cell_value('People', 'B1') == 'City'
        assert workbook.get_cell_value('People', 'C1') == 'Name'
        assert workbook.get_cell_value('People', 'C3') == 'Jane Doe'

    def test_named_sheet_is_only_sheet(self, service, people):
        workbook = service.write(people, 'People')
        assert workbook.sheet_names() == ['People']

    def test_empty_input(self, service):
        with pytest.raises(EmptyInputError, match="No records to write for sheet 'People'"):
            service.write([], 'People')

    def test_columns_without_ordinal_first(self, service):
        workbook = service.write([Loose(b='b', a='a', c='c', hidden='h')])
        assert sheet_values(workbook, 'Sheet1') == [('B', 'C', 'A'), ('b', 'c', 'a')]

    def test_none_and_typed_values(self, service):
        taken = datetime(2024, 1, 2, 3, 4, 5)
        workbook = service.write([Reading(
            sensor='s1', count=3, value=None, delta=-2, active=True, taken_at=taken
        )])
        assert sheet_values(workbook, 'Sheet1')[1] == ('s1', 3, None, -2, True, taken, None)

    def test_pydantic_records(self, service):
        workbook = service.write([Product(sku='A-1', price=2.5, stock=4, in_stock=True)])
        assert sheet_values(workbook, 'Sheet1') == [
            ('SKU', 'Price', 'Stock', 'In Stock'),
            ('A-1', 2.5, 4, True),
        ]

    def test_layout_is_deterministic(self, service, people):
        first = service.write(people).to_bytes()
        second = service.write(people).to_bytes()

        with Workbook.open(first) as a, Workbook.open(second) as b:
            assert sheet_values(a, 'Sheet1') == sheet_values(b, 'Sheet1')

    def test_module_level_write(self, people):
        workbook = excel_export_service.write(people, 'People')
        assert workbook.sheet_names() == ['People']


class TestWriteMany:
    """Test write_many() multi-sheet output."""

    def test_mapping(self, service, people):
        products = [Product(sku='A-1', price=1.0)]
        workbook = service.write_many({'People': people, 'Products': products})

        assert workbook.sheet_names() == ['People', 'Products']
        assert workbook.row_count('People') == 4
        assert workbook.get_cell_value('Products', 'A2') == 'A-1'

    def test_pairs_keep_order(self, service, people):
        workbook = service.write_many([('B', people[:1]), ('A', people[1:])])
        assert workbook.sheet_names() == ['B', 'A']
        assert workbook.row_count('A') == 3

    def test_no_sheets(self, service):
        with pytest.raises(EmptyInputError, match="^No records to write$"):
            service.write_many({})

    def test_empty_sheet_entry(self, service, people):
        with pytest.raises(EmptyInputError) as exc_info:
            service.write_many({'People': people, 'Nobody': []})
        assert exc_info.value.sheet_name == 'Nobody'


class TestRoundTrip:
    """Written workbooks read back into equal records."""

    def test_formula_like_text_stays_text(self, service):
        """Text starting with "=" is written as a literal string, not a formula."""
        people = [
            Person(name="=1+1", age=25, city="=SUM(A1:A2)"),
            Person(name="-dash", age=30, city="=HYPERLINK(\"http://x\")"),
        ]
        workbook = service.write(people)
        assert workbook.worksheet('Sheet1')['C2'].data_type == 's'

        data = workbook.to_bytes()
        assert ExcelImportService().read(data, 'Sheet1', Person) == people

    def test_people(self, service, people):
        data = service.write(people, 'People').to_bytes()
        assert ExcelImportService().read(data, 'People', Person) == people

    def test_readings(self, service):
        readings = [
            Reading(sensor='s1', count=3, value=1.25, delta=None, active=True,
                    taken_at=datetime(2024, 1, 2, 3, 4, 5), note='first'),
            Reading(sensor='s2', count=0, value=None, delta=-7, active=False,
                    taken_at=None, note=None),
        ]
        data = service.write(readings).to_bytes()
        assert ExcelImportService().read(data, 'Sheet1', Reading) == readings

    def test_non_seekable_sink(self, service, people):
        sink = NonSeekableSink()
        service.write(people).write(sink)

        data = b''.join(sink.chunks)
        assert ExcelImportService().read(data, 'Sheet1', Person) == people
