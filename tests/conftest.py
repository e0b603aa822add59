"""
Pytest configuration and fixtures for the Excel mapping tests.
"""

import io

import openpyxl
import pytest

from sample_records import Person


@pytest.fixture
def make_workbook():
    """
    Build xlsx bytes from rows.

    Usage:
        data = make_workbook([["Age", "Name"], [25, "John"]])
        data = make_workbook(rows, sheet_name='People', extra_sheets={'Other': [...]})
    """
    def _make(rows, sheet_name='Sheet1', extra_sheets=None):
        book = openpyxl.Workbook()
        sheet = book.active
        sheet.title = sheet_name
        for row in rows:
            sheet.append(row)

        for name, extra_rows in (extra_sheets or {}).items():
            extra = book.create_sheet(name)
            for row in extra_rows:
                extra.append(row)

        buffer = io.BytesIO()
        book.save(buffer)
        return buffer.getvalue()

    return _make


@pytest.fixture
def people():
    """Three sample people."""
    return [
        Person(name="John Doe", age=25, city="New York"),
        Person(name="Jane Doe", age=30, city="San Francisco"),
        Person(name="Bob Smith", age=22, city="Chicago"),
    ]


@pytest.fixture
def people_xlsx(make_workbook):
    """Workbook with a header row in non-ordinal order and three people."""
    return make_workbook([
        ["Name", "Age", "City"],
        ["John Doe", 25, "New York"],
        ["Jane Doe", 30, "San Francisco"],
        ["Bob Smith", 22, "Chicago"],
    ])
