"""
Tests for the excel_cli command line interface (direct mode).
"""

import json

import pytest
from click.testing import CliRunner

from scripts.excel_cli import cli
from services.excel_import_service import ExcelImportService
from sample_records import Person


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def people_file(tmp_path, people_xlsx):
    path = tmp_path / 'people.xlsx'
    path.write_bytes(people_xlsx)
    return str(path)


class TestSheetsCommand:

    def test_lists_sheets(self, runner, people_file):
        result = runner.invoke(cli, ['sheets', people_file])
        assert result.exit_code == 0
        assert result.output == 'Sheet1\n'

    def test_unreadable_file(self, runner, tmp_path):
        path = tmp_path / 'broken.xlsx'
        path.write_bytes(b'garbage')

        result = runner.invoke(cli, ['sheets', str(path)])
        assert result.exit_code == 1


class TestRowsCommand:

    def test_prints_rows(self, runner, people_file):
        result = runner.invoke(cli, ['rows', people_file])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert len(lines) == 4
        assert json.loads(lines[0]) == ['Name', 'Age', 'City']

    def test_missing_sheet(self, runner, people_file):
        result = runner.invoke(cli, ['rows', people_file, '--sheet', 'Nope'])
        assert result.exit_code == 1


class TestParseCommand:

    def test_module_class_type(self, runner, people_file):
        result = runner.invoke(cli, ['parse', people_file, '--type', 'sample_records:Person'])

        assert result.exit_code == 0
        records = json.loads(result.output)
        assert records[0] == {'name': 'John Doe', 'age': 25, 'city': 'New York', 'other': ''}

    def test_registered_type(self, runner, people_file):
        result = runner.invoke(cli, ['parse', people_file, '-t', 'person'])
        assert result.exit_code == 0
        assert len(json.loads(result.output)) == 3

    def test_strings_mode(self, runner, tmp_path, make_workbook):
        path = tmp_path / 'codes.xlsx'
        path.write_bytes(make_workbook([['x', 'y', 'z'], ['a', 'b', 'c']]))

        result = runner.invoke(cli, ['parse', str(path), '-t', 'sample_records:Codes', '--strings'])
        assert result.exit_code == 0
        assert json.loads(result.output) == [{'first': 'a', 'second': 'b', 'third': 'c'}]

    def test_unknown_type(self, runner, people_file):
        result = runner.invoke(cli, ['parse', people_file, '-t', 'no-such-type'])
        assert result.exit_code == 2

    def test_missing_sheet(self, runner, people_file):
        result = runner.invoke(cli, ['parse', people_file, '-t', 'person', '-s', 'Nope'])
        assert result.exit_code == 1


class TestExportCommand:

    def test_writes_workbook(self, runner, tmp_path, people):
        source = tmp_path / 'people.json'
        source.write_text(json.dumps([
            {'name': p.name, 'age': p.age, 'city': p.city} for p in people
        ]))
        output = tmp_path / 'out.xlsx'

        result = runner.invoke(cli, [
            'export', str(source), '-t', 'person', '-s', 'People', '-o', str(output)
        ])

        assert result.exit_code == 0
        assert ExcelImportService().read(str(output), 'People', Person) == people

    def test_empty_input(self, runner, tmp_path):
        source = tmp_path / 'empty.json'
        source.write_text('[]')

        result = runner.invoke(cli, [
            'export', str(source), '-t', 'person', '-o', str(tmp_path / 'out.xlsx')
        ])
        assert result.exit_code == 1
