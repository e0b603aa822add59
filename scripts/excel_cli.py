#!/usr/bin/env python3
"""
Excel records CLI - Dual Mode

Converts between xlsx sheets and typed records from the command line.

This script can operate in two modes for parsing:
1. Direct mode (default): uses the services in-process
2. API mode: uploads the file to the FastAPI backend

Usage:
    # List sheets
    python scripts/excel_cli.py sheets people.xlsx

    # Dump raw rows as JSON lines
    python scripts/excel_cli.py rows people.xlsx --sheet Sheet1

    # Parse into a record type (module:Class, or a registered name)
    python scripts/excel_cli.py parse people.xlsx --type myapp.records:Person

    # Parse via API (record type must be registered on the server)
    python scripts/excel_cli.py parse people.xlsx --type person --api-url http://localhost:8000

    # Export JSON records to xlsx
    python scripts/excel_cli.py export people.json --type myapp.records:Person --output people.xlsx
"""

import os
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import importlib
import json
import logging
from typing import List, Optional

import click
import requests
from dotenv import load_dotenv
from pydantic import TypeAdapter, ValidationError

from backend.models.registry import get_record_type
from backend.models.schema import record_to_dict
from services.exceptions import ExcelMappingError, RecordTypeNotFoundError
from services.excel_export_service import ExcelExportService
from services.excel_import_service import ExcelImportService
from services.workbook import CONTENT_TYPE, DEFAULT_SHEET_NAME

# Load environment variables
load_dotenv()

# Configure logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING')

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stderr)]
)

logger = logging.getLogger('excel_cli')


def load_record_type(spec: str) -> type:
    """
    Resolve a record type from "package.module:ClassName" or a registered name.
    """
    if ':' in spec:
        module_name, class_name = spec.split(':', 1)
        module = importlib.import_module(module_name)
        try:
            return getattr(module, class_name)
        except AttributeError:
            raise click.BadParameter(f"{module_name} has no attribute {class_name}")
    for module_name in filter(None, os.getenv('RECORD_MODULES', '').split(',')):
        importlib.import_module(module_name.strip())
    try:
        return get_record_type(spec)
    except RecordTypeNotFoundError as e:
        raise click.BadParameter(str(e))


def to_json(payload) -> str:
    return json.dumps(payload, indent=2, default=str, ensure_ascii=False)


@click.group()
def cli():
    """Excel records CLI - convert between sheets and typed records"""


@cli.command('sheets')
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
def sheets_cmd(file: str):
    """List the sheets of a workbook."""
    sheets = ExcelImportService().get_sheet_list(file)
    if not sheets:
        click.echo(f"✗ {file} is not a readable workbook", err=True)
        sys.exit(1)
    for name in sheets:
        click.echo(name)


@cli.command('rows')
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--sheet', '-s', default=DEFAULT_SHEET_NAME, show_default=True, help='Sheet name')
def rows_cmd(file: str, sheet: str):
    """Print every row of a sheet as a JSON array, header included."""
    def on_row(cells: List[str]):
        click.echo(json.dumps(cells, ensure_ascii=False))

    try:
        ExcelImportService().read_rows(file, on_row, sheet)
    except ExcelMappingError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)


@cli.command('parse')
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--type', '-t', 'type_spec', required=True,
              help='Record type: module:Class, or a registered name')
@click.option('--sheet', '-s', default=DEFAULT_SHEET_NAME, show_default=True, help='Sheet name')
@click.option('--strings', is_flag=True, help='Positional text-only parse (ignores headers)')
@click.option('--api-url', envvar='API_URL', help='FastAPI backend URL (enables API mode)')
def parse_cmd(file: str, type_spec: str, sheet: str, strings: bool, api_url: Optional[str]):
    """Parse a sheet into records and print them as JSON."""
    if api_url:
        parse_via_api(api_url, file, type_spec, sheet)
    else:
        parse_direct(file, type_spec, sheet, strings)


@cli.command('export')
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--type', '-t', 'type_spec', required=True,
              help='Record type: module:Class, or a registered name')
@click.option('--sheet', '-s', default=DEFAULT_SHEET_NAME, show_default=True, help='Sheet name')
@click.option('--output', '-o', required=True, type=click.Path(dir_okay=False),
              help='Path of the xlsx file to write')
def export_cmd(input_file: str, type_spec: str, sheet: str, output: str):
    """Write a JSON array of records to an xlsx file."""
    record_type = load_record_type(type_spec)

    try:
        with open(input_file, encoding='utf-8') as f:
            rows = json.load(f)
        records = TypeAdapter(List[record_type]).validate_python(rows)
        workbook = ExcelExportService().write(records, sheet)
    except (ValueError, ValidationError, ExcelMappingError) as e:
        click.echo(f"✗ Export failed: {e}", err=True)
        sys.exit(1)

    try:
        workbook.write(output)
    finally:
        workbook.close()

    click.echo(f"✓ Wrote {len(records)} records to {output} (sheet '{sheet}')")


# ============================================================================
# Direct Mode Implementation (Uses Services Directly)
# ============================================================================

def parse_direct(file_path: str, type_spec: str, sheet: str, strings: bool):
    """Parse file in-process."""
    record_type = load_record_type(type_spec)
    service = ExcelImportService()

    try:
        if strings:
            records = service.read_strings(file_path, sheet, record_type)
        else:
            records = service.read(file_path, sheet, record_type)
    except ExcelMappingError as e:
        logger.error(f"Parse failed: {e}")
        click.echo(f"✗ Parse failed: {e}", err=True)
        sys.exit(1)

    click.echo(to_json([record_to_dict(r) for r in records]))
    logger.info(f"Statistics: {service.stats}")


# ============================================================================
# API Mode Implementation (Uses FastAPI Backend)
# ============================================================================

def parse_via_api(api_url: str, file_path: str, record_type: str, sheet: str):
    """Parse file via FastAPI backend."""
    try:
        with open(file_path, 'rb') as f:
            files = {'file': (Path(file_path).name, f, CONTENT_TYPE)}
            data = {'sheet_name': sheet}

            response = requests.post(
                f"{api_url}/api/workbooks/records/{record_type}",
                files=files,
                data=data,
                timeout=60
            )
    except requests.exceptions.RequestException as e:
        click.echo(f"✗ Network error: {e}", err=True)
        sys.exit(1)

    if response.status_code != 200:
        click.echo(f"✗ Parse failed ({response.status_code}): {response.text}", err=True)
        sys.exit(1)

    click.echo(to_json(response.json()['records']))


if __name__ == '__main__':
    cli()
