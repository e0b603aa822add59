"""Record schema package for the Excel mapping system."""
from backend.models.schema import (
    FieldKind, FieldDescriptor, Schema, column, column_field, extract_schema
)
from backend.models.registry import register_record, get_record_type, list_record_types

__all__ = [
    'FieldKind',
    'FieldDescriptor',
    'Schema',
    'column',
    'column_field',
    'extract_schema',
    'register_record',
    'get_record_type',
    'list_record_types',
]
