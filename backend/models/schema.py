"""
Declarative record schemas for spreadsheet mapping.

A record type is a dataclass or a pydantic model whose fields carry a
column label ("header") and an optional ordinal ("no"). The schema is
derived once per type and cached; both the import and export services
work from it instead of inspecting records row by row.

Usage:
    @dataclass
    class Person:
        name: str = column("Name", 3)
        age: int = column("Age", 1)
        city: Optional[str] = column("City", 2)
"""

import dataclasses
import inspect
import re
import types
import typing
from datetime import datetime
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from services.exceptions import UnsupportedRecordTypeError

# Annotation metadata keys
HEADER_KEY = 'header'
ORDINAL_KEY = 'no'
KIND_KEY = 'kind'

ORDINAL_PATTERN = re.compile(r'^[+-]?\d+$')

_UNION_TYPES = tuple(t for t in (typing.Union, getattr(types, 'UnionType', None)) if t is not None)


class FieldKind(str, Enum):
    """Semantic type of a mapped field."""
    TEXT = 'text'
    SIGNED_INTEGER = 'signed_integer'
    UNSIGNED_INTEGER = 'unsigned_integer'
    FLOATING_POINT = 'floating_point'
    BOOLEAN = 'boolean'
    TIMESTAMP = 'timestamp'
    NESTED_TEXT = 'nested_text'


ZERO_VALUES = {
    FieldKind.TEXT: '',
    FieldKind.SIGNED_INTEGER: 0,
    FieldKind.UNSIGNED_INTEGER: 0,
    FieldKind.FLOATING_POINT: 0.0,
    FieldKind.BOOLEAN: False,
    FieldKind.TIMESTAMP: None,
    FieldKind.NESTED_TEXT: None,
}


@dataclasses.dataclass(frozen=True)
class FieldDescriptor:
    """One labelled field of a record type."""
    name: str
    label: str
    ordinal: Optional[int]
    kind: FieldKind
    nullable: bool
    position: int

    @property
    def sort_ordinal(self) -> int:
        """Ordinal used for column placement; fields without one sort as 0."""
        return self.ordinal if self.ordinal is not None else 0

    @property
    def zero_value(self) -> Any:
        return None if self.nullable else ZERO_VALUES[self.kind]


class Schema:
    """
    Ordered field descriptors of one record type.

    Keeps two views: declaration order (``fields``) and writer order
    (``ordered``, by ordinal then declaration position), plus a label
    lookup table for header matching.
    """

    def __init__(self, record_type: type, fields: List[FieldDescriptor]):
        self.record_type = record_type
        self.fields: Tuple[FieldDescriptor, ...] = tuple(fields)
        self.ordered: Tuple[FieldDescriptor, ...] = tuple(
            sorted(self.fields, key=lambda f: (f.sort_ordinal, f.position))
        )
        self._by_label: Dict[str, FieldDescriptor] = {}
        for descriptor in self.fields:
            # First declaration wins when two fields share a label
            self._by_label.setdefault(descriptor.label, descriptor)

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self):
        return iter(self.fields)

    def __repr__(self) -> str:
        return f"Schema({self.record_type.__name__}, {[f.label for f in self.ordered]})"

    def by_label(self, label: str) -> Optional[FieldDescriptor]:
        """Find the field declared with this label (exact, case-sensitive)."""
        return self._by_label.get(label)

    def by_ordinal(self, ordinal: int) -> Optional[FieldDescriptor]:
        """Find the first field declared with this ordinal."""
        for descriptor in self.fields:
            if descriptor.ordinal == ordinal:
                return descriptor
        return None

    @property
    def labels(self) -> List[str]:
        """Header labels in writer order."""
        return [f.label for f in self.ordered]


# ============================================================================
# Annotation helpers
# ============================================================================

def _column_metadata(label: str, ordinal, kind: Optional[FieldKind]) -> Dict[str, Any]:
    metadata = {HEADER_KEY: label}
    if ordinal is not None:
        metadata[ORDINAL_KEY] = str(ordinal)
    if kind is not None:
        metadata[KIND_KEY] = FieldKind(kind).value
    return metadata


def column(label: str, ordinal=None, kind: Optional[FieldKind] = None,
           default: Any = dataclasses.MISSING,
           default_factory: Any = dataclasses.MISSING, **kwargs):
    """
    Declare a mapped dataclass field.

    Args:
        label: Column header text
        ordinal: 1-based column position used when writing (int or numeric string)
        kind: Override for the semantic type inferred from the annotation
        default: Field default, as for dataclasses.field()
        default_factory: Field default factory, as for dataclasses.field()
        **kwargs: Passed through to dataclasses.field()

    Returns:
        A dataclasses.Field carrying the column metadata
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata.update(_column_metadata(label, ordinal, kind))
    return dataclasses.field(default=default, default_factory=default_factory,
                             metadata=metadata, **kwargs)


def column_field(label: str, ordinal=None, kind: Optional[FieldKind] = None,
                 default: Any = ..., **kwargs):
    """Declare a mapped pydantic model field. Same arguments as column()."""
    extra = dict(kwargs.pop('json_schema_extra', None) or {})
    extra.update(_column_metadata(label, ordinal, kind))
    return Field(default, json_schema_extra=extra, **kwargs)


def parse_ordinal(value) -> Optional[int]:
    """Parse a declared ordinal; returns None when it is missing or not an integer."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if ORDINAL_PATTERN.match(text):
        return int(text)
    return None


# ============================================================================
# Type inspection
# ============================================================================

def unwrap_optional(annotation) -> Tuple[Any, bool]:
    """
    Split Optional[X] into (X, True); other annotations return (annotation, False).
    """
    if typing.get_origin(annotation) in _UNION_TYPES:
        args = typing.get_args(annotation)
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) < len(args):
            inner = non_none[0] if len(non_none) == 1 else typing.Union[tuple(non_none)]
            return inner, True
    return annotation, False


def infer_kind(annotation) -> FieldKind:
    """Map a (non-optional) type annotation to its semantic field kind."""
    if not inspect.isclass(annotation):
        return FieldKind.NESTED_TEXT
    # bool is a subclass of int, check it first
    if issubclass(annotation, bool):
        return FieldKind.BOOLEAN
    if issubclass(annotation, str):
        return FieldKind.TEXT
    if issubclass(annotation, int):
        return FieldKind.SIGNED_INTEGER
    if issubclass(annotation, (float, Decimal)):
        return FieldKind.FLOATING_POINT
    if issubclass(annotation, datetime):
        return FieldKind.TIMESTAMP
    return FieldKind.NESTED_TEXT


def is_record_type(record_type) -> bool:
    """True for dataclass types and pydantic model classes."""
    if not inspect.isclass(record_type):
        return False
    return dataclasses.is_dataclass(record_type) or issubclass(record_type, BaseModel)


@dataclasses.dataclass(frozen=True)
class _RecordField:
    name: str
    annotation: Any
    metadata: Dict[str, Any]
    init: bool
    default: Callable[[], Any]


def _dataclass_fields(record_type: type) -> List[_RecordField]:
    hints = typing.get_type_hints(record_type)
    result = []
    for f in dataclasses.fields(record_type):
        if f.default is not dataclasses.MISSING:
            default = (lambda value=f.default: value)
        elif f.default_factory is not dataclasses.MISSING:
            default = f.default_factory
        else:
            default = None
        result.append(_RecordField(
            name=f.name,
            annotation=hints.get(f.name, Any),
            metadata=dict(f.metadata),
            init=f.init,
            default=default,
        ))
    return result


def _model_fields(record_type: type) -> List[_RecordField]:
    result = []
    for name, info in record_type.model_fields.items():
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        if info.is_required():
            default = None
        else:
            default = (lambda info=info: info.get_default(call_default_factory=True))
        result.append(_RecordField(
            name=name,
            annotation=info.annotation,
            metadata=dict(extra),
            init=True,
            default=default,
        ))
    return result


@lru_cache(maxsize=None)
def _record_fields(record_type: type) -> Tuple[_RecordField, ...]:
    if inspect.isclass(record_type) and dataclasses.is_dataclass(record_type):
        return tuple(_dataclass_fields(record_type))
    if inspect.isclass(record_type) and issubclass(record_type, BaseModel):
        return tuple(_model_fields(record_type))
    raise UnsupportedRecordTypeError(
        f"{record_type!r} is not a dataclass or pydantic model"
    )


def _field_kind(field: _RecordField) -> Tuple[FieldKind, bool]:
    inner, nullable = unwrap_optional(field.annotation)
    declared = field.metadata.get(KIND_KEY)
    kind = FieldKind(declared) if declared else infer_kind(inner)
    return kind, nullable


# ============================================================================
# Schema extraction
# ============================================================================

@lru_cache(maxsize=None)
def extract_schema(record_type: type) -> Schema:
    """
    Build the schema of a record type.

    Only fields declaring a non-empty label take part. Ordinals that are
    missing or not integers are kept as None and sort as 0 when writing;
    ties keep declaration order.

    Args:
        record_type: Dataclass or pydantic model class

    Returns:
        Cached Schema for the type

    Raises:
        UnsupportedRecordTypeError: If record_type is not a supported class
    """
    descriptors = []
    for position, field in enumerate(_record_fields(record_type)):
        label = str(field.metadata.get(HEADER_KEY) or '')
        if not label:
            continue
        kind, nullable = _field_kind(field)
        descriptors.append(FieldDescriptor(
            name=field.name,
            label=label,
            ordinal=parse_ordinal(field.metadata.get(ORDINAL_KEY)),
            kind=kind,
            nullable=nullable,
            position=position,
        ))
    return Schema(record_type, descriptors)


# ============================================================================
# Record construction and access
# ============================================================================

def initial_values(record_type: type) -> Dict[str, Any]:
    """
    Starting values for a fresh record: declared defaults, else zero values.

    Every init field is present, labelled or not, so the record can be
    constructed even when a row fills none of them. Default factories are
    called on every invocation.
    """
    values = {}
    for field in _record_fields(record_type):
        if not field.init:
            continue
        if field.default is not None:
            values[field.name] = field.default()
        else:
            kind, nullable = _field_kind(field)
            values[field.name] = None if nullable else ZERO_VALUES[kind]
    return values


def build_record(record_type: type, values: Dict[str, Any]):
    """
    Instantiate a record from already-coerced field values.

    Pydantic models are built without re-validation: nested-text fields hold
    raw cell text, which validation would reject.
    """
    if issubclass(record_type, BaseModel):
        return record_type.model_construct(**values)
    return record_type(**values)


def record_to_dict(record) -> Dict[str, Any]:
    """Field values of a record keyed by attribute name."""
    if isinstance(record, BaseModel):
        return record.model_dump()
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return {f.name: getattr(record, f.name) for f in dataclasses.fields(record)}
    raise UnsupportedRecordTypeError(f"{type(record)!r} is not a dataclass or pydantic model")
