"""
Cell text coercion.

Converts the text of one cell into a field's semantic type. The result is
a tagged outcome: either a value, or ABSENT when the text does not parse.
What ABSENT turns into (None, a zero value, the field default) is decided
by the caller, not here.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict

from backend.models.schema import FieldKind

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'

SIGNED_PATTERN = re.compile(r'[+-]?[0-9]+')
UNSIGNED_PATTERN = re.compile(r'[0-9]+')

TRUE_STRINGS = {'1', 't', 'true'}
FALSE_STRINGS = {'0', 'f', 'false'}


@dataclass(frozen=True)
class Coerced:
    """Outcome of coercing one cell."""
    value: Any = None
    present: bool = True

    def __bool__(self) -> bool:
        return self.present

    def value_or(self, fallback: Any) -> Any:
        return self.value if self.present else fallback


ABSENT = Coerced(present=False)


def _to_text(text: str) -> Coerced:
    return Coerced(text)


def _to_signed(text: str) -> Coerced:
    if SIGNED_PATTERN.fullmatch(text):
        return Coerced(int(text))
    return ABSENT


def _to_unsigned(text: str) -> Coerced:
    if UNSIGNED_PATTERN.fullmatch(text):
        return Coerced(int(text))
    return ABSENT


def _to_float(text: str) -> Coerced:
    try:
        return Coerced(float(text))
    except ValueError:
        return ABSENT


def _to_bool(text: str) -> Coerced:
    lowered = text.lower()
    if lowered in TRUE_STRINGS:
        return Coerced(True)
    if lowered in FALSE_STRINGS:
        return Coerced(False)
    return ABSENT


def _to_timestamp(text: str) -> Coerced:
    try:
        return Coerced(datetime.strptime(text, TIMESTAMP_FORMAT))
    except ValueError:
        return ABSENT


COERCERS: Dict[FieldKind, Callable[[str], Coerced]] = {
    FieldKind.TEXT: _to_text,
    FieldKind.SIGNED_INTEGER: _to_signed,
    FieldKind.UNSIGNED_INTEGER: _to_unsigned,
    FieldKind.FLOATING_POINT: _to_float,
    FieldKind.BOOLEAN: _to_bool,
    FieldKind.TIMESTAMP: _to_timestamp,
    FieldKind.NESTED_TEXT: _to_text,
}


def coerce(text: str, kind: FieldKind) -> Coerced:
    """
    Coerce cell text to a semantic type.

    Args:
        text: Cell text as rendered by the workbook adapter
        kind: Target field kind

    Returns:
        Coerced value, or ABSENT if the text does not parse as ``kind``
    """
    result = COERCERS[kind](text)
    if not result:
        logger.debug(f"Could not coerce {text!r} to {kind.value}")
    return result
