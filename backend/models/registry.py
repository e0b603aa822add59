"""
Registry of record types addressable by name.

The HTTP API and the CLI refer to record types by a short name; modules
defining record types register them with the decorator below.
"""

import logging
from typing import Dict, List

from backend.models.schema import is_record_type
from services.exceptions import RecordTypeNotFoundError, UnsupportedRecordTypeError

logger = logging.getLogger(__name__)

_REGISTRY: Dict[str, type] = {}


def register_record(name: str):
    """
    Class decorator registering a record type under ``name``.

    Usage:
        @register_record('person')
        @dataclass
        class Person:
            ...
    """
    def decorator(record_type: type) -> type:
        if not is_record_type(record_type):
            raise UnsupportedRecordTypeError(
                f"{record_type!r} is not a dataclass or pydantic model"
            )
        existing = _REGISTRY.get(name)
        if existing is not None and existing is not record_type:
            logger.warning(f"Record type '{name}' re-registered: "
                           f"{existing.__qualname__} -> {record_type.__qualname__}")
        _REGISTRY[name] = record_type
        logger.debug(f"Registered record type '{name}' ({record_type.__qualname__})")
        return record_type
    return decorator


def get_record_type(name: str) -> type:
    """
    Look up a registered record type.

    Raises:
        RecordTypeNotFoundError: If nothing is registered under ``name``
    """
    try:
        return _REGISTRY[name]
    except KeyError:
        raise RecordTypeNotFoundError(f"Record type '{name}' is not registered") from None


def list_record_types() -> List[str]:
    """Registered names, sorted."""
    return sorted(_REGISTRY)


def unregister_record(name: str) -> None:
    _REGISTRY.pop(name, None)
