"""
Record types shared by the tests.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from backend.models.registry import register_record
from backend.models.schema import FieldKind, column, column_field


@register_record('person')
@dataclass
class Person:
    name: str = column("Name", 3)
    age: int = column("Age", 1)
    city: str = column("City", 2)
    other: str = ''


@register_record('reading')
@dataclass
class Reading:
    sensor: str = column("Sensor", 1)
    count: int = column("Count", 2, kind=FieldKind.UNSIGNED_INTEGER)
    value: Optional[float] = column("Value", 3)
    delta: Optional[int] = column("Delta", 4)
    active: bool = column("Active", 5)
    taken_at: Optional[datetime] = column("Taken At", 6)
    note: Optional[str] = column("Note", 7, default=None)


@register_record('product')
class Product(BaseModel):
    sku: str = column_field("SKU", "1")
    price: float = column_field("Price", "2")
    stock: Optional[int] = column_field("Stock", "3", default=None)
    in_stock: bool = column_field("In Stock", "4", default=False)


@dataclass
class Loose:
    b: str = column("B")
    a: str = column("A", 1)
    c: str = column("C", "bad")
    hidden: str = ''


@dataclass
class Address:
    street: str = ''


@dataclass
class Customer:
    name: str = column("Name", 1)
    address: Optional[Address] = column("Address", 2, default=None)


@dataclass
class Codes:
    first: str = column("First", 1)
    second: str = column("Second", 2)
    third: str = column("Third", 3)


class BrokenSheet:
    """Worksheet stand-in whose row stream fails after the header."""

    def iter_rows(self, values_only=True):
        yield ('Age', 'Name')
        raise OSError('archive truncated')
