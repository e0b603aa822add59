"""
Unit tests for record schema extraction and the record type registry.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import pytest

from backend.models.registry import (
    get_record_type, list_record_types, register_record, unregister_record
)
from backend.models.schema import (
    FieldKind, build_record, column, extract_schema, infer_kind, initial_values,
    parse_ordinal, record_to_dict, unwrap_optional
)
from services.exceptions import RecordTypeNotFoundError, UnsupportedRecordTypeError
from sample_records import Codes, Customer, Loose, Person, Product, Reading


class TestExtractSchema:
    """Test extract_schema() on dataclasses."""

    def test_only_labelled_fields(self):
        """Fields without a label are not part of the schema."""
        schema = extract_schema(Person)
        assert len(schema) == 3
        assert {f.name for f in schema} == {'name', 'age', 'city'}

    def test_declaration_order_kept(self):
        schema = extract_schema(Person)
        assert [f.name for f in schema.fields] == ['name', 'age', 'city']
        assert [f.position for f in schema.fields] == [0, 1, 2]

    def test_writer_order_by_ordinal(self):
        schema = extract_schema(Person)
        assert schema.labels == ['Age', 'City', 'Name']

    def test_missing_and_invalid_ordinals_sort_first(self):
        """No ordinal or a non-numeric one sorts as 0, ties keep declaration order."""
        schema = extract_schema(Loose)
        assert [f.ordinal for f in schema.fields] == [None, 1, None]
        assert schema.labels == ['B', 'C', 'A']

    def test_lookup_by_label(self):
        schema = extract_schema(Person)
        assert schema.by_label('Age').name == 'age'
        assert schema.by_label('age') is None
        assert schema.by_label('Other') is None

    def test_lookup_by_ordinal(self):
        schema = extract_schema(Codes)
        assert schema.by_ordinal(2).name == 'second'
        assert schema.by_ordinal(4) is None

    def test_duplicate_labels_first_wins(self):
        @dataclass
        class Twice:
            first: str = column("Same", 1)
            second: str = column("Same", 2)

        schema = extract_schema(Twice)
        assert len(schema) == 2
        assert schema.by_label('Same').name == 'first'

    def test_schema_is_cached(self):
        assert extract_schema(Person) is extract_schema(Person)

    def test_no_labelled_fields(self):
        @dataclass
        class Plain:
            value: int = 0

        assert len(extract_schema(Plain)) == 0

    def test_unsupported_type(self):
        with pytest.raises(UnsupportedRecordTypeError):
            extract_schema(int)

        with pytest.raises(UnsupportedRecordTypeError):
            extract_schema(dict)


class TestFieldKinds:
    """Test semantic kind inference."""

    def test_inferred_kinds(self):
        kinds = {f.name: f.kind for f in extract_schema(Reading)}
        assert kinds == {
            'sensor': FieldKind.TEXT,
            'count': FieldKind.UNSIGNED_INTEGER,
            'value': FieldKind.FLOATING_POINT,
            'delta': FieldKind.SIGNED_INTEGER,
            'active': FieldKind.BOOLEAN,
            'taken_at': FieldKind.TIMESTAMP,
            'note': FieldKind.TEXT,
        }

    def test_nullable_from_optional(self):
        nullable = {f.name: f.nullable for f in extract_schema(Reading)}
        assert nullable['value'] is True
        assert nullable['taken_at'] is True
        assert nullable['sensor'] is False
        assert nullable['count'] is False

    def test_nested_type(self):
        address = extract_schema(Customer).by_label('Address')
        assert address.kind == FieldKind.NESTED_TEXT
        assert address.nullable is True

    def test_bool_is_not_integer(self):
        assert infer_kind(bool) == FieldKind.BOOLEAN
        assert infer_kind(int) == FieldKind.SIGNED_INTEGER
        assert infer_kind(float) == FieldKind.FLOATING_POINT
        assert infer_kind(datetime) == FieldKind.TIMESTAMP
        assert infer_kind(List[str]) == FieldKind.NESTED_TEXT

    def test_unwrap_optional(self):
        assert unwrap_optional(Optional[int]) == (int, True)
        assert unwrap_optional(str) == (str, False)

    def test_zero_values(self):
        zeros = {f.name: f.zero_value for f in extract_schema(Reading)}
        assert zeros['sensor'] == ''
        assert zeros['count'] == 0
        assert zeros['active'] is False
        assert zeros['value'] is None


class TestParseOrdinal:
    """Test parse_ordinal() function."""

    def test_numbers_and_numeric_strings(self):
        assert parse_ordinal(5) == 5
        assert parse_ordinal("3") == 3
        assert parse_ordinal(" 4 ") == 4
        assert parse_ordinal("-1") == -1

    def test_not_integers(self):
        assert parse_ordinal(None) is None
        assert parse_ordinal("x") is None
        assert parse_ordinal("1.5") is None
        assert parse_ordinal(True) is None


class TestPydanticModels:
    """Test schemas of pydantic record types."""

    def test_column_field_metadata(self):
        extra = Product.model_fields['sku'].json_schema_extra
        assert extra == {'header': 'SKU', 'no': '1'}

    def test_schema(self):
        schema = extract_schema(Product)
        assert schema.labels == ['SKU', 'Price', 'Stock', 'In Stock']
        assert schema.by_label('Stock').nullable is True
        assert schema.by_label('In Stock').kind == FieldKind.BOOLEAN

    def test_initial_values(self):
        assert initial_values(Product) == {
            'sku': '', 'price': 0.0, 'stock': None, 'in_stock': False
        }

    def test_build_record_skips_validation(self):
        product = build_record(Product, {'sku': 'A-1', 'price': 2.5, 'stock': None, 'in_stock': True})
        assert isinstance(product, Product)
        assert product.sku == 'A-1'
        assert record_to_dict(product) == {
            'sku': 'A-1', 'price': 2.5, 'stock': None, 'in_stock': True
        }


class TestInitialValues:
    """Test initial_values() for dataclasses."""

    def test_required_fields_get_zero_values(self):
        assert initial_values(Person) == {'name': '', 'age': 0, 'city': '', 'other': ''}

    def test_optional_fields_get_none(self):
        values = initial_values(Reading)
        assert values['value'] is None
        assert values['taken_at'] is None
        assert values['note'] is None

    def test_declared_defaults_win(self):
        @dataclass
        class WithDefaults:
            count: int = column("Count", 1, default=7)
            label: str = column("Label", 2, default="n/a")

        assert initial_values(WithDefaults) == {'count': 7, 'label': 'n/a'}

    def test_default_factory_called_each_time(self):
        @dataclass
        class WithFactory:
            name: str = column("Name", 1)
            tags: list = field(default_factory=list)

        first = initial_values(WithFactory)
        second = initial_values(WithFactory)
        assert first['tags'] == []
        assert first['tags'] is not second['tags']

    def test_non_init_fields_left_out(self):
        @dataclass
        class Derived:
            name: str = column("Name", 1)
            computed: int = field(default=0, init=False)

        assert initial_values(Derived) == {'name': ''}


class TestRegistry:
    """Test the record type registry."""

    def test_sample_types_registered(self):
        assert get_record_type('person') is Person
        assert {'person', 'reading', 'product'} <= set(list_record_types())

    def test_register_and_unregister(self):
        @register_record('temporary')
        @dataclass
        class Temporary:
            name: str = column("Name", 1)

        try:
            assert get_record_type('temporary') is Temporary
            assert 'temporary' in list_record_types()
        finally:
            unregister_record('temporary')

        with pytest.raises(RecordTypeNotFoundError):
            get_record_type('temporary')

    def test_unknown_name(self):
        with pytest.raises(RecordTypeNotFoundError, match="not registered"):
            get_record_type('no-such-type')

    def test_rejects_non_record_classes(self):
        with pytest.raises(UnsupportedRecordTypeError):
            register_record('bad')(int)
        assert 'bad' not in list_record_types()
