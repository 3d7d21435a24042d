"""Tests for column type inference and value coercion."""
from datetime import date, datetime
from decimal import Decimal

import pytest

from schemawarp.metadata import ColumnType, coerce_value, infer_column_type, infer_value_type


UUID_A = 'd47ec620-2190-11ef-910c-f1df4955273f'
UUID_B = '0b9a6a3e-5c1f-4e0a-9b7e-2f3c4d5e6f70'


class TestValueType:
    """Single value classification."""

    @pytest.mark.parametrize('value,expected', [
        ('TRUE', ColumnType.BOOLEAN),
        ('no', ColumnType.BOOLEAN),
        ('1', ColumnType.BOOLEAN),
        (UUID_A, ColumnType.UUID),
        ('42', ColumnType.INTEGER),
        ('-7', ColumnType.INTEGER),
        ('-3.50', ColumnType.DECIMAL),
        ('2024-06-03', ColumnType.DATE),
        ('2024-06-03T10:05:39.625Z', ColumnType.TIMESTAMP),
        ('hello', ColumnType.TEXT),
        ('1,5', ColumnType.TEXT),
    ])
    def test_classification(self, value, expected):
        assert infer_value_type(value) == expected

    def test_empty_does_not_vote(self):
        assert infer_value_type('') is None
        assert infer_value_type('   ') is None
        assert infer_value_type(None) is None


class TestColumnType:
    """Majority vote over the leading sample."""

    def test_all_uuid(self):
        assert infer_column_type([UUID_A, UUID_B, UUID_A.upper()]) == ColumnType.UUID

    def test_boolean_with_empties(self):
        assert infer_column_type(['yes', '', 'no', '', '']) == ColumnType.BOOLEAN

    def test_all_empty_is_text(self):
        assert infer_column_type(['', '  ', '']) == ColumnType.TEXT
        assert infer_column_type([]) == ColumnType.TEXT

    def test_majority_wins(self):
        assert infer_column_type(['12', '15', 'n/a']) == ColumnType.INTEGER

    def test_tie_goes_to_first_encountered(self):
        assert infer_column_type(['abc', '12', 'def', '34']) == ColumnType.TEXT
        assert infer_column_type(['12', 'abc', '34', 'def']) == ColumnType.INTEGER

    def test_only_leading_rows_are_sampled(self):
        values = ['1.5', '2.5', '3.5'] + ['text'] * 10
        assert infer_column_type(values, sample_size=3) == ColumnType.DECIMAL


class TestCoercion:
    """Typed conversion that never raises."""

    def test_boolean(self):
        assert coerce_value('Yes', ColumnType.BOOLEAN) == (True, True)
        assert coerce_value('0', ColumnType.BOOLEAN) == (False, True)
        assert coerce_value('maybe', ColumnType.BOOLEAN) == (None, False)

    def test_integer(self):
        assert coerce_value('12', ColumnType.INTEGER) == (12, True)
        assert coerce_value('12a', ColumnType.INTEGER) == (None, False)

    def test_decimal(self):
        assert coerce_value('3.14', ColumnType.DECIMAL) == (Decimal('3.14'), True)
        assert coerce_value('NaN', ColumnType.DECIMAL) == (None, False)

    def test_dates(self):
        assert coerce_value('2024-06-03', ColumnType.DATE) == (date(2024, 6, 3), True)
        value, ok = coerce_value('2024-06-03T10:05:39Z', ColumnType.TIMESTAMP)
        assert ok and isinstance(value, datetime) and value.tzinfo is not None
        assert coerce_value('2024-13-45', ColumnType.DATE) == (None, False)
        assert coerce_value('soon', ColumnType.TIMESTAMP) == (None, False)

    def test_uuid_lowercased(self):
        assert coerce_value(UUID_A.upper(), ColumnType.UUID) == (UUID_A, True)
        assert coerce_value('not-a-uuid', ColumnType.UUID) == (None, False)

    def test_empty_is_null_not_failure(self):
        assert coerce_value('', ColumnType.INTEGER) == (None, True)
        assert coerce_value(None, ColumnType.TEXT) == (None, True)
