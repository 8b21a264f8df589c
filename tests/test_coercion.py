# tests/test_coercion.py
"""
Tests for docbend.coercion: turning documents into rows.
"""

import datetime as dt
import json
import math
import types

import pytest
from bson import Decimal128, ObjectId

from docbend.coercion import coerce_value, key_values, transform_row, transform_values
from docbend.errors import SerializationError
from docbend.schema import Column, TargetSchema
from docbend.utils import MISSING

from conftest import AANG_ID, APPA_ID

INT_COL = Column('level', 'level', 'integer')
TEXT_COL = Column('name', 'name', 'text')
FLOAT_COL = Column('score', 'score', 'double precision')


class TestCoerceValue:
    """Test per-column coercion rules."""

    def test_missing_and_null(self):
        assert coerce_value(TEXT_COL, MISSING) is None
        assert coerce_value(TEXT_COL, None) is None

    def test_identifier(self):
        assert coerce_value(TEXT_COL, ObjectId(AANG_ID)) == AANG_ID

    def test_decimal(self):
        assert coerce_value(Column('t', 't', 'numeric'), Decimal128('1234.50')) == '1234.50'

    @pytest.mark.parametrize('source, expected', [
        (3.9, 3),
        (-3.9, -3),
        (30.7, 30),
        (0.5, 0),
        (-0.5, 0),
        (7, 7),
        (2.0, 2),
    ])
    def test_integer_truncates_toward_zero(self, source, expected):
        result = coerce_value(INT_COL, source)
        assert result == expected
        assert type(result) is int

    @pytest.mark.parametrize('type_name', ['smallint', 'integer', 'bigint', 'INTEGER'])
    def test_all_integer_types_truncate(self, type_name):
        assert coerce_value(Column('n', 'n', type_name), 9.99) == 9

    def test_non_integer_number_unchanged(self):
        assert coerce_value(FLOAT_COL, 12.75) == 12.75
        assert coerce_value(Column('p', 'p', 'numeric'), 3.9) == 3.9

    @pytest.mark.parametrize('source', [float('nan'), float('inf'), float('-inf')])
    def test_non_finite_integer_raises(self, source):
        with pytest.raises(SerializationError, match="integer column 'level'"):
            coerce_value(INT_COL, source)

    def test_non_finite_float_column_unchanged(self):
        assert math.isnan(coerce_value(FLOAT_COL, float('nan')))

    def test_boolean_passes_through_integer_column(self):
        result = coerce_value(INT_COL, True)
        assert result is True

    def test_string_sanitized(self):
        assert coerce_value(TEXT_COL, 'a\x00b\tc') == 'a b\tc'

    def test_string_in_integer_column_not_parsed(self):
        assert coerce_value(INT_COL, '42.5') == '42.5'

    def test_nested_encoded(self):
        assert coerce_value(TEXT_COL, {'pet': ObjectId(APPA_ID)}) == '{"pet":{"$oid":"5f50c31e1c4ae837d0b1a2c3"}}'
        assert coerce_value(TEXT_COL, ['air', 'water']) == '["air","water"]'

    def test_datetime_passes_through(self):
        when = dt.datetime(2024, 3, 15)
        assert coerce_value(TEXT_COL, when) is when


class TestTransformValues:
    """Test whole-document transformation."""

    def test_scenario_present_age(self, nomad_schema, aang_doc):
        assert list(transform_values(nomad_schema, aang_doc)) == [AANG_ID, 30]

    def test_scenario_missing_age(self, nomad_schema):
        doc = {'_id': ObjectId(AANG_ID), 'profile': {}}
        assert list(transform_values(nomad_schema, doc)) == [AANG_ID, None]

    def test_missing_intermediate_path(self, nomad_schema):
        assert list(transform_values(nomad_schema, {'_id': ObjectId(AANG_ID)})) == [AANG_ID, None]

    def test_path_through_scalar(self, nomad_schema):
        doc = {'_id': 'x', 'profile': 'unknown'}
        assert list(transform_values(nomad_schema, doc)) == ['x', None]

    def test_array_index_path(self):
        schema = TargetSchema.from_config({
            'columns': [
                {'name': 'id', 'source': '_id', 'type': 'text'},
                {'name': 'second_style', 'source': 'skills.styles.1', 'type': 'text'},
            ],
            'primary_key': ['id'],
        })
        doc = {'_id': 't', 'skills': {'styles': ['earth', 'metal']}}
        assert transform_row(schema, doc) == ('t', 'metal')

    def test_returns_generator(self, nomad_schema, aang_doc):
        values = transform_values(nomad_schema, aang_doc)
        assert isinstance(values, types.GeneratorType)
        assert next(values) == AANG_ID

    def test_lazy_until_failing_column(self, nomad_schema):
        """Values before a failing column are produced on demand."""
        doc = {'_id': ObjectId(AANG_ID), 'profile': {'age': float('nan')}}
        values = transform_values(nomad_schema, doc)
        assert next(values) == AANG_ID
        with pytest.raises(SerializationError):
            next(values)

    def test_transform_row_no_partial_row(self, nomad_schema):
        doc = {'_id': ObjectId(AANG_ID), 'profile': {'age': float('inf')}}
        with pytest.raises(SerializationError):
            transform_row(nomad_schema, doc)

    def test_census_row(self, census_schema, toph_doc):
        row = transform_row(census_schema, toph_doc)
        assert row[:5] == (APPA_ID, 'Gaoling', 12.5, 3, '1234.50')
        assert row[5] == (
            '{"boulder_size":12.5,"styles":["earth","metal"],'
            '"pupil":{"$oid":"507f1f77bcf86cd799439011"}}'
        )
        assert row[6] is True

    def test_extra_props_omits_paths(self, census_schema, toph_doc):
        extra = transform_row(census_schema, toph_doc)[-1]
        assert extra == (
            '{"name":"Toph Beifong","home":{"district":"Upper Ring"},"students":3.9,'
            '"tribute":"1234.50","active":true,"joined":"2024-03-15T09:30:00","stipend":"10.10"}'
        )

    def test_extra_props_does_not_modify_document(self, census_schema, toph_doc):
        transform_row(census_schema, toph_doc)
        assert toph_doc['home'] == {'city': 'Gaoling', 'district': 'Upper Ring'}
        assert '_id' in toph_doc and 'skills' in toph_doc

    def test_extra_props_whole_document(self, aang_doc):
        schema = TargetSchema.from_config({
            'target': {
                'columns': [{'name': 'id', 'source': '_id', 'type': 'text'}],
                'extraProps': {'type': 'jsonb'},
            },
            'keys': {'primaryKey': ['id']},
        })
        row = transform_row(schema, aang_doc)
        assert json.loads(row[1]) == {'_id': {'$oid': AANG_ID}, 'name': 'Aang', 'profile': {'age': 30.7}}

    @pytest.mark.parametrize('doc', [
        {},
        {'_id': ObjectId(AANG_ID)},
        {'_id': None, 'home': None, 'skills': None},
        {'_id': 'x', 'home': {'city': 'Omashu'}, 'skills': {'boulder_size': 1}, 'extra': [1, 2, 3]},
    ])
    def test_row_length(self, census_schema, nomad_schema, doc):
        assert len(list(transform_values(census_schema, doc))) == len(census_schema.columns) + 1
        assert len(list(transform_values(nomad_schema, doc))) == len(nomad_schema.columns)

    def test_unserializable_document_isolated(self, census_schema, toph_doc):
        """A failing document does not affect the next one."""
        bad = dict(toph_doc, skills={'scroll': object()})
        with pytest.raises(SerializationError):
            transform_row(census_schema, bad)
        assert transform_row(census_schema, toph_doc)[0] == APPA_ID


class TestKeyValues:
    def test_key_values(self, census_schema, toph_doc):
        assert key_values(census_schema, toph_doc) == (APPA_ID, 'Gaoling')
