# tests/conftest.py
"""
Shared test fixtures and configuration for pytest.
"""

import copy
import datetime as dt
from decimal import Decimal
from pathlib import Path

import pytest
from bson import Decimal128, ObjectId

from docbend.defaults import settings
from docbend.schema import TargetSchema

AANG_ID = '507f1f77bcf86cd799439011'
APPA_ID = '5f50c31e1c4ae837d0b1a2c3'


@pytest.fixture(autouse=True)
def restore_settings():
    """ConfigManager updates the global settings dict; put it back after every test."""
    saved = copy.deepcopy(settings)
    yield
    settings.clear()
    settings.update(saved)


@pytest.fixture
def test_config_file():
    """Path to the YAML test config."""
    return Path(__file__).parent / 'test.yml'


@pytest.fixture
def nomad_schema():
    """Two-column schema: text id from _id, integer age from profile.age."""
    return TargetSchema.from_config({
        'target': {
            'table': 'air_nomads',
            'columns': [
                {'name': 'id', 'source': '_id', 'type': 'text'},
                {'name': 'age', 'source': 'profile.age', 'type': 'integer'},
            ],
        },
        'keys': {'primaryKey': ['id']},
    })


@pytest.fixture
def census_schema():
    """Wider schema with a catch-all column and a composite key."""
    return TargetSchema.from_config({
        'target': {
            'table': 'earth_kingdom.census',
            'columns': [
                {'name': 'citizen_id', 'source': '_id', 'type': 'text'},
                {'name': 'city', 'source': 'home.city', 'type': 'text'},
                {'name': 'boulder_size', 'source': 'skills.boulder_size', 'type': 'double precision'},
                {'name': 'students', 'source': 'students', 'type': 'smallint'},
                {'name': 'tribute', 'source': 'tribute', 'type': 'numeric'},
                {'name': 'bending', 'source': 'skills', 'type': 'jsonb'},
                {'name': 'active', 'source': 'active', 'type': 'boolean'},
            ],
            'extraProps': {'type': 'jsonb', 'omit': ['_id', 'home.city', 'skills']},
        },
        'keys': {'primaryKey': [{'name': 'citizen_id'}, {'name': 'city'}]},
    })


@pytest.fixture
def aang_doc():
    return {'_id': ObjectId(AANG_ID), 'name': 'Aang', 'profile': {'age': 30.7}}


@pytest.fixture
def toph_doc():
    """Census document touching every value kind."""
    return {
        '_id': ObjectId(APPA_ID),
        'name': 'Toph\x00Beifong',
        'home': {'city': 'Gaoling', 'district': 'Upper Ring'},
        'skills': {
            'boulder_size': 12.5,
            'styles': ['earth', 'metal'],
            'pupil': ObjectId(AANG_ID),
        },
        'students': 3.9,
        'tribute': Decimal128('1234.50'),
        'active': True,
        'joined': dt.datetime(2024, 3, 15, 9, 30),
        'stipend': Decimal('10.10'),
    }
