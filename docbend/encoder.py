# docbend/encoder.py

"""
Value classification, string sanitization and structured (JSON) encoding.

Nested values are encoded in two passes. ``prepare`` walks the original
document tree and replaces identifier, decimal and date leaves with their
canonical JSON-ready forms while sanitizing strings. ``encode_structured``
then runs a standard ``json.dumps`` over the prepared tree. Identifier
handling never depends on the serialized output, where an ObjectId and its
hex string would be indistinguishable.
"""

import datetime as dt
import json
import math
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from bson import Decimal128, ObjectId

from .defaults import settings
from .errors import SerializationError
from .utils import compact_float


class ValueKind(Enum):
    """Closed set of value kinds the coercion rules distinguish."""
    NULL = 'null'
    BOOLEAN = 'boolean'
    INTEGER = 'integer'
    FLOAT = 'float'
    STRING = 'string'
    IDENTIFIER = 'identifier'
    DECIMAL = 'decimal'
    DATETIME = 'datetime'
    NESTED = 'nested'
    OTHER = 'other'


def classify(value: Any) -> ValueKind:
    """
    Map a document value onto its ValueKind.

    ``bool`` is tested before the numeric kinds because it subclasses ``int``.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, ObjectId):
        return ValueKind.IDENTIFIER
    if isinstance(value, (Decimal128, Decimal)):
        return ValueKind.DECIMAL
    if isinstance(value, (dt.datetime, dt.date)):
        return ValueKind.DATETIME
    if isinstance(value, (Mapping, list, tuple)):
        return ValueKind.NESTED
    return ValueKind.OTHER


def sanitize_string(value: str) -> str:
    """
    Replace every NUL code point with a single space.

    PostgreSQL text and jsonb values cannot hold ``\\u0000``.

    Example:
        sanitize_string('a\\x00b')  # 'a b'
    """
    return value.replace('\x00', ' ')


def identifier_string(value: ObjectId) -> str:
    """Canonical 24 character hex form of an identifier."""
    return str(value)


def decimal_string(value: Any) -> str:
    """Canonical text form of a Decimal128 or Decimal, without float conversion."""
    return str(value)


def prepare(value: Any) -> Any:
    """
    Convert a nested value into a tree that ``json.dumps`` can encode as-is.

    - ObjectId leaves become ``{"$oid": "<hex>"}``
    - Decimal128 / Decimal leaves become their canonical string
    - strings, mapping keys included, are sanitized
    - whole-valued floats become ``int`` (``30.0`` encodes as ``30``)
    - dates and datetimes become ISO-8601 strings
    - non-finite floats become ``None`` (JSON has no NaN or Infinity)
    - mappings keep their key order; lists and tuples become lists

    Raises:
        SerializationError: On a cyclic structure or an unsupported leaf type.
    """
    return _prepare(value, set())


def _prepare(value: Any, active: set) -> Any:
    kind = classify(value)
    if kind is ValueKind.STRING:
        return sanitize_string(value)
    if kind in (ValueKind.NULL, ValueKind.BOOLEAN, ValueKind.INTEGER):
        return value
    if kind is ValueKind.FLOAT:
        return compact_float(value) if math.isfinite(value) else None
    if kind is ValueKind.IDENTIFIER:
        return {settings.get('oid_key', '$oid'): identifier_string(value)}
    if kind is ValueKind.DECIMAL:
        return decimal_string(value)
    if kind is ValueKind.DATETIME:
        return value.isoformat()
    if kind is ValueKind.NESTED:
        marker = id(value)
        if marker in active:
            raise SerializationError("Circular reference detected in nested value")
        active.add(marker)
        try:
            if isinstance(value, Mapping):
                return {_prepare_key(k): _prepare(v, active) for k, v in value.items()}
            return [_prepare(item, active) for item in value]
        finally:
            active.discard(marker)
    raise SerializationError(f"Unsupported value type in nested structure: {type(value).__name__}")


def _prepare_key(key: Any) -> Any:
    if isinstance(key, str):
        return sanitize_string(key)
    if isinstance(key, (int, float, bool)) or key is None:
        return key
    if isinstance(key, ObjectId):
        return identifier_string(key)
    raise SerializationError(f"Unsupported mapping key type: {type(key).__name__}")


def encode_structured(value: Any) -> str:
    """
    Encode a nested value (mapping/list tree) as JSON text.

    Example
    -------
    ::

        >>> encode_structured({'_id': ObjectId('507f1f77bcf86cd799439011'), 'tags': ['a\\x00b']})
        '{"_id":{"$oid":"507f1f77bcf86cd799439011"},"tags":["a b"]}'

    Raises:
        SerializationError: If the value contains a cycle or an unsupported leaf.
    """
    prepared = prepare(value)
    try:
        return json.dumps(prepared, ensure_ascii=False, separators=(',', ':'), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to encode nested value: {e}") from e
