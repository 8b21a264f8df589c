# docbend/coercion.py

"""
Document to row coercion.

``transform_values`` yields, for every column of a TargetSchema, the value found
at the column's source path coerced to the column's storage representation,
followed by the encoded catch-all document when ``extra_props`` is configured.
"""

import logging
import math
from typing import Any, Iterator, Mapping, Tuple

from .encoder import (ValueKind, classify, decimal_string, encode_structured,
                      identifier_string, sanitize_string)
from .errors import SerializationError
from .schema import Column, TargetSchema
from .utils import MISSING, get_path, omit

logger = logging.getLogger(__name__)


def coerce_value(column: Column, source: Any) -> Any:
    """
    Coerce one source value to the storage representation of ``column``.

    Args:
        column: Target column; its type decides integer truncation.
        source: Value found at the column's source path, or ``MISSING``.

    Returns:
        ``None``, ``int``, ``float``, ``str`` or the unchanged scalar.

    Raises:
        SerializationError: If a nested value cannot be encoded, or a non-finite
            number is mapped to an integer column.
    """
    if source is MISSING:
        return None
    kind = classify(source)
    if kind is ValueKind.NULL:
        return None
    if kind is ValueKind.IDENTIFIER:
        return identifier_string(source)
    if kind is ValueKind.DECIMAL:
        return decimal_string(source)
    if kind is ValueKind.NESTED:
        return encode_structured(source)
    if kind in (ValueKind.INTEGER, ValueKind.FLOAT):
        if column.is_integer:
            if kind is ValueKind.FLOAT and not math.isfinite(source):
                raise SerializationError(
                    f"Cannot store {source!r} in integer column '{column.name}'"
                )
            # truncate toward zero, fractional part is discarded
            return math.trunc(source)
        return source
    if kind is ValueKind.STRING:
        return sanitize_string(source)
    # BOOLEAN, DATETIME, OTHER
    return source


def transform_values(schema: TargetSchema, doc: Mapping) -> Iterator[Any]:
    """
    Lazily yield the coerced values of one document in schema order.

    Yields ``schema.width`` values: one per column, then the encoded catch-all
    document when ``schema.extra_props`` is set. The input document is never
    modified.

    Example
    -------
    ::

        schema = TargetSchema.from_config({
            'columns': [
                {'name': 'id', 'source': '_id', 'type': 'text'},
                {'name': 'age', 'source': 'profile.age', 'type': 'integer'},
            ],
            'primary_key': ['id'],
        })
        doc = {'_id': ObjectId('507f1f77bcf86cd799439011'), 'profile': {'age': 30.7}}
        list(transform_values(schema, doc))  # ['507f1f77bcf86cd799439011', 30]
    """
    for column in schema.columns:
        yield coerce_value(column, get_path(doc, column.source))

    extra_props = schema.extra_props
    if extra_props is not None:
        extra_doc = omit(doc, extra_props.omit) if extra_props.omit else doc
        yield encode_structured(extra_doc)


def transform_row(schema: TargetSchema, doc: Mapping) -> Tuple[Any, ...]:
    """
    Coerce a whole document into a tuple of bind parameters.

    The tuple lines up with ``docbend.ddl.placeholders(schema)``; either the full
    row is returned or the error raised for the document propagates.
    """
    return tuple(transform_values(schema, doc))


def key_values(schema: TargetSchema, doc: Mapping) -> Tuple[Any, ...]:
    """Coerced primary key values in key order, the parameters of ``docbend.ddl.delete_sql``."""
    return tuple(coerce_value(col, get_path(doc, col.source)) for col in schema.key_columns)
