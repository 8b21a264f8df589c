# docbend/__init__.py
"""
docbend - Document Benders

Turns semi-structured documents (MongoDB style records with ObjectId and
Decimal128 leaves) into rows for a strictly typed PostgreSQL table:

- TargetSchema describing the table, validated once
- Per-column type coercion with nested values encoded as JSON
- COPY text format lines, or parameter tuples for INSERT statements
- CREATE TABLE / INSERT / upsert / COPY statement generation
- YAML-based schema configuration

Basic usage::

    import docbend

    schema = docbend.load_schema('air_nomads', 'docbend.yml')

    cursor.execute(docbend.ddl.create_table_sql(schema))
    cursor.copy_expert(docbend.ddl.copy_sql(schema), docbend.CopyStream(schema, documents))

    # or one row at a time
    cursor.execute(docbend.ddl.insert_sql(schema), docbend.transform_row(schema, doc))
"""

__version__ = '0.3.0'

from .errors import DocbendError, ConfigurationError, SerializationError
from .schema import Column, ExtraProps, TargetSchema
from .coercion import transform_values, transform_row, key_values
from .encoder import encode_structured, sanitize_string
from .text_format import escape_text, to_text_line, write_text, CopyStream
from .config import load_schema, set_config_file
from .logging_utils import setup_logging, errors_logged
from . import ddl

__all__ = [
    'Column',
    'ExtraProps',
    'TargetSchema',
    'transform_values',
    'transform_row',
    'key_values',
    'encode_structured',
    'sanitize_string',
    'escape_text',
    'to_text_line',
    'write_text',
    'CopyStream',
    'load_schema',
    'set_config_file',
    'setup_logging',
    'errors_logged',
    'ddl',
    'DocbendError',
    'ConfigurationError',
    'SerializationError',
]
