# docbend/ddl.py

"""
SQL generation for a TargetSchema.

The fragment builders (``column_names``, ``placeholders``, ``table_body``) are
what a loader splices into its own statements. The statement builders wrap
them into complete PostgreSQL statements for a named table.
"""

import logging
from typing import List, Optional

from .defaults import settings
from .errors import ConfigurationError
from .schema import TargetSchema
from .utils import quote_identifier, validate_identifier

logger = logging.getLogger(__name__)

STATEMENT_KINDS = ('create', 'insert', 'upsert', 'delete', 'copy')


def _extra_props_identifier() -> str:
    return settings.get('extra_props_column', '_extra_props')


def column_names(schema: TargetSchema) -> List[str]:
    """
    Quoted column identifiers in schema order.

    The catch-all column is appended when ``extra_props`` is configured.

    Example:
        column_names(schema)  # ['"id"', '"age"', '_extra_props']
    """
    names = [quote_identifier(c.name, always=True) for c in schema.columns]
    if schema.extra_props is not None:
        names.append(_extra_props_identifier())
    return names


def placeholders(schema: TargetSchema) -> List[str]:
    """
    Positional parameter markers ``$1..$n`` aligned with ``column_names``.

    Example:
        placeholders(schema)  # ['$1', '$2', '$3']
    """
    return [f'${i}' for i in range(1, schema.width + 1)]


def table_body(schema: TargetSchema) -> str:
    """
    Column definitions and primary key clause for ``CREATE TABLE``.

    Example:
        table_body(schema)  # '"id" text,"age" integer,PRIMARY KEY ("id")'
    """
    clauses = [f'{quote_identifier(c.name, always=True)} {c.type}' for c in schema.columns]
    if schema.extra_props is not None:
        clauses.append(f'{_extra_props_identifier()} {schema.extra_props.type}')
    key_cols = ','.join(quote_identifier(k, always=True) for k in schema.primary_key)
    clauses.append(f'PRIMARY KEY ({key_cols})')
    return ','.join(clauses)


def _table_name(schema: TargetSchema, table: Optional[str]) -> str:
    name = table or schema.table
    if not name:
        raise ConfigurationError("No table name given and the schema does not define one")
    return quote_identifier(validate_identifier(name))


def create_table_sql(schema: TargetSchema, table: Optional[str] = None, if_not_exists: bool = True) -> str:
    """Generate ``CREATE TABLE`` for the schema."""
    exists = 'IF NOT EXISTS ' if if_not_exists else ''
    sql = f"CREATE TABLE {exists}{_table_name(schema, table)} ({table_body(schema)})"
    logger.debug(f"Generated create SQL:\n{sql}")
    return sql


def insert_sql(schema: TargetSchema, table: Optional[str] = None) -> str:
    """Generate a positional ``INSERT`` whose parameters line up with ``transform_row``."""
    cols = ','.join(column_names(schema))
    params = ','.join(placeholders(schema))
    sql = f"INSERT INTO {_table_name(schema, table)} ({cols}) VALUES ({params})"
    logger.debug(f"Generated insert SQL:\n{sql}")
    return sql


def upsert_sql(schema: TargetSchema, table: Optional[str] = None) -> str:
    """
    Generate ``INSERT ... ON CONFLICT`` keyed on the primary key.

    Every non-key column (and the catch-all column) is overwritten from
    ``EXCLUDED``. When all columns are keys the conflict is ignored.
    """
    key_names = set(schema.primary_key)
    conflict = ','.join(quote_identifier(k, always=True) for k in schema.primary_key)
    updates = [quote_identifier(c.name, always=True) for c in schema.columns if c.name not in key_names]
    if schema.extra_props is not None:
        updates.append(_extra_props_identifier())

    if updates:
        assignments = ','.join(f'{ident} = EXCLUDED.{ident}' for ident in updates)
        action = f"DO UPDATE SET {assignments}"
    else:
        action = "DO NOTHING"
    sql = f"{insert_sql(schema, table)} ON CONFLICT ({conflict}) {action}"
    logger.debug(f"Generated upsert SQL:\n{sql}")
    return sql


def delete_sql(schema: TargetSchema, table: Optional[str] = None) -> str:
    """
    Generate a ``DELETE`` by primary key.

    Parameters ``$1..$k`` follow the primary key order; ``key_values`` builds them.
    """
    conditions = ' AND '.join(
        f'{quote_identifier(k, always=True)} = ${i}' for i, k in enumerate(schema.primary_key, start=1)
    )
    sql = f"DELETE FROM {_table_name(schema, table)} WHERE {conditions}"
    logger.debug(f"Generated delete SQL:\n{sql}")
    return sql


def copy_sql(schema: TargetSchema, table: Optional[str] = None) -> str:
    """
    Generate ``COPY ... FROM STDIN`` for the text format written by ``docbend.text_format``.
    """
    cols = ','.join(column_names(schema))
    sql = f"COPY {_table_name(schema, table)} ({cols}) FROM STDIN"
    logger.debug(f"Generated copy SQL:\n{sql}")
    return sql


def get_sql(schema: TargetSchema, kind: str, table: Optional[str] = None) -> str:
    """
    Get a statement by kind.

    Args:
        schema: Target schema
        kind: One of 'create', 'insert', 'upsert', 'delete', 'copy'
        table: Table name, defaults to ``schema.table``

    Raises:
        ValueError: If kind is not valid
    """
    builders = {
        'create': create_table_sql,
        'insert': insert_sql,
        'upsert': upsert_sql,
        'delete': delete_sql,
        'copy': copy_sql,
    }
    if kind not in builders:
        raise ValueError(f"Invalid statement kind '{kind}'. Must be one of {STATEMENT_KINDS}")
    return builders[kind](schema, table)
