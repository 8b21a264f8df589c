# docbend/schema.py

"""
Target table description.

A TargetSchema is built once from caller-supplied configuration, validated,
and then shared read-only by every document transformation and SQL builder.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .defaults import settings
from .errors import ConfigurationError
from .utils import validate_identifier

logger = logging.getLogger(__name__)

# always truncated, whatever settings['integer_types'] adds
BASE_INTEGER_TYPES = ('smallint', 'integer', 'bigint')


@dataclass(frozen=True)
class Column:
    """
    One target column: its name, the dotted source path and the storage type.

    ``is_integer`` (numbers are truncated toward zero) is fixed when the column
    is created, so later changes to ``settings['integer_types']`` do not affect
    an existing schema.
    """
    name: str
    source: str
    type: str
    is_integer: bool = field(default=False, init=False, repr=False, compare=False)

    def __post_init__(self):
        type_name = str(self.type).strip().lower()
        integer_types = set(BASE_INTEGER_TYPES) | set(settings.get('integer_types', ()))
        object.__setattr__(self, 'is_integer', type_name in integer_types)


@dataclass(frozen=True)
class ExtraProps:
    """Catch-all column receiving the (optionally filtered) document as JSON text."""
    type: str
    omit: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TargetSchema:
    """
    Immutable description of a target table.

    Attributes
    ----------
    columns : tuple of Column
        Explicit columns. Their order fixes column names, placeholders and row layout.
    primary_key : tuple of str
        Names of the key columns, in key order. Non-empty, each one a defined column.
    extra_props : ExtraProps, optional
        When set, one more column is appended after the explicit columns.
    table : str, optional
        Target table name, used by the full statement builders in ``docbend.ddl``.

    Example
    -------
    ::

        from docbend.schema import TargetSchema

        schema = TargetSchema.from_config({
            'target': {
                'table': 'air_nomads',
                'columns': [
                    {'name': 'id', 'source': '_id', 'type': 'text'},
                    {'name': 'age', 'source': 'profile.age', 'type': 'integer'},
                ],
                'extraProps': {'type': 'jsonb', 'omit': ['_id', 'profile.age']},
            },
            'keys': {'primaryKey': ['id']},
        })
    """
    columns: Tuple[Column, ...]
    primary_key: Tuple[str, ...]
    extra_props: Optional[ExtraProps] = None
    table: Optional[str] = None
    _by_name: Dict[str, Column] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'columns', tuple(self.columns))
        object.__setattr__(self, 'primary_key', tuple(self.primary_key))
        self._validate()
        object.__setattr__(self, '_by_name', {c.name: c for c in self.columns})

    def _validate(self) -> None:
        if not self.columns:
            raise ConfigurationError("Target schema requires at least one column")
        seen = set()
        for col in self.columns:
            if not isinstance(col, Column):
                raise ConfigurationError(f"Expected Column, got {type(col).__name__}")
            validate_identifier(col.name)
            if '.' in col.name:
                raise ConfigurationError(f"Invalid column name (contains '.'): {col.name}")
            if not col.source:
                raise ConfigurationError(f"Column '{col.name}' has no source path")
            if not col.type or not str(col.type).strip():
                raise ConfigurationError(f"Column '{col.name}' has no storage type")
            if col.name in seen:
                raise ConfigurationError(f"Duplicate column name: {col.name}")
            seen.add(col.name)

        if not self.primary_key:
            raise ConfigurationError("Primary key must reference at least one column")
        missing = [k for k in self.primary_key if k not in seen]
        if missing:
            raise ConfigurationError(
                f"Primary key references undefined column(s): {', '.join(map(str, missing))}"
            )
        if len(set(self.primary_key)) != len(self.primary_key):
            raise ConfigurationError(f"Primary key lists a column twice: {', '.join(self.primary_key)}")

        if self.extra_props is not None:
            if not self.extra_props.type or not str(self.extra_props.type).strip():
                raise ConfigurationError("extraProps requires a storage type")
            extra_name = settings.get('extra_props_column', '_extra_props')
            if extra_name in seen:
                raise ConfigurationError(f"Column name '{extra_name}' is reserved for extraProps")

        if self.table is not None:
            validate_identifier(self.table)

    @property
    def width(self) -> int:
        """Number of values in a coerced row."""
        return len(self.columns) + (1 if self.extra_props is not None else 0)

    @property
    def key_columns(self) -> Tuple[Column, ...]:
        return tuple(self._by_name[k] for k in self.primary_key)

    def column(self, name: str) -> Column:
        """Get a column by name."""
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Column '{name}' not found") from None

    def __repr__(self) -> str:
        extra = ', extra_props' if self.extra_props is not None else ''
        return f"TargetSchema({self.table!r}, {len(self.columns)} columns{extra})"

    @classmethod
    def from_config(cls, config: Mapping[str, Any], table: Optional[str] = None) -> 'TargetSchema':
        """
        Build a schema from configuration.

        Accepts the nested ``target`` / ``keys`` layout::

            target:
              table: users
              columns: [{name: id, source: _id, type: text}]
              extraProps: {type: jsonb, omit: [_id]}
            keys:
              primaryKey: [id]

        or a flat mapping with ``columns``, ``extra_props`` and ``primary_key``.
        Primary key entries may be column names or ``{name: ...}`` mappings.
        ``extraProps: true`` means a catch-all of ``settings['extra_props_type']``.

        Raises:
            ConfigurationError: If the configuration is malformed or the primary
                key is empty or references an undefined column.
        """
        if not isinstance(config, Mapping):
            raise ConfigurationError(f"Schema configuration must be a mapping, got {type(config).__name__}")

        target = config.get('target', config)
        if not isinstance(target, Mapping):
            raise ConfigurationError("'target' must be a mapping")
        keys = config.get('keys', {}) or {}
        if not isinstance(keys, Mapping):
            raise ConfigurationError("'keys' must be a mapping")

        columns = tuple(_column_from_config(c, i) for i, c in enumerate(target.get('columns') or ()))

        raw_pk = keys.get('primaryKey', keys.get('primary_key', config.get('primary_key')))
        if isinstance(raw_pk, (str, Mapping)):
            raw_pk = [raw_pk]
        primary_key = tuple(_key_name(k) for k in (raw_pk or ()))

        extra = target.get('extraProps', target.get('extra_props'))
        extra_props = _extra_props_from_config(extra)

        table = table or target.get('table') or config.get('table')
        schema = cls(columns=columns, primary_key=primary_key, extra_props=extra_props, table=table)
        logger.debug(f"Built {schema!r}")
        return schema


def _column_from_config(col_def: Any, idx: int) -> Column:
    if isinstance(col_def, Column):
        return col_def
    if not isinstance(col_def, Mapping):
        raise ConfigurationError(f"Column #{idx + 1} must be a mapping, got {type(col_def).__name__}")
    for key in ('name', 'source', 'type'):
        if not col_def.get(key):
            raise ConfigurationError(f"Column #{idx + 1} is missing '{key}': {dict(col_def)}")
    return Column(name=str(col_def['name']), source=str(col_def['source']), type=str(col_def['type']))


def _key_name(key: Any) -> str:
    if isinstance(key, Mapping):
        if not key.get('name'):
            raise ConfigurationError(f"Primary key entry is missing 'name': {dict(key)}")
        return str(key['name'])
    if isinstance(key, Column):
        return key.name
    return str(key)


def _extra_props_from_config(extra: Any) -> Optional[ExtraProps]:
    if extra is None or extra is False:
        return None
    if extra is True:
        return ExtraProps(type=settings.get('extra_props_type', 'jsonb'))
    if isinstance(extra, ExtraProps):
        return extra
    if not isinstance(extra, Mapping):
        raise ConfigurationError(f"extraProps must be a mapping or boolean, got {type(extra).__name__}")
    omit_paths = extra.get('omit') or ()
    if isinstance(omit_paths, str):
        omit_paths = (omit_paths,)
    return ExtraProps(
        type=str(extra.get('type') or settings.get('extra_props_type', 'jsonb')),
        omit=tuple(str(p) for p in omit_paths),
    )
