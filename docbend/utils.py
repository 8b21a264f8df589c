# docbend/utils.py
"""
Utility functions for docbend.
"""

import datetime as dt
import math
import re
from typing import Any, Iterable, Mapping, Sequence, Union

from .defaults import settings
from .errors import ConfigurationError


class _Missing:
    """Sentinel for a path that does not resolve inside a document."""

    __slots__ = ()

    def __repr__(self):
        return 'MISSING'

    def __bool__(self):
        return False


MISSING = _Missing()

PathLike = Union[str, Sequence[str]]


def split_path(path: PathLike) -> tuple:
    """Split a dotted source path (``profile.address.city``) into its parts."""
    if isinstance(path, str):
        if not path:
            return ()
        return tuple(path.split('.'))
    return tuple(path)


def get_path(doc: Any, path: PathLike, default: Any = MISSING) -> Any:
    """
    Look up a dotted path inside a nested document.

    Mapping levels are indexed by key, list/tuple levels by a numeric part
    (``tags.0``). Any level that does not resolve returns ``default``.

    Example
    -------
    ::

        >>> get_path({'profile': {'age': 30}}, 'profile.age')
        30
        >>> get_path({'tags': ['air', 'water']}, 'tags.1')
        'water'
        >>> get_path({'profile': {}}, 'profile.age') is MISSING
        True
    """
    node = doc
    for part in split_path(path):
        if isinstance(node, Mapping):
            if part not in node:
                return default
            node = node[part]
        elif isinstance(node, (list, tuple)) and part.isascii() and part.isdigit():
            index = int(part)
            if index >= len(node):
                return default
            node = node[index]
        else:
            return default
    return node


def omit(doc: Mapping, paths: Iterable[PathLike]) -> dict:
    """
    Return a copy of ``doc`` with every dotted path in ``paths`` removed.

    Only the mappings along a removed path are copied; the input document is
    never modified and key order is preserved. Paths that do not exist are
    ignored.
    """
    result = dict(doc)
    for path in paths:
        parts = split_path(path)
        if parts:
            _omit_parts(result, parts)
    return result


def _omit_parts(node: dict, parts: tuple) -> None:
    head, rest = parts[0], parts[1:]
    if head not in node:
        return
    if not rest:
        del node[head]
        return
    child = node[head]
    if isinstance(child, Mapping):
        child = dict(child)
        node[head] = child
        _omit_parts(child, rest)


def validate_identifier(identifier: str, max_length: int = 63) -> str:
    """
    Validate that an identifier is safe for use in generated SQL (even if it needs quoting).
    Returns the identifier if valid, raises ConfigurationError if invalid.
    """
    if not isinstance(identifier, str) or not identifier:
        raise ConfigurationError(f"Invalid identifier: cannot be empty: {identifier!r}")
    if '.' in identifier:
        # Split and recursively validate each part
        return '.'.join(validate_identifier(part, max_length) for part in identifier.split('.'))
    if len(identifier) > max_length:
        raise ConfigurationError(f"Invalid identifier: exceeds max length of {max_length}: {identifier}")

    # Characters/sequences that could enable injection or break SQL parsing
    dangerous_patterns = ['\x00', '\n', '\r', '"', ';', '\x1a', '--', '/*', '*/']
    for pattern in dangerous_patterns:
        if pattern in identifier:
            raise ConfigurationError(f"Invalid identifier: contains dangerous pattern {pattern!r}: {identifier!r}")

    if identifier.startswith(' ') or identifier.endswith(' '):
        raise ConfigurationError(f"Invalid identifier: has leading/trailing spaces: {identifier!r}")

    return identifier


def identifier_needs_quoting(identifier: str) -> bool:
    """Check if identifier needs quoting."""
    return not re.match(r'^[a-z_][a-z0-9_]*$', identifier)


def quote_identifier(identifier: str, always: bool = False) -> str:
    """
    Quote identifier, handling qualified names by splitting on dots.

    Column identifiers in generated DDL are always quoted (``always=True``);
    table names are only quoted when needed.
    """
    if '.' in identifier:
        return '.'.join(quote_identifier(part, always) for part in identifier.split('.'))
    if always or identifier_needs_quoting(identifier):
        return f'"{identifier}"'
    return identifier


def compact_float(value: float) -> Any:
    """
    Return whole-valued floats below 1e21 as ``int``.

    ``30.0`` then renders as ``30`` in text and JSON output; larger magnitudes
    keep the exponent form (``1e+21``).
    """
    if value.is_integer() and abs(value) < 1e21:
        return int(value)
    return value


def to_string(obj: Any) -> str:
    """
    Convert a coerced value to its canonical text representation.

    Args:
        obj: Value to convert

    Returns:
        String representation. ``None`` becomes ``settings['null_string']``,
        booleans become ``true``/``false``, dates and datetimes ISO-8601,
        whole-valued floats drop the ``.0`` (see ``compact_float``).
    """
    if obj is None:
        return settings.get('null_string', '\\N')
    elif isinstance(obj, bool):
        return 'true' if obj else 'false'
    elif isinstance(obj, (dt.datetime, dt.date, dt.time)):
        return obj.isoformat()
    elif isinstance(obj, str):
        return obj
    elif isinstance(obj, float) and math.isfinite(obj):
        return str(compact_float(obj))
    return str(obj)
