# docbend/text_format.py

"""
PostgreSQL ``COPY`` text format.

One document becomes one line: fields separated by a tab, terminated by a
newline, ``\\N`` for null, and backslash, newline, carriage return and tab
inside string fields written as ``\\\\``, ``\\n``, ``\\r`` and ``\\t``.
"""

import logging
import re
from typing import Any, Iterable, List, Mapping, Optional, TextIO

from .coercion import transform_values
from .defaults import settings
from .schema import TargetSchema
from .utils import to_string

logger = logging.getLogger(__name__)

FIELD_DELIMITER = '\t'
RECORD_TERMINATOR = '\n'

_ESCAPES = str.maketrans({
    '\\': '\\\\',
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
})
_UNESCAPES = {'n': '\n', 'r': '\r', 't': '\t', '\\': '\\'}
_escape_pattern = re.compile(r'\\(.)', re.DOTALL)


def escape_text(value: str) -> str:
    """
    Escape backslash, newline, carriage return and tab for the COPY text format.

    Not idempotent: apply exactly once to each final string value.

    Example:
        escape_text('a b\\tc')  # 'a b\\\\tc'
    """
    return value.translate(_ESCAPES)


def unescape_text(value: str) -> str:
    """Reverse ``escape_text``. Any other backslash-escaped character stands for itself."""
    return _escape_pattern.sub(lambda m: _UNESCAPES.get(m.group(1), m.group(1)), value)


def format_value(value: Any) -> str:
    """
    Render one coerced value as a COPY text field.

    Strings are escaped, ``None`` becomes ``\\N``, every other value its
    canonical text form (escaped too, as ``str()`` of an arbitrary object may
    contain control characters).
    """
    if value is None:
        return settings.get('null_string', '\\N')
    if isinstance(value, str):
        return escape_text(value)
    if isinstance(value, (bool, int, float)):
        return to_string(value)
    return escape_text(to_string(value))


def to_text_line(schema: TargetSchema, doc: Mapping) -> str:
    """
    Encode one document as a newline-terminated COPY text line.

    The whole row is coerced before the line is assembled; an error for the
    document propagates without any partial output.

    Example:
        to_text_line(schema, {'_id': ObjectId('507f1f77bcf86cd799439011'), 'profile': {'age': 30.7}})
        # '507f1f77bcf86cd799439011\\t30\\n'
    """
    parts = [format_value(value) for value in transform_values(schema, doc)]
    return FIELD_DELIMITER.join(parts) + RECORD_TERMINATOR


def parse_text_line(line: str) -> List[Optional[str]]:
    """
    Split a COPY text line back into its fields.

    Fields come back as unescaped strings, ``\\N`` as ``None``.
    """
    if line.endswith(RECORD_TERMINATOR):
        line = line[:-len(RECORD_TERMINATOR)]
    null_string = settings.get('null_string', '\\N')
    return [None if field == null_string else unescape_text(field)
            for field in line.split(FIELD_DELIMITER)]


def to_text_lines(schema: TargetSchema, docs: Iterable[Mapping]) -> Iterable[str]:
    """Lazily encode a stream of documents, one line per document, in source order."""
    for doc in docs:
        yield to_text_line(schema, doc)


def write_text(schema: TargetSchema, docs: Iterable[Mapping], fp: TextIO) -> int:
    """
    Write COPY text lines for ``docs`` to an open text file.

    Returns:
        Number of lines written
    """
    count = 0
    for line in to_text_lines(schema, docs):
        fp.write(line)
        count += 1
    logger.info(f"Wrote {count:,} rows")
    return count


class CopyStream:
    """
    File-like reader over encoded documents, for ``cursor.copy_expert``.

    Documents are pulled and encoded only as the driver reads, so nothing but
    the current chunk is held in memory.

    Example
    -------
    ::

        from docbend.ddl import copy_sql
        from docbend.text_format import CopyStream

        stream = CopyStream(schema, collection.find())
        cursor.copy_expert(copy_sql(schema), stream)
        print(stream.rows_written)
    """

    def __init__(self, schema: TargetSchema, docs: Iterable[Mapping]):
        self._lines = to_text_lines(schema, docs)
        self._buffer = ''
        self.rows_written = 0
        self.closed = False

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> str:
        if self.closed:
            return ''
        while size is None or size < 0 or len(self._buffer) < size:
            line = next(self._lines, None)
            if line is None:
                break
            self._buffer += line
            self.rows_written += 1
        if size is None or size < 0:
            data, self._buffer = self._buffer, ''
        else:
            data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def readline(self, size: int = -1) -> str:
        if self.closed:
            return ''
        while RECORD_TERMINATOR not in self._buffer:
            line = next(self._lines, None)
            if line is None:
                break
            self._buffer += line
            self.rows_written += 1
        end = self._buffer.find(RECORD_TERMINATOR) + 1 or len(self._buffer)
        if size is not None and 0 <= size < end:
            end = size
        data, self._buffer = self._buffer[:end], self._buffer[end:]
        return data

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return None
