# docbend/cli.py

import argparse
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional, TextIO

from bson import json_util
from bson.errors import BSONError

from . import config
from .ddl import STATEMENT_KINDS, get_sql
from .errors import DocbendError, SerializationError
from .logging_utils import setup_logging
from .schema import TargetSchema
from .text_format import to_text_line

try:
    from importlib.metadata import version, PackageNotFoundError
except ImportError:
    from importlib_metadata import version, PackageNotFoundError

logger = logging.getLogger(__name__)

DEPENDENCIES = ('pymongo', 'PyYAML')


def checkup():
    """ Check which dependencies are installed."""
    print(f"{'Package':<20} {'Status':<8} {'Version'}")
    print("-" * 40)
    for dep in DEPENDENCIES:
        try:
            ver = version(dep)
            status = "✓"
        except PackageNotFoundError:
            ver = '-'
            status = "✗"
        print(f"{dep:<20} {status:<8} {ver}")
    return 0


@contextmanager
def _open_output(path: Optional[str]) -> Iterator[TextIO]:
    if path in (None, '-'):
        yield sys.stdout
    else:
        with open(path, 'w', encoding='utf-8', newline='') as fp:
            yield fp


@contextmanager
def _open_input(path: Optional[str]) -> Iterator[TextIO]:
    if path in (None, '-'):
        yield sys.stdin
    else:
        with open(path, 'r', encoding='utf-8') as fp:
            yield fp


def parse_document(line: str, line_num: int = 0) -> dict:
    """
    Parse one line of MongoDB Extended JSON.

    ``{"$oid": ...}`` and ``{"$numberDecimal": ...}`` come back as ObjectId and
    Decimal128.
    """
    try:
        doc = json_util.loads(line)
    except (ValueError, BSONError) as e:
        raise SerializationError(f"Invalid JSON on line {line_num}: {e}") from e
    if not isinstance(doc, dict):
        raise SerializationError(f"Line {line_num} is not a JSON object")
    return doc


def read_documents(fp: TextIO) -> Iterator[dict]:
    """Parse newline-delimited Extended JSON, skipping blank lines."""
    for line_num, line in enumerate(fp, start=1):
        if line.strip():
            yield parse_document(line, line_num)


def convert(schema: TargetSchema, input_path: Optional[str], output_path: Optional[str],
            skip_errors: bool = False) -> int:
    """
    Convert an NDJSON file into COPY text lines.

    Returns:
        Number of documents that failed (skipped). Without ``skip_errors`` the
        first failure is raised.
    """
    written = 0
    failed = 0
    with _open_input(input_path) as src, _open_output(output_path) as out:
        for line_num, raw in enumerate(src, start=1):
            if not raw.strip():
                continue
            try:
                line = to_text_line(schema, parse_document(raw, line_num))
            except DocbendError as e:
                if not skip_errors:
                    raise
                failed += 1
                logger.error(f"Skipping document on line {line_num}: {e}")
                continue
            out.write(line)
            written += 1
    logger.info(f"Converted {written:,} documents, {failed:,} skipped")
    return failed


def main(argv=None):
    parser = argparse.ArgumentParser(prog='docbend', description='Document to relational row utilities')
    parser.add_argument('--log-level', default=None, help='Logging level (DEBUG, INFO, WARNING, ERROR)')
    parser.add_argument('--log-dir', default=None, help='Write log files to this directory')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # checkup
    subparsers.add_parser('checkup', help='Check for installed dependencies')

    # ddl
    ddl_parser = subparsers.add_parser('ddl', help='Print CREATE TABLE for a configured schema')
    ddl_parser.add_argument('config_file', help='Config file path')
    ddl_parser.add_argument('schema', help='Schema name in the config file')
    ddl_parser.add_argument('--table', help='Override the target table name')

    # sql
    sql_parser = subparsers.add_parser('sql', help='Print a generated SQL statement')
    sql_parser.add_argument('config_file', help='Config file path')
    sql_parser.add_argument('schema', help='Schema name in the config file')
    sql_parser.add_argument('--kind', choices=STATEMENT_KINDS, default='insert',
                            help='Statement to generate (default: insert)')
    sql_parser.add_argument('--table', help='Override the target table name')

    # convert
    convert_parser = subparsers.add_parser('convert', help='Convert NDJSON documents to COPY text lines')
    convert_parser.add_argument('config_file', help='Config file path')
    convert_parser.add_argument('schema', help='Schema name in the config file')
    convert_parser.add_argument('input', nargs='?', default=None,
                                help='NDJSON (MongoDB Extended JSON) input file, stdin if omitted')
    convert_parser.add_argument('--output', '-o', default=None, help='Output file, stdout if omitted')
    convert_parser.add_argument('--skip-errors', action='store_true',
                                help='Log and skip documents that fail to convert')

    args = parser.parse_args(argv)

    if args.command == 'checkup':
        return checkup()

    try:
        manager = config.ConfigManager(args.config_file)
        if args.log_dir:
            setup_logging('docbend', log_dir=args.log_dir, level=args.log_level)
        else:
            logging.basicConfig(level=(args.log_level or manager.get_setting('logging.level', 'WARNING')).upper(),
                                format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                                stream=sys.stderr)
        schema = manager.get_schema(args.schema)

        if args.command == 'ddl':
            print(get_sql(schema, 'create', args.table))
        elif args.command == 'sql':
            print(get_sql(schema, args.kind, args.table))
        elif args.command == 'convert':
            failed = convert(schema, args.input, args.output, skip_errors=args.skip_errors)
            return 1 if failed else 0
    except (DocbendError, FileNotFoundError) as e:
        logger.error(str(e))
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
