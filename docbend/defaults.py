# docbend/defaults.py
"""Default settings - no imports to avoid circular dependencies."""

settings = {
    'extra_props_column': '_extra_props',  # catch-all column for unmapped document content
    'extra_props_type': 'jsonb',           # used when extraProps is configured as `true`
    'integer_types': ('smallint', 'integer', 'bigint', 'int', 'int2', 'int4', 'int8'),
    'null_string': '\\N',                  # how null is represented in COPY text output
    'oid_key': '$oid',
    'logging': {
        'directory': './logs',
        'level': 'INFO',
        'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        'timestamp_format': '%Y-%m-%d %H:%M:%S',
        'filename_format': '%Y%m%d_%H%M%S',  # Set to '' for single log file (no timestamp)
        'split_errors': True,
        'console': True,
    }
}
