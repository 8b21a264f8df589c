# docbend/errors.py
"""Exception hierarchy for docbend.

Configuration problems surface once, when a schema is built or a config file
is loaded. Serialization problems surface per document.
"""


class DocbendError(Exception):
    """Base exception for all docbend failures."""


class ConfigurationError(DocbendError, ValueError):
    """Raised for an invalid target schema or configuration file."""


class SerializationError(DocbendError, ValueError):
    """Raised when a document value cannot be coerced or encoded."""
