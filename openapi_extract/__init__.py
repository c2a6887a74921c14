"""
OpenAPI Extract - Reduce an OpenAPI specification to selected paths and operations.

This package provides both CLI and SDK interfaces for keeping a chosen set of
operations together with exactly the schema definitions they reference.
"""

from .core import (
    OpenAPIExtractor,
    OperationSelector,
    SchemaShaker,
    modify_document,
)
from .errors import (
    DocumentParseError,
    FilterSyntaxError,
    InternalConsistencyError,
    OpenAPIExtractError,
    SourceError,
    UnknownOperationError,
    UnknownPathError,
    WriteError,
)
from .filters import load_filter_file, parse_path_filters
from .reader import parse_document, read_document
from .writer import serialize_document, write_document

__version__ = "1.0.0"
__author__ = "OpenAPI Extract Contributors"
__email__ = "support@example.com"

__all__ = [
    'OpenAPIExtractor',
    'OperationSelector',
    'SchemaShaker',
    'modify_document',
    'OpenAPIExtractError',
    'UnknownPathError',
    'UnknownOperationError',
    'InternalConsistencyError',
    'FilterSyntaxError',
    'SourceError',
    'DocumentParseError',
    'WriteError',
    'parse_path_filters',
    'load_filter_file',
    'parse_document',
    'read_document',
    'serialize_document',
    'write_document',
    '__version__',
]
