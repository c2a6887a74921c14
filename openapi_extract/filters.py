"""
Path filter parsing.

A path filter maps a document path to the operation kinds to keep, or to
``None`` to keep every operation on that path.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import DocumentParseError, FilterSyntaxError, SourceError
from .reader import parse_text

logger = logging.getLogger(__name__)

PathFilter = Dict[str, Optional[List[str]]]

FILTER_FORMAT = "path[=operation1[,operation2,...]]"


def _operation_list(names: Iterable[Any], context: str) -> List[str]:
    operations: List[str] = []
    for name in names:
        kind = str(name).strip().lower()
        if not kind:
            raise FilterSyntaxError(f"Empty operation name in '{context}'. Expected: {FILTER_FORMAT}")
        if kind not in operations:
            operations.append(kind)
    return operations


def parse_path_filter(spec: str) -> Tuple[str, Optional[List[str]]]:
    """
    Parse a single ``path[=op1[,op2,...]]`` item.

    Args:
        spec: Filter item as given on the command line

    Returns:
        Tuple of the path and its operation kinds (None for all operations)

    Raises:
        FilterSyntaxError: If the item is malformed
    """
    parts = spec.split('=')
    if len(parts) > 2:
        raise FilterSyntaxError(f"Invalid path filter specification: '{spec}'. Expected: {FILTER_FORMAT}")
    path = parts[0].strip()
    if not path:
        raise FilterSyntaxError(f"Missing path in filter specification: '{spec}'. Expected: {FILTER_FORMAT}")
    if len(parts) == 1:
        return path, None
    return path, _operation_list(parts[1].split(','), spec)


def parse_path_filters(specs: Iterable[str]) -> PathFilter:
    """
    Parse command line filter items into a path filter.

    Raises:
        FilterSyntaxError: If an item is malformed or a path is repeated
    """
    path_filter: PathFilter = {}
    for spec in specs:
        path, operations = parse_path_filter(spec)
        if path in path_filter:
            raise FilterSyntaxError(f"Duplicate path filter specification: '{path}' in '{spec}'.")
        path_filter[path] = operations
    return path_filter


def normalize_path_filter(mapping: Mapping[str, Any]) -> PathFilter:
    """
    Normalize a filter mapping loaded from a file.

    Values may be null (all operations), a list of operation names, or a
    comma separated string.
    """
    path_filter: PathFilter = {}
    for path, value in mapping.items():
        path = str(path)
        if value is None:
            path_filter[path] = None
        elif isinstance(value, str):
            path_filter[path] = _operation_list(value.split(','), path)
        elif isinstance(value, (list, tuple)):
            path_filter[path] = _operation_list(value, path)
        else:
            raise FilterSyntaxError(
                f"Invalid operations for path '{path}': expected null, a list or a comma separated string"
            )
    return path_filter


def load_filter_file(filter_file: Union[str, Path]) -> PathFilter:
    """
    Load a path filter from a YAML or JSON mapping file.

    Raises:
        SourceError: If the file cannot be read
        FilterSyntaxError: If the content is not a valid filter mapping
    """
    path = Path(filter_file)
    try:
        text = path.read_text(encoding='utf-8')
    except OSError as e:
        raise SourceError(f"Error reading filter file '{path}': {e}") from e
    try:
        data = parse_text(text, path.suffix.lower() == '.json')
    except DocumentParseError as e:
        raise FilterSyntaxError(f"Filter file '{path}' must contain a mapping of paths: {e}") from e
    logger.debug(f"Loaded {len(data)} path filters from {path}")
    return normalize_path_filter(data)


def merge_path_filters(*filters: PathFilter) -> PathFilter:
    """
    Combine several filters, rejecting paths that appear more than once.

    Raises:
        FilterSyntaxError: If a path is repeated across filters
    """
    merged: PathFilter = {}
    for path_filter in filters:
        for path, operations in path_filter.items():
            if path in merged:
                raise FilterSyntaxError(f"Duplicate path filter specification: '{path}'.")
            merged[path] = operations
    return merged
