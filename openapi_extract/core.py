"""
Core logic for OpenAPI Extract.
This module provides the pruning engine: operation selection and schema tree shaking.
"""

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

from .errors import (
    InternalConsistencyError,
    OpenAPIExtractError,
    UnknownOperationError,
    UnknownPathError,
)
from .filters import PathFilter
from .models import Document, Schema, SchemaCarrier
from .reader import DEFAULT_TIMEOUT, read_document
from .writer import OUTPUT_FORMATS, write_document

# Configure logger
logger = logging.getLogger(__name__)


class OperationSelector:
    """Removes every path and operation that the filter does not keep."""

    def validate(self, document: Document, path_filter: PathFilter) -> None:
        """
        Check the whole filter against the document before anything is removed.

        Raises:
            UnknownPathError: If filter paths are missing from the document
            UnknownOperationError: If kept operations are missing from their path
        """
        missing_paths = [path for path in path_filter if path not in document.paths]
        if missing_paths:
            raise UnknownPathError(missing_paths)

        missing_operations: List[Tuple[str, str]] = []
        for path, kinds in path_filter.items():
            if kinds is None:
                continue
            operations = document.paths[path].operations
            missing_operations.extend((path, kind) for kind in kinds if kind not in operations)
        if missing_operations:
            raise UnknownOperationError(missing_operations)

    def select(self, document: Document, path_filter: PathFilter) -> None:
        """
        Keep only the filtered paths and operations, then prune unused tags.

        Args:
            document: Document to modify in place
            path_filter: Path to operation kinds (None keeps all operations)
        """
        self.validate(document, path_filter)

        removed_paths = 0
        removed_operations = 0
        for path in list(document.paths):
            if path not in path_filter:
                if document.paths.pop(path, None) is None:
                    raise InternalConsistencyError(f"Can't remove path '{path}'")
                removed_paths += 1
                continue

            kinds = path_filter[path]
            if kinds is None:
                continue
            operations = document.paths[path].operations
            for kind in [k for k in operations if k not in kinds]:
                if operations.pop(kind, None) is None:
                    raise InternalConsistencyError(f"Can't remove operation '{kind}' for path '{path}'")
                logger.debug(f"Removed operation {kind} {path}")
                removed_operations += 1

        removed_tags = self.prune_tags(document)
        logger.info(
            f"Removed {removed_paths} paths, {removed_operations} operations "
            f"and {removed_tags} tags"
        )

    def prune_tags(self, document: Document) -> int:
        """
        Drop document-level tags that no remaining operation uses.

        Returns:
            Number of removed tags
        """
        used: Set[str] = set()
        for _, _, _, operation in document.iter_operations():
            used.update(operation.tags)

        kept = [tag for tag in document.tags if tag.name in used]
        removed = len(document.tags) - len(kept)
        document.tags[:] = kept
        return removed


class SchemaShaker:
    """Removes every named schema that the remaining operations cannot reach."""

    def iter_seed_schemas(self, document: Document) -> Iterator[Schema]:
        """Yield the schemas used directly by the remaining operations."""
        for _, _, path_item, operation in document.iter_operations():
            for parameter in path_item.parameters + operation.parameters:
                yield from parameter.iter_schemas()
            if operation.request_body is not None:
                yield from operation.request_body.iter_schemas()
            for response in operation.responses.values():
                yield from response.iter_schemas()

    def collect_reachable(self, document: Document) -> Set[Schema]:
        """
        Compute the named schemas reachable from the remaining operations.

        Returns:
            Set of named schema nodes, compared by identity
        """
        visited: Set[Schema] = set()
        for seed in self.iter_seed_schemas(document):
            self.visit(seed, visited)
        return visited

    def visit(self, schema: Optional[Schema], visited: Set[Schema]) -> None:
        """
        Register ``schema`` and everything it reaches into ``visited``.

        A named schema is descended into through its properties only once.
        An array only leads further when its item is itself a named schema;
        any other schema leads to its composition members, negated schema and
        property schemas.
        """
        stack = [schema]
        while stack:
            current = stack.pop()
            if current is None:
                continue
            current = current.dereference()
            if current.is_reference:
                if current not in visited:
                    visited.add(current)
                    stack.extend(current.properties.values())
            elif current.items is not None and current.items.dereference().is_reference:
                stack.append(current.items)
            else:
                stack.extend(current.subschemas())

    def prune_components(self, document: Document) -> int:
        """
        Drop shared parameters, request bodies and responses no remaining operation uses.

        Returns:
            Number of removed entries
        """
        used: Set[SchemaCarrier] = set()
        for _, _, path_item, operation in document.iter_operations():
            used.update(path_item.parameters)
            used.update(operation.parameters)
            if operation.request_body is not None:
                used.add(operation.request_body)
            used.update(operation.responses.values())

        removed = 0
        for kind, table in document.components.items():
            unused = [name for name, carrier in table.items() if carrier not in used]
            for name in unused:
                if table.pop(name, None) is None:
                    raise InternalConsistencyError(f"Can't remove {kind} entry '{name}'")
                logger.debug(f"Removed {kind} entry {name}")
            removed += len(unused)
        return removed

    def shake(self, document: Document) -> None:
        """
        Remove unreachable named schemas from the definitions table.

        Shared component entries that no remaining operation uses are removed
        first, so none of them is left pointing at a removed schema.

        Args:
            document: Document to modify in place
        """
        removed_components = self.prune_components(document)

        reachable = self.collect_reachable(document)
        missing = sorted(schema.name for schema in reachable if not schema.resolved)
        if missing:
            logger.warning(f"Remaining operations reference missing schemas: {', '.join(missing)}")

        unused = [name for name, schema in document.schemas.items() if schema not in reachable]
        for name in unused:
            if document.schemas.pop(name, None) is None:
                raise InternalConsistencyError(f"Can't remove schema '{name}'")
            logger.debug(f"Removed schema {name}")
        logger.info(
            f"Removed {len(unused)} schemas and {removed_components} shared components, "
            f"kept {len(document.schemas)} schemas"
        )


def modify_document(document: Document, path_filter: PathFilter) -> None:
    """
    Filter document operations and their schemas.

    Args:
        document: Document to modify in place
        path_filter: Path to operation kinds (None keeps all operations)

    Raises:
        UnknownPathError: If filter paths are missing from the document
        UnknownOperationError: If kept operations are missing from their path
    """
    OperationSelector().select(document, path_filter)
    SchemaShaker().shake(document)


class OpenAPIExtractor:
    """
    Main class for extracting a subset of an OpenAPI specification.

    This class loads a document, keeps only the selected paths and operations
    together with the schemas they need, and writes the result.
    """

    def __init__(
        self,
        source: Union[str, Path],
        dest_file: Union[str, Path],
        dest_format: str = "yaml",
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the OpenAPIExtractor.

        Args:
            source: Path or http(s) URL of the OpenAPI specification
            dest_file: Destination file for the extracted specification
            dest_format: Output format ('yaml' or 'json')
            timeout: Network timeout in seconds for URL sources

        Raises:
            OpenAPIExtractError: If the output format is invalid
        """
        self.source = str(source)
        self.dest_file = Path(dest_file)
        self.dest_format = dest_format.lower()
        self.timeout = timeout

        if self.dest_format not in OUTPUT_FORMATS:
            raise OpenAPIExtractError(f"Invalid output format: {self.dest_format}")

    def load_document(self) -> Document:
        """
        Load and parse the source specification.

        Returns:
            Parsed document graph
        """
        document = read_document(self.source, self.timeout)
        if document.diagnostics:
            logger.warning(
                f"Errors in OpenAPI document '{self.source}': {', '.join(document.diagnostics)}"
            )
            logger.warning("This is a warning message only. Processing is being continued.")
        logger.info(f"Loaded OpenAPI spec from {self.source}")
        return document

    def modify(self, document: Document, path_filter: PathFilter) -> Document:
        """Run operation selection and schema shaking on ``document``."""
        modify_document(document, path_filter)
        return document

    def write_document(self, document: Document) -> Path:
        """
        Write the document to the destination file.

        Returns:
            Path to the written file
        """
        return write_document(document, self.dest_file, self.dest_format)

    def extract(self, path_filter: PathFilter) -> Path:
        """
        Main extract method.

        Args:
            path_filter: Path to operation kinds (None keeps all operations)

        Returns:
            Path to the written file
        """
        document = self.load_document()
        self.modify(document, path_filter)
        filepath = self.write_document(document)
        logger.info("Process is completed.")
        return filepath

    def summary(self, document: Document) -> Dict[str, int]:
        """Count the paths, operations, tags and schemas of ``document``."""
        return {
            'paths': len(document.paths),
            'operations': sum(1 for _ in document.iter_operations()),
            'tags': len(document.tags),
            'schemas': len(document.schemas),
        }
