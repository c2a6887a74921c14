"""
Exception hierarchy for OpenAPI Extract.
"""

from typing import Iterable, List, Tuple


class OpenAPIExtractError(Exception):
    """Base exception for OpenAPI Extract errors."""
    pass


class UnknownPathError(OpenAPIExtractError):
    """Raised when filter paths are not present in the document."""

    def __init__(self, paths: Iterable[str]):
        self.paths: List[str] = list(paths)
        super().__init__(
            "Path was not found in target specification file: " + ", ".join(self.paths)
        )


class UnknownOperationError(OpenAPIExtractError):
    """Raised when a filter keeps an operation that its path does not define."""

    def __init__(self, operations: Iterable[Tuple[str, str]]):
        self.operations: List[Tuple[str, str]] = list(operations)
        listed = ", ".join(f"{kind} {path}" for path, kind in self.operations)
        super().__init__(f"Operation was not found in target specification file: {listed}")


class InternalConsistencyError(OpenAPIExtractError):
    """Raised when an expected removal could not be applied to the document."""
    pass


class FilterSyntaxError(OpenAPIExtractError):
    """Raised for malformed path filter input."""
    pass


class SourceError(OpenAPIExtractError):
    """Raised when the source document cannot be read or downloaded."""
    pass


class DocumentParseError(OpenAPIExtractError):
    """Raised when the source is not a supported OpenAPI document."""
    pass


class WriteError(OpenAPIExtractError):
    """Raised when the destination document cannot be written."""
    pass
