"""
In-memory document graph for OpenAPI Extract.

The reader builds these objects from the raw mapping and resolves every
``$ref`` to a named schema into the single :class:`Schema` instance stored in
the definitions table. Schemas compare and hash by identity, so a schema used
in two places is one graph node.

Each object keeps the ``raw`` mapping it was parsed from; the writer walks the
raw keys in their original order and substitutes the parsed parts, which keeps
everything the pruning engine does not model intact.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

HTTP_METHODS = ('get', 'put', 'post', 'delete', 'options', 'head', 'patch', 'trace')

COMPOSITION_KEYWORDS = (
    ('allOf', 'all_of'),
    ('oneOf', 'one_of'),
    ('anyOf', 'any_of'),
)


@dataclass(frozen=True, eq=False)
class Dialect:
    """Where a document dialect keeps its definitions and shared component tables."""

    version: str
    schemas_location: Tuple[str, ...]
    component_locations: Dict[str, Tuple[str, ...]]

    @property
    def schema_ref_prefix(self) -> str:
        return '#/' + '/'.join(self.schemas_location) + '/'

    def component_ref_prefix(self, kind: str) -> str:
        return '#/' + '/'.join(self.component_locations[kind]) + '/'


SWAGGER_2 = Dialect(
    version='2.0',
    schemas_location=('definitions',),
    component_locations={
        'parameters': ('parameters',),
        'responses': ('responses',),
    },
)

OPENAPI_3 = Dialect(
    version='3',
    schemas_location=('components', 'schemas'),
    component_locations={
        'parameters': ('components', 'parameters'),
        'requestBodies': ('components', 'requestBodies'),
        'responses': ('components', 'responses'),
    },
)


def escape_pointer(token: str) -> str:
    """Escape a name for use as a JSON pointer segment."""
    return token.replace('~', '~0').replace('/', '~1')


def unescape_pointer(token: str) -> str:
    """Reverse :func:`escape_pointer`."""
    return token.replace('~1', '/').replace('~0', '~')


@dataclass(eq=False)
class Schema:
    """
    A node of the schema graph.

    ``name`` is set for named definitions; every reference to a definition
    resolves to the same node. ``resolved`` is False for references whose
    target is missing from the definitions table.

    A ``$ref`` written with sibling keywords becomes its own unnamed node whose
    ``target`` is the named node; ``raw`` keeps the siblings.
    """

    name: Optional[str] = None
    raw: Any = field(default_factory=dict)
    items: Optional['Schema'] = None
    all_of: List['Schema'] = field(default_factory=list)
    one_of: List['Schema'] = field(default_factory=list)
    any_of: List['Schema'] = field(default_factory=list)
    not_: Optional['Schema'] = None
    properties: Dict[str, 'Schema'] = field(default_factory=dict)
    resolved: bool = True
    target: Optional['Schema'] = None

    @property
    def is_reference(self) -> bool:
        return self.name is not None

    def dereference(self) -> 'Schema':
        """Return the named node a sibling-keyword reference points to, else self."""
        return self.target if self.target is not None else self

    def subschemas(self) -> Iterator['Schema']:
        """Yield composition members, the negated schema and property schemas."""
        yield from self.all_of
        yield from self.one_of
        yield from self.any_of
        if self.not_ is not None:
            yield self.not_
        yield from self.properties.values()

    def __repr__(self) -> str:
        if self.name is not None:
            return f"Schema(name={self.name!r})"
        return f"Schema(id=0x{id(self):x})"


@dataclass(eq=False)
class MediaType:
    schema: Optional[Schema] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class SchemaCarrier:
    """Common shape of parameters, request bodies and responses."""

    schema: Optional[Schema] = None
    content: Dict[str, MediaType] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)
    ref: Optional[str] = None

    def iter_schemas(self) -> Iterator[Schema]:
        """Yield the direct schema and every media type schema that is set."""
        if self.schema is not None:
            yield self.schema
        for media_type in self.content.values():
            if media_type.schema is not None:
                yield media_type.schema


class Parameter(SchemaCarrier):
    pass


class RequestBody(SchemaCarrier):
    pass


class Response(SchemaCarrier):
    pass


@dataclass(eq=False)
class Operation:
    tags: List[str] = field(default_factory=list)
    parameters: List[Parameter] = field(default_factory=list)
    request_body: Optional[RequestBody] = None
    responses: Dict[Any, Response] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class PathItem:
    operations: Dict[str, Operation] = field(default_factory=dict)
    parameters: List[Parameter] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class Tag:
    name: str
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class Document:
    """Root of the graph: paths, document-level tags and the definitions table."""

    dialect: Dialect
    paths: Dict[str, PathItem] = field(default_factory=dict)
    tags: List[Tag] = field(default_factory=list)
    schemas: Dict[str, Schema] = field(default_factory=dict)
    components: Dict[str, Dict[str, SchemaCarrier]] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)
    diagnostics: List[str] = field(default_factory=list)

    def iter_operations(self) -> Iterator[Tuple[str, str, PathItem, Operation]]:
        """Yield ``(path, kind, path_item, operation)`` for every operation."""
        for path, path_item in self.paths.items():
            for kind, operation in path_item.operations.items():
                yield path, kind, path_item, operation
