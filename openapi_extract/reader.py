"""
Loading and parsing of OpenAPI documents.

``load_source`` fetches the raw mapping from a local file or a URL;
``parse_document`` turns that mapping into the :mod:`openapi_extract.models`
graph with every schema reference resolved to a shared node.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

import requests
import yaml

from .errors import DocumentParseError, SourceError
from .models import (
    COMPOSITION_KEYWORDS,
    HTTP_METHODS,
    OPENAPI_3,
    SWAGGER_2,
    Dialect,
    Document,
    MediaType,
    Operation,
    Parameter,
    PathItem,
    RequestBody,
    Response,
    Schema,
    SchemaCarrier,
    Tag,
    escape_pointer,
    unescape_pointer,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

CARRIER_TYPES = {
    'parameters': Parameter,
    'requestBodies': RequestBody,
    'responses': Response,
}


def is_url(source: str) -> bool:
    """Return True when ``source`` is an absolute http(s) URL."""
    parsed = urlparse(source)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def parse_text(text: str, json_hint: bool = False) -> Dict[str, Any]:
    """
    Parse document text into a mapping.

    Args:
        text: Raw document text (YAML or JSON)
        json_hint: Parse as JSON first when the source declared JSON

    Returns:
        The parsed top-level mapping

    Raises:
        DocumentParseError: If the text is neither YAML nor JSON, or not a mapping
    """
    try:
        if json_hint:
            try:
                data = json.loads(text)
            except json.JSONDecodeError:
                data = yaml.safe_load(text)
        else:
            data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DocumentParseError(f"Unable to parse document as YAML or JSON: {e}") from e

    if not isinstance(data, dict):
        raise DocumentParseError("Document root must be a mapping")
    return data


def load_source(source: Union[str, Path], timeout: float = DEFAULT_TIMEOUT) -> Dict[str, Any]:
    """
    Load the raw document mapping from a file path or URL.

    Args:
        source: Local file path or absolute http(s) URL
        timeout: Network timeout in seconds for URL sources

    Returns:
        The parsed top-level mapping

    Raises:
        SourceError: If the file is missing or the download fails
        DocumentParseError: If the content cannot be parsed
    """
    source = str(source)
    if is_url(source):
        logger.info(f"Downloading '{source}'...")
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise SourceError(f"Error fetching '{source}': {e}") from e
        content_type = response.headers.get('Content-Type', '')
        json_hint = 'json' in content_type or urlparse(source).path.endswith('.json')
        return parse_text(response.text, json_hint)

    path = Path(source)
    if not path.is_file():
        raise SourceError(f"File '{source}' not found.")
    logger.debug(f"Loading document from file: {path}")
    try:
        text = path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise SourceError(f"Error reading '{source}': {e}") from e
    return parse_text(text, path.suffix.lower() == '.json')


def detect_dialect(raw: Dict[str, Any]) -> Dialect:
    """
    Pick the dialect from the ``swagger`` / ``openapi`` version field.

    Raises:
        DocumentParseError: If neither field names a supported version
    """
    swagger = raw.get('swagger')
    if swagger is not None and str(swagger).startswith('2'):
        return SWAGGER_2
    openapi = raw.get('openapi')
    if openapi is not None and str(openapi).startswith('3'):
        return OPENAPI_3
    raise DocumentParseError(
        "Unsupported document: expected 'swagger: 2.0' or 'openapi: 3.x'"
    )


def _lookup(raw: Dict[str, Any], location) -> Dict[str, Any]:
    node: Any = raw
    for key in location:
        if not isinstance(node, dict):
            return {}
        node = node.get(key)
    return node if isinstance(node, dict) else {}


class DocumentReader:
    """
    Builds a :class:`Document` from a raw mapping.

    Problems that do not prevent building the graph (dangling references,
    malformed entries) are recorded in ``diagnostics`` and parsing continues.
    """

    def __init__(self, raw: Dict[str, Any]):
        self.raw = raw
        self.dialect = detect_dialect(raw)
        self.diagnostics: List[str] = []
        self._schemas: Dict[str, Schema] = {}
        self._unresolved: Dict[str, Schema] = {}
        self._components: Dict[str, Dict[str, SchemaCarrier]] = {}

    def warn(self, message: str) -> None:
        self.diagnostics.append(message)

    def read(self) -> Document:
        """
        Parse the whole document.

        Returns:
            The document graph
        """
        self._read_schema_table()
        self._read_component_tables()

        raw_paths = self.raw.get('paths') or {}
        if not isinstance(raw_paths, dict):
            raise DocumentParseError("Document 'paths' must be a mapping")

        paths = {}
        for path, raw_item in raw_paths.items():
            if not isinstance(raw_item, dict):
                self.warn(f"Path item '{path}' is not a mapping")
                raw_item = {}
            paths[path] = self._read_path_item(path, raw_item)

        document = Document(
            dialect=self.dialect,
            paths=paths,
            tags=self._read_tags(),
            schemas=self._schemas,
            components=self._components,
            raw=self.raw,
            diagnostics=self.diagnostics,
        )
        logger.debug(
            f"Parsed {len(paths)} paths, {len(self._schemas)} schemas "
            f"({self.dialect.version} dialect)"
        )
        return document

    def _read_schema_table(self) -> None:
        table = _lookup(self.raw, self.dialect.schemas_location)
        # Register every node before filling any, so forward and cyclic
        # references resolve to the shared instance.
        for name in table:
            self._schemas[name] = Schema(name=name)
        for name, body in table.items():
            self._fill_schema(self._schemas[name], body)

    def _read_component_tables(self) -> None:
        for kind, location in self.dialect.component_locations.items():
            table = _lookup(self.raw, location)
            prefix = self.dialect.component_ref_prefix(kind)
            entries: Dict[str, SchemaCarrier] = {}
            for name, body in table.items():
                carrier = self._read_carrier(CARRIER_TYPES[kind], body if isinstance(body, dict) else {})
                carrier.ref = prefix + escape_pointer(name)
                entries[name] = carrier
            self._components[kind] = entries

    def _read_tags(self) -> List[Tag]:
        tags = []
        raw_tags = self.raw.get('tags') or []
        if not isinstance(raw_tags, list):
            self.warn("Document 'tags' is not a list")
            return tags
        for raw_tag in raw_tags:
            if isinstance(raw_tag, dict) and 'name' in raw_tag:
                tags.append(Tag(name=raw_tag['name'], raw=raw_tag))
            else:
                self.warn(f"Ignoring malformed tag entry: {raw_tag!r}")
        return tags

    def _read_path_item(self, path: str, raw_item: Dict[str, Any]) -> PathItem:
        item = PathItem(raw=raw_item)
        for key, value in raw_item.items():
            if key in HTTP_METHODS:
                if isinstance(value, dict):
                    item.operations[key] = self._read_operation(value)
                else:
                    self.warn(f"Operation '{key}' on path '{path}' is not a mapping")
            elif key == 'parameters' and isinstance(value, list):
                item.parameters = [self._read_parameter(p) for p in value]
        return item

    def _read_operation(self, raw_op: Dict[str, Any]) -> Operation:
        operation = Operation(raw=raw_op)
        tags = raw_op.get('tags')
        if isinstance(tags, list):
            operation.tags = list(tags)
        parameters = raw_op.get('parameters')
        if isinstance(parameters, list):
            operation.parameters = [self._read_parameter(p) for p in parameters]
        body = raw_op.get('requestBody')
        if isinstance(body, dict):
            operation.request_body = self._resolve_carrier('requestBodies', body)
        responses = raw_op.get('responses')
        if isinstance(responses, dict):
            for code, raw_response in responses.items():
                if isinstance(raw_response, dict):
                    operation.responses[code] = self._resolve_carrier('responses', raw_response)
        return operation

    def _read_parameter(self, raw_param: Any) -> Parameter:
        if not isinstance(raw_param, dict):
            self.warn(f"Ignoring malformed parameter: {raw_param!r}")
            return Parameter(raw={})
        return self._resolve_carrier('parameters', raw_param)

    def _resolve_carrier(self, kind: str, raw: Dict[str, Any]) -> SchemaCarrier:
        ref = raw.get('$ref')
        if isinstance(ref, str):
            if kind in self._components:
                prefix = self.dialect.component_ref_prefix(kind)
                if ref.startswith(prefix):
                    shared = self._components[kind].get(unescape_pointer(ref[len(prefix):]))
                    if shared is not None:
                        return shared
            self.warn(f"Unresolved reference '{ref}'")
            return CARRIER_TYPES[kind](raw=raw, ref=ref)
        return self._read_carrier(CARRIER_TYPES[kind], raw)

    def _read_carrier(self, carrier_type, raw: Dict[str, Any]) -> SchemaCarrier:
        carrier = carrier_type(raw=raw)
        if 'schema' in raw:
            carrier.schema = self.read_schema(raw['schema'])
        content = raw.get('content')
        if isinstance(content, dict):
            for media_type, raw_media in content.items():
                raw_media = raw_media if isinstance(raw_media, dict) else {}
                schema = self.read_schema(raw_media['schema']) if 'schema' in raw_media else None
                carrier.content[media_type] = MediaType(schema=schema, raw=raw_media)
        return carrier

    def read_schema(self, raw: Any) -> Schema:
        """
        Parse an inline schema or resolve a reference to a named one.

        Args:
            raw: The raw schema value

        Returns:
            The shared named node for plain references, a node targeting it
            for references with sibling keywords, a new node otherwise
        """
        if isinstance(raw, dict) and isinstance(raw.get('$ref'), str):
            ref = raw['$ref']
            prefix = self.dialect.schema_ref_prefix
            if ref.startswith(prefix):
                named = self._named(unescape_pointer(ref[len(prefix):]))
                if len(raw) > 1:
                    return Schema(raw=raw, target=named)
                return named
            # External or non-schema references are carried through untouched
            return Schema(raw=raw)

        schema = Schema()
        self._fill_schema(schema, raw)
        return schema

    def _named(self, name: str) -> Schema:
        schema = self._schemas.get(name)
        if schema is not None:
            return schema
        schema = self._unresolved.get(name)
        if schema is None:
            self.warn(f"Unresolved schema reference '{name}'")
            schema = Schema(name=name, raw={}, resolved=False)
            self._unresolved[name] = schema
        return schema

    def _fill_schema(self, schema: Schema, raw: Any) -> None:
        schema.raw = raw
        if not isinstance(raw, dict):
            return
        if isinstance(raw.get('items'), (dict, bool)):
            schema.items = self.read_schema(raw['items'])
        for keyword, attribute in COMPOSITION_KEYWORDS:
            members = raw.get(keyword)
            if isinstance(members, list):
                setattr(schema, attribute, [self.read_schema(member) for member in members])
        if isinstance(raw.get('not'), (dict, bool)):
            schema.not_ = self.read_schema(raw['not'])
        properties = raw.get('properties')
        if isinstance(properties, dict):
            schema.properties = {
                name: self.read_schema(value) for name, value in properties.items()
            }


def parse_document(raw: Dict[str, Any]) -> Document:
    """
    Build the document graph from a raw mapping.

    Args:
        raw: Parsed top-level mapping

    Returns:
        Document with shared schema nodes

    Raises:
        DocumentParseError: If the dialect is not supported
    """
    return DocumentReader(raw).read()


def read_document(source: Union[str, Path], timeout: Optional[float] = None) -> Document:
    """Load ``source`` and parse it into a document graph."""
    raw = load_source(source, DEFAULT_TIMEOUT if timeout is None else timeout)
    return parse_document(raw)
