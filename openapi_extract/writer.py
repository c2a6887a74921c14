"""
Serialization of the document graph back to YAML or JSON.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Tuple, Union

import yaml

from .errors import OpenAPIExtractError, WriteError
from .models import (
    COMPOSITION_KEYWORDS,
    HTTP_METHODS,
    Document,
    MediaType,
    Operation,
    PathItem,
    Schema,
    SchemaCarrier,
    escape_pointer,
)

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ('yaml', 'json')


class _NoAliasDumper(yaml.SafeDumper):
    """Safe dumper that writes repeated objects out in full instead of as aliases."""

    def ignore_aliases(self, data):
        return True


class DocumentWriter:
    """Rebuilds the raw mapping of a document from its graph."""

    def __init__(self, document: Document):
        self.document = document
        self.schema_prefix = document.dialect.schema_ref_prefix

    def to_dict(self) -> Dict[str, Any]:
        document = self.document
        out = dict(document.raw)

        if 'paths' in out or document.paths:
            out['paths'] = {path: self.path_item(item) for path, item in document.paths.items()}

        if isinstance(out.get('tags'), list):
            out['tags'] = [tag.raw for tag in document.tags]

        if _has_location(document.raw, document.dialect.schemas_location):
            _replace(out, document.dialect.schemas_location, {
                name: self.schema(schema, table_entry=True)
                for name, schema in document.schemas.items()
            })

        for kind, location in document.dialect.component_locations.items():
            if _has_location(document.raw, location):
                _replace(out, location, {
                    name: self.carrier(carrier, table_entry=True)
                    for name, carrier in document.components.get(kind, {}).items()
                })
        return out

    def path_item(self, item: PathItem) -> Dict[str, Any]:
        out = {}
        for key, value in item.raw.items():
            if key in HTTP_METHODS:
                if key in item.operations:
                    out[key] = self.operation(item.operations[key])
            elif key == 'parameters' and isinstance(value, list):
                out[key] = [self.carrier(p) for p in item.parameters]
            else:
                out[key] = value
        return out

    def operation(self, operation: Operation) -> Dict[str, Any]:
        out = {}
        for key, value in operation.raw.items():
            if key == 'parameters' and isinstance(value, list):
                out[key] = [self.carrier(p) for p in operation.parameters]
            elif key == 'requestBody' and operation.request_body is not None:
                out[key] = self.carrier(operation.request_body)
            elif key == 'responses' and isinstance(value, dict):
                out[key] = {
                    code: self.carrier(operation.responses[code])
                    if code in operation.responses else value[code]
                    for code in value
                }
            else:
                out[key] = value
        return out

    def carrier(self, carrier: SchemaCarrier, table_entry: bool = False) -> Any:
        if carrier.ref is not None and not table_entry:
            return {'$ref': carrier.ref}
        out = {}
        for key, value in carrier.raw.items():
            if key == 'schema' and carrier.schema is not None:
                out[key] = self.schema(carrier.schema)
            elif key == 'content' and isinstance(value, dict):
                out[key] = {
                    media_type: self.media_type(media)
                    for media_type, media in carrier.content.items()
                }
            else:
                out[key] = value
        return out

    def media_type(self, media: MediaType) -> Dict[str, Any]:
        out = dict(media.raw)
        if media.schema is not None:
            out['schema'] = self.schema(media.schema)
        return out

    def schema(self, schema: Schema, table_entry: bool = False) -> Any:
        if schema.name is not None and not table_entry:
            return {'$ref': self.schema_prefix + escape_pointer(schema.name)}
        raw = schema.raw
        if not isinstance(raw, dict):
            return raw

        compositions = dict(COMPOSITION_KEYWORDS)
        out = {}
        for key, value in raw.items():
            if key == 'items' and schema.items is not None:
                out[key] = self.schema(schema.items)
            elif key in compositions and isinstance(value, list):
                out[key] = [self.schema(member) for member in getattr(schema, compositions[key])]
            elif key == 'not' and schema.not_ is not None:
                out[key] = self.schema(schema.not_)
            elif key == 'properties' and isinstance(value, dict):
                out[key] = {name: self.schema(prop) for name, prop in schema.properties.items()}
            else:
                out[key] = value
        return out


def _has_location(raw: Dict[str, Any], location: Tuple[str, ...]) -> bool:
    node: Any = raw
    for key in location:
        if not isinstance(node, dict) or key not in node:
            return False
        node = node[key]
    return isinstance(node, dict)


def _replace(out: Dict[str, Any], location: Tuple[str, ...], value: Any) -> None:
    """Set ``value`` at ``location``, copying intermediate mappings first."""
    node = out
    for key in location[:-1]:
        node[key] = dict(node[key])
        node = node[key]
    node[location[-1]] = value


def to_dict(document: Document) -> Dict[str, Any]:
    """Rebuild the raw mapping of ``document``."""
    return DocumentWriter(document).to_dict()


def serialize_document(document: Document, output_format: str = 'yaml') -> str:
    """
    Serialize a document to text.

    Args:
        document: Document to serialize
        output_format: 'yaml' or 'json'

    Returns:
        The serialized text

    Raises:
        OpenAPIExtractError: If the format is not supported
    """
    data = to_dict(document)
    if output_format == 'json':
        return json.dumps(data, indent=2, ensure_ascii=False, default=str) + '\n'
    if output_format == 'yaml':
        return yaml.dump(data, Dumper=_NoAliasDumper, default_flow_style=False, sort_keys=False,
                         allow_unicode=True, indent=2, width=1000)
    raise OpenAPIExtractError(f"Invalid output format: {output_format}")


def write_document(document: Document, dest_file: Union[str, Path],
                   output_format: str = 'yaml') -> Path:
    """
    Write a document to ``dest_file``, replacing any existing file.

    Returns:
        Path to the written file

    Raises:
        WriteError: If the file cannot be written
    """
    text = serialize_document(document, output_format)
    filepath = Path(dest_file)
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(text, encoding='utf-8')
    except OSError as e:
        raise WriteError(f"Error writing {filepath}: {e}") from e
    logger.info(f"Created: {filepath}")
    return filepath
