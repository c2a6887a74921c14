"""
Unit tests for openapi_extract.reader module.
"""

import json
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests
import yaml

from openapi_extract.errors import DocumentParseError, SourceError
from openapi_extract.models import OPENAPI_3, SWAGGER_2
from openapi_extract.reader import is_url, load_source, parse_document, parse_text, read_document


SPEC_V3 = {
    'openapi': '3.1.0',
    'info': {'title': 'Test API', 'version': '1.0.0'},
    'tags': [{'name': 'users'}, 'not-a-tag'],
    'paths': {
        '/users': {
            'get': {
                'tags': ['users'],
                'parameters': [{'$ref': '#/components/parameters/Page'}],
                'responses': {
                    '200': {
                        'description': 'ok',
                        'content': {
                            'application/json': {
                                'schema': {'type': 'array', 'items': {'$ref': '#/components/schemas/User'}}
                            }
                        },
                    },
                    'default': {'$ref': '#/components/responses/Error'},
                },
            },
            'post': {
                'requestBody': {
                    'content': {'application/json': {'schema': {'$ref': '#/components/schemas/User'}}}
                },
                'responses': {'201': {'description': 'created'}},
            },
            'summary': 'Users',
        }
    },
    'components': {
        'schemas': {
            'User': {
                'type': 'object',
                'properties': {
                    'id': {'type': 'integer'},
                    'manager': {'$ref': '#/components/schemas/User'},
                    'group': {'$ref': '#/components/schemas/Group'},
                },
            },
            'Group': {'type': 'object', 'properties': {'name': {'type': 'string'}}},
            'Path/Name': {'type': 'string'},
        },
        'parameters': {
            'Page': {'name': 'page', 'in': 'query', 'schema': {'type': 'integer'}},
        },
        'responses': {
            'Error': {
                'description': 'error',
                'content': {'application/json': {'schema': {'$ref': '#/components/schemas/Missing'}}},
            },
        },
    },
}

SPEC_V2 = {
    'swagger': '2.0',
    'info': {'title': 'Test API', 'version': '1.0.0'},
    'paths': {
        '/pets': {
            'post': {
                'parameters': [{'name': 'body', 'in': 'body', 'schema': {'$ref': '#/definitions/Pet'}}],
                'responses': {'200': {'description': 'ok', 'schema': {'$ref': '#/definitions/Pet'}}},
            }
        }
    },
    'definitions': {
        'Pet': {'type': 'object', 'properties': {'name': {'type': 'string'}}},
    },
}


class TestParseText(unittest.TestCase):
    """Test cases for text parsing."""

    def test_yaml(self):
        self.assertEqual(parse_text("openapi: 3.0.0\npaths: {}\n"), {'openapi': '3.0.0', 'paths': {}})

    def test_json(self):
        self.assertEqual(parse_text('{"swagger": "2.0"}', json_hint=True), {'swagger': '2.0'})

    def test_malformed(self):
        with self.assertRaises(DocumentParseError):
            parse_text("invalid: yaml: content: [unclosed")

    def test_non_mapping_root(self):
        with self.assertRaises(DocumentParseError):
            parse_text("- a\n- b\n")

    def test_is_url(self):
        self.assertTrue(is_url('https://example.com/openapi.json'))
        self.assertTrue(is_url('http://localhost:8080/spec'))
        self.assertFalse(is_url('openapi.yaml'))
        self.assertFalse(is_url('/tmp/openapi.yaml'))
        self.assertFalse(is_url('C:\\specs\\openapi.yaml'))


class TestLoadSource(unittest.TestCase):
    """Test cases for loading files and URLs."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_load_yaml_file(self):
        source = Path(self.temp_dir) / 'spec.yaml'
        with open(source, 'w') as f:
            yaml.dump(SPEC_V3, f)

        self.assertEqual(load_source(source)['openapi'], '3.1.0')

    def test_load_json_file(self):
        source = Path(self.temp_dir) / 'spec.json'
        with open(source, 'w') as f:
            json.dump(SPEC_V2, f)

        self.assertEqual(load_source(str(source))['swagger'], '2.0')

    def test_missing_file(self):
        with self.assertRaises(SourceError):
            load_source(Path(self.temp_dir) / 'missing.yaml')

    @patch('openapi_extract.reader.requests.get')
    def test_load_url(self, mock_get):
        response = MagicMock()
        response.text = json.dumps(SPEC_V2)
        response.headers = {'Content-Type': 'application/json'}
        mock_get.return_value = response

        data = load_source('https://example.com/spec', timeout=5)

        mock_get.assert_called_once_with('https://example.com/spec', timeout=5)
        response.raise_for_status.assert_called_once_with()
        self.assertEqual(data['swagger'], '2.0')

    @patch('openapi_extract.reader.requests.get')
    def test_load_url_http_error(self, mock_get):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError('404 Client Error')
        mock_get.return_value = response

        with self.assertRaises(SourceError):
            load_source('https://example.com/openapi.yaml')

    @patch('openapi_extract.reader.requests.get')
    def test_load_url_connection_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError('refused')

        with self.assertRaises(SourceError):
            read_document('http://localhost:1/openapi.yaml')


class TestParseDocument(unittest.TestCase):
    """Test cases for building the document graph."""

    def test_dialect_detection(self):
        self.assertIs(parse_document(dict(SPEC_V3)).dialect, OPENAPI_3)
        self.assertIs(parse_document(dict(SPEC_V2)).dialect, SWAGGER_2)

    def test_unsupported_dialect(self):
        with self.assertRaises(DocumentParseError):
            parse_document({'info': {'title': 'x'}, 'paths': {}})
        with self.assertRaises(DocumentParseError):
            parse_document({'swagger': '1.2', 'paths': {}})

    def test_paths_must_be_mapping(self):
        with self.assertRaises(DocumentParseError):
            parse_document({'openapi': '3.0.0', 'paths': ['/a']})

    def test_references_share_one_node(self):
        """Every reference to a definition resolves to the same instance."""
        document = parse_document(SPEC_V3)
        user = document.schemas['User']
        operations = document.paths['/users'].operations

        response_schema = operations['get'].responses['200'].content['application/json'].schema
        body_schema = operations['post'].request_body.content['application/json'].schema

        self.assertIs(response_schema.items, user)
        self.assertIs(body_schema, user)
        self.assertIs(user.properties['manager'], user)
        self.assertIs(user.properties['group'], document.schemas['Group'])
        self.assertIsNone(response_schema.name)

    def test_operations_and_tags(self):
        document = parse_document(SPEC_V3)

        self.assertEqual(list(document.paths['/users'].operations), ['get', 'post'])
        self.assertEqual(document.paths['/users'].operations['get'].tags, ['users'])
        self.assertEqual([tag.name for tag in document.tags], ['users'])
        self.assertTrue(any('malformed tag' in message for message in document.diagnostics))

    def test_shared_components_resolve(self):
        document = parse_document(SPEC_V3)
        get = document.paths['/users'].operations['get']

        self.assertIs(get.parameters[0], document.components['parameters']['Page'])
        self.assertEqual(get.parameters[0].ref, '#/components/parameters/Page')
        self.assertIs(get.responses['default'], document.components['responses']['Error'])

    def test_unresolved_schema_reference_is_diagnosed(self):
        document = parse_document(SPEC_V3)
        error = document.components['responses']['Error']
        missing = error.content['application/json'].schema

        self.assertEqual(missing.name, 'Missing')
        self.assertFalse(missing.resolved)
        self.assertNotIn('Missing', document.schemas)
        self.assertTrue(any('Missing' in message for message in document.diagnostics))

    def test_swagger_2_schemas(self):
        document = parse_document(SPEC_V2)
        post = document.paths['/pets'].operations['post']

        self.assertIs(post.parameters[0].schema, document.schemas['Pet'])
        self.assertIs(post.responses['200'].schema, document.schemas['Pet'])

    def test_escaped_reference_names(self):
        spec = {
            'openapi': '3.0.0',
            'paths': {
                '/x': {'get': {'responses': {'200': {
                    'content': {'application/json': {'schema': {'$ref': '#/components/schemas/Path~1Name'}}}
                }}}}
            },
            'components': {'schemas': {'Path/Name': {'type': 'string'}}},
        }
        document = parse_document(spec)
        schema = document.paths['/x'].operations['get'].responses['200'].content['application/json'].schema

        self.assertIs(schema, document.schemas['Path/Name'])

    def test_reference_with_sibling_keywords_targets_named_node(self):
        spec = {
            'openapi': '3.1.0',
            'paths': {
                '/x': {'get': {'responses': {'200': {
                    'content': {'application/json': {'schema': {
                        '$ref': '#/components/schemas/Thing', 'description': 'a thing',
                    }}}
                }}}}
            },
            'components': {'schemas': {'Thing': {'type': 'string'}}},
        }
        document = parse_document(spec)
        schema = document.paths['/x'].operations['get'].responses['200'].content['application/json'].schema

        self.assertIsNone(schema.name)
        self.assertIs(schema.target, document.schemas['Thing'])
        self.assertIs(schema.dereference(), document.schemas['Thing'])
        self.assertEqual(schema.raw['description'], 'a thing')
        self.assertEqual(document.diagnostics, [])

    def test_non_schema_references_are_kept_opaque(self):
        spec = {
            'openapi': '3.0.0',
            'paths': {
                '/x': {'get': {'responses': {'200': {
                    'content': {'application/json': {'schema': {'$ref': 'common.yaml#/Thing'}}}
                }}}}
            },
        }
        document = parse_document(spec)
        schema = document.paths['/x'].operations['get'].responses['200'].content['application/json'].schema

        self.assertIsNone(schema.name)
        self.assertEqual(schema.raw, {'$ref': 'common.yaml#/Thing'})


if __name__ == '__main__':
    unittest.main()
