"""
Unit tests for openapi_extract.filters module.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

from openapi_extract.errors import FilterSyntaxError, SourceError
from openapi_extract.filters import (
    load_filter_file,
    merge_path_filters,
    normalize_path_filter,
    parse_path_filter,
    parse_path_filters,
)


class TestParsePathFilters(unittest.TestCase):
    """Test cases for command line filter items."""

    def test_path_only(self):
        self.assertEqual(parse_path_filter('/users'), ('/users', None))

    def test_path_with_operations(self):
        self.assertEqual(parse_path_filter('/users=GET, post'), ('/users', ['get', 'post']))

    def test_repeated_operation_is_collapsed(self):
        self.assertEqual(parse_path_filter('/users=get,get'), ('/users', ['get']))

    def test_too_many_separators(self):
        with self.assertRaises(FilterSyntaxError):
            parse_path_filter('/users=get=post')

    def test_empty_operation(self):
        with self.assertRaises(FilterSyntaxError):
            parse_path_filter('/users=')
        with self.assertRaises(FilterSyntaxError):
            parse_path_filter('/users=get,,post')

    def test_missing_path(self):
        with self.assertRaises(FilterSyntaxError):
            parse_path_filter('=get')

    def test_multiple_items(self):
        path_filter = parse_path_filters(['/a=get', '/b', '/c/{id}=put,delete'])

        self.assertEqual(path_filter, {'/a': ['get'], '/b': None, '/c/{id}': ['put', 'delete']})
        self.assertEqual(list(path_filter), ['/a', '/b', '/c/{id}'])

    def test_duplicate_path(self):
        with self.assertRaises(FilterSyntaxError):
            parse_path_filters(['/a=get', '/a=post'])


class TestFilterFiles(unittest.TestCase):
    """Test cases for filter mapping files."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_normalize(self):
        path_filter = normalize_path_filter({'/a': None, '/b': ['GET'], '/c': 'get, post'})

        self.assertEqual(path_filter, {'/a': None, '/b': ['get'], '/c': ['get', 'post']})

    def test_normalize_rejects_other_values(self):
        with self.assertRaises(FilterSyntaxError):
            normalize_path_filter({'/a': 3})

    def test_load_yaml_file(self):
        filter_file = Path(self.temp_dir) / 'paths.yaml'
        filter_file.write_text("/a:\n/b: [get, post]\n", encoding='utf-8')

        self.assertEqual(load_filter_file(filter_file), {'/a': None, '/b': ['get', 'post']})

    def test_load_json_file(self):
        filter_file = Path(self.temp_dir) / 'paths.json'
        filter_file.write_text('{"/a": "delete"}', encoding='utf-8')

        self.assertEqual(load_filter_file(filter_file), {'/a': ['delete']})

    def test_load_non_mapping_file(self):
        filter_file = Path(self.temp_dir) / 'paths.yaml'
        filter_file.write_text("- /a\n- /b\n", encoding='utf-8')

        with self.assertRaises(FilterSyntaxError):
            load_filter_file(filter_file)

    def test_load_missing_file(self):
        with self.assertRaises(SourceError):
            load_filter_file(Path(self.temp_dir) / 'missing.yaml')

    def test_merge(self):
        merged = merge_path_filters({'/a': None}, {'/b': ['get']})

        self.assertEqual(merged, {'/a': None, '/b': ['get']})

    def test_merge_duplicate(self):
        with self.assertRaises(FilterSyntaxError):
            merge_path_filters({'/a': None}, {'/a': ['get']})


if __name__ == '__main__':
    unittest.main()
