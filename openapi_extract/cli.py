"""
Command-line interface for OpenAPI Extract.
"""

import argparse
import sys
import logging
from typing import List, Optional

from . import __version__
from .core import OpenAPIExtractor
from .errors import OpenAPIExtractError
from .filters import load_filter_file, merge_path_filters, parse_path_filters
from .reader import DEFAULT_TIMEOUT


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(message)s' if not verbose else '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='extract-openapi',
        description='Modify OpenAPI document to contain only selected paths and operations',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -s openapi.yaml -p /users -d users.yaml
  %(prog)s -s openapi.yaml -p /users=get,post /users/{id}=get -d out.yaml
  %(prog)s -s https://example.com/openapi.json -p /pets -d pets.json -f json
  %(prog)s -s openapi.yaml --paths-file paths.yaml -d out.yaml
        """
    )

    parser.add_argument(
        '-s', '--source',
        required=True,
        help='Source OpenAPI specification location (file or URL)'
    )

    parser.add_argument(
        '-p', '--paths',
        nargs='+',
        default=[],
        metavar='FILTER',
        help='Path selection filter. Format: path1[=operation1[,operation2,...]] path2[=...]'
    )

    parser.add_argument(
        '--paths-file',
        help='YAML or JSON file mapping paths to null or a list of operations'
    )

    parser.add_argument(
        '-d', '--dest-file',
        required=True,
        help='Destination OpenAPI file name'
    )

    parser.add_argument(
        '-f', '--dest-format',
        choices=['yaml', 'json'],
        default='yaml',
        help='Destination OpenAPI document format (default: yaml)'
    )

    parser.add_argument(
        '-t', '--timeout',
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f'Download timeout in seconds for URL sources (default: {DEFAULT_TIMEOUT:g})'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.paths and not args.paths_file:
        parser.error('at least one of -p/--paths or --paths-file is required')

    # Set up logging
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        path_filter = parse_path_filters(args.paths)
        if args.paths_file:
            path_filter = merge_path_filters(path_filter, load_filter_file(args.paths_file))

        extractor = OpenAPIExtractor(args.source, args.dest_file, args.dest_format, args.timeout)

        document = extractor.load_document()
        logger.debug(f"Source: {extractor.summary(document)}")
        extractor.modify(document, path_filter)
        logger.debug(f"Result: {extractor.summary(document)}")
        filepath = extractor.write_document(document)

        print(f"Extracted {len(path_filter)} paths to: {filepath}")

    except OpenAPIExtractError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
