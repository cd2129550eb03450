#!/usr/bin/env python3
"""
MapCheck - Sourcemap diagnostics
Finds the scripts a page loads, checks each one for a usable sourcemap
and points at the local build output that should be uploaded
"""
import argparse
import logging
import sys
from pathlib import Path

from mapcheck.analyzer import SourcemapAnalyzer
from mapcheck.config import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, ScanConfig
from mapcheck.errors import MapCheckError
from mapcheck.writer import ReportWriter

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='MapCheck - analyze sourcemaps for a URL',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check the scripts of a deployed page
  python main.py https://example.com

  # Look for build output below ./frontend instead of the current directory
  python main.py https://example.com --root frontend

  # Skip HEAD requests for sources without embedded content
  python main.py https://example.com --no-source-checks
        """
    )

    parser.add_argument('url', help='The URL to analyze')
    parser.add_argument('--timeout', type=float, default=DEFAULT_TIMEOUT,
                        help=f'Per-request timeout in seconds (default: {DEFAULT_TIMEOUT:g})')
    parser.add_argument('--user-agent', default=DEFAULT_USER_AGENT,
                        help=f'User-Agent header to send (default: {DEFAULT_USER_AGENT})')
    parser.add_argument('--root', type=Path, default=None,
                        help='Directory searched for matching build output (default: current directory)')
    parser.add_argument('--no-source-checks', dest='check_sources', action='store_false',
                        help='Do not request sources that are missing embedded content')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')
    return parser


def config_from_args(args) -> ScanConfig:
    config = ScanConfig(
        timeout=args.timeout,
        user_agent=args.user_agent,
        check_sources=args.check_sources,
    )
    if args.root is not None:
        config.root = args.root
    return config


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(message)s'
    )
    # urllib3 is noisy at debug level
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    config = config_from_args(args)
    if not config.root.is_dir():
        logger.error(f"[!] Not a directory: {config.root}")
        return 1

    analyzer = SourcemapAnalyzer(config)
    try:
        result = analyzer.run(args.url)
    except MapCheckError as e:
        logger.error(f"[!] {e}")
        return 1
    except KeyboardInterrupt:
        print("\n[*] Interrupted. Exiting...")
        return 130
    finally:
        analyzer.fetcher.close()

    ReportWriter().write(result)
    return 0


if __name__ == '__main__':
    sys.exit(main())
