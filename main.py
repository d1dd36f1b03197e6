"""
Bluesky Export Toolkit

This is the main entry point for the toolkit. It exports anonymized
Bluesky data as JSON: the reply tree or the quotes of a post, search
results, or the posts of a profile, custom feed, list or starter pack.

Usage:
    python main.py replies https://bsky.app/profile/alice.bsky.social/post/3kabc
    python main.py quotes https://bsky.app/profile/alice.bsky.social/post/3kabc
    python main.py search "atproto" --sort latest --limit 200
    python main.py feed https://bsky.app/profile/alice.bsky.social --type profile --reposts
"""

import sys
import json
import argparse
import logging
from typing import Any, Dict, List, Optional

from config import settings
from config.validators import validate_settings, get_config_summary
from data.models import PostFilters
from services.bsky_client import BskyClient
from services.feed_service import FeedService
from services.quote_service import QuoteService
from services.search_service import SearchService
from services.thread_service import ThreadService
from utils.exceptions import BskyToolkitError
from utils.logger import get_logger, setup_file_logging

# Set up logging
logger = get_logger(__name__)


class BskyExporter:
    """
    Main application class for the toolkit.

    Wires the services to a shared client and dispatches one export per run.
    """

    def __init__(
        self,
        client: Optional[BskyClient] = None,
        thread_service: Optional[ThreadService] = None,
        quote_service: Optional[QuoteService] = None,
        feed_service: Optional[FeedService] = None,
        search_service: Optional[SearchService] = None,
        validate: bool = True
    ):
        """
        Initialize the exporter.

        Args:
            client: Shared XRPC client (created if not provided).
            thread_service: Reply export service.
            quote_service: Quote export service.
            feed_service: Feed export service.
            search_service: Search export service.
            validate: Validate settings before doing anything.
        """
        if validate:
            validate_settings()

        self.client = client or BskyClient()
        self.thread_service = thread_service or ThreadService(self.client)
        self.quote_service = quote_service or QuoteService(self.client)
        self.feed_service = feed_service or FeedService(self.client)
        self.search_service = search_service or SearchService(self.client)

    def run(self, args: argparse.Namespace) -> Dict[str, Any]:
        """
        Run the export selected on the command line.

        Args:
            args: Parsed command line arguments.

        Returns:
            dict: The JSON document to write.
        """
        if args.command == "replies":
            return self.thread_service.process_replies(args.url, depth=args.depth)

        if args.command == "quotes":
            return self.quote_service.process_quotes(args.url)

        if args.command == "feed":
            filters = PostFilters(
                include_posts=args.include_posts,
                include_reposts=args.include_reposts,
                include_quotes=args.include_quotes,
            )
            return self.feed_service.process(args.url, args.type, args.limit, filters)

        if args.command == "search":
            handle = args.handle or settings.AT_PROTOCOL_USERNAME
            password = args.password or settings.AT_PROTOCOL_PASSWORD
            if handle and password:
                self.client.create_session(handle, password)
            try:
                return self.search_service.search(args.query, args.limit, args.sort)
            finally:
                self.client.clear_session()

        raise ValueError(f"Unknown command: {args.command}")


def write_output(document: Dict[str, Any], output_path: Optional[str] = None) -> None:
    """Write the document as indented UTF-8 JSON to a file or stdout."""
    text = json.dumps(document, indent=2, ensure_ascii=False)
    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        logger.info(f"Wrote output to {output_path}")
    else:
        sys.stdout.write(text + "\n")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Export anonymized Bluesky data as JSON')
    parser.add_argument('--output', '-o', type=str, default=None, help='Write JSON to this file instead of stdout')
    parser.add_argument('--log-file', type=str, default=settings.DEFAULT_LOG_FILE, help='Log file path')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default='INFO', help='Logging level')

    subparsers = parser.add_subparsers(dest='command', required=True)

    replies = subparsers.add_parser('replies', help='Export the reply tree of a post')
    replies.add_argument('url', help='Bluesky post URL')
    replies.add_argument('--depth', type=int, default=settings.THREAD_DEPTH, help='Reply depth to fetch')

    quotes = subparsers.add_parser('quotes', help='Export the quote posts of a post')
    quotes.add_argument('url', help='Bluesky post URL')

    search = subparsers.add_parser('search', help='Search posts (requires credentials)')
    search.add_argument('query', help='Search query')
    search.add_argument('--sort', choices=settings.SEARCH_SORT_OPTIONS, default='top')
    search.add_argument('--limit', type=int, default=settings.DEFAULT_RESULT_LIMIT)
    search.add_argument('--handle', type=str, default=None, help='Defaults to AT_PROTOCOL_USERNAME')
    search.add_argument('--password', type=str, default=None, help='App password, defaults to AT_PROTOCOL_PASSWORD')

    feed = subparsers.add_parser('feed', help='Export posts from a profile, feed, list or starter pack')
    feed.add_argument('url', help='Bluesky profile, feed, list or starter pack URL')
    feed.add_argument('--type', choices=settings.CONTENT_TYPES, default='profile', help='Content type')
    feed.add_argument('--limit', type=int, default=settings.DEFAULT_RESULT_LIMIT)
    feed.add_argument('--no-posts', dest='include_posts', action='store_false',
                      help='Profile only: leave out original posts and thread continuations')
    feed.add_argument('--reposts', dest='include_reposts', action='store_true', help='Profile only: include reposts')
    feed.add_argument('--quotes', dest='include_quotes', action='store_true', help='Profile only: include quote posts')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    log_level = getattr(logging, args.log_level)
    setup_file_logging(args.log_file, log_level)

    logger.info(f"Starting Bluesky export: {args.command}")
    logger.debug(f"Configuration: {get_config_summary()}")

    try:
        exporter = BskyExporter()
        document = exporter.run(args)
        write_output(document, args.output)
        exit_code = 0

    except BskyToolkitError as e:
        logger.error(f"Error: {e}")
        exit_code = 1

    except Exception as e:
        logger.error(f"Unhandled exception in Bluesky export: {e}", exc_info=True)
        exit_code = 2

    logger.info(f"Bluesky export finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
