"""
Quote Service Module

Finds the posts that quote a given post. app.bsky.feed.getQuotes is the
primary source; when it fails the service falls back to a full-text search
and keeps only hits whose embed really points at the post.
"""

from typing import Any, Dict, List, Optional

from config import settings
from data.models import AnonymizeOptions, SourceKind
from services.anonymizer import anonymize_all, build_standard_output, safe_get_created_at
from services.classifier import embed_references_uri
from utils.bsky_urls import parse_post_url, record_key_of_uri
from utils.exceptions import ApiRequestError, InputValidationError
from utils.logger import get_logger

logger = get_logger(__name__)


class QuoteService:
    """Exports the quote posts of a post."""

    def __init__(self, client):
        """
        Initialize the quote service.

        Args:
            client: A BskyClient or compatible client.
        """
        self.client = client

    def find_quotes(self, post_uri: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Get the posts quoting post_uri.

        Args:
            post_uri: AT URI of the quoted post.
            limit: Page size for getQuotes, defaults to settings.QUOTES_FETCH_LIMIT.

        Returns:
            List[dict]: Raw post views; empty if both strategies fail.
        """
        limit = limit or settings.QUOTES_FETCH_LIMIT
        try:
            data = self.client.get("app.bsky.feed.getQuotes", {"uri": post_uri, "limit": limit})
        except ApiRequestError as e:
            logger.warning(f"getQuotes API failed, falling back to search: {e}")
            return self.find_quotes_via_search(post_uri)

        quotes = data.get("posts") or []
        logger.info(f"Found {len(quotes)} quotes via getQuotes API")
        return quotes

    def find_quotes_via_search(self, post_uri: str) -> List[Dict[str, Any]]:
        """
        Search for quotes of post_uri using a prefix of its record key.

        Search results are a superset; the embed reference check decides.
        """
        rkey = record_key_of_uri(post_uri)
        if not rkey:
            logger.error(f"Could not extract post ID from URI: {post_uri}")
            return []

        query = rkey[:settings.QUOTE_SEARCH_QUERY_LENGTH]
        try:
            data = self.client.get("app.bsky.feed.searchPosts",
                                   {"q": query, "limit": settings.QUOTES_FETCH_LIMIT})
        except ApiRequestError as e:
            logger.error(f"Search fallback also failed: {e}")
            return []

        quotes = [post for post in data.get("posts") or [] if embed_references_uri(post, post_uri)]
        logger.info(f"Found {len(quotes)} quotes via search fallback")
        return quotes

    def process_quotes(self, post_url: str) -> Dict[str, Any]:
        """
        Export the quotes of the post at a bsky.app URL.

        Args:
            post_url: e.g. https://bsky.app/profile/alice.bsky.social/post/3kabc

        Returns:
            dict: {"metadata": {...}, "root"?: {...}, "quotePosts": [...]}
        """
        if not post_url or not post_url.strip():
            raise InputValidationError("Please enter a Bluesky post URL")

        handle, post_id = parse_post_url(post_url)
        post_uri = self.client.build_post_uri(handle, post_id)
        logger.info(f"Searching for quotes of post: {post_uri}")

        original_post = self.client.fetch_original_post(post_uri)
        root_time = safe_get_created_at(original_post)

        quotes = self.find_quotes(post_uri)
        quote_posts = anonymize_all(quotes, SourceKind.SEARCH, AnonymizeOptions(
            include_post_type=False,
            include_alt_text=True,
            include_quoted_snippet=True,
        ))

        return build_standard_output(
            original_post, quote_posts, "quotePosts",
            originalPost=post_uri,
            rootTime=root_time,
            totalQuotes=len(quote_posts),
        )
