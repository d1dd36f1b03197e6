"""
Search Service Module

Full-text post search through app.bsky.feed.searchPosts. The endpoint
needs an authenticated session.
"""

from typing import Any, Dict, Optional

from config import settings
from data.models import AnonymizeOptions, SourceKind
from services.anonymizer import anonymize_all, build_standard_output
from services.paginator import Paginator
from utils.exceptions import AuthenticationError, InputValidationError
from utils.logger import get_logger

logger = get_logger(__name__)


class SearchService:
    """Searches posts and exports the hits anonymized."""

    def __init__(self, client, paginator: Optional[Paginator] = None):
        """
        Initialize the search service.

        Args:
            client: A BskyClient (its session authenticates the search).
            paginator: Paginator to use, built on client by default.
        """
        self.client = client
        self.paginator = paginator or Paginator(client)

    def search(self, query: str, limit: Optional[int] = None, sort: str = "top") -> Dict[str, Any]:
        """
        Search posts.

        Args:
            query: Search query.
            limit: Maximum number of results, defaults to settings.DEFAULT_RESULT_LIMIT.
            sort: "top" or "latest".

        Returns:
            dict: {"metadata": {...}, "posts": [...]}

        Raises:
            InputValidationError: For an empty query, unknown sort or bad limit.
            AuthenticationError: If the client has no session.
        """
        query = (query or "").strip()
        if not query:
            raise InputValidationError("Please enter a search query")
        if sort not in settings.SEARCH_SORT_OPTIONS:
            raise InputValidationError(f"Sort must be one of {settings.SEARCH_SORT_OPTIONS}, got {sort!r}")
        if limit is None:
            limit = settings.DEFAULT_RESULT_LIMIT
        if limit < 1:
            raise InputValidationError(f"Limit must be a positive number, got {limit}")
        if not self.client.is_authenticated:
            raise AuthenticationError("Please authenticate first")

        # Large "top" searches sample better in small pages
        per_request = settings.MAX_PAGE_SIZE
        if limit > settings.MAX_PAGE_SIZE and sort == "top":
            per_request = settings.SEARCH_TOP_BATCH_SIZE

        logger.info(f'Searching for: "{query}" (limit: {limit}, sort: {sort})')

        result = self.paginator.collect(
            "app.bsky.feed.searchPosts", {"q": query, "sort": sort}, limit,
            data_key="posts",
            auth_required=True,
            per_request_cap=per_request,
        )

        # Search hits carry no feed context, so post types would be guesses
        posts = anonymize_all(result.items, SourceKind.SEARCH, AnonymizeOptions(
            include_post_type=False,
            include_alt_text=True,
        ))
        logger.info(f"Search completed: {len(posts)} results")

        return build_standard_output(
            None, posts, "posts",
            query=query,
            sort=sort,
            totalResults=len(posts),
        )
