"""
Feed Service Module

Exports posts from the four kinds of Bluesky listing a user can point the
toolkit at: a profile (with post type filters), a custom feed, a list, or
a starter pack (fanned out over its members' profiles).
"""

import math
from typing import Any, Callable, Dict, List, Optional, Tuple

from config import settings
from data.models import AnonymizeOptions, PostFilters, PostType, SourceKind
from services.anonymizer import anonymize_all, build_standard_output, unwrap
from services.classifier import classify
from services.paginator import Paginator
from services.protocols import XrpcClientProtocol
from utils.bsky_urls import (
    FEED_GENERATOR_COLLECTION, LIST_COLLECTION, STARTER_PACK_COLLECTION,
    extract_feed_parts, extract_handle_from_profile_url, extract_list_parts,
    extract_starter_pack_parts,
)
from utils.exceptions import InputValidationError, InvalidUrlError
from utils.helpers import safe_get
from utils.logger import get_logger

logger = get_logger(__name__)

AUTHOR_FEED = "app.bsky.feed.getAuthorFeed"


def make_type_filter(filters: PostFilters) -> Callable[[Dict[str, Any]], bool]:
    """
    Build the feed item predicate for a profile export.

    Originals and thread continuations count as "posts"; replies to other
    authors are never selected.
    """
    selected = set()
    if filters.include_posts:
        selected.update((PostType.ORIGINAL, PostType.THREAD))
    if filters.include_reposts:
        selected.add(PostType.REPOST)
    if filters.include_quotes:
        selected.add(PostType.QUOTE)

    def _matches(item: Dict[str, Any]) -> bool:
        return classify(unwrap(item, SourceKind.FEED), item) in selected

    return _matches


class FeedService:
    """Exports anonymized posts from profiles, custom feeds, lists and starter packs."""

    def __init__(self, client: XrpcClientProtocol, paginator: Optional[Paginator] = None):
        """
        Initialize the feed service.

        Args:
            client: A BskyClient or compatible client (needs get() and build_record_uri()).
            paginator: Paginator to use, built on client by default.
        """
        self.client = client
        self.paginator = paginator or Paginator(client)

    def process(self, url: str, content_type: str, limit: Optional[int] = None,
                filters: Optional[PostFilters] = None) -> Dict[str, Any]:
        """
        Export posts from a bsky.app URL.

        Args:
            url: Profile, custom feed, list or starter pack URL.
            content_type: "profile", "feed", "list" or "starterpack".
            limit: Maximum number of posts, defaults to settings.DEFAULT_RESULT_LIMIT.
            filters: Post type filters, only used for profiles.

        Returns:
            dict: {"metadata": {...}, "posts": [...]}

        Raises:
            InputValidationError: For a missing URL, bad content type or bad limit.
        """
        url = (url or "").strip()
        if not url:
            raise InputValidationError("Please enter a URL")
        if content_type not in settings.CONTENT_TYPES:
            raise InputValidationError(f"Invalid content type selected: {content_type!r}")
        if limit is None:
            limit = settings.DEFAULT_RESULT_LIMIT
        if limit < 1:
            raise InputValidationError(f"Limit must be a positive number, got {limit}")

        logger.info(f"Processing {content_type} feed: {url} (limit: {limit})")

        handlers = {
            "profile": lambda: self.fetch_profile(url, limit, filters),
            "feed": lambda: self.fetch_custom_feed(url, limit),
            "list": lambda: self.fetch_list_feed(url, limit),
            "starterpack": lambda: self.fetch_starter_pack(url, limit),
        }
        items, metadata = handlers[content_type]()

        posts = anonymize_all(items, SourceKind.FEED, AnonymizeOptions(
            include_post_type=True,
            include_alt_text=True,
        ))
        logger.info(f"Feed processing completed: {len(posts)} posts")

        return build_standard_output(
            None, posts, "posts",
            **metadata,
            contentType=content_type,
            totalPosts=len(posts),
        )

    def fetch_profile(self, url: str, limit: int,
                      filters: Optional[PostFilters] = None) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        """Collect a profile's feed items that pass the post type filters."""
        handle = extract_handle_from_profile_url(url)
        if not handle:
            raise InvalidUrlError("Invalid profile URL format")

        filters = filters or PostFilters()
        logger.info(f"Post filters for {handle}: {filters.to_dict()}")

        result = self.paginator.collect_filtered(
            AUTHOR_FEED, {"actor": handle}, make_type_filter(filters), limit,
            data_key="feed",
        )
        return result.items, {
            "source": url,
            "actor": handle,
            "feedType": "profile",
            "filters": filters.to_dict(),
            "totalFetched": result.total_fetched,
        }

    def fetch_custom_feed(self, url: str, limit: int) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        parts = extract_feed_parts(url)
        if not parts:
            raise InvalidUrlError("Invalid custom feed URL format")

        feed_uri = self.client.build_record_uri(parts[0], FEED_GENERATOR_COLLECTION, parts[1])
        result = self.paginator.collect("app.bsky.feed.getFeed", {"feed": feed_uri}, limit, data_key="feed")
        return result.items, {
            "source": url,
            "feedUri": feed_uri,
            "feedType": "custom",
        }

    def fetch_list_feed(self, url: str, limit: int) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        parts = extract_list_parts(url)
        if not parts:
            raise InvalidUrlError("Invalid list URL format")

        list_uri = self.client.build_record_uri(parts[0], LIST_COLLECTION, parts[1])
        result = self.paginator.collect("app.bsky.feed.getListFeed", {"list": list_uri}, limit, data_key="feed")
        return result.items, {
            "source": url,
            "listUri": list_uri,
            "feedType": "list",
        }

    def fetch_starter_pack(self, url: str, limit: int) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        """
        Collect posts from the members of a starter pack.

        Only the pack's member sample is used. Each member gets an equal share
        of the limit and is fetched in turn; a member whose feed cannot be
        fetched contributes nothing and the export carries on.
        """
        parts = extract_starter_pack_parts(url)
        if not parts:
            raise InvalidUrlError("Invalid starter pack URL format")

        pack_uri = self.client.build_record_uri(parts[0], STARTER_PACK_COLLECTION, parts[1])
        data = self.client.get("app.bsky.graph.getStarterPack", {"starterPack": pack_uri})

        members = safe_get(data, "starterPack", "list", "listItemsSample", default=[])
        logger.info(f"Found {len(members)} users in starter pack")

        metadata = {
            "source": url,
            "starterPackUri": pack_uri,
            "feedType": "starterpack",
            "userCount": len(members),
        }
        if not members:
            return [], metadata

        per_member = math.ceil(limit / len(members))
        items: List[Dict[str, Any]] = []
        failed = 0

        for member in members:
            if len(items) >= limit:
                break

            actor = safe_get(member, "subject", "handle") or safe_get(member, "subject", "did")
            if not actor:
                continue

            try:
                result = self.paginator.collect(AUTHOR_FEED, {"actor": actor},
                                                min(per_member, limit - len(items)), data_key="feed")
            except Exception as e:
                failed += 1
                logger.warning(f"Failed to fetch posts from {actor}: {e}")
                continue

            items.extend(result.items)
            logger.debug(f"Added {len(result.items)} posts from {actor}")

        metadata["failedUsers"] = failed
        return items[:limit], metadata
