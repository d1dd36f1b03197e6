"""
Thread Service Module

Rebuilds reply trees. app.bsky.feed.getPostThread nests replies, but the
nesting is pruned by depth limits, blocks and deletions, so the toolkit
flattens whatever it receives and rebuilds the tree from each reply's own
parent pointer. Every level of the rebuilt tree is ordered oldest first.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config import settings
from data.models import AnonymizedPost, AnonymizeOptions, SourceKind, ThreadNode
from services.anonymizer import anonymize, build_standard_output, safe_get_created_at, unwrap
from services.protocols import XrpcClientProtocol, RecordUriBuilderProtocol
from utils.bsky_urls import parse_post_url
from utils.exceptions import InputValidationError, SocialMediaError
from utils.helpers import parse_timestamp, safe_get
from utils.logger import get_logger

logger = get_logger(__name__)

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class _BuildNode:
    """Construction-time node. Never leaves this module."""
    uri: Optional[str]
    parent_uri: Optional[str]
    created_at: datetime
    payload: AnonymizedPost
    children: List["_BuildNode"] = field(default_factory=list)


def flatten_thread(thread: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Collect every descendant reply of a getPostThread node, depth first.

    Nodes without a post (blocked or not-found placeholders) are skipped,
    but their own replies are still visited.

    Args:
        thread: The "thread" object of a getPostThread response.

    Returns:
        List[dict]: Thread nodes, each carrying a "post".
    """
    replies: List[Dict[str, Any]] = []

    def _walk(node: Dict[str, Any]) -> None:
        for reply in node.get("replies") or []:
            if not isinstance(reply, dict):
                continue
            if reply.get("post"):
                replies.append(reply)
            _walk(reply)

    if thread:
        _walk(thread)
    return replies


def _is_complete(post: Dict[str, Any]) -> bool:
    """A usable reply has a creation timestamp and either text or an embed."""
    record = post.get("record") or {}
    if not record.get("createdAt"):
        return False
    return bool(record.get("text") or record.get("embed") or post.get("embed"))


def _usable_replies(flat_replies: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    usable = []
    seen_uris = set()
    for item in flat_replies:
        post = unwrap(item, SourceKind.THREAD)
        if not _is_complete(post):
            logger.debug(f"Skipping incomplete reply {post.get('uri')}")
            continue
        uri = post.get("uri")
        if uri and uri in seen_uris:
            continue
        seen_uris.add(uri)
        usable.append(post)
    return usable


def _sort_chronologically(nodes: List[_BuildNode]) -> None:
    # list.sort is stable: equal timestamps keep their encounter order
    nodes.sort(key=lambda node: node.created_at)
    for node in nodes:
        _sort_chronologically(node.children)


def _project(node: _BuildNode) -> ThreadNode:
    return ThreadNode(post=node.payload, children=[_project(child) for child in node.children])


def build_thread(flat_replies: List[Dict[str, Any]], root_time: Optional[str] = None) -> List[ThreadNode]:
    """
    Rebuild a reply tree from a flat list of thread nodes.

    Args:
        flat_replies: Thread-shaped items ({"post": {...}}) in any order.
        root_time: Creation time of the thread's root post. Replies whose own
            timestamp cannot be parsed sort as if posted at this instant.

    Returns:
        List[ThreadNode]: Top-level replies, oldest first, each holding its descendants.
    """
    posts = _usable_replies(flat_replies)
    if not posts:
        return []

    # All replies in one thread share the same root
    root_uri = safe_get(posts[0], "record", "reply", "root", "uri")
    fallback_instant = parse_timestamp(root_time) or _EARLIEST

    nodes: List[_BuildNode] = []
    nodes_by_uri: Dict[str, _BuildNode] = {}
    for index, post in enumerate(posts):
        payload = anonymize(post, AnonymizeOptions(
            include_post_type=True,
            include_alt_text=True,
            index=index,
        ))
        node = _BuildNode(
            uri=post.get("uri"),
            parent_uri=safe_get(post, "record", "reply", "parent", "uri") or root_uri,
            created_at=parse_timestamp(safe_get(post, "record", "createdAt")) or fallback_instant,
            payload=payload,
        )
        nodes.append(node)
        if node.uri:
            nodes_by_uri[node.uri] = node

    top_level: List[_BuildNode] = []
    for node in nodes:
        if node.parent_uri == root_uri:
            top_level.append(node)
            continue
        parent = nodes_by_uri.get(node.parent_uri)
        if parent is None or parent is node:
            logger.debug(f"Parent {node.parent_uri} of {node.payload.id} not in thread, promoting to top level")
            top_level.append(node)
        else:
            parent.children.append(node)

    # Replies whose parent chain loops back on itself are not reachable yet
    reached = set()

    def _mark(start: _BuildNode) -> None:
        stack = [start]
        while stack:
            current = stack.pop()
            if id(current) not in reached:
                reached.add(id(current))
                stack.extend(current.children)

    for node in top_level:
        _mark(node)

    for node in nodes:
        if id(node) in reached:
            continue
        logger.debug(f"Reply {node.payload.id} is part of a parent cycle, promoting to top level")
        parent = nodes_by_uri[node.parent_uri]
        parent.children = [child for child in parent.children if child is not node]
        top_level.append(node)
        _mark(node)

    _sort_chronologically(top_level)
    return [_project(node) for node in top_level]


def count_all(nodes: List[ThreadNode]) -> int:
    """Total number of nodes in a forest, at every depth."""
    return sum(1 + count_all(node.children) for node in nodes)


class ThreadService:
    """Exports the replies to a post as an anonymized tree."""

    def __init__(self, client: XrpcClientProtocol):
        """
        Initialize the thread service.

        Args:
            client: A BskyClient or anything providing get() and build_post_uri().
        """
        self.client = client

    def fetch_thread(self, post_uri: str, depth: Optional[int] = None) -> Dict[str, Any]:
        """
        Fetch the thread below a post.

        Raises:
            ApiRequestError: If getPostThread fails (there is no fallback).
            SocialMediaError: If the post is missing, blocked or deleted.
        """
        if depth is None:
            depth = settings.THREAD_DEPTH

        data = self.client.get("app.bsky.feed.getPostThread",
                               {"uri": post_uri, "depth": depth, "parentHeight": 0})
        thread = data.get("thread") or {}
        if not thread.get("post"):
            raise SocialMediaError(f"Post not available: {post_uri} ({thread.get('$type', 'no thread')})")
        return thread

    def process_replies(self, post_url: str, depth: Optional[int] = None) -> Dict[str, Any]:
        """
        Export the replies to the post at a bsky.app URL.

        Args:
            post_url: e.g. https://bsky.app/profile/alice.bsky.social/post/3kabc
            depth: Reply depth to request, defaults to settings.THREAD_DEPTH.

        Returns:
            dict: {"metadata": {...}, "root": {...}, "replies": [...]}
        """
        if not post_url or not post_url.strip():
            raise InputValidationError("Please enter a Bluesky post URL")

        handle, post_id = parse_post_url(post_url)
        logger.info(f"Processing replies for {handle}/{post_id}")

        uri_builder: RecordUriBuilderProtocol = self.client
        post_uri = uri_builder.build_post_uri(handle, post_id)

        thread = self.fetch_thread(post_uri, depth)
        root_post = thread["post"]
        root_time = safe_get_created_at(root_post)

        replies = build_thread(flatten_thread(thread), root_time=root_time)
        total = count_all(replies)
        logger.info(f"Processed {total} replies ({len(replies)} top level)")

        return build_standard_output(
            root_post, replies, "replies",
            originalPost=post_uri,
            rootTime=root_time,
            totalReplies=total,
            topLevelReplies=len(replies),
        )
