"""
Anonymizer Module

Turns raw Bluesky posts, whatever endpoint they came from, into the
toolkit's canonical AnonymizedPost. Author identity, URIs and CIDs are
dropped; every missing field resolves to a documented default here and
nowhere else.
"""

from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from data.models import AnonymizedPost, AnonymizeOptions, PostType, SourceKind
from services.classifier import (
    classify, extract_alt_text, extract_quoted_snippet, has_links, has_media,
)
from utils.helpers import safe_get, utc_now_iso
from utils.logger import get_logger

logger = get_logger(__name__)


def unwrap(item: Dict[str, Any], source_kind: SourceKind) -> Dict[str, Any]:
    """
    Get the post view out of a raw item.

    Args:
        item: A feed item, a search hit, or a thread node.
        source_kind: How the item wraps its post.

    Returns:
        The post view (may be empty if the item carries none).
    """
    source_kind = SourceKind(source_kind)
    if source_kind is SourceKind.SEARCH:
        return item
    # Feed items and thread nodes both nest the post
    return item.get("post") or {}


def safe_get_created_at(post: Optional[Dict[str, Any]]) -> Optional[str]:
    """Authored timestamp, else the server's indexing time, else None."""
    return safe_get(post, "record", "createdAt") or safe_get(post, "indexedAt") or None


def _count(post: Dict[str, Any], key: str) -> int:
    value = post.get(key)
    return value if isinstance(value, int) else 0


def anonymize(post: Dict[str, Any], options: Optional[AnonymizeOptions] = None) -> AnonymizedPost:
    """
    Build the anonymized form of a single post.

    Args:
        post: The raw post view.
        options: What to include and the 0-based index used for the id.

    Returns:
        AnonymizedPost: Never raises for missing optional fields.
    """
    options = options or AnonymizeOptions()
    post = post or {}
    record = post.get("record") or {}

    langs = record.get("langs")
    language = langs[0] if isinstance(langs, list) and langs and langs[0] else "unknown"

    anonymized = AnonymizedPost(
        id=f"post_{options.index + 1}",
        text=record.get("text") or "",
        created_at=safe_get_created_at(post) or "",
        like_count=_count(post, "likeCount"),
        reply_count=_count(post, "replyCount"),
        repost_count=_count(post, "repostCount"),
        has_media=has_media(post),
        has_links=has_links(post),
        language=language,
    )

    if "quoteCount" in post:
        anonymized.quote_count = _count(post, "quoteCount")

    post_type = options.post_type
    if options.include_post_type or options.include_quoted_snippet:
        post_type = post_type or classify(post, options.container)
    if options.include_post_type:
        anonymized.post_type = post_type

    if options.include_alt_text:
        # Record-level first, then whatever the view adds
        alt_texts = extract_alt_text(record.get("embed")) + extract_alt_text(post.get("embed"))
        if alt_texts:
            anonymized.alt_text = alt_texts

    if options.include_quoted_snippet and post_type == PostType.QUOTE:
        snippet = extract_quoted_snippet(record.get("embed")) or extract_quoted_snippet(post.get("embed"))
        if snippet:
            anonymized.quoted_post_snippet = snippet

    return anonymized


def anonymize_all(items: Iterable[Dict[str, Any]], source_kind: SourceKind,
                  options: Optional[AnonymizeOptions] = None) -> List[AnonymizedPost]:
    """
    Anonymize a collection, numbering posts post_1, post_2, ... in order.

    Args:
        items: Raw items as returned by one endpoint.
        source_kind: How those items wrap their posts.
        options: Shared options; index and container are set per item.

    Returns:
        List[AnonymizedPost]: One entry per item, in input order.
    """
    source_kind = SourceKind(source_kind)
    options = options or AnonymizeOptions()

    anonymized = []
    for index, item in enumerate(items):
        item_options = replace(
            options,
            index=index,
            container=item if source_kind is SourceKind.FEED else None,
        )
        anonymized.append(anonymize(unwrap(item, source_kind), item_options))

    logger.debug(f"Anonymized {len(anonymized)} {source_kind.value} items")
    return anonymized


def build_standard_output(root_post: Optional[Dict[str, Any]], children: Optional[List[Any]],
                          child_data_key: str, **metadata: Any) -> Dict[str, Any]:
    """
    Assemble the exported JSON document.

    Args:
        root_post: Raw post the export is about, if any; it is anonymized as post_1.
        children: AnonymizedPost or ThreadNode objects (or plain dicts).
        child_data_key: "replies", "quotePosts" or "posts".
        **metadata: Context-specific metadata fields.

    Returns:
        dict: {"metadata": {...}, "root"?: {...}, child_data_key: [...]}
    """
    output: Dict[str, Any] = {
        "metadata": {
            "processedAt": utc_now_iso(),
            **metadata,
        }
    }

    if root_post:
        output["root"] = anonymize(root_post, AnonymizeOptions(
            include_post_type=False,
            include_alt_text=True,
            index=0,
        )).to_dict()

    output[child_data_key] = [
        child.to_dict() if hasattr(child, "to_dict") else child
        for child in (children or [])
    ]
    return output
