"""
Post Classifier Module

Pure functions that look at a raw Bluesky post (and, for feed listings, the
feed item wrapping it) and work out what kind of post it is, together with
a few derived facts: media presence, link presence, image alt text and the
text of a quoted post.

Nothing here performs I/O or mutates its arguments.
"""

from typing import Any, Dict, List, Optional

from config import settings
from data.models import PostType
from utils.bsky_urls import owner_of_uri
from utils.helpers import safe_get, truncate_text

# Lexicon type identifiers
REASON_REPOST = "app.bsky.feed.defs#reasonRepost"
EMBED_IMAGES = "app.bsky.embed.images"
EMBED_EXTERNAL = "app.bsky.embed.external"
EMBED_RECORD = "app.bsky.embed.record"
EMBED_RECORD_WITH_MEDIA = "app.bsky.embed.recordWithMedia"
FACET_LINK = "app.bsky.richtext.facet#link"

QUOTE_EMBEDS = (EMBED_RECORD, EMBED_RECORD_WITH_MEDIA)
MEDIA_EMBEDS = (EMBED_IMAGES, EMBED_EXTERNAL, EMBED_RECORD_WITH_MEDIA)


def _embed_type(embed: Optional[Dict[str, Any]]) -> Optional[str]:
    """Return the embed's $type without any #view suffix."""
    embed_type = safe_get(embed, "$type")
    if not isinstance(embed_type, str):
        return None
    return embed_type.split("#", 1)[0]


def is_repost(container: Optional[Dict[str, Any]]) -> bool:
    return safe_get(container, "reason", "$type") == REASON_REPOST


def is_quote(post: Dict[str, Any]) -> bool:
    return _embed_type(safe_get(post, "record", "embed")) in QUOTE_EMBEDS


def classify(post: Dict[str, Any], container: Optional[Dict[str, Any]] = None) -> PostType:
    """
    Determine the type of a post.

    Signals are checked in precedence order and the first match wins:
    repost (from the feed item's reason), quote (from the record embed),
    reply or thread (from the record's reply parent), then original.

    Args:
        post: The raw post view.
        container: The feed item wrapping the post, if it came from a feed listing.

    Returns:
        PostType: Exactly one post type.
    """
    if is_repost(container):
        return PostType.REPOST

    if is_quote(post):
        return PostType.QUOTE

    reply = safe_get(post, "record", "reply")
    if reply:
        author_did = safe_get(post, "author", "did")
        parent_owner = owner_of_uri(safe_get(reply, "parent", "uri"))
        if author_did and parent_owner and author_did == parent_owner:
            return PostType.THREAD
        return PostType.REPLY

    return PostType.ORIGINAL


def has_media(post: Dict[str, Any]) -> bool:
    """True if the post carries images, a link card, or media next to a quote."""
    return _embed_type(safe_get(post, "record", "embed")) in MEDIA_EMBEDS


def has_links(post: Dict[str, Any]) -> bool:
    """True if any rich-text facet of the post is a link."""
    for facet in safe_get(post, "record", "facets", default=[]):
        for feature in safe_get(facet, "features", default=[]):
            if safe_get(feature, "$type") == FACET_LINK:
                return True
    return False


def _image_alts(images: Any) -> List[str]:
    if not isinstance(images, list):
        return []
    return [img["alt"] for img in images
            if isinstance(img, dict) and isinstance(img.get("alt"), str) and img["alt"]]


def extract_alt_text(embed: Optional[Dict[str, Any]]) -> List[str]:
    """
    Collect image alt text from an embed, record-level or view-level.

    Args:
        embed: An embed object, or None.

    Returns:
        List[str]: Non-empty alt strings in image order; empty for other embed types.
    """
    embed_type = _embed_type(embed)
    if embed_type == EMBED_IMAGES:
        return _image_alts(safe_get(embed, "images"))
    if embed_type == EMBED_RECORD_WITH_MEDIA:
        return _image_alts(safe_get(embed, "media", "images"))
    return []


def extract_quoted_snippet(embed: Optional[Dict[str, Any]],
                           max_length: Optional[int] = None) -> Optional[str]:
    """
    Get the start of the quoted post's text.

    Args:
        embed: The record-level embed of the quoting post.
        max_length: Characters to keep before adding "...", defaults to settings.SNIPPET_LENGTH.

    Returns:
        str: The snippet, or None if the embed quotes nothing or the quoted text is empty.
    """
    if max_length is None:
        max_length = settings.SNIPPET_LENGTH

    embed_type = _embed_type(embed)
    if embed_type == EMBED_RECORD:
        quoted_text = safe_get(embed, "record", "value", "text")
    elif embed_type == EMBED_RECORD_WITH_MEDIA:
        quoted_text = safe_get(embed, "record", "record", "value", "text")
    else:
        return None

    if not quoted_text or not isinstance(quoted_text, str):
        return None
    return truncate_text(quoted_text, max_length)


def embed_references_uri(post: Dict[str, Any], uri: str) -> bool:
    """True if the post's record embed quotes exactly the given URI."""
    embed = safe_get(post, "record", "embed")
    embed_type = _embed_type(embed)
    if embed_type == EMBED_RECORD:
        return safe_get(embed, "record", "uri") == uri
    if embed_type == EMBED_RECORD_WITH_MEDIA:
        return safe_get(embed, "record", "record", "uri") == uri
    return False
