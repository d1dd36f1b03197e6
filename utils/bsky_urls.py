"""
Bluesky Web URL Parsing

Helpers that turn bsky.app web URLs (post, profile, custom feed, list and
starter pack pages) into the identifiers the XRPC API expects.
"""

import re
from typing import Optional, Tuple
from urllib.parse import urlparse

from atproto import AtUri

from config import settings
from utils.exceptions import InvalidUrlError

POST_COLLECTION = "app.bsky.feed.post"
FEED_GENERATOR_COLLECTION = "app.bsky.feed.generator"
LIST_COLLECTION = "app.bsky.graph.list"
STARTER_PACK_COLLECTION = "app.bsky.graph.starterpack"

_POST_PATH = re.compile(r"^/profile/([^/]+)/post/([^/?#]+)")
_PROFILE_PATH = re.compile(r"^/profile/([^/?#]+)")
_FEED_PATH = re.compile(r"^/profile/([^/]+)/feed/([^/?#]+)")
_LIST_PATH = re.compile(r"^/profile/([^/]+)/lists/([^/?#]+)")
_STARTER_PACK_PATH = re.compile(r"^/starter-pack/([^/]+)/([^/?#]+)")
_STARTER_PACK_SHORT_PATH = re.compile(r"^/starter-pack-short/([^/?#]+)")


def _bsky_path(url: str) -> Optional[str]:
    """Return the path of a bsky.app URL, or None for any other URL."""
    if not url or not isinstance(url, str):
        return None
    parsed = urlparse(url.strip())
    if parsed.scheme != "https" or parsed.hostname not in settings.BSKY_WEB_HOSTS:
        return None
    return parsed.path


def parse_post_url(url: str) -> Tuple[str, str]:
    """
    Split a post URL into the author's handle (or DID) and the post's record key.

    Args:
        url: e.g. https://bsky.app/profile/alice.bsky.social/post/3kabc

    Returns:
        Tuple: (handle, post_id)

    Raises:
        InvalidUrlError: If the URL is not a Bluesky post URL.
    """
    path = _bsky_path(url)
    match = _POST_PATH.match(path) if path else None
    if not match:
        raise InvalidUrlError(f"Invalid Bluesky post URL format: {url}")
    return match.group(1), match.group(2)


def extract_handle_from_profile_url(url: str) -> Optional[str]:
    path = _bsky_path(url)
    match = _PROFILE_PATH.match(path) if path else None
    return match.group(1) if match else None


def extract_feed_parts(url: str) -> Optional[Tuple[str, str]]:
    """(identifier, rkey) of a custom feed URL, or None."""
    path = _bsky_path(url)
    match = _FEED_PATH.match(path) if path else None
    return (match.group(1), match.group(2)) if match else None


def extract_list_parts(url: str) -> Optional[Tuple[str, str]]:
    """(identifier, rkey) of a list URL, or None."""
    path = _bsky_path(url)
    match = _LIST_PATH.match(path) if path else None
    return (match.group(1), match.group(2)) if match else None


def extract_starter_pack_parts(url: str) -> Optional[Tuple[str, str]]:
    """
    (creator, rkey) of a starter pack URL, or None.

    Raises:
        InvalidUrlError: For short starter pack links, which cannot be resolved offline.
    """
    path = _bsky_path(url)
    if not path:
        return None
    match = _STARTER_PACK_PATH.match(path)
    if match:
        return match.group(1), match.group(2)
    if _STARTER_PACK_SHORT_PATH.match(path):
        raise InvalidUrlError("Short starter pack URLs are not supported. Please use the full URL format.")
    return None


def make_at_uri(identity: str, collection: str, rkey: str) -> str:
    return f"at://{identity}/{collection}/{rkey}"


def _parse_at_uri(uri: Optional[str]) -> Optional[AtUri]:
    if not isinstance(uri, str) or not uri.startswith("at://"):
        return None
    authority = uri[len("at://"):].split("/", 1)[0]
    if not authority or authority.endswith(":"):
        return None
    try:
        parsed = AtUri.from_str(uri)
    except Exception:
        # Malformed URIs are treated as unparseable, never as errors
        return None
    # Hosts such as "at:" come from a scheme with no authority
    if not parsed.host or parsed.host.endswith(":"):
        return None
    return parsed


def owner_of_uri(uri: Optional[str]) -> Optional[str]:
    """
    Get the repository identity (DID or handle) that owns an AT URI.

    Args:
        uri: A URI such as at://did:plc:abc/app.bsky.feed.post/3k2a

    Returns:
        The identity segment, or None if the URI cannot be parsed.
    """
    parsed = _parse_at_uri(uri)
    return (parsed.host or None) if parsed else None


def record_key_of_uri(uri: Optional[str]) -> Optional[str]:
    """The record key (last path segment) of an AT URI, or None."""
    parsed = _parse_at_uri(uri)
    return (parsed.rkey or None) if parsed else None
