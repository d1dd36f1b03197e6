"""
Tests for Bluesky URL Parsing

Tests cover web URL parsing for posts, profiles, feeds, lists and starter
packs, and AT URI helpers.
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from utils.bsky_urls import (
    extract_feed_parts, extract_handle_from_profile_url, extract_list_parts,
    extract_starter_pack_parts, make_at_uri, owner_of_uri, parse_post_url, record_key_of_uri,
)
from utils.exceptions import InvalidUrlError


class TestParsePostUrl:
    """Tests for parse_post_url()."""

    def test_handle_post(self):
        assert parse_post_url("https://bsky.app/profile/alice.bsky.social/post/3kabc") == \
            ("alice.bsky.social", "3kabc")

    def test_did_post_with_query(self):
        assert parse_post_url("https://bsky.app/profile/did:plc:alice/post/3kabc?ref=share") == \
            ("did:plc:alice", "3kabc")

    def test_staging_host(self):
        assert parse_post_url("https://staging.bsky.app/profile/a.test/post/1")[1] == "1"

    @pytest.mark.parametrize("url", [
        "",
        "not a url",
        "https://bsky.app/profile/alice.bsky.social",
        "https://example.com/profile/alice.bsky.social/post/3kabc",
        "http://bsky.app/profile/alice.bsky.social/post/3kabc",
        "https://bsky.app.evil.com/profile/alice.bsky.social/post/3kabc",
    ])
    def test_invalid(self, url):
        """Anything but an https bsky.app post URL is rejected."""
        with pytest.raises(InvalidUrlError):
            parse_post_url(url)


class TestListingUrls:
    """Tests for profile, feed, list and starter pack URLs."""

    def test_profile(self):
        assert extract_handle_from_profile_url("https://bsky.app/profile/alice.bsky.social") == "alice.bsky.social"
        assert extract_handle_from_profile_url("https://bsky.app/profile/alice.bsky.social/") == "alice.bsky.social"
        assert extract_handle_from_profile_url("https://bsky.app/search") is None

    def test_feed(self):
        assert extract_feed_parts("https://bsky.app/profile/alice.bsky.social/feed/whats-hot") == \
            ("alice.bsky.social", "whats-hot")
        assert extract_feed_parts("https://bsky.app/profile/alice.bsky.social") is None

    def test_list(self):
        assert extract_list_parts("https://bsky.app/profile/did:plc:alice/lists/3klist") == \
            ("did:plc:alice", "3klist")
        assert extract_list_parts("https://bsky.app/profile/alice/feed/x") is None

    def test_starter_pack(self):
        assert extract_starter_pack_parts("https://bsky.app/starter-pack/alice.bsky.social/3kpack") == \
            ("alice.bsky.social", "3kpack")
        assert extract_starter_pack_parts("https://bsky.app/profile/alice") is None
        assert extract_starter_pack_parts("https://example.com/starter-pack/a/b") is None

    def test_short_starter_pack(self):
        """Short starter pack links raise."""
        with pytest.raises(InvalidUrlError, match="Short starter pack"):
            extract_starter_pack_parts("https://bsky.app/starter-pack-short/abc123")


class TestAtUris:
    """Tests for AT URI helpers."""

    def test_make_at_uri(self):
        assert make_at_uri("did:plc:alice", "app.bsky.feed.post", "3kabc") == \
            "at://did:plc:alice/app.bsky.feed.post/3kabc"

    def test_owner_and_record_key(self):
        uri = "at://did:plc:alice/app.bsky.feed.post/3kabc"
        assert owner_of_uri(uri) == "did:plc:alice"
        assert record_key_of_uri(uri) == "3kabc"

    @pytest.mark.parametrize("uri", [None, "", "https://bsky.app/profile/a", 42, "at://", "at:///x",
                                     "at:///app.bsky.feed.post/3kabc"])
    def test_unparseable(self, uri):
        """Anything that is not an AT URI yields None."""
        assert owner_of_uri(uri) is None
        assert record_key_of_uri(uri) is None

    def test_uri_without_record_key(self):
        assert record_key_of_uri("at://did:plc:alice") is None
