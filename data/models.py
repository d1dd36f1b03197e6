"""
Data Models for the Bluesky Export Toolkit

This module contains the data classes and enums shared by the classifier,
anonymizer, paginator and thread reconstructor. Raw upstream posts stay
plain dictionaries; everything produced by the toolkit is modelled here.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class PostType(str, Enum):
    """What kind of post an item is. Exactly one per post."""
    ORIGINAL = "original"
    REPLY = "reply"
    THREAD = "thread"      # Reply to a post by the same author
    REPOST = "repost"
    QUOTE = "quote"


class SourceKind(str, Enum):
    """How a raw item wraps its post, declared by the caller."""
    FEED = "feed"          # {"post": {...}, "reason": ..., "reply": ...}
    SEARCH = "search"      # The item is the post
    THREAD = "thread"      # {"post": {...}, "replies": [...]}


@dataclass
class AnonymizedPost:
    """Data class for a post stripped of author identity."""
    id: str                                    # post_<n>, 1-based within its collection
    text: str
    created_at: str
    like_count: int = 0
    reply_count: int = 0
    repost_count: int = 0
    has_media: bool = False
    has_links: bool = False
    language: str = "unknown"
    post_type: Optional[PostType] = None
    alt_text: Optional[List[str]] = None
    quote_count: Optional[int] = None
    quoted_post_snippet: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the exported JSON shape, omitting absent optional fields."""
        data: Dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "createdAt": self.created_at,
            "likeCount": self.like_count,
            "replyCount": self.reply_count,
            "repostCount": self.repost_count,
            "hasMedia": self.has_media,
            "hasLinks": self.has_links,
            "language": self.language,
        }
        if self.quote_count is not None:
            data["quoteCount"] = self.quote_count
        if self.post_type is not None:
            data["postType"] = PostType(self.post_type).value
        if self.alt_text:
            data["altText"] = list(self.alt_text)
        if self.quoted_post_snippet is not None:
            data["quotedPostSnippet"] = self.quoted_post_snippet
        return data


@dataclass
class ThreadNode:
    """An anonymized reply together with its own, chronologically ordered, replies."""
    post: AnonymizedPost
    children: List["ThreadNode"] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.post.id

    def to_dict(self) -> Dict[str, Any]:
        data = self.post.to_dict()
        data["replies"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class PaginationResult:
    """Items collected by the paginator plus bookkeeping about how they were collected."""
    items: List[Dict[str, Any]]
    total_fetched: int = 0                     # Items received before filtering
    request_count: int = 0


@dataclass
class PostFilters:
    """Which post types a profile export keeps. Replies to other authors are never kept."""
    include_posts: bool = True                 # Originals and self-reply thread continuations
    include_reposts: bool = False
    include_quotes: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {
            "includePosts": self.include_posts,
            "includeReposts": self.include_reposts,
            "includeQuotes": self.include_quotes,
        }


@dataclass
class Session:
    """An authenticated AT Protocol session."""
    access_jwt: str
    did: str
    handle: str
    display_name: Optional[str] = None
    avatar: str = ""

    def __post_init__(self):
        if not self.display_name:
            self.display_name = self.handle

    def profile(self) -> Dict[str, str]:
        """Non-secret view of the session, safe to log or export."""
        return {
            "did": self.did,
            "handle": self.handle,
            "displayName": self.display_name,
            "avatar": self.avatar,
        }


@dataclass
class AnonymizeOptions:
    """Options controlling what anonymize() includes."""
    include_post_type: bool = True
    include_alt_text: bool = True
    include_quoted_snippet: bool = False
    post_type: Optional[PostType] = None       # Pre-computed type, skips classification
    container: Optional[Dict[str, Any]] = None  # Feed item wrapping the post
    index: int = 0                             # 0-based position, becomes post_<index + 1>
