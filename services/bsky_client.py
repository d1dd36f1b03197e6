"""
Bluesky Client Module

This module handles communication with the AT Protocol (BlueSky) XRPC API.
It provides read-only query calls, session creation for the endpoints that
need authentication, handle-to-DID resolution, and lookup of single posts.
"""

from typing import Optional, Dict, Any

import requests

from config import settings
from data.models import Session
from utils.bsky_urls import POST_COLLECTION, make_at_uri
from utils.exceptions import ApiRequestError, AuthenticationError
from utils.logger import get_logger

logger = get_logger(__name__)


def _error_detail(response: requests.Response) -> str:
    """Best-effort error message from an XRPC error body."""
    try:
        body = response.json()
    except ValueError:
        return (response.text or "")[:200]
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or ""
    return ""


class BskyClient:
    """Client for the Bluesky XRPC API."""

    def __init__(self, http_session: Optional[requests.Session] = None,
                 api_base: Optional[str] = None, public_api: Optional[str] = None,
                 timeout: Optional[int] = None):
        """
        Initialize the client.

        Args:
            http_session: requests session to send requests with (a new one by default).
            api_base: XRPC base URL for authenticated calls.
            public_api: XRPC base URL for unauthenticated calls.
            timeout: Seconds to wait for each request.
        """
        self.http = http_session or requests.Session()
        self.api_base = (api_base or settings.BSKY_API_BASE).rstrip("/")
        self.public_api = (public_api or settings.BSKY_PUBLIC_API).rstrip("/")
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self._session: Optional[Session] = None

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def create_session(self, identifier: str, password: str) -> Session:
        """
        Log in with a handle and app password.

        Args:
            identifier: Handle, DID or email.
            password: An app password.

        Returns:
            Session: The new session, also kept on the client.

        Raises:
            AuthenticationError: If credentials are missing or rejected.
        """
        if not identifier or not password:
            raise AuthenticationError("Please enter both handle and password")

        logger.info(f"Attempting authentication for: {identifier}")
        try:
            response = self.http.post(
                f"{self.api_base}/com.atproto.server.createSession",
                json={"identifier": identifier, "password": password},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise AuthenticationError(f"Authentication failed: {e}") from e

        if not response.ok:
            raise AuthenticationError(f"Authentication failed: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise AuthenticationError("Authentication failed: invalid response body") from e

        if not data.get("accessJwt") or not data.get("did"):
            raise AuthenticationError("Authentication failed: no access token in response")

        session = Session(
            access_jwt=data["accessJwt"],
            did=data["did"],
            handle=data.get("handle") or identifier,
            display_name=data.get("displayName"),
            avatar=data.get("avatar") or "",
        )
        self._session = session
        self._enrich_profile(session)

        logger.info(f"Successfully logged in to AT Protocol as {session.handle}")
        return session

    def _enrich_profile(self, session: Session) -> None:
        """Fill in display name and avatar from the public profile when we can."""
        try:
            profile = self.get("app.bsky.actor.getProfile", {"actor": session.did})
        except ApiRequestError as e:
            logger.warning(f"Could not load profile for {session.handle}: {e}")
            return
        session.display_name = profile.get("displayName") or session.display_name
        session.avatar = profile.get("avatar") or session.avatar

    def clear_session(self) -> None:
        if self._session:
            logger.info(f"Logging out {self._session.handle}")
        self._session = None

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None,
            auth_required: bool = False) -> Dict[str, Any]:
        """
        Call an XRPC query method.

        Args:
            endpoint: The method name, e.g. "app.bsky.feed.getAuthorFeed".
            params: Query parameters. None values are not sent.
            auth_required: Send the request with the session's access token.

        Returns:
            dict: The decoded JSON body.

        Raises:
            AuthenticationError: If auth_required and there is no session.
            ApiRequestError: For non-2xx responses and transport failures.
        """
        headers = {}
        if auth_required:
            if not self._session:
                raise AuthenticationError("Authentication required but no session is active")
            headers["Authorization"] = f"Bearer {self._session.access_jwt}"
            base = self.api_base
        else:
            base = self.public_api

        query = {key: value for key, value in (params or {}).items() if value is not None}
        logger.debug(f"GET {endpoint} {query}")

        try:
            response = self.http.get(f"{base}/{endpoint}", params=query,
                                     headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise ApiRequestError(endpoint, detail=str(e)) from e

        if not response.ok:
            raise ApiRequestError(endpoint, response.status_code, _error_detail(response))

        try:
            data = response.json()
        except ValueError as e:
            raise ApiRequestError(endpoint, response.status_code, "response was not valid JSON") from e

        if not isinstance(data, dict):
            raise ApiRequestError(endpoint, response.status_code, "response was not a JSON object")
        return data

    # -------------------------------------------------------------------------
    # Identity and URIs
    # -------------------------------------------------------------------------

    def resolve_handle(self, handle: str) -> str:
        """
        Resolve a handle to its DID.

        Raises:
            ApiRequestError: If the lookup fails or returns no DID.
        """
        endpoint = "com.atproto.identity.resolveHandle"
        data = self.get(endpoint, {"handle": handle})
        did = data.get("did")
        if not did:
            raise ApiRequestError(endpoint, detail=f"no DID returned for {handle}")
        logger.debug(f"Resolved {handle} to {did}")
        return did

    def build_record_uri(self, identifier: str, collection: str, rkey: str,
                         resolve_did: bool = True) -> str:
        """
        Build the AT URI of a record, preferring the durable DID form.

        Args:
            identifier: Handle or DID of the record's repository.
            collection: Record collection NSID.
            rkey: Record key.
            resolve_did: Resolve handles to DIDs first.

        Returns:
            str: The AT URI. Falls back to the handle form if resolution fails.
        """
        if resolve_did and not identifier.startswith("did:"):
            try:
                did = self.resolve_handle(identifier)
                return make_at_uri(did, collection, rkey)
            except ApiRequestError as e:
                logger.warning(f"DID resolution failed, using handle directly: {e}")

        return make_at_uri(identifier, collection, rkey)

    def build_post_uri(self, handle: str, post_id: str, resolve_did: bool = True) -> str:
        uri = self.build_record_uri(handle, POST_COLLECTION, post_id, resolve_did)
        logger.info(f"Built post URI: {uri}")
        return uri

    # -------------------------------------------------------------------------
    # Posts
    # -------------------------------------------------------------------------

    def fetch_original_post(self, post_uri: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a single post view.

        Tries app.bsky.feed.getPosts first and falls back to a zero-depth
        app.bsky.feed.getPostThread.

        Args:
            post_uri: AT URI of the post.

        Returns:
            dict: The post view, or None if neither endpoint returned it.
        """
        try:
            data = self.get("app.bsky.feed.getPosts", {"uris": post_uri})
            posts = data.get("posts") or []
            if posts:
                logger.debug("Fetched original post via getPosts")
                return posts[0]
        except ApiRequestError as e:
            logger.warning(f"getPosts failed for {post_uri}: {e}")

        try:
            data = self.get("app.bsky.feed.getPostThread",
                            {"uri": post_uri, "depth": 0, "parentHeight": 0})
        except ApiRequestError as e:
            logger.error(f"Error fetching original post: {e}")
            return None

        post = (data.get("thread") or {}).get("post")
        if not post:
            logger.error(f"No post data found for {post_uri}")
            return None
        logger.debug("Fetched original post via getPostThread")
        return post
