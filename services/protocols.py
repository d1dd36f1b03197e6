"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for the services of the
Bluesky export toolkit. The paginator and the orchestrators only need
something that can issue XRPC GET requests, not a real HTTP client.

Protocols defined:
- XrpcClientProtocol: Interface for issuing read-only XRPC requests
- RecordUriBuilderProtocol: Interface for turning handles and record keys into AT URIs
"""

from typing import Protocol, Optional, Dict, Any


class XrpcClientProtocol(Protocol):
    """Protocol defining the fetch capability the toolkit is built on.

    Implementations should:
    - Send GET requests to an XRPC method with query parameters
    - Attach a bearer token when the endpoint requires authentication
    - Raise ApiRequestError for non-2xx responses and transport failures
    """

    def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        auth_required: bool = False
    ) -> Dict[str, Any]:
        """Call an XRPC query method.

        Args:
            endpoint: The method name, e.g. "app.bsky.feed.getAuthorFeed".
            params: Query parameters. None values are not sent.
            auth_required: Whether the call needs the session's access token.

        Returns:
            The decoded JSON response body.
        """
        ...


class RecordUriBuilderProtocol(Protocol):
    """Protocol defining how orchestrators build AT URIs from web URL parts."""

    def build_record_uri(
        self,
        identifier: str,
        collection: str,
        rkey: str,
        resolve_did: bool = True
    ) -> str:
        """Build at://<identity>/<collection>/<rkey>.

        Args:
            identifier: A handle or a DID.
            collection: The record collection NSID.
            rkey: The record key.
            resolve_did: Resolve handles to DIDs, falling back to the handle on failure.

        Returns:
            The AT URI.
        """
        ...

    def build_post_uri(self, handle: str, post_id: str, resolve_did: bool = True) -> str:
        """Build the AT URI of an app.bsky.feed.post record."""
        ...
