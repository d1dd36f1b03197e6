"""
Paginator Module

Cursor-based collection of items from Bluesky listing endpoints. Every
listing returns {<data_key>: [...], "cursor"?: "..."}; the paginator keeps
requesting pages until it has enough items, the upstream runs dry, or (for
filtered collection) it has spent its request budget.
"""

import math
from typing import Any, Callable, Dict, Optional

from config import settings
from data.models import PaginationResult
from services.protocols import XrpcClientProtocol
from utils.exceptions import ApiRequestError
from utils.logger import get_logger

logger = get_logger(__name__)

ItemPredicate = Callable[[Dict[str, Any]], bool]


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


def _next_cursor(data: Dict[str, Any], cursor_key: str) -> Optional[str]:
    """Only a non-empty string counts as a cursor."""
    cursor = data.get(cursor_key)
    if isinstance(cursor, str) and cursor:
        return cursor
    return None


class Paginator:
    """Collects items from a paginated XRPC listing."""

    def __init__(self, client: XrpcClientProtocol):
        """
        Initialize the paginator.

        Args:
            client: Anything that can issue XRPC GET requests.
        """
        self.client = client

    def _request_page(self, endpoint: str, base_params: Dict[str, Any], batch_size: int,
                      cursor: Optional[str], auth_required: bool) -> Dict[str, Any]:
        params = dict(base_params)
        params["limit"] = batch_size
        # The first request must not carry a cursor at all
        if cursor:
            params["cursor"] = cursor
        else:
            params.pop("cursor", None)
        return self.client.get(endpoint, params, auth_required=auth_required)

    def _handle_failure(self, error: ApiRequestError, result: PaginationResult, endpoint: str):
        """Re-raise when nothing was collected, otherwise keep the partial result."""
        if result.request_count <= 1:
            raise error
        logger.warning(f"Request {result.request_count} to {endpoint} failed, "
                       f"keeping {len(result.items)} items already collected: {error}")

    def collect(self, endpoint: str, base_params: Dict[str, Any], limit: int,
                data_key: str = "feed", cursor_key: str = "cursor",
                auth_required: bool = False,
                per_request_cap: Optional[int] = None) -> PaginationResult:
        """
        Collect up to limit items.

        Args:
            endpoint: XRPC method name.
            base_params: Query parameters sent with every request.
            limit: Maximum number of items to return.
            data_key: Response key holding the item list.
            cursor_key: Response key holding the continuation cursor.
            auth_required: Whether the endpoint needs the session token.
            per_request_cap: Largest page to ask for, defaults to settings.MAX_PAGE_SIZE.

        Returns:
            PaginationResult: At most limit items.

        Raises:
            ApiRequestError: If the very first request fails.
        """
        cap = _clamp(per_request_cap or settings.MAX_PAGE_SIZE, 1, settings.MAX_PAGE_SIZE)
        result = PaginationResult(items=[])
        cursor = None

        logger.debug(f"Collecting up to {limit} items from {endpoint}")

        while len(result.items) < limit:
            remaining = limit - len(result.items)
            batch_size = max(1, min(cap, remaining))
            result.request_count += 1

            logger.debug(f"Request {result.request_count}: fetching {batch_size} items "
                         f"({len(result.items)}/{limit} collected)")

            try:
                data = self._request_page(endpoint, base_params, batch_size, cursor, auth_required)
            except ApiRequestError as e:
                self._handle_failure(e, result, endpoint)
                break

            items = data.get(data_key) or []
            if not items:
                logger.debug("No more items available, stopping pagination")
                break

            result.items.extend(items[:remaining])
            result.total_fetched += len(items)
            cursor = _next_cursor(data, cursor_key)

            if cursor is None:
                logger.debug("No cursor returned, stopping pagination")
                break

        logger.info(f"Collected {len(result.items)} items from {endpoint} "
                    f"in {result.request_count} requests")
        return result

    def collect_filtered(self, endpoint: str, base_params: Dict[str, Any],
                         predicate: ItemPredicate, limit: int,
                         data_key: str = "feed", cursor_key: str = "cursor",
                         auth_required: bool = False,
                         request_multiplier: Optional[float] = None,
                         max_requests: Optional[int] = None) -> PaginationResult:
        """
        Collect up to limit items that satisfy predicate.

        Each request over-fetches by request_multiplier because the predicate
        discards part of every page. The request budget is a soft limit: when it
        runs out, whatever has been collected is returned.

        Args:
            endpoint: XRPC method name.
            base_params: Query parameters sent with every request.
            predicate: Called with each raw item; True keeps it.
            limit: Maximum number of items to return.
            data_key: Response key holding the item list.
            cursor_key: Response key holding the continuation cursor.
            auth_required: Whether the endpoint needs the session token.
            request_multiplier: Over-fetch factor, defaults to settings.FILTER_REQUEST_MULTIPLIER.
            max_requests: Request budget, defaults to settings.FILTER_MAX_REQUESTS.

        Returns:
            PaginationResult: At most limit matching items; total_fetched counts every item received.

        Raises:
            ApiRequestError: If the very first request fails.
        """
        if request_multiplier is None:
            request_multiplier = settings.FILTER_REQUEST_MULTIPLIER
        if max_requests is None:
            max_requests = settings.FILTER_MAX_REQUESTS

        floor = min(settings.FILTER_REQUEST_FLOOR, settings.MAX_PAGE_SIZE)
        result = PaginationResult(items=[])
        cursor = None
        exhausted = False

        logger.debug(f"Collecting up to {limit} filtered items from {endpoint} "
                     f"(multiplier {request_multiplier}, max {max_requests} requests)")

        while len(result.items) < limit and result.request_count < max_requests:
            remaining = limit - len(result.items)
            batch_size = _clamp(math.ceil(remaining * request_multiplier), floor, settings.MAX_PAGE_SIZE)
            result.request_count += 1

            logger.debug(f"Filtered request {result.request_count}: seeking {remaining} more items, "
                         f"asking for {batch_size}")

            try:
                data = self._request_page(endpoint, base_params, batch_size, cursor, auth_required)
            except ApiRequestError as e:
                self._handle_failure(e, result, endpoint)
                break

            items = data.get(data_key) or []
            if not items:
                logger.debug("No more items available, stopping pagination")
                exhausted = True
                break

            matched = 0
            for item in items:
                if len(result.items) >= limit:
                    break
                if predicate(item):
                    result.items.append(item)
                    matched += 1

            result.total_fetched += len(items)
            cursor = _next_cursor(data, cursor_key)
            logger.debug(f"Kept {matched} of {len(items)} items")

            if cursor is None:
                logger.debug("No cursor returned, stopping pagination")
                exhausted = True
                break

        if len(result.items) < limit and not exhausted and result.request_count >= max_requests:
            logger.warning(f"Stopped after {max_requests} requests to {endpoint} "
                           f"with {len(result.items)}/{limit} matching items")

        logger.info(f"Collected {len(result.items)} of {result.total_fetched} fetched items "
                    f"from {endpoint} in {result.request_count} requests")
        return result
