"""
Congress.gov v3 API client with rate limiting, retry and offset pagination.

This module provides:
- Token bucket admission for every request (shared limiter per client)
- HTTP status classification into the core exception hierarchy
- Lazy record sequences over paginated list endpoints
- Retried detail fetches for single resources

Status classification:
    401, 403        AuthenticationError (not retried)
    404             ResourceNotFoundError (end of data at a page boundary)
    429             RateLimitError with Retry-After seconds
    5xx, timeouts   NetworkError (retried)
    other non-2xx   CongressApiError
"""

import asyncio
import httpx
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional
from core.config import settings
from core.exceptions import (
    APIExtractionError,
    AuthenticationError,
    CongressApiError,
    ETLException,
    NetworkError,
    RateLimitError,
    ResourceNotFoundError,
)
from ingestion.pagination import Page, PaginationState, paginate
from ingestion.rate_limiter import TokenBucketRateLimiter, build_congress_rate_limiter
from ingestion.retry import RetryPolicy, with_retry
import logging

logger = logging.getLogger(__name__)

ErrorHook = Callable[[Exception], None]


class CongressApiClient:
    """
    Async client for the Congress.gov API.

    Use as an async context manager or call `aclose()` when done:

        async with CongressApiClient() as client:
            async for member in client.list_members(current_member=True):
                ...

    Attributes:
        api_key: Congress.gov API key, sent as the `api_key` query parameter
        base_url: API root (default https://api.congress.gov/v3)
        rate_limiter: Token bucket consulted before every request
        retry_policy: Backoff used for page retries and detail fetches
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        rate_limiter: Optional[TokenBucketRateLimiter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_consecutive_errors: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.api_key = api_key if api_key is not None else settings.CONGRESS_API_KEY
        self.base_url = (base_url or settings.CONGRESS_API_BASE_URL).rstrip("/")
        self.rate_limiter = rate_limiter or build_congress_rate_limiter()
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.timeout = timeout or settings.REQUEST_TIMEOUT_SECONDS
        self.max_consecutive_errors = (
            max_consecutive_errors or settings.PAGINATION_MAX_CONSECUTIVE_ERRORS
        )
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> "CongressApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    # ========================================================================
    # Transport
    # ========================================================================

    async def request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Perform one rate-limited GET and return the decoded JSON body.

        Raises:
            AuthenticationError, ResourceNotFoundError, RateLimitError,
            NetworkError, CongressApiError, RateLimitTimeoutError
        """
        await self.rate_limiter.acquire()

        query: Dict[str, Any] = {"format": "json"}
        if self.api_key:
            query["api_key"] = self.api_key
        for key, value in (params or {}).items():
            if value is None:
                continue
            query[key] = str(value).lower() if isinstance(value, bool) else value

        logger.debug(f"Congress API request {endpoint} {self._redact(query)}")

        try:
            response = await self._client.get(endpoint, params=query)
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Request timeout for {endpoint}",
                context={"endpoint": endpoint, "timeout": self.timeout},
                original_exception=e
            )
        except httpx.TransportError as e:
            raise NetworkError(
                f"Network error for {endpoint}",
                context={"endpoint": endpoint},
                original_exception=e
            )

        self._raise_for_status(response, endpoint)

        try:
            data = response.json()
        except ValueError as e:
            raise APIExtractionError(
                "Failed to parse JSON response",
                context={"endpoint": endpoint, "response_body": response.text[:500]},
                original_exception=e
            )

        if not isinstance(data, dict):
            raise APIExtractionError(
                "Unexpected response shape",
                context={"endpoint": endpoint, "response_type": type(data).__name__}
            )
        return data

    @staticmethod
    def _redact(query: Dict[str, Any]) -> Dict[str, Any]:
        return {k: ("***" if k == "api_key" else v) for k, v in query.items()}

    @staticmethod
    def _raise_for_status(response: httpx.Response, endpoint: str):
        status = response.status_code
        if 200 <= status < 300:
            return

        context = {"status_code": status, "endpoint": endpoint}

        if status in (401, 403):
            raise AuthenticationError(f"Authentication failed for {endpoint}", context=context)

        if status == 404:
            raise ResourceNotFoundError(f"Resource not found: {endpoint}", context=context)

        if status == 429:
            retry_after = None
            header = response.headers.get("Retry-After")
            if header:
                try:
                    retry_after = float(header)
                except ValueError:
                    retry_after = None
            raise RateLimitError(
                f"Rate limited by Congress.gov for {endpoint}",
                context=context,
                retry_after=retry_after
            )

        if status >= 500:
            context["response_body"] = response.text[:500]
            raise NetworkError(f"Server error {status} for {endpoint}", context=context)

        raise CongressApiError(
            f"API error {status} for {endpoint}",
            status_code=status,
            endpoint=endpoint,
            context={"response_body": response.text[:500]}
        )

    # ========================================================================
    # Pagination
    # ========================================================================

    async def fetch_page(
        self,
        endpoint: str,
        key: str,
        offset: int,
        limit: int,
        params: Optional[Dict[str, Any]] = None
    ) -> Page:
        """Fetch one page of a list endpoint; `key` names the item array."""
        query = dict(params or {})
        query.update({"offset": offset, "limit": limit})
        data = await self.request(endpoint, query)

        items = data.get(key) or []
        pagination = data.get("pagination") or {}
        return Page(items=list(items), has_next=bool(pagination.get("next")))

    def _list(
        self,
        endpoint: str,
        key: str,
        offset: int,
        limit: int,
        params: Optional[Dict[str, Any]] = None,
        on_error: Optional[ErrorHook] = None,
        state: Optional[PaginationState] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        state = state or PaginationState(
            offset=offset,
            limit=limit,
            max_consecutive_errors=self.max_consecutive_errors,
        )

        async def fetch(page_offset: int, page_limit: int) -> Page:
            return await self.fetch_page(endpoint, key, page_offset, page_limit, params)

        return paginate(
            fetch,
            state,
            policy=self.retry_policy,
            on_error=on_error,
            sleep=self._sleep,
            description=endpoint,
        )

    def list_members(
        self,
        current_member: bool = True,
        offset: int = 0,
        limit: Optional[int] = None,
        on_error: Optional[ErrorHook] = None,
        state: Optional[PaginationState] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        """Members of Congress, current or historical."""
        return self._list(
            "/member",
            "members",
            offset,
            limit or settings.FETCH_BATCH_LEGISLATORS,
            params={"currentMember": current_member},
            on_error=on_error,
            state=state,
        )

    def list_committees(
        self,
        offset: int = 0,
        limit: Optional[int] = None,
        on_error: Optional[ErrorHook] = None,
        state: Optional[PaginationState] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        return self._list(
            "/committee",
            "committees",
            offset,
            limit or settings.FETCH_BATCH_COMMITTEES,
            on_error=on_error,
            state=state,
        )

    def list_bills(
        self,
        congress: int,
        bill_type: str,
        offset: int = 0,
        limit: Optional[int] = None,
        on_error: Optional[ErrorHook] = None,
        state: Optional[PaginationState] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        return self._list(
            f"/bill/{congress}/{bill_type.lower()}",
            "bills",
            offset,
            limit or settings.FETCH_BATCH_BILLS,
            on_error=on_error,
            state=state,
        )

    def list_house_votes(
        self,
        congress: int,
        session: int,
        offset: int = 0,
        limit: Optional[int] = None,
        on_error: Optional[ErrorHook] = None,
        state: Optional[PaginationState] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        """House roll call votes; Congress.gov publishes no Senate vote endpoint."""
        return self._list(
            f"/house-vote/{congress}/{session}",
            "houseRollCallVotes",
            offset,
            limit or settings.FETCH_BATCH_VOTES,
            on_error=on_error,
            state=state,
        )

    # ========================================================================
    # Details
    # ========================================================================

    async def _get_detail(self, endpoint: str, key: str) -> Optional[Dict[str, Any]]:
        async def operation():
            return await self.request(endpoint)

        data = await with_retry(operation, self.retry_policy, sleep=self._sleep, description=endpoint)
        return data.get(key)

    async def get_house_vote_detail(self, congress: int, session: int, roll_number: int) -> Optional[Dict[str, Any]]:
        return await self._get_detail(
            f"/house-vote/{congress}/{session}/{roll_number}", "houseRollCallVote"
        )

    async def get_house_vote_members(self, congress: int, session: int, roll_number: int) -> list:
        """Member positions for a roll call, for details that do not embed them."""
        detail = await self._get_detail(
            f"/house-vote/{congress}/{session}/{roll_number}/members",
            "houseRollCallVoteMemberVotes",
        )
        if not detail:
            return []
        return list(detail.get("results") or [])

    async def get_bill_detail(self, congress: int, bill_type: str, number: int) -> Optional[Dict[str, Any]]:
        return await self._get_detail(f"/bill/{congress}/{bill_type.lower()}/{number}", "bill")

    async def get_member_detail(self, bioguide_id: str) -> Optional[Dict[str, Any]]:
        return await self._get_detail(f"/member/{bioguide_id}", "member")

    # ========================================================================
    # Utilities
    # ========================================================================

    def get_rate_limiter_stats(self) -> Dict[str, Any]:
        return self.rate_limiter.get_stats()

    async def health_check(self) -> bool:
        """True when the API answers a minimal bill listing."""
        try:
            await self.fetch_page("/bill/118", "bills", offset=0, limit=1)
            return True
        except ETLException as e:
            logger.warning(f"Congress API health check failed: {e}")
            return False
