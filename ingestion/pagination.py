"""
Offset pagination over Congress.gov list endpoints.

`PaginationState` is the explicit cursor: the offset of the next page, the
page size and the consecutive-failure counter for the current offset.
`paginate()` drives it and yields individual records.

End-of-data rules:
    - HTTP 404 at a page boundary ends the sequence cleanly
    - a page shorter than the limit, or without a `next` link, is the last page
    - an empty page is the last page
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional
from core.exceptions import (
    AuthenticationError,
    ETLException,
    PaginationError,
    RateLimitError,
    ResourceNotFoundError,
)
from ingestion.retry import RetryPolicy
import logging

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One page of a list endpoint"""
    items: List[Dict[str, Any]] = field(default_factory=list)
    has_next: bool = False


@dataclass
class PaginationState:
    offset: int = 0
    limit: int = 100
    consecutive_errors: int = 0
    max_consecutive_errors: int = 3
    pages_fetched: int = 0
    exhausted: bool = False

    def advance(self, received: int, has_next: bool):
        """Move past a successfully fetched page."""
        self.offset += received
        self.pages_fetched += 1
        self.consecutive_errors = 0
        if received == 0 or received < self.limit or not has_next:
            self.exhausted = True

    def record_failure(self) -> bool:
        """Count a failed attempt at the current offset. True when the bound is reached."""
        self.consecutive_errors += 1
        return self.consecutive_errors >= self.max_consecutive_errors


FetchPage = Callable[[int, int], Awaitable[Page]]


async def paginate(
    fetch_page: FetchPage,
    state: PaginationState,
    policy: Optional[RetryPolicy] = None,
    on_error: Optional[Callable[[Exception], None]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    description: str = "list",
) -> AsyncIterator[Dict[str, Any]]:
    """
    Yield records page by page starting at `state.offset`.

    A 404 ends the sequence. Any other failure (network, server, rate limit, unexpected status,
    unparseable body) retries the same offset with backoff. After
    `state.max_consecutive_errors` failures in a row the offset is left
    untouched and PaginationError is raised. Authentication errors propagate.

    Args:
        fetch_page: Coroutine taking (offset, limit) and returning a Page
        state: Cursor, mutated in place
        policy: Backoff between failed attempts
        on_error: Called with every failed attempt (error budget hook)
    """
    policy = policy or RetryPolicy.from_settings()

    while not state.exhausted:
        try:
            page = await fetch_page(state.offset, state.limit)
        except ResourceNotFoundError:
            logger.debug(f"{description}: 404 at offset {state.offset}, treating as end of data")
            state.exhausted = True
            return
        except AuthenticationError:
            raise
        except ETLException as e:
            bound_reached = state.record_failure()
            if on_error:
                on_error(e)
            if bound_reached:
                raise PaginationError(
                    f"{description}: giving up at offset {state.offset} "
                    f"after {state.consecutive_errors} consecutive errors",
                    context={
                        "endpoint": description,
                        "offset": state.offset,
                        "consecutive_errors": state.consecutive_errors,
                    },
                    original_exception=e
                )

            delay = policy.compute_delay(state.consecutive_errors - 1)
            if isinstance(e, RateLimitError) and e.retry_after:
                delay = max(delay, float(e.retry_after))
            logger.warning(
                f"{description}: error at offset {state.offset} "
                f"({state.consecutive_errors}/{state.max_consecutive_errors}), "
                f"retrying in {delay:.2f}s: {e.message}"
            )
            await sleep(delay)
            continue

        state.advance(len(page.items), page.has_next)
        logger.debug(
            f"{description}: page {state.pages_fetched} with {len(page.items)} records "
            f"(next offset {state.offset})"
        )
        for item in page.items:
            yield item
