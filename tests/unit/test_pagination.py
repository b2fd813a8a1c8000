"""
Unit tests for offset pagination
"""

import pytest
from core.exceptions import (
    APIExtractionError,
    AuthenticationError,
    CongressApiError,
    NetworkError,
    PaginationError,
    ResourceNotFoundError,
)
from ingestion.pagination import Page, PaginationState, paginate
from ingestion.retry import RetryPolicy

NO_JITTER = RetryPolicy(base_delay=1, multiplier=2, max_delay=30, jitter=0)


def pages_from(records, limit):
    """fetch_page over an in-memory list; has_next mirrors the API's `next` link."""
    requested = []

    async def fetch(offset, page_limit):
        requested.append(offset)
        items = records[offset:offset + page_limit]
        return Page(items=items, has_next=offset + page_limit < len(records))

    return fetch, requested


async def collect(iterator):
    return [item async for item in iterator]


class TestPaginationState:

    def test_short_page_exhausts(self):
        state = PaginationState(limit=10)
        state.advance(received=4, has_next=True)
        assert state.exhausted
        assert state.offset == 4

    def test_full_page_with_next_continues(self):
        state = PaginationState(limit=10)
        state.advance(received=10, has_next=True)
        assert not state.exhausted
        assert state.pages_fetched == 1

    def test_failure_bound(self):
        state = PaginationState(max_consecutive_errors=2)
        assert state.record_failure() is False
        assert state.record_failure() is True


class TestPaginate:

    @pytest.mark.asyncio
    async def test_yields_every_record_across_pages(self, fake_clock):
        records = [{"n": i} for i in range(7)]
        fetch, requested = pages_from(records, 3)

        items = await collect(paginate(fetch, PaginationState(limit=3), NO_JITTER, sleep=fake_clock.sleep))

        assert [item["n"] for item in items] == list(range(7))
        assert requested == [0, 3, 6]

    @pytest.mark.asyncio
    async def test_starts_at_resume_offset(self, fake_clock):
        records = [{"n": i} for i in range(5)]
        fetch, requested = pages_from(records, 2)

        items = await collect(
            paginate(fetch, PaginationState(offset=3, limit=2), NO_JITTER, sleep=fake_clock.sleep)
        )

        assert [item["n"] for item in items] == [3, 4]
        assert requested == [3]

    @pytest.mark.asyncio
    async def test_empty_listing(self, fake_clock):
        fetch, _ = pages_from([], 5)
        assert await collect(paginate(fetch, PaginationState(limit=5), NO_JITTER, sleep=fake_clock.sleep)) == []

    @pytest.mark.asyncio
    async def test_404_at_page_boundary_ends_cleanly(self, fake_clock):
        async def fetch(offset, limit):
            if offset == 0:
                return Page(items=[{"n": 0}, {"n": 1}], has_next=True)
            raise ResourceNotFoundError("gone")

        state = PaginationState(limit=2)
        items = await collect(paginate(fetch, state, NO_JITTER, sleep=fake_clock.sleep))

        assert len(items) == 2
        assert state.exhausted

    @pytest.mark.asyncio
    async def test_transient_error_retries_same_offset(self, fake_clock):
        attempts = []
        errors = []

        async def fetch(offset, limit):
            attempts.append(offset)
            if len(attempts) == 1:
                raise NetworkError("503")
            return Page(items=[{"n": 0}], has_next=False)

        items = await collect(
            paginate(fetch, PaginationState(limit=5), NO_JITTER, on_error=errors.append, sleep=fake_clock.sleep)
        )

        assert items == [{"n": 0}]
        assert attempts == [0, 0]
        assert len(errors) == 1
        assert fake_clock.sleeps == [1]

    @pytest.mark.asyncio
    async def test_gives_up_after_consecutive_errors(self, fake_clock):
        async def fetch(offset, limit):
            if offset == 0:
                return Page(items=[{"n": 0}, {"n": 1}], has_next=True)
            raise NetworkError("503")

        state = PaginationState(limit=2, max_consecutive_errors=3)
        seen = []
        with pytest.raises(PaginationError) as exc_info:
            async for item in paginate(fetch, state, NO_JITTER, sleep=fake_clock.sleep):
                seen.append(item)

        assert len(seen) == 2
        assert state.offset == 2
        assert exc_info.value.context["consecutive_errors"] == 3
        assert exc_info.value.context["offset"] == 2
        assert len(fake_clock.sleeps) == 2

    @pytest.mark.asyncio
    async def test_non_retryable_error_propagates(self, fake_clock):
        async def fetch(offset, limit):
            raise AuthenticationError("403")

        with pytest.raises(AuthenticationError):
            await collect(paginate(fetch, PaginationState(), NO_JITTER, sleep=fake_clock.sleep))

    @pytest.mark.asyncio
    async def test_unparseable_page_is_retried(self, fake_clock):
        attempts = []
        errors = []

        async def fetch(offset, limit):
            attempts.append(offset)
            if len(attempts) == 1:
                raise APIExtractionError("Failed to parse JSON response")
            return Page(items=[{"n": 0}], has_next=False)

        items = await collect(
            paginate(fetch, PaginationState(limit=5), NO_JITTER, on_error=errors.append, sleep=fake_clock.sleep)
        )

        assert items == [{"n": 0}]
        assert attempts == [0, 0]
        assert isinstance(errors[0], APIExtractionError)

    @pytest.mark.asyncio
    async def test_unexpected_status_exhausts_into_pagination_error(self, fake_clock):
        attempts = []

        async def fetch(offset, limit):
            attempts.append(offset)
            raise CongressApiError("API error 400", status_code=400, endpoint="/bill/118/hr")

        state = PaginationState(offset=40, limit=20, max_consecutive_errors=3)
        with pytest.raises(PaginationError) as exc_info:
            await collect(paginate(fetch, state, NO_JITTER, sleep=fake_clock.sleep))

        assert attempts == [40, 40, 40]
        assert state.offset == 40
        assert isinstance(exc_info.value.original_exception, CongressApiError)
