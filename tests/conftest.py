"""
Pytest configuration and fixtures
"""

import copy
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple

import pytest

from core.config import Settings
from ingestion.checkpoint import CheckpointManager
from ingestion.error_budget import ErrorBudget
from ingestion.importers.base import ImportContext
from ingestion.loaders.memory_loader import InMemoryLegislativeRepository


class SimulatedCrash(Exception):
    """Raised by FakeCongressClient to interrupt a listing mid-stream"""


class FakeClock:
    """Monotonic clock and sleep that only move when told to"""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeCongressClient:
    """
    Stands in for CongressApiClient.

    Listings honor `offset` and record every call in `list_calls` as
    (listing, offset). `crash_after[listing] = n` raises SimulatedCrash
    after n items have been yielded by a single call.
    """

    def __init__(
        self,
        members: Optional[List[Dict[str, Any]]] = None,
        historical_members: Optional[List[Dict[str, Any]]] = None,
        committees: Optional[List[Dict[str, Any]]] = None,
        bills: Optional[Dict[Tuple[int, str], List[Dict[str, Any]]]] = None,
        votes: Optional[Dict[Tuple[int, int], List[Dict[str, Any]]]] = None,
        vote_details: Optional[Dict[Tuple[int, int, int], Dict[str, Any]]] = None,
        vote_members: Optional[Dict[Tuple[int, int, int], List[Dict[str, Any]]]] = None,
    ):
        self.members = members or []
        self.historical_members = historical_members or []
        self.committees = committees or []
        self.bills = bills or {}
        self.votes = votes or {}
        self.vote_details = vote_details or {}
        self.vote_members = vote_members or {}
        self.crash_after: Dict[str, int] = {}
        self.detail_errors: Dict[Tuple[int, int, int], Exception] = {}
        self.list_calls: List[Tuple[str, int]] = []
        self.detail_calls: List[Tuple[int, int, int]] = []
        self.member_calls: List[Tuple[int, int, int]] = []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    async def _iterate(self, listing: str, items: List[Dict[str, Any]], offset: int):
        self.list_calls.append((listing, offset))
        limit = self.crash_after.get(listing)
        for yielded, item in enumerate(items[offset:]):
            if limit is not None and yielded >= limit:
                raise SimulatedCrash(f"{listing} interrupted after {yielded} items")
            yield copy.deepcopy(item)

    def list_members(self, current_member=True, offset=0, limit=None, on_error=None, state=None):
        if current_member:
            return self._iterate("members", self.members, offset)
        return self._iterate("historical_members", self.historical_members, offset)

    def list_committees(self, offset=0, limit=None, on_error=None, state=None):
        return self._iterate("committees", self.committees, offset)

    def list_bills(self, congress, bill_type, offset=0, limit=None, on_error=None, state=None):
        items = self.bills.get((congress, bill_type.lower()), [])
        return self._iterate(f"bills-{congress}-{bill_type.lower()}", items, offset)

    def list_house_votes(self, congress, session, offset=0, limit=None, on_error=None, state=None):
        items = self.votes.get((congress, session), [])
        return self._iterate(f"votes-{congress}-{session}", items, offset)

    async def get_house_vote_detail(self, congress, session, roll_number):
        key = (congress, session, roll_number)
        self.detail_calls.append(key)
        if key in self.detail_errors:
            raise self.detail_errors[key]
        detail = self.vote_details.get(key)
        return copy.deepcopy(detail) if detail is not None else None

    async def get_house_vote_members(self, congress, session, roll_number):
        key = (congress, session, roll_number)
        self.member_calls.append(key)
        return copy.deepcopy(self.vote_members.get(key, []))


# ============================================================================
# Raw Congress.gov records
# ============================================================================

def make_member(bioguide_id, name, state, party, chamber, district=None, start_year=2023):
    term = {"chamber": chamber, "startYear": start_year}
    record = {
        "bioguideId": bioguide_id,
        "name": name,
        "state": state,
        "partyName": party,
        "terms": {"item": [term]},
    }
    if district is not None:
        record["district"] = district
    return record


def make_committee(system_code, name, chamber="House", committee_type="Standing", parent=None):
    record = {
        "systemCode": system_code,
        "name": name,
        "chamber": chamber,
        "committeeTypeCode": committee_type,
    }
    if parent:
        record["parent"] = {"systemCode": parent}
    return record


def make_bill(congress, bill_type, number, title=None, action="Referred to the Committee on Ways and Means."):
    return {
        "congress": congress,
        "type": bill_type.upper(),
        "number": str(number),
        "title": title or f"{bill_type.upper()} {number} of the {congress}th Congress",
        "introducedDate": "2023-01-09",
        "originChamber": "House" if bill_type.lower().startswith("h") else "Senate",
        "latestAction": {"actionDate": "2023-02-01", "text": action},
    }


def make_vote_item(congress, session, roll_number):
    return {"congress": congress, "sessionNumber": session, "rollCallNumber": roll_number}


def make_vote_detail(congress, session, roll_number, result="Passed", bill=None, members=None):
    detail = {
        "congress": congress,
        "sessionNumber": session,
        "rollCallNumber": roll_number,
        "result": result,
        "voteType": "Yea-and-Nay",
        "voteQuestion": "On Passage",
        "startDate": "2023-01-09T18:00:00-05:00",
    }
    if bill:
        detail["legislationType"], detail["legislationNumber"] = bill
    if members is not None:
        detail["members"] = [{"bioguideID": b, "voteCast": cast} for b, cast in members]
    return detail


def build_dataset() -> Dict[str, Any]:
    """
    A small Congress: 4 current members and 1 former member, 2 committees
    plus a subcommittee listed before its parent, 5 bills, 3 roll calls.

    Roll call 118-1-1 includes a position for an unknown member, 118-1-2
    references a bill that is never imported and has no embedded members.
    """
    return {
        "members": [
            make_member("A000370", "Adams, Alma S.", "North Carolina", "Democratic", "House of Representatives", 12),
            make_member("B001288", "Booker, Cory A.", "New Jersey", "Democratic", "Senate"),
            make_member("C001098", "Cruz, Ted", "Texas", "Republican", "Senate"),
            make_member("D000096", "Davis, Danny K.", "Illinois", "Democratic", "House of Representatives", 7),
        ],
        "historical_members": [
            make_member("E000068", "Edwards, John", "North Carolina", "Democratic", "Senate", start_year=1999),
        ],
        "committees": [
            make_committee("hsag15", "Conservation, Research, and Biotechnology Subcommittee",
                           committee_type="Subcommittee", parent="hsag00"),
            make_committee("hsag00", "Agriculture Committee"),
            make_committee("ssju00", "Judiciary Committee", chamber="Senate"),
        ],
        "bills": {
            (118, "hr"): [make_bill(118, "hr", n) for n in (1, 2, 3)],
            (118, "s"): [make_bill(118, "s", n) for n in (1, 2)],
        },
        "votes": {
            (118, 1): [make_vote_item(118, 1, 1), make_vote_item(118, 1, 2)],
            (118, 2): [make_vote_item(118, 2, 1)],
        },
        "vote_details": {
            (118, 1, 1): make_vote_detail(
                118, 1, 1, bill=("HR", "1"),
                members=[("A000370", "Yea"), ("D000096", "Nay"), ("Z999999", "Yea")],
            ),
            (118, 1, 2): make_vote_detail(118, 1, 2, result="Agreed to", bill=("HR", "999")),
            (118, 2, 1): make_vote_detail(118, 2, 1, result="Failed", members=[("C001098", "Not Voting")]),
        },
        "vote_members": {
            (118, 1, 2): [{"bioguideID": "A000370", "voteCast": "Present"}],
        },
    }


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def test_settings(tmp_path):
    """Settings scaled down to the fake dataset"""
    return Settings(
        CONGRESS_API_KEY="test-key",
        CHECKPOINT_DIR=str(tmp_path / "checkpoints"),
        TARGET_CONGRESSES=[118],
        BILL_TYPES=["hr", "s"],
        VOTE_CHAMBERS=["house"],
        VOTE_SESSIONS=[1, 2],
        IMPORT_HISTORICAL_MEMBERS=True,
        DB_BATCH_LEGISLATORS=2,
        DB_BATCH_COMMITTEES=2,
        DB_BATCH_BILLS=2,
        DB_BATCH_VOTE_POSITIONS=2,
        CHECKPOINT_INTERVAL_RECORDS=2,
        VOTES_CHECKPOINT_INTERVAL=1,
        PROGRESS_LOG_INTERVAL_RECORDS=2,
        DRY_RUN_MAX_RECORDS=3,
        MAX_TOTAL_ERRORS=100,
        MAX_RUN_DURATION_SECONDS=3600,
        PHASE_TIMEOUT_SECONDS=60,
        MIN_LEGISLATORS=1,
        MIN_COMMITTEES=1,
        ESTIMATED_LEGISLATORS=5,
        ESTIMATED_COMMITTEES=3,
        ESTIMATED_BILLS={118: 5},
        ESTIMATED_VOTES={118: 3},
    )


@pytest.fixture
def dataset():
    return build_dataset()


@pytest.fixture
def fake_client(dataset):
    return FakeCongressClient(**dataset)


@pytest.fixture
def memory_repo():
    return InMemoryLegislativeRepository()


@pytest.fixture
def checkpoint_manager(test_settings):
    manager = CheckpointManager(test_settings.CHECKPOINT_DIR)
    manager.create()
    return manager


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_context(test_settings, memory_repo, checkpoint_manager):
    """Factory for ImportContext with test defaults; keyword overrides win."""

    def factory(client, **overrides):
        values = {
            "client": client,
            "repository": memory_repo,
            "checkpoints": checkpoint_manager,
            "budget": ErrorBudget(max_total_errors=test_settings.MAX_TOTAL_ERRORS, max_duration_seconds=3600),
            "settings": test_settings,
        }
        values.update(overrides)
        return ImportContext(**values)

    return factory


@pytest.fixture
def client_factory(dataset):
    """Build a FakeCongressClient over the dataset with some listings replaced."""

    def factory(**overrides):
        values = copy.deepcopy(dataset)
        values.update(overrides)
        return FakeCongressClient(**values)

    return factory


@pytest.fixture
def raw():
    """Builders for raw Congress.gov records"""
    return SimpleNamespace(
        member=make_member,
        committee=make_committee,
        bill=make_bill,
        vote_item=make_vote_item,
        vote_detail=make_vote_detail,
    )
