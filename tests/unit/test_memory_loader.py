"""
Unit tests for the in-memory repository used by dry runs
"""

import pytest
from ingestion.loaders.memory_loader import InMemoryLegislativeRepository
from ingestion.loaders.repository import UpsertResult
from schemas.legislative import (
    BillCreate,
    CommitteeCreate,
    LegislatorCreate,
    RollCallVoteCreate,
    VotePositionCreate,
)


def legislator(bioguide_id="A000370", chamber="HOUSE", party="D", state="NC", in_office=True):
    return LegislatorCreate(
        id=bioguide_id,
        first_name="Alma",
        last_name="Adams",
        full_name="Adams, Alma",
        party=party,
        chamber=chamber,
        state=state,
        in_office=in_office,
    )


class TestUpserts:

    @pytest.mark.asyncio
    async def test_created_then_updated(self):
        repo = InMemoryLegislativeRepository()

        assert await repo.upsert_legislator(legislator()) == UpsertResult.CREATED
        assert await repo.upsert_legislator(legislator(state="VA")) == UpsertResult.UPDATED

        assert len(repo.legislators) == 1
        assert repo.legislators["A000370"]["state"] == "VA"
        assert repo.legislators["A000370"]["last_synced_at"] is not None

    @pytest.mark.asyncio
    async def test_vote_positions_are_keyed_by_roll_call_and_member(self):
        repo = InMemoryLegislativeRepository()
        first = VotePositionCreate(roll_call_id="h118-1-1", legislator_id="A000370", position="YEA")
        changed = VotePositionCreate(roll_call_id="h118-1-1", legislator_id="A000370", position="NAY")

        assert await repo.upsert_vote_position(first) == UpsertResult.CREATED
        assert await repo.upsert_vote_position(changed) == UpsertResult.UPDATED
        assert repo.vote_positions[("h118-1-1", "A000370")]["position"] == "NAY"

    @pytest.mark.asyncio
    async def test_committee_parent_lookup(self):
        repo = InMemoryLegislativeRepository()
        await repo.upsert_committee(CommitteeCreate(id="hsag15", name="Sub", chamber="HOUSE"))

        assert await repo.get_committee_parent("hsag15") is None
        await repo.set_committee_parent("hsag15", "hsag00")
        assert await repo.get_committee_parent("hsag15") == "hsag00"
        assert await repo.get_committee_parent("missing") is None


class TestUnitsOfWork:

    @pytest.mark.asyncio
    async def test_failed_transaction_rolls_back(self):
        repo = InMemoryLegislativeRepository()

        with pytest.raises(RuntimeError):
            async with repo.transaction():
                await repo.upsert_legislator(legislator())
                raise RuntimeError("batch failed")

        assert repo.legislators == {}
        assert repo.rollbacks == 1
        assert repo.commits == 0

    @pytest.mark.asyncio
    async def test_savepoint_keeps_rest_of_batch(self):
        repo = InMemoryLegislativeRepository()

        async with repo.transaction():
            await repo.upsert_legislator(legislator("A000370"))
            with pytest.raises(RuntimeError):
                async with repo.savepoint():
                    await repo.upsert_legislator(legislator("B001288"))
                    raise RuntimeError("bad record")
            await repo.upsert_legislator(legislator("C001098"))

        assert sorted(repo.legislators) == ["A000370", "C001098"]
        assert repo.commits == 1

    @pytest.mark.asyncio
    async def test_failed_savepoint_restores_updated_row(self):
        repo = InMemoryLegislativeRepository()
        await repo.upsert_legislator(legislator("A000370", state="NC"))
        await repo.upsert_committee(CommitteeCreate(id="hsag15", name="Sub", chamber="HOUSE"))
        before = repo.legislators["A000370"]

        async with repo.transaction():
            with pytest.raises(RuntimeError):
                async with repo.savepoint():
                    await repo.upsert_legislator(legislator("A000370", state="VA"))
                    await repo.set_committee_parent("hsag15", "hsag00")
                    raise RuntimeError("bad record")
            await repo.upsert_bill(BillCreate(id="hr-1-118", congress_number=118, bill_type="HR", bill_number=1))

        assert repo.legislators["A000370"] is before
        assert repo.legislators["A000370"]["state"] == "NC"
        assert repo.committees["hsag15"]["parent_id"] is None
        assert list(repo.bills) == ["hr-1-118"]

    @pytest.mark.asyncio
    async def test_outer_rollback_undoes_committed_savepoints(self):
        repo = InMemoryLegislativeRepository()
        await repo.upsert_vote_position(
            VotePositionCreate(roll_call_id="h118-1-1", legislator_id="A000370", position="YEA")
        )

        with pytest.raises(RuntimeError):
            async with repo.transaction():
                async with repo.savepoint():
                    await repo.upsert_vote_position(
                        VotePositionCreate(roll_call_id="h118-1-1", legislator_id="A000370", position="NAY")
                    )
                async with repo.savepoint():
                    await repo.upsert_legislator(legislator("B001288"))
                raise RuntimeError("batch failed")

        assert repo.vote_positions[("h118-1-1", "A000370")]["position"] == "YEA"
        assert repo.legislators == {}
        assert repo.rollbacks == 1

    @pytest.mark.asyncio
    async def test_savepoint_rollback_leaves_untouched_rows_alone(self):
        repo = InMemoryLegislativeRepository()
        for n in range(200):
            await repo.upsert_vote_position(
                VotePositionCreate(roll_call_id="h118-1-1", legislator_id=f"M{n:06d}", position="YEA")
            )
        rows = dict(repo.vote_positions)

        async with repo.transaction():
            for n in range(200):
                with pytest.raises(RuntimeError):
                    async with repo.savepoint():
                        await repo.upsert_vote_position(
                            VotePositionCreate(roll_call_id="h118-1-2", legislator_id=f"M{n:06d}", position="NAY")
                        )
                        raise RuntimeError("bad position")

        assert len(repo.vote_positions) == 200
        assert all(repo.vote_positions[key] is row for key, row in rows.items())
        assert repo._undo == []


class TestValidationSnapshot:

    @pytest.mark.asyncio
    async def test_counts_and_integrity(self):
        repo = InMemoryLegislativeRepository()
        await repo.upsert_legislator(legislator("A000370", chamber="HOUSE", party="D"))
        await repo.upsert_legislator(legislator("C001098", chamber="SENATE", party="R"))
        await repo.upsert_legislator(legislator("E000068", chamber="SENATE", party="D", in_office=False, state="XX"))
        await repo.upsert_committee(CommitteeCreate(id="hsag15", name="Sub", chamber="HOUSE", parent_id="hsag00"))
        await repo.upsert_bill(BillCreate(id="hr-1-118", congress_number=118, bill_type="HR", bill_number=1))
        await repo.upsert_roll_call(RollCallVoteCreate(
            id="h118-1-1", chamber="HOUSE", congress_number=118, session=1, roll_number=1
        ))
        await repo.upsert_vote_position(
            VotePositionCreate(roll_call_id="h118-1-1", legislator_id="A000370", position="YEA")
        )
        await repo.upsert_vote_position(
            VotePositionCreate(roll_call_id="h118-1-9", legislator_id="Z999999", position="NAY")
        )

        snapshot = await repo.collect_validation_snapshot([118, 119])

        assert snapshot.legislator_count == 3
        assert snapshot.bill_counts_by_congress == {118: 1, 119: 0}
        assert snapshot.roll_call_counts_by_congress == {118: 1, 119: 0}
        assert snapshot.orphaned_subcommittees == 1
        assert snapshot.positions_with_missing_legislator == 1
        assert snapshot.positions_with_missing_roll_call == 1
        assert snapshot.bills_without_title == 1
        assert snapshot.bills_without_introduced_date == 1
        assert snapshot.legislators_without_state == 1
        assert snapshot.current_house_members == 1
        assert snapshot.current_senate_members == 1
        assert snapshot.current_party_counts == {"D": 1, "R": 1}
        assert snapshot.bills_with_sync_timestamp == 1
