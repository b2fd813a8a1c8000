"""
Integration tests: interrupted imports resume from the on-disk checkpoint
"""

import pytest
from core.exceptions import ErrorBudgetExceededError
from ingestion.checkpoint import CheckpointManager
from ingestion.error_budget import ErrorBudget
from ingestion.orchestrator import PhaseOrchestrator
from ingestion.phases import PHASE_ORDER, ImportPhase


def reload_checkpoint(test_settings):
    """A new manager over the same directory, as a restarted process would build it."""
    manager = CheckpointManager(test_settings.CHECKPOINT_DIR)
    assert manager.load() is not None
    return manager


def assert_full_dataset(repo):
    assert len(repo.legislators) == 5
    assert len(repo.committees) == 3
    assert len(repo.bills) == 5
    assert len(repo.roll_calls) == 3
    assert len(repo.vote_positions) == 4


@pytest.mark.asyncio
async def test_crash_during_bills_resumes_at_offset(client_factory, make_context, memory_repo, test_settings):
    """
    1. The bills listing for 118/hr dies after two items
    2. The checkpoint on disk points inside that listing
    3. A restarted run skips the finished phases and continues from the offset
    """
    crashing = client_factory()
    crashing.crash_after["bills-118-hr"] = 2

    with pytest.raises(Exception, match="interrupted"):
        await PhaseOrchestrator(make_context(crashing)).run_all()

    checkpoints = reload_checkpoint(test_settings)
    state = checkpoints.get_state()
    assert state.phase == ImportPhase.BILLS
    assert state.completed_phases == [ImportPhase.LEGISLATORS, ImportPhase.COMMITTEES]
    assert (state.congress, state.bill_type, state.offset) == (118, "hr", 2)
    assert "interrupted" in state.last_error

    client = client_factory()
    results = await PhaseOrchestrator(make_context(client, checkpoints=checkpoints)).run_all()

    assert [r.phase for r in results] == [ImportPhase.BILLS, ImportPhase.VOTES, ImportPhase.VALIDATE]
    assert results[0].resumed is True
    assert client.list_calls[0] == ("bills-118-hr", 2)
    assert not any(name in ("members", "historical_members", "committees") for name, _ in client.list_calls)
    assert_full_dataset(memory_repo)
    assert checkpoints.is_complete()
    assert checkpoints.get_state().last_error is None


@pytest.mark.asyncio
async def test_crash_during_votes_resumes_combination(client_factory, make_context, memory_repo, test_settings):
    crashing = client_factory()
    crashing.crash_after["votes-118-1"] = 1

    with pytest.raises(Exception, match="interrupted"):
        await PhaseOrchestrator(make_context(crashing)).run_all()

    checkpoints = reload_checkpoint(test_settings)
    state = checkpoints.get_state()
    assert state.phase == ImportPhase.VOTES
    assert (state.metadata.chamber, state.metadata.session, state.offset) == ("house", 1, 1)

    client = client_factory()
    await PhaseOrchestrator(make_context(client, checkpoints=checkpoints)).run_all()

    assert client.list_calls[0] == ("votes-118-1", 1)
    assert (118, 1, 1) not in client.detail_calls
    assert_full_dataset(memory_repo)


@pytest.mark.asyncio
async def test_rerun_after_reset_is_idempotent(client_factory, make_context, memory_repo, checkpoint_manager):
    await PhaseOrchestrator(make_context(client_factory())).run_all()

    checkpoint_manager.reset()
    checkpoint_manager.create()
    results = await PhaseOrchestrator(make_context(client_factory())).run_all()

    assert [r.phase for r in results] == PHASE_ORDER
    legislators = results[0].stats
    assert (legislators.created, legislators.updated) == (0, 5)
    bills = results[2].stats
    assert (bills.created, bills.updated) == (0, 5)
    assert_full_dataset(memory_repo)


@pytest.mark.asyncio
async def test_error_budget_abort_is_recorded(client_factory, make_context, test_settings):
    broken = [{"congress": 118, "type": "HR"} for _ in range(6)]
    client = client_factory(bills={(118, "hr"): broken})
    context = make_context(client, budget=ErrorBudget(max_total_errors=2, max_duration_seconds=3600))

    with pytest.raises(ErrorBudgetExceededError):
        await PhaseOrchestrator(context).run_all()

    state = reload_checkpoint(test_settings).get_state()
    assert state.phase == ImportPhase.BILLS
    assert ImportPhase.BILLS not in state.completed_phases
    assert "Error budget exceeded" in state.last_error
