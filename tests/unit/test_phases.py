"""
Unit tests for the phase graph
"""

from ingestion.phases import (
    PHASE_ORDER,
    ImportPhase,
    get_all_dependencies,
    missing_dependencies,
    next_phase,
)


def test_order():
    assert [p.value for p in PHASE_ORDER] == ["legislators", "committees", "bills", "votes", "validate"]


def test_dependencies_are_transitive():
    assert get_all_dependencies(ImportPhase.LEGISLATORS) == set()
    assert get_all_dependencies(ImportPhase.VOTES) == {
        ImportPhase.LEGISLATORS,
        ImportPhase.COMMITTEES,
        ImportPhase.BILLS,
    }
    assert get_all_dependencies(ImportPhase.VALIDATE) == set(PHASE_ORDER[:4])


def test_every_dependency_precedes_its_phase():
    for phase in PHASE_ORDER:
        for dependency in get_all_dependencies(phase):
            assert PHASE_ORDER.index(dependency) < PHASE_ORDER.index(phase)


def test_missing_dependencies_in_run_order():
    assert missing_dependencies(ImportPhase.BILLS, []) == [ImportPhase.LEGISLATORS, ImportPhase.COMMITTEES]
    assert missing_dependencies(ImportPhase.BILLS, ["committees", "legislators"]) == []
    assert missing_dependencies(ImportPhase.VALIDATE, [ImportPhase.LEGISLATORS]) == [
        ImportPhase.COMMITTEES,
        ImportPhase.BILLS,
        ImportPhase.VOTES,
    ]


def test_next_phase():
    assert next_phase(ImportPhase.LEGISLATORS) == ImportPhase.COMMITTEES
    assert next_phase(ImportPhase.VOTES) == ImportPhase.VALIDATE
    assert next_phase(ImportPhase.VALIDATE) is None
