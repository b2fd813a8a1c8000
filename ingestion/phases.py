"""
Import phases and their dependency graph.

The run is a linear state machine:
    legislators → committees → bills → votes → validate → complete

Dependencies are declared per phase and checked transitively, so a phase
can only start when every ancestor has completed.
"""

import enum
from typing import Dict, Iterable, List, Optional, Set


class ImportPhase(str, enum.Enum):
    LEGISLATORS = "legislators"
    COMMITTEES = "committees"
    BILLS = "bills"
    VOTES = "votes"
    VALIDATE = "validate"


PHASE_ORDER: List[ImportPhase] = [
    ImportPhase.LEGISLATORS,
    ImportPhase.COMMITTEES,
    ImportPhase.BILLS,
    ImportPhase.VOTES,
    ImportPhase.VALIDATE,
]

# Direct prerequisites only; ancestry is resolved by `get_all_dependencies`
PHASE_DEPENDENCIES: Dict[ImportPhase, List[ImportPhase]] = {
    ImportPhase.LEGISLATORS: [],
    ImportPhase.COMMITTEES: [ImportPhase.LEGISLATORS],
    ImportPhase.BILLS: [ImportPhase.LEGISLATORS, ImportPhase.COMMITTEES],
    ImportPhase.VOTES: [ImportPhase.BILLS],
    ImportPhase.VALIDATE: [ImportPhase.VOTES],
}


def get_all_dependencies(phase: ImportPhase) -> Set[ImportPhase]:
    """Transitive closure of a phase's prerequisites."""
    seen: Set[ImportPhase] = set()
    stack = list(PHASE_DEPENDENCIES[phase])
    while stack:
        dep = stack.pop()
        if dep not in seen:
            seen.add(dep)
            stack.extend(PHASE_DEPENDENCIES[dep])
    return seen


def missing_dependencies(phase: ImportPhase, completed: Iterable[str]) -> List[ImportPhase]:
    """Ancestors of `phase` not in `completed`, in run order."""
    done = {ImportPhase(p) for p in completed}
    required = get_all_dependencies(phase)
    return [p for p in PHASE_ORDER if p in required and p not in done]


def next_phase(phase: ImportPhase) -> Optional[ImportPhase]:
    """The phase after `phase`, or None for the terminal phase."""
    index = PHASE_ORDER.index(phase)
    if index + 1 < len(PHASE_ORDER):
        return PHASE_ORDER[index + 1]
    return None
