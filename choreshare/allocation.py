"""Shared allocation interface and candidate eligibility for choreshare."""

from typing import Protocol

from choreshare.models import (
    AllocationInput,
    AllocationResult,
    Candidate,
    Occurrence,
    OccurrenceKey,
)


class AllocationStrategy(Protocol):
    """Assigns one member to each occurrence of an AllocationInput."""

    name: str

    def allocate(self, problem: AllocationInput) -> AllocationResult: ...


def is_eligible(candidate: Candidate, occurrence: Occurrence, problem: AllocationInput) -> bool:
    """A candidate is eligible unless a recurring slot or their calendar rules them out."""
    if occurrence.slot in candidate.unavailable:
        return False
    if problem.busy is not None and problem.busy(
        candidate.user_id, occurrence.date, occurrence.time_slot
    ):
        return False
    return True


def build_eligibility(problem: AllocationInput) -> dict[OccurrenceKey, list[Candidate]]:
    """Map every occurrence key to the candidates who can take it, in member order."""
    return {
        occurrence.key: [m for m in problem.members if is_eligible(m, occurrence, problem)]
        for occurrence in problem.occurrences
    }
