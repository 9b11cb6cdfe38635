import random
from datetime import date

from choreshare.heuristic import HeuristicAllocator, HeuristicParams
from choreshare.models import (
    AllocationInput,
    AllocationStatus,
    Candidate,
    Occurrence,
    OccurrenceKey,
    Slot,
)

DAY = date(2026, 10, 14)  # Wednesday


def _occ(task_id: str, points: int = 10, day: date = DAY, time_slot: str = "08:00") -> Occurrence:
    return Occurrence(task_id=task_id, title=task_id.upper(), date=day, points=points, time_slot=time_slot)


def _pairs(result) -> list[tuple[OccurrenceKey, str]]:
    return [(a.key, a.user_id) for a in result.assignments]


def test_members_get_the_task_they_prefer() -> None:
    problem = AllocationInput(
        occurrences=[_occ("x"), _occ("y")],
        members=[Candidate("a", "A", target=1000), Candidate("b", "B", target=1000)],
        costs={("a", "x"): 0.1, ("a", "y"): 0.9, ("b", "x"): 0.9, ("b", "y"): 0.1},
    )
    result = HeuristicAllocator(HeuristicParams(seed=1)).allocate(problem)

    assert result.status == AllocationStatus.OK
    assert {a.task_id: a.user_id for a in result.assignments} == {"x": "a", "y": "b"}


def test_zero_epsilon_is_deterministic() -> None:
    occurrences = [_occ(f"t{i}", points=5 + i % 3, day=date(2026, 10, 14 + i % 4)) for i in range(8)]
    members = [Candidate(u, u.upper(), target=20) for u in ("a", "b", "c")]
    problem = AllocationInput(occurrences=occurrences, members=members)

    first = HeuristicAllocator(HeuristicParams(epsilon=0.0), rng=random.Random(1)).allocate(problem)
    second = HeuristicAllocator(HeuristicParams(epsilon=0.0), rng=random.Random(99)).allocate(problem)

    assert _pairs(first) == _pairs(second)
    assert len(first.assignments) == len(occurrences)


def test_heaviest_chores_are_placed_first() -> None:
    problem = AllocationInput(
        occurrences=[_occ("light", points=2), _occ("heavy", points=40), _occ("mid", points=10)],
        members=[Candidate("a", "A", target=100)],
    )
    result = HeuristicAllocator(HeuristicParams(epsilon=0.0)).allocate(problem)
    assert [a.task_id for a in result.assignments] == ["heavy", "mid", "light"]


def test_load_is_balanced_by_the_charge_penalty() -> None:
    problem = AllocationInput(
        occurrences=[_occ(f"t{i}") for i in range(4)],
        members=[Candidate("a", "A", target=20), Candidate("b", "B", target=20)],
    )
    result = HeuristicAllocator(HeuristicParams(epsilon=0.0)).allocate(problem)
    assert result.load_by_user() == {"a": 20, "b": 20}


def test_hard_brake_applies_past_target() -> None:
    allocator = HeuristicAllocator()
    problem = AllocationInput(occurrences=[_occ("x")], members=[])
    member = Candidate("a", "A", target=10)

    within = allocator.score(member, _occ("x"), load=0, problem=problem)
    beyond = allocator.score(member, _occ("x"), load=10, problem=problem)

    assert within.brake == 0.0
    assert beyond.load_ratio == 2.0
    assert beyond.brake == 2.0
    assert beyond.score == 0.5 * (1 + 2.2 * 4) + 2.0


def test_strong_preference_is_amplified() -> None:
    allocator = HeuristicAllocator()
    member = Candidate("a", "A", target=0)
    problem = AllocationInput(occurrences=[], members=[member], costs={("a", "x"): 0.1})
    scored = allocator.score(member, _occ("x"), load=0, problem=problem)
    assert scored.adjusted_cost == 0.1 * 0.7
    # No target means no load penalty at all
    assert scored.load_ratio == 0.0
    assert scored.charge_multiplier == 1.0


def test_rotation_history_diversifies() -> None:
    problem = AllocationInput(
        occurrences=[_occ("x")],
        members=[Candidate("a", "A", target=1000), Candidate("b", "B", target=1000)],
        costs={("a", "x"): 0.1, ("b", "x"): 0.3},
        rotations={("a", "x"): 3},
    )
    result = HeuristicAllocator(HeuristicParams(epsilon=0.0)).allocate(problem)
    assert result.assignments[0].user_id == "b"
    assert "rot=3x0.35" in result.assignments[0].reason


def test_unavailable_occurrence_is_reported_and_others_processed() -> None:
    blocked = _occ("x", time_slot="19:00")
    free = _occ("y", day=date(2026, 10, 15))
    problem = AllocationInput(
        occurrences=[blocked, free],
        members=[
            Candidate("a", "A", target=100, unavailable={Slot(2, "19:00")}),
            Candidate("b", "B", target=100),
        ],
        busy=lambda user_id, day, time_slot: user_id == "b" and day == DAY,
    )
    result = HeuristicAllocator(HeuristicParams(seed=3)).allocate(problem)

    assert result.status == AllocationStatus.OK
    assert result.unassignable == [blocked.key]
    assert [a.task_id for a in result.assignments] == ["y"]


def test_everyone_unavailable() -> None:
    problem = AllocationInput(
        occurrences=[_occ("x")],
        members=[Candidate("a", "A", target=100, unavailable={Slot(2, "08:00")})],
    )
    result = HeuristicAllocator().allocate(problem)
    assert result.status == AllocationStatus.ALL_UNAVAILABLE
    assert not result.feasible
    assert result.assignments == []
    assert result.unassignable == [OccurrenceKey("x", DAY)]


def test_nothing_left_to_assign() -> None:
    problem = AllocationInput(occurrences=[], members=[Candidate("a", "A", target=100)])
    result = HeuristicAllocator().allocate(problem)
    assert result.status == AllocationStatus.ALREADY_ASSIGNED
    assert result.feasible


def test_seeded_tie_break_is_reproducible() -> None:
    occurrences = [_occ(f"t{i}", day=date(2026, 10, 14 + i)) for i in range(5)]
    members = [Candidate(u, u.upper(), target=1000) for u in ("a", "b", "c")]
    problem = AllocationInput(occurrences=occurrences, members=members)
    params = HeuristicParams(epsilon=10.0, seed=5)

    first = HeuristicAllocator(params).allocate(problem)
    second = HeuristicAllocator(params).allocate(problem)

    assert _pairs(first) == _pairs(second)
    assert all(a.reason.startswith("Tie-break between 3 candidates") for a in first.assignments)


def test_reason_lists_every_candidate() -> None:
    problem = AllocationInput(
        occurrences=[_occ("x")],
        members=[Candidate("a", "Ann", target=50), Candidate("b", "Ben", target=50)],
        costs={("a", "x"): 0.1},
    )
    reason = HeuristicAllocator(HeuristicParams(epsilon=0.0)).allocate(problem).assignments[0].reason
    assert reason.startswith("Best score.")
    assert "Ann: score=" in reason and "Ben: score=" in reason
    assert "cost=0.10->0.07" in reason
    assert "cost=0.50" in reason
