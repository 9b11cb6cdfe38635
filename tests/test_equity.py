from datetime import date, datetime

import pytest

from choreshare.equity import (
    EquityLedger,
    adjusted_quota,
    carry_balance,
    correct_quota,
    equity_status,
    presence_weight,
    refresh_history,
    remaining_quota,
    week_start,
    weekly_available_points,
    weighted_targets,
)
from choreshare.models import (
    CalendarEvent,
    Completion,
    ExceptionalTask,
    Member,
    Slot,
    Task,
    WeeklyHistory,
)

TODAY = date(2026, 10, 14)  # Wednesday
MONDAY = date(2026, 10, 12)
LAST_MONDAY = date(2026, 10, 5)

LAUNDRY = Task(
    task_id="laundry",
    title="Laundry",
    duration=20,
    penibility=50,
    slots=(Slot(0, "08:00"), Slot(2, "08:00")),
)
MEMBERS = [
    Member(user_id="a", name="Ann"),
    Member(user_id="b", name="Ben"),
    Member(user_id="c", name="Cat", participates_in_leaderboard=False),
]


def _ledger(**kwargs) -> EquityLedger:
    return EquityLedger(members=MEMBERS, tasks=[LAUNDRY], points={"laundry": 100}, **kwargs)


def test_week_start_is_monday() -> None:
    assert week_start(TODAY) == MONDAY
    assert week_start(MONDAY) == MONDAY
    assert week_start(date(2026, 10, 18)) == MONDAY


def test_available_points_count_every_weekly_slot() -> None:
    assert weekly_available_points([LAUNDRY], {"laundry": 100}) == 200


def test_available_points_count_one_occurrence_per_weekday() -> None:
    slots = (Slot(0, "08:00"), Slot(0, "18:00"), Slot(2, "08:00"))
    twice_monday = Task("laundry", "Laundry", 20, 50, slots)
    assert weekly_available_points([twice_monday], {"laundry": 100}) == 200


def test_presence_weight_has_a_floor() -> None:
    assert presence_weight(0) == 1.0
    assert presence_weight(2) == pytest.approx(5 / 7)
    assert presence_weight(7) == pytest.approx(0.1)


def test_weighted_targets_are_proportional() -> None:
    targets = weighted_targets(90, {"a": 1.0, "b": 0.5})
    assert targets["a"] == pytest.approx(60)
    assert targets["b"] == pytest.approx(30)
    assert weighted_targets(90, {}) == {}


def test_zero_participation_carries_no_balance() -> None:
    assert carry_balance(0, 100) == 0
    assert carry_balance(0, 0) == 0


def test_partial_participation_carries_surplus_and_deficit() -> None:
    assert carry_balance(70, 100) == -30
    assert carry_balance(130, 100) == 30


def test_adjusted_and_remaining_quota_never_negative() -> None:
    assert adjusted_quota(100, 30) == 70
    assert adjusted_quota(100, -30) == 130
    assert adjusted_quota(20, 30) == 0
    assert remaining_quota(70, 50) == 20
    assert remaining_quota(70, 90) == 0


def test_equity_status_margin() -> None:
    assert equity_status(121, 100) == "ahead"
    assert equity_status(120, 100) == "ontrack"
    assert equity_status(80, 100) == "ontrack"
    assert equity_status(79, 100) == "behind"


def test_targets_split_between_leaderboard_members() -> None:
    ledger = _ledger()
    assert ledger.targets(MONDAY) == {"a": pytest.approx(100), "b": pytest.approx(100)}
    assert ledger.target("c", MONDAY) == 0.0


def test_absence_lowers_target() -> None:
    events = [CalendarEvent(user_id="b", start=datetime(2026, 10, 13), all_day=True)]
    targets = _ledger(events=events).targets(MONDAY)
    assert targets["a"] == pytest.approx(200 * 7 / 13)
    assert targets["b"] == pytest.approx(200 * 6 / 13)


def test_quota_lines_use_stored_history() -> None:
    history = [
        WeeklyHistory(week_start=LAST_MONDAY, user_id="a", points_earned=0, quota=100),
        WeeklyHistory(week_start=LAST_MONDAY, user_id="b", points_earned=120, quota=100),
    ]
    completions = [
        Completion(task_id="laundry", date=MONDAY, user_id="a", validated=True),
        Completion(task_id="laundry", date=TODAY, user_id="b", validated=False),
    ]
    exceptional = [
        ExceptionalTask(
            title="Windows", duration=30, penibility=20, date=date(2026, 10, 13), user_id="b", validated=True
        )
    ]
    ledger = _ledger(history=history, completions=completions, exceptional=exceptional)

    lines = {line.user_id: line for line in ledger.quota_lines(TODAY)}

    assert set(lines) == {"a", "b"}
    assert lines["a"].carried == 0
    assert lines["a"].adjusted == pytest.approx(100)
    assert lines["a"].earned == 100
    assert lines["a"].remaining == 0
    assert lines["b"].carried == pytest.approx(20)
    assert lines["b"].adjusted == pytest.approx(80)
    assert lines["b"].earned == 60
    assert lines["b"].remaining == pytest.approx(20)
    assert lines["b"].status == "ontrack"


def test_missing_history_is_recomputed() -> None:
    completions = [
        Completion(task_id="laundry", date=LAST_MONDAY, user_id="b", validated=True),
        Completion(task_id="laundry", date=date(2026, 10, 7), user_id="b", validated=True),
    ]
    ledger = _ledger(completions=completions)

    # a did nothing last week: no debt despite a 100 point quota
    assert ledger.carried("a", MONDAY) == 0
    assert ledger.carried("b", MONDAY) == pytest.approx(100)
    assert ledger.adjusted("b", MONDAY) == 0


def test_close_week_replaces_existing_records() -> None:
    stale = WeeklyHistory(week_start=MONDAY, user_id="a", points_earned=999, quota=1)
    older = WeeklyHistory(week_start=LAST_MONDAY, user_id="a", points_earned=10, quota=100)
    completions = [Completion(task_id="laundry", date=TODAY, user_id="a", validated=True)]
    ledger = _ledger(history=[stale, older], completions=completions)

    entries = ledger.close_week(MONDAY)

    assert {e.user_id for e in entries} == {"a", "b", "c"}
    closed = {e.user_id: e for e in entries}
    assert closed["a"].points_earned == 100
    assert closed["a"].balance == pytest.approx(0)
    assert closed["c"].quota == 0.0
    assert stale not in ledger.history
    assert older in ledger.history
    assert len(ledger.history) == 4


def test_history_corrections_recompute_balance() -> None:
    entry = WeeklyHistory(week_start=LAST_MONDAY, user_id="a", points_earned=80, quota=100)
    assert entry.balance == -20
    assert refresh_history(entry, 130).balance == 30
    assert correct_quota(entry, 60).balance == 20
    assert entry.points_earned == 80
