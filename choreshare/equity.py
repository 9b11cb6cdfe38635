"""Weekly equity and quota accounting for choreshare."""

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Literal

from choreshare.availability import absence_days
from choreshare.models import (
    CalendarEvent,
    Completion,
    ExceptionalTask,
    Member,
    Task,
    WeeklyHistory,
)
from choreshare.scoring import exceptional_points

MIN_PRESENCE_WEIGHT = 0.1
STATUS_MARGIN = 20

EquityStatus = Literal["ahead", "behind", "ontrack"]


def week_start(day: date) -> date:
    """Monday of the week containing day."""
    return day - timedelta(days=day.weekday())


def weekly_available_points(tasks: list[Task], points: dict[str, int]) -> int:
    """
    Total points on offer in a week: each task's points times the number of
    weekdays it occurs on. Several slots on one weekday make a single occurrence.
    """
    return sum(
        points.get(task.task_id, 0) * len({slot.weekday for slot in task.slots}) for task in tasks
    )


def presence_weight(days_absent: int) -> float:
    return max(MIN_PRESENCE_WEIGHT, (7 - days_absent) / 7)


def weighted_targets(total_points: float, weights: dict[str, float]) -> dict[str, float]:
    """Split total_points between members in proportion to their weights."""
    total_weight = sum(weights.values())
    if total_weight <= 0:
        return {user_id: 0.0 for user_id in weights}
    return {user_id: total_points * weight / total_weight for user_id, weight in weights.items()}


def carry_balance(prev_points: float, prev_quota: float) -> float:
    """
    Balance carried over from the previous week.

    A member who earned nothing did not take part and carries no debt; anyone
    else carries their surplus (positive) or deficit (negative).
    """
    if prev_points == 0:
        return 0.0
    return prev_points - prev_quota


def adjusted_quota(target: float, carried: float) -> float:
    return max(0.0, target - carried)


def remaining_quota(adjusted: float, earned: float) -> float:
    return max(0.0, adjusted - earned)


def equity_status(earned: float, adjusted: float, margin: float = STATUS_MARGIN) -> EquityStatus:
    diff = earned - adjusted
    if diff > margin:
        return "ahead"
    if diff < -margin:
        return "behind"
    return "ontrack"


def refresh_history(entry: WeeklyHistory, points_earned: float) -> WeeklyHistory:
    """Return entry with corrected points; the balance follows."""
    return replace(entry, points_earned=points_earned)


def correct_quota(entry: WeeklyHistory, quota: float) -> WeeklyHistory:
    """Return entry with a corrected quota; the balance follows."""
    return replace(entry, quota=quota)


@dataclass(frozen=True)
class QuotaLine:
    """A member's quota position for the current week."""

    user_id: str
    name: str
    absence_days: int
    target: float
    carried: float
    adjusted: float
    earned: float
    remaining: float
    status: EquityStatus


@dataclass
class EquityLedger:
    """
    Weekly point accounting for a household.

    Quotas are shared between members taking part in the leaderboard, in
    proportion to the days each of them is present.
    """

    members: list[Member]
    tasks: list[Task]
    points: dict[str, int]
    events: list[CalendarEvent] = field(default_factory=list)
    history: list[WeeklyHistory] = field(default_factory=list)
    completions: list[Completion] = field(default_factory=list)
    exceptional: list[ExceptionalTask] = field(default_factory=list)

    def participants(self) -> list[Member]:
        return [m for m in self.members if m.participates_in_leaderboard]

    def available_points(self) -> int:
        return weekly_available_points(self.tasks, self.points)

    def weights(self, monday: date, members: list[Member] | None = None) -> dict[str, float]:
        members = self.participants() if members is None else members
        return {
            m.user_id: presence_weight(absence_days(self.events, m.user_id, monday))
            for m in members
        }

    def targets(self, monday: date) -> dict[str, float]:
        return weighted_targets(self.available_points(), self.weights(monday))

    def target(self, user_id: str, monday: date) -> float:
        return self.targets(monday).get(user_id, 0.0)

    def earned(self, user_id: str, monday: date) -> float:
        """Points from validated completions and one-off tasks within the week."""
        sunday = monday + timedelta(days=6)
        total = 0.0
        for completion in self.completions:
            if completion.user_id != user_id or not completion.validated:
                continue
            if monday <= completion.date <= sunday:
                total += self.points.get(completion.task_id, 0)
        for task in self.exceptional:
            if task.user_id == user_id and task.validated and monday <= task.date <= sunday:
                total += exceptional_points(task)
        return total

    def record(self, user_id: str, monday: date) -> WeeklyHistory:
        """Stored history for the week, or one recomputed from completions."""
        for entry in self.history:
            if entry.user_id == user_id and entry.week_start == monday:
                return entry
        return WeeklyHistory(
            week_start=monday,
            user_id=user_id,
            points_earned=self.earned(user_id, monday),
            quota=self.target(user_id, monday),
        )

    def carried(self, user_id: str, monday: date) -> float:
        previous = self.record(user_id, monday - timedelta(days=7))
        return carry_balance(previous.points_earned, previous.quota)

    def adjusted(self, user_id: str, monday: date) -> float:
        return adjusted_quota(self.target(user_id, monday), self.carried(user_id, monday))

    def quota_lines(self, today: date) -> list[QuotaLine]:
        monday = week_start(today)
        targets = self.targets(monday)
        lines: list[QuotaLine] = []
        for member in self.participants():
            target = targets.get(member.user_id, 0.0)
            carried = self.carried(member.user_id, monday)
            adjusted = adjusted_quota(target, carried)
            earned = self.earned(member.user_id, monday)
            lines.append(
                QuotaLine(
                    user_id=member.user_id,
                    name=member.name,
                    absence_days=absence_days(self.events, member.user_id, monday),
                    target=target,
                    carried=carried,
                    adjusted=adjusted,
                    earned=earned,
                    remaining=remaining_quota(adjusted, earned),
                    status=equity_status(earned, adjusted),
                )
            )
        return lines

    def close_week(self, monday: date) -> list[WeeklyHistory]:
        """
        Build the history records for the week starting at monday.

        Records already stored for that week are replaced in self.history and
        the new ones are returned.
        """
        targets = self.targets(monday)
        entries = [
            WeeklyHistory(
                week_start=monday,
                user_id=member.user_id,
                points_earned=self.earned(member.user_id, monday),
                quota=targets.get(member.user_id, 0.0),
            )
            for member in self.members
        ]
        self.history = [h for h in self.history if h.week_start != monday] + entries
        return entries
