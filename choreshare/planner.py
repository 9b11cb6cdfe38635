"""Weekly planning: from a household snapshot to an allocation run."""

import logging
from dataclasses import dataclass, field
from datetime import date

from choreshare.allocation import AllocationStrategy
from choreshare.availability import make_busy_check
from choreshare.equity import EquityLedger, QuotaLine, week_start, weighted_targets
from choreshare.errors import IncompleteEvaluationsError
from choreshare.models import (
    AllocationInput,
    AllocationResult,
    CalendarEvent,
    Candidate,
    Completion,
    Evaluation,
    ExceptionalTask,
    Member,
    OccurrenceKey,
    Task,
    WeeklyHistory,
)
from choreshare.normalize import NormalizerParams, cost_table, evaluation_status, normalize_costs
from choreshare.rotation import rotation_counts
from choreshare.schedule import enumerate_occurrences, week_horizon
from choreshare.scoring import points_by_task

logger = logging.getLogger(__name__)


@dataclass
class Household:
    """Everything known about a household, already loaded in memory."""

    tasks: list[Task]
    members: list[Member]
    evaluations: list[Evaluation] = field(default_factory=list)
    completions: list[Completion] = field(default_factory=list)
    exceptional: list[ExceptionalTask] = field(default_factory=list)
    events: list[CalendarEvent] = field(default_factory=list)
    history: list[WeeklyHistory] = field(default_factory=list)

    def ledger(self) -> EquityLedger:
        return EquityLedger(
            members=self.members,
            tasks=self.tasks,
            points=points_by_task(self.tasks, self.evaluations),
            events=self.events,
            history=self.history,
            completions=self.completions,
            exceptional=self.exceptional,
        )


@dataclass
class WeekPlan:
    """An allocation run together with the input it was computed from."""

    horizon: list[date]
    problem: AllocationInput
    result: AllocationResult


def build_problem(
    household: Household,
    today: date,
    normalizer: NormalizerParams | None = None,
) -> tuple[list[date], AllocationInput]:
    """
    Materialize the allocation input for the rest of today's week.

    Targets split the points still to be allocated between participating
    members in proportion to their presence this week; balances are the
    amounts carried over from last week.
    """
    horizon = week_horizon(today)
    points = points_by_task(household.tasks, household.evaluations)
    participants = [m for m in household.members if m.participates_in_allocation]

    assigned = {OccurrenceKey(c.task_id, c.date) for c in household.completions}
    occurrences = enumerate_occurrences(household.tasks, points, horizon, assigned)

    ledger = household.ledger()
    monday = week_start(horizon[0])
    targets = weighted_targets(
        sum(o.points for o in occurrences), ledger.weights(monday, participants)
    )

    normalized = normalize_costs(participants, household.tasks, household.evaluations, normalizer)

    problem = AllocationInput(
        occurrences=occurrences,
        members=[
            Candidate(
                user_id=m.user_id,
                name=m.name,
                target=targets.get(m.user_id, 0.0),
                unavailable=set(m.unavailable),
            )
            for m in participants
        ],
        costs=cost_table(normalized),
        rotations=rotation_counts(household.completions, today),
        balances={m.user_id: ledger.carried(m.user_id, monday) for m in participants},
        busy=make_busy_check(household.events),
    )
    return horizon, problem


def plan_week(
    household: Household,
    today: date,
    strategy: AllocationStrategy,
    normalizer: NormalizerParams | None = None,
    require_complete_evaluations: bool = False,
) -> WeekPlan:
    """Allocate every unassigned occurrence left in today's week with strategy."""
    if require_complete_evaluations:
        participants = [m for m in household.members if m.participates_in_allocation]
        status = evaluation_status(participants, household.tasks, household.evaluations)
        names = {m.user_id: m.name for m in participants}
        missing = [
            (names[user_id], done, total)
            for user_id, (done, total) in status.items()
            if done < total
        ]
        if missing:
            raise IncompleteEvaluationsError(missing)

    horizon, problem = build_problem(household, today, normalizer)
    logger.info(
        "Planning %s to %s with %s strategy", horizon[0], horizon[-1], strategy.name
    )
    result = strategy.allocate(problem)
    logger.info(
        "Allocation finished: status=%s, %d assignment(s), %d unassignable",
        result.status.value,
        len(result.assignments),
        len(result.unassignable),
    )
    return WeekPlan(horizon=horizon, problem=problem, result=result)


def quota_report(household: Household, today: date) -> list[QuotaLine]:
    return household.ledger().quota_lines(today)
