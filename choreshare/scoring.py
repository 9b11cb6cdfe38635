"""Task point values for choreshare."""

import math
import statistics
from dataclasses import dataclass

from choreshare.models import Evaluation, ExceptionalTask, Task


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; points have always rounded .5 up
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class PointsBreakdown:
    """How a task's point value was obtained."""

    duration: int
    penibility: int
    total: int
    is_median: bool
    evaluation_count: int


def points_breakdown(task: Task, evaluations: list[Evaluation]) -> PointsBreakdown:
    """
    Compute a task's points from the median of everyone's evaluations.

    Falls back to the task's own duration and penibility when nobody has
    evaluated it yet.
    """
    evals = [e for e in evaluations if e.task_id == task.task_id]

    if not evals:
        return PointsBreakdown(
            duration=task.duration,
            penibility=task.penibility,
            total=round_half_up(task.duration * task.penibility / 10),
            is_median=False,
            evaluation_count=0,
        )

    median_duration = statistics.median(e.duration for e in evals)
    median_penibility = statistics.median(e.penibility for e in evals)

    return PointsBreakdown(
        duration=round_half_up(median_duration),
        penibility=round_half_up(median_penibility),
        total=round_half_up(median_duration * median_penibility / 10),
        is_median=True,
        evaluation_count=len(evals),
    )


def task_points(task: Task, evaluations: list[Evaluation]) -> int:
    return points_breakdown(task, evaluations).total


def points_by_task(tasks: list[Task], evaluations: list[Evaluation]) -> dict[str, int]:
    """Map task_id -> points for every task."""
    return {task.task_id: task_points(task, evaluations) for task in tasks}


def exceptional_points(task: ExceptionalTask) -> int:
    return round_half_up(task.duration * task.penibility / 10)
