"""Evaluation normalization for choreshare."""

from dataclasses import dataclass

from choreshare.models import Evaluation, Member, NormalizedCost, Task

NEUTRAL_COST = 0.5


@dataclass
class NormalizerParams:
    """Blend weights between rank and relative intensity."""

    alpha: float = 0.7  # penibility: rank vs intensity
    beta: float = 0.7  # duration: rank vs intensity
    min_evaluations: int = 3


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def percentile_rank(value: float, values: list[float]) -> float:
    """
    Midrank of value among values: (count below + count equal / 2) / n.

    Ties share the average of the ranks they span, so the result is
    independent of the scale each member rates on.
    """
    if len(values) <= 1:
        return NEUTRAL_COST
    below = sum(1 for v in values if v < value)
    equal = sum(1 for v in values if v == value)
    return _clamp((below + equal / 2) / len(values))


def relative_intensity(value: float, values: list[float]) -> float:
    """Min-max scale value within values; 0.5 when every value is the same."""
    low = min(values)
    high = max(values)
    if high == low:
        return NEUTRAL_COST
    return _clamp((value - low) / (high - low))


def _neutral(user_id: str, task_id: str) -> NormalizedCost:
    return NormalizedCost(user_id=user_id, task_id=task_id, cost=NEUTRAL_COST)


def normalize_member(
    user_id: str,
    evaluations: list[Evaluation],
    tasks: list[Task],
    params: NormalizerParams | None = None,
) -> list[NormalizedCost]:
    """
    Normalize one member's evaluations into a cost for every task.

    Only the member's own evaluations are compared with each other. Members
    with too few evaluations, and tasks the member never evaluated, get the
    neutral cost.
    """
    params = params or NormalizerParams()
    own = {e.task_id: e for e in evaluations if e.user_id == user_id}

    if len(own) < params.min_evaluations:
        return [_neutral(user_id, task.task_id) for task in tasks]

    all_penibilities = [e.penibility for e in own.values()]
    all_durations = [e.duration for e in own.values()]

    costs: list[NormalizedCost] = []
    for task in tasks:
        evaluation = own.get(task.task_id)
        if evaluation is None:
            costs.append(_neutral(user_id, task.task_id))
            continue

        pen_rank = percentile_rank(evaluation.penibility, all_penibilities)
        dur_rank = percentile_rank(evaluation.duration, all_durations)
        pen_rel = relative_intensity(evaluation.penibility, all_penibilities)
        dur_rel = relative_intensity(evaluation.duration, all_durations)

        pen_final = params.alpha * pen_rank + (1 - params.alpha) * pen_rel
        dur_final = params.beta * dur_rank + (1 - params.beta) * dur_rel

        # Multiplicative: a task is only cheap if it is light on both axes
        costs.append(
            NormalizedCost(
                user_id=user_id,
                task_id=task.task_id,
                cost=_clamp(pen_final * dur_final),
                dur_rank=dur_rank,
                pen_rank=pen_rank,
                dur_rel=dur_rel,
                pen_rel=pen_rel,
            )
        )

    return costs


def normalize_costs(
    members: list[Member],
    tasks: list[Task],
    evaluations: list[Evaluation],
    params: NormalizerParams | None = None,
) -> dict[tuple[str, str], NormalizedCost]:
    """
    Normalize evaluations for every member.

    Returns a dict mapping (user_id, task_id) -> NormalizedCost covering the
    full members x tasks cross-product.
    """
    table: dict[tuple[str, str], NormalizedCost] = {}
    for member in members:
        for cost in normalize_member(member.user_id, evaluations, tasks, params):
            table[(cost.user_id, cost.task_id)] = cost
    return table


def cost_table(normalized: dict[tuple[str, str], NormalizedCost]) -> dict[tuple[str, str], float]:
    """Strip the intermediate components, keeping (user_id, task_id) -> cost."""
    return {key: entry.cost for key, entry in normalized.items()}


def evaluation_status(
    members: list[Member],
    tasks: list[Task],
    evaluations: list[Evaluation],
) -> dict[str, tuple[int, int]]:
    """Map user_id -> (tasks evaluated, total tasks)."""
    task_ids = {task.task_id for task in tasks}
    status: dict[str, tuple[int, int]] = {}
    for member in members:
        evaluated = {
            e.task_id for e in evaluations if e.user_id == member.user_id and e.task_id in task_ids
        }
        status[member.user_id] = (len(evaluated), len(task_ids))
    return status
