"""Rotation history for choreshare."""

from collections import defaultdict
from datetime import date, timedelta

from choreshare.models import Completion

LOOKBACK_DAYS = 28


def rotation_counts(
    completions: list[Completion],
    today: date,
    lookback_days: int = LOOKBACK_DAYS,
) -> dict[tuple[str, str], int]:
    """
    Count how often each member did each task over the trailing window.

    The window runs from today - lookback_days to today inclusive; records
    dated in the future are ignored. Returns a sparse dict mapping
    (user_id, task_id) -> count, absent pairs meaning zero.
    """
    cutoff = today - timedelta(days=lookback_days)
    counts: dict[tuple[str, str], int] = defaultdict(int)

    for completion in completions:
        if completion.date < cutoff or completion.date > today:
            continue
        counts[(completion.user_id, completion.task_id)] += 1

    return dict(counts)
