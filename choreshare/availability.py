"""Calendar availability checks for choreshare."""

from datetime import date, datetime, timedelta

from choreshare.models import BusyCheck, CalendarEvent
from choreshare.schedule import time_to_minutes

# Tasks are assumed to take about an hour when checking for overlaps
TASK_WINDOW = timedelta(hours=1)


def _event_days(event: CalendarEvent) -> list[date]:
    """Days covered by an all-day event; the end day is exclusive when it differs."""
    start = event.start.date()
    end = event.end.date() if event.end else start
    if end <= start:
        return [start]
    return [start + timedelta(days=i) for i in range((end - start).days)]


def is_busy_at(
    events: list[CalendarEvent],
    user_id: str,
    day: date,
    time_slot: str,
) -> bool:
    """True if one of user_id's events overlaps a task starting at time_slot on day."""
    task_start = datetime.combine(day, datetime.min.time()) + timedelta(
        minutes=time_to_minutes(time_slot)
    )
    task_end = task_start + TASK_WINDOW

    for event in events:
        if event.user_id != user_id:
            continue
        if event.all_day:
            if day in _event_days(event):
                return True
            continue
        if event.start.date() != day:
            continue
        event_end = event.end or event.start + TASK_WINDOW
        if event.start < task_end and event_end > task_start:
            return True
    return False


def make_busy_check(events: list[CalendarEvent]) -> BusyCheck:
    """Bind a list of calendar events into a busy check for allocation."""

    def busy(user_id: str, day: date, time_slot: str) -> bool:
        return is_busy_at(events, user_id, day, time_slot)

    return busy


def absence_days(events: list[CalendarEvent], user_id: str, week_start: date) -> int:
    """Number of distinct days in the week starting at week_start covered by all-day events."""
    week_end = week_start + timedelta(days=7)
    absent: set[date] = set()
    for event in events:
        if event.user_id != user_id or not event.all_day:
            continue
        for day in _event_days(event):
            if week_start <= day < week_end:
                absent.add(day)
    return len(absent)
