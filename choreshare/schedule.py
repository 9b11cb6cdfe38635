"""Weekly recurrence slots and occurrence enumeration for choreshare."""

import re
from datetime import date, timedelta

from choreshare.models import Occurrence, OccurrenceKey, Slot, Task

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

DAY_ALIASES: dict[str, int] = {}
for _idx, _name in enumerate(
    ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
):
    DAY_ALIASES[_name] = _idx
    DAY_ALIASES[_name[:3]] = _idx

# Named parts of the day map to a fixed start time
PERIOD_TIMES = {
    "morning": "08:00",
    "evening": "18:00",
    "matin": "08:00",
    "soir": "18:00",
}

DEFAULT_TIME = "08:00"

_SLOT_RE = re.compile(r"^\s*([A-Za-z]+)\s*[·,\-]?\s*(\S+)?\s*$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_time(text: str) -> str:
    """Normalize "8:00", "08:00" or a named period to "HH:MM"."""
    text = text.strip().lower()
    if text in PERIOD_TIMES:
        return PERIOD_TIMES[text]
    match = _TIME_RE.match(text)
    if not match:
        raise ValueError(f"Invalid time: {text!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time: {text!r}")
    return f"{hours:02d}:{minutes:02d}"


def parse_slot(text: str) -> Slot:
    """
    Parse a weekly slot such as "Mon 08:00", "Tuesday · 18:30" or "Sat evening".

    A slot without a time starts at the default time.
    """
    match = _SLOT_RE.match(text)
    if not match:
        raise ValueError(f"Invalid slot: {text!r}")
    day = match.group(1).lower()
    if day not in DAY_ALIASES:
        raise ValueError(f"Unknown day in slot: {text!r}")
    time = parse_time(match.group(2)) if match.group(2) else DEFAULT_TIME
    return Slot(DAY_ALIASES[day], time)


def format_slot(slot: Slot) -> str:
    return f"{DAY_NAMES[slot.weekday]} {slot.time}"


def time_to_minutes(time: str) -> int:
    hours, minutes = time.split(":")
    return int(hours) * 60 + int(minutes)


def task_slot_on(task: Task, day: date) -> Slot | None:
    """Return the first slot of task falling on day's weekday, if any."""
    for slot in task.slots:
        if slot.weekday == day.weekday():
            return slot
    return None


def week_horizon(today: date) -> list[date]:
    """
    Dates left to plan in the current Monday-Sunday week.

    On a Sunday the week is considered over and the horizon is the whole
    following week.
    """
    if today.weekday() == 6:
        start = today + timedelta(days=1)
        return [start + timedelta(days=i) for i in range(7)]
    return [today + timedelta(days=i) for i in range(7 - today.weekday())]


def enumerate_occurrences(
    tasks: list[Task],
    points: dict[str, int],
    dates: list[date],
    assigned: set[OccurrenceKey] | None = None,
) -> list[Occurrence]:
    """
    List the task occurrences on dates that nobody is assigned to yet.

    A task occurs at most once per day, at its first slot on that weekday.
    """
    assigned = assigned or set()
    occurrences: list[Occurrence] = []
    for day in dates:
        for task in tasks:
            slot = task_slot_on(task, day)
            if slot is None:
                continue
            if OccurrenceKey(task.task_id, day) in assigned:
                continue
            occurrences.append(
                Occurrence(
                    task_id=task.task_id,
                    title=task.title,
                    date=day,
                    points=points.get(task.task_id, 0),
                    time_slot=slot.time,
                )
            )
    return occurrences
