"""YAML and CSV parsing for choreshare."""

import csv
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from choreshare.errors import InputError
from choreshare.models import (
    CalendarEvent,
    Completion,
    Evaluation,
    ExceptionalTask,
    Member,
    Slot,
    Task,
    WeeklyHistory,
)
from choreshare.planner import Household
from choreshare.schedule import parse_slot

EVALUATION_COLUMNS = ("task", "user", "duration", "penibility")


def _as_date(value: Any, where: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InputError(f"invalid date {value!r}", where) from None


def _local(value: datetime) -> datetime:
    """Convert an offset-aware datetime to naive local time."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _as_datetime(value: Any, where: str) -> datetime:
    if isinstance(value, datetime):
        return _local(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return _local(datetime.fromisoformat(str(value).strip()))
    except ValueError:
        raise InputError(f"invalid date/time {value!r}", where) from None


def _as_bool(entry: dict[str, Any], key: str, default: bool, where: str) -> bool:
    value = entry.get(key, default)
    if not isinstance(value, bool):
        raise InputError(f"{key!r} must be true or false, got {value!r}", where)
    return value


def _require(entry: dict[str, Any], key: str, where: str) -> Any:
    if key not in entry or entry[key] is None:
        raise InputError(f"missing {key!r}", where)
    return entry[key]


def _slots(values: list[str], where: str) -> list[Slot]:
    try:
        return [parse_slot(str(v)) for v in values or []]
    except ValueError as e:
        raise InputError(str(e), where) from None


def _parse_task(entry: dict[str, Any], where: str) -> Task:
    task_id = str(_require(entry, "id", where))
    try:
        duration = int(entry.get("duration", 30))
        penibility = int(entry.get("penibility", 50))
    except (TypeError, ValueError):
        raise InputError("duration and penibility must be integers", where) from None
    return Task(
        task_id=task_id,
        title=str(entry.get("title", task_id)),
        duration=duration,
        penibility=penibility,
        slots=tuple(_slots(entry.get("slots", []), where)),
    )


def _parse_member(entry: dict[str, Any], where: str) -> Member:
    user_id = str(_require(entry, "id", where))
    return Member(
        user_id=user_id,
        name=str(entry.get("name", user_id)),
        unavailable=set(_slots(entry.get("unavailable", []), where)),
        participates_in_allocation=_as_bool(entry, "allocation", True, where),
        participates_in_leaderboard=_as_bool(entry, "leaderboard", True, where),
    )


def _upsert_evaluations(evaluations: list[Evaluation]) -> list[Evaluation]:
    """Keep the last evaluation given for each (task, user) pair."""
    latest: dict[tuple[str, str], Evaluation] = {}
    for evaluation in evaluations:
        latest[(evaluation.task_id, evaluation.user_id)] = evaluation
    return list(latest.values())


def _parse_evaluation(entry: dict[str, Any], where: str) -> Evaluation:
    try:
        return Evaluation(
            task_id=str(_require(entry, "task", where)),
            user_id=str(_require(entry, "user", where)),
            duration=float(_require(entry, "duration", where)),
            penibility=float(_require(entry, "penibility", where)),
        )
    except (TypeError, ValueError):
        raise InputError("duration and penibility must be numbers", where) from None


def parse_household_yaml(yaml_path: Path) -> tuple[Household, dict[str, dict[str, Any]]]:
    """
    Parse a household snapshot YAML file.

    Returns a tuple of (Household, params) where params maps "heuristic" and
    "exact" to the setting overrides found under the file's params key.
    """
    with yaml_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise InputError("expected a mapping at the top level", str(yaml_path))

    def entries(key: str) -> list[tuple[dict[str, Any], str]]:
        items = data.get(key) or []
        if not isinstance(items, list):
            raise InputError(f"{key!r} must be a list", str(yaml_path))
        result = []
        for idx, item in enumerate(items):
            where = f"{yaml_path}: {key}[{idx}]"
            if not isinstance(item, dict):
                raise InputError("expected a mapping", where)
            result.append((item, where))
        return result

    tasks = [_parse_task(e, w) for e, w in entries("tasks")]
    members = [_parse_member(e, w) for e, w in entries("members")]
    evaluations = [_parse_evaluation(e, w) for e, w in entries("evaluations")]

    completions = [
        Completion(
            task_id=str(_require(e, "task", w)),
            date=_as_date(_require(e, "date", w), w),
            user_id=str(_require(e, "user", w)),
            validated=_as_bool(e, "validated", False, w),
        )
        for e, w in entries("completions")
    ]

    exceptional = [
        ExceptionalTask(
            title=str(e.get("title", "")),
            duration=float(_require(e, "duration", w)),
            penibility=float(_require(e, "penibility", w)),
            date=_as_date(_require(e, "date", w), w),
            user_id=str(_require(e, "user", w)),
            validated=_as_bool(e, "validated", False, w),
        )
        for e, w in entries("exceptional")
    ]

    events = [
        CalendarEvent(
            user_id=str(_require(e, "user", w)),
            start=_as_datetime(_require(e, "start", w), w),
            end=_as_datetime(e["end"], w) if e.get("end") is not None else None,
            all_day=_as_bool(e, "all_day", False, w),
        )
        for e, w in entries("events")
    ]

    history = [
        WeeklyHistory(
            week_start=_as_date(_require(e, "week_start", w), w),
            user_id=str(_require(e, "user", w)),
            points_earned=float(_require(e, "points_earned", w)),
            quota=float(_require(e, "quota", w)),
        )
        for e, w in entries("history")
    ]

    raw_params = data.get("params") or {}
    if not isinstance(raw_params, dict):
        raise InputError("'params' must be a mapping", str(yaml_path))
    unknown = sorted(set(raw_params) - {"heuristic", "exact"})
    if unknown:
        raise InputError(f"unknown params section(s): {', '.join(unknown)}", str(yaml_path))
    params = {name: dict(raw_params.get(name) or {}) for name in ("heuristic", "exact")}

    household = Household(
        tasks=tasks,
        members=members,
        evaluations=_upsert_evaluations(evaluations),
        completions=completions,
        exceptional=exceptional,
        events=events,
        history=history,
    )
    return household, params


def parse_evaluations_csv(csv_path: Path) -> list[Evaluation]:
    """
    Parse an evaluations CSV file with task, user, duration and penibility columns.

    A later row for the same (task, user) pair replaces an earlier one.
    """
    evaluations: list[Evaluation] = []

    with csv_path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        fieldnames = [name.strip().lower() for name in reader.fieldnames or []]
        missing = [col for col in EVALUATION_COLUMNS if col not in fieldnames]
        if missing:
            raise InputError(f"missing column(s): {', '.join(missing)}", str(csv_path))

        for line_no, row in enumerate(reader, start=2):
            row = {k.strip().lower(): (v or "").strip() for k, v in row.items() if k}
            if not row.get("task") or not row.get("user"):
                continue
            evaluations.append(_parse_evaluation(row, f"{csv_path}:{line_no}"))

    return _upsert_evaluations(evaluations)


def merge_evaluations(household: Household, evaluations: list[Evaluation]) -> Household:
    """Return household with evaluations upserted over the ones it already has."""
    household.evaluations = _upsert_evaluations(household.evaluations + evaluations)
    return household


def create_household_template(output_path: Path) -> None:
    """Create an example household YAML file."""
    template = {
        "tasks": [
            {
                "id": "dishes",
                "title": "Dishes",
                "duration": 20,
                "penibility": 40,
                "slots": ["Mon 19:00", "Wed 19:00", "Fri 19:00"],
            },
            {
                "id": "vacuum",
                "title": "Vacuum",
                "duration": 45,
                "penibility": 60,
                "slots": ["Sat 10:00"],
            },
        ],
        "members": [
            {"id": "alice", "name": "Alice", "unavailable": ["Wed 19:00"]},
            {"id": "bob", "name": "Bob", "unavailable": []},
        ],
        "evaluations": [],
        "completions": [],
        "events": [],
        "history": [],
        "params": {"heuristic": {"epsilon": 0.05}, "exact": {"time_limit": 10.0}},
    }

    header = """\
# Household file for choreshare
#
# tasks:        recurring chores; slots are "<day> <HH:MM>" (or "<day> morning/evening")
# members:      who shares the chores; allocation/leaderboard flags default to true
# evaluations:  {task, user, duration, penibility} per member and task
# completions:  past assignments {task, user, date, validated}
# exceptional:  one-off tasks {title, user, date, duration, penibility, validated}
# events:       calendar entries {user, start, end, all_day}
# history:      closed weeks {week_start, user, points_earned, quota}
# params:       heuristic / exact tuning overrides

"""

    with output_path.open("w", encoding="utf-8") as f:
        f.write(header)
        yaml.dump(template, f, default_flow_style=False, sort_keys=False)
