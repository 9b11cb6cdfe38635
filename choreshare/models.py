"""Data models for choreshare."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Callable, Literal, NamedTuple


class Slot(NamedTuple):
    """A recurring weekly slot: weekday (0 = Monday) and "HH:MM" start time."""

    weekday: int
    time: str


class OccurrenceKey(NamedTuple):
    """Identifies one calendar instance of a recurring task."""

    task_id: str
    date: date


@dataclass(frozen=True)
class Task:
    """A recurring household chore."""

    task_id: str
    title: str
    duration: int = 30  # minutes
    penibility: int = 50  # 0-100
    slots: tuple[Slot, ...] = ()


@dataclass(frozen=True)
class Evaluation:
    """A member's own perception of what a task costs them."""

    task_id: str
    user_id: str
    duration: float
    penibility: float


@dataclass
class Member:
    """A member of the household."""

    user_id: str
    name: str
    unavailable: set[Slot] = field(default_factory=set)
    participates_in_allocation: bool = True
    participates_in_leaderboard: bool = True


@dataclass(frozen=True)
class NormalizedCost:
    """How undesirable a task is for one member, in [0, 1]."""

    user_id: str
    task_id: str
    cost: float
    dur_rank: float = 0.5
    pen_rank: float = 0.5
    dur_rel: float = 0.5
    pen_rel: float = 0.5


@dataclass(frozen=True)
class Completion:
    """A historical assignment of a task occurrence to a member."""

    task_id: str
    date: date
    user_id: str
    validated: bool = False


@dataclass(frozen=True)
class ExceptionalTask:
    """A one-off task done outside the recurring schedule."""

    title: str
    duration: float
    penibility: float
    date: date
    user_id: str
    validated: bool = False


@dataclass(frozen=True)
class CalendarEvent:
    """A busy period from a member's external calendar."""

    user_id: str
    start: datetime
    end: datetime | None = None
    all_day: bool = False


@dataclass(frozen=True)
class WeeklyHistory:
    """Points earned against quota by one member for one Monday-aligned week."""

    week_start: date
    user_id: str
    points_earned: float
    quota: float

    @property
    def balance(self) -> float:
        return self.points_earned - self.quota


@dataclass(frozen=True)
class Occurrence:
    """A single dated instance of a recurring task, waiting for an assignee."""

    task_id: str
    title: str
    date: date
    points: int
    time_slot: str = "08:00"

    @property
    def key(self) -> OccurrenceKey:
        return OccurrenceKey(self.task_id, self.date)

    @property
    def slot(self) -> Slot:
        return Slot(self.date.weekday(), self.time_slot)


@dataclass
class Candidate:
    """A member taking part in an allocation run, with their point target."""

    user_id: str
    name: str
    target: float
    unavailable: set[Slot] = field(default_factory=set)


# (user_id, date, "HH:MM") -> True when the member is busy at that time
BusyCheck = Callable[[str, date, str], bool]


@dataclass
class AllocationInput:
    """Everything an allocation strategy needs for one run."""

    occurrences: list[Occurrence]
    members: list[Candidate]
    costs: dict[tuple[str, str], float] = field(default_factory=dict)  # (user_id, task_id)
    rotations: dict[tuple[str, str], int] = field(default_factory=dict)  # (user_id, task_id)
    balances: dict[str, float] = field(default_factory=dict)  # user_id -> prior-week balance
    busy: BusyCheck | None = None

    def cost(self, user_id: str, task_id: str) -> float:
        return self.costs.get((user_id, task_id), 0.5)

    def rotation(self, user_id: str, task_id: str) -> int:
        return self.rotations.get((user_id, task_id), 0)


@dataclass
class Assignment:
    """A member assigned to a task occurrence."""

    task_id: str
    title: str
    user_id: str
    user_name: str
    date: date
    points: int
    reason: str = ""

    @property
    def key(self) -> OccurrenceKey:
        return OccurrenceKey(self.task_id, self.date)


class AllocationStatus(str, Enum):
    OK = "ok"
    ALREADY_ASSIGNED = "already_assigned"
    ALL_UNAVAILABLE = "all_unavailable"
    INFEASIBLE = "infeasible"
    TIMEOUT = "timeout"


@dataclass
class AllocationResult:
    """Result of an allocation run."""

    assignments: list[Assignment]
    feasible: bool = True
    status: AllocationStatus = AllocationStatus.OK
    unassignable: list[OccurrenceKey] = field(default_factory=list)
    objective_value: float = 0.0
    strategy: Literal["heuristic", "exact"] = "heuristic"

    def load_by_user(self) -> dict[str, int]:
        loads: dict[str, int] = {}
        for assignment in self.assignments:
            loads[assignment.user_id] = loads.get(assignment.user_id, 0) + assignment.points
        return loads
