"""Output formatting for choreshare."""

from collections import defaultdict
from datetime import date

from choreshare.equity import QuotaLine
from choreshare.models import AllocationResult, AllocationStatus, Assignment, OccurrenceKey

STATUS_MESSAGES = {
    AllocationStatus.ALREADY_ASSIGNED: "Every task is already assigned until Sunday.",
    AllocationStatus.ALL_UNAVAILABLE: "No assignment possible: every member is unavailable "
    "for the remaining slots.",
    AllocationStatus.INFEASIBLE: "The exact solver found no feasible assignment. "
    "Try the heuristic strategy.",
    AllocationStatus.TIMEOUT: "The exact solver ran out of time. Try the heuristic strategy.",
}


def _day_label(day: date) -> str:
    return day.strftime("%a %d %b")


def format_results(
    result: AllocationResult,
    titles: dict[str, str] | None = None,
    show_reasons: bool = False,
) -> str:
    """Format an allocation result for display, grouped by member."""
    lines: list[str] = []
    titles = titles or {}

    if not result.assignments:
        lines.append(STATUS_MESSAGES.get(result.status, "No assignments could be made."))
        lines.extend(_format_gaps(result.unassignable, titles))
        return "\n".join(lines)

    lines.append(f"=== Chore Assignments ({result.strategy}) ===")
    total = sum(a.points for a in result.assignments)
    lines.append(f"{len(result.assignments)} tasks assigned, {total} pts shared")
    if result.strategy == "exact":
        lines.append(f"Objective value: {result.objective_value:.3f}")
    lines.append("")

    by_member: dict[str, list[Assignment]] = defaultdict(list)
    names: dict[str, str] = {}
    for assignment in result.assignments:
        by_member[assignment.user_id].append(assignment)
        names[assignment.user_id] = assignment.user_name

    for user_id in sorted(by_member, key=lambda u: names[u].lower()):
        assigned = sorted(by_member[user_id], key=lambda a: (a.date, a.title))
        points = sum(a.points for a in assigned)
        lines.append(f"--- {names[user_id]} ({points} pts) ---")
        for a in assigned:
            lines.append(f"  - {a.title} ({_day_label(a.date)}, {a.points} pts)")
            if show_reasons:
                lines.append(f"      {a.reason}")
        lines.append("")

    lines.extend(_format_gaps(result.unassignable, titles))
    return "\n".join(lines).rstrip()


def _format_gaps(gaps: list[OccurrenceKey], titles: dict[str, str]) -> list[str]:
    if not gaps:
        return []
    lines = ["=== Unassignable (nobody available) ==="]
    for key in sorted(gaps, key=lambda k: (k.date, k.task_id)):
        lines.append(f"  - {titles.get(key.task_id, key.task_id)} ({_day_label(key.date)})")
    return lines


def format_quota_report(quota_lines: list[QuotaLine]) -> str:
    """Format the weekly quota table."""
    headers = ["Member", "Absent", "Target", "Carried", "Adjusted", "Earned", "Remaining", "Status"]
    rows: list[list[str]] = []
    for q in quota_lines:
        rows.append(
            [
                q.name,
                f"{q.absence_days}d",
                f"{round(q.target)}",
                f"{round(q.carried):+d}",
                f"{round(q.adjusted)}",
                f"{round(q.earned)}",
                f"{round(q.remaining)}",
                q.status,
            ]
        )

    col_widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            col_widths[i] = max(col_widths[i], len(cell))

    header_line = " | ".join(h.ljust(col_widths[i]) for i, h in enumerate(headers))
    lines = ["=== Weekly Quotas ===", header_line, "-" * len(header_line)]
    for row in rows:
        lines.append(" | ".join(cell.ljust(col_widths[i]) for i, cell in enumerate(row)))
    return "\n".join(lines)


def format_assignments_csv(result: AllocationResult) -> str:
    """Format assignments as CSV for export."""
    lines: list[str] = ["task_id,date,user_id,points,reason"]

    sorted_assignments = sorted(result.assignments, key=lambda a: (a.date, a.task_id))
    for a in sorted_assignments:
        reason = a.reason.replace('"', '""')
        lines.append(f'{a.task_id},{a.date.isoformat()},{a.user_id},{a.points},"{reason}"')

    return "\n".join(lines)
