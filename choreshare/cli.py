"""Command-line interface for choreshare."""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

from choreshare.errors import ChoreshareError
from choreshare.factory import STRATEGY_NAMES, create_strategy
from choreshare.output import format_assignments_csv, format_quota_report, format_results
from choreshare.parser import (
    create_household_template,
    merge_evaluations,
    parse_evaluations_csv,
    parse_household_yaml,
)
from choreshare.planner import plan_week, quota_report


def main(argv: list[str] | None = None) -> int:
    """Main entry point for choreshare CLI."""
    parser = argparse.ArgumentParser(
        description="Share recurring household chores fairly for the rest of the week.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  choreshare household.yaml
  choreshare household.yaml --evaluations evaluations.csv --strategy exact
  choreshare household.yaml --today 2026-10-19 --seed 7 --reasons
  choreshare household.yaml --quotas
  choreshare --write-template household.yaml
""",
    )
    parser.add_argument(
        "household_yaml",
        type=Path,
        nargs="?",
        help="Path to the household YAML file",
    )
    parser.add_argument(
        "--evaluations",
        type=Path,
        help="CSV file with task,user,duration,penibility rows (upserted over the YAML ones)",
    )
    parser.add_argument(
        "--strategy",
        choices=STRATEGY_NAMES,
        default="heuristic",
        help="Allocation strategy (default: heuristic)",
    )
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Plan as if today were this date, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the heuristic's tie-break (default: random)",
    )
    parser.add_argument(
        "--epsilon",
        type=float,
        default=None,
        help="Heuristic tie-break window (default: 0.05)",
    )
    parser.add_argument(
        "--time-limit",
        type=float,
        default=None,
        help="Exact solver time limit in seconds (default: 10)",
    )
    parser.add_argument(
        "--require-evaluations",
        action="store_true",
        help="Refuse to plan until every participating member evaluated every task",
    )
    parser.add_argument(
        "--quotas",
        action="store_true",
        help="Print the weekly quota table instead of planning",
    )
    parser.add_argument(
        "--reasons",
        action="store_true",
        help="Show the scoring trace behind each assignment",
    )
    parser.add_argument(
        "--csv",
        action="store_true",
        help="Print assignments as CSV",
    )
    parser.add_argument(
        "--write-template",
        type=Path,
        metavar="PATH",
        help="Write an example household YAML file and exit",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log allocation details to stderr",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.write_template:
        create_household_template(args.write_template)
        print(f"Created household template at: {args.write_template}")
        return 0

    if args.household_yaml is None:
        parser.error("the household YAML file is required")

    # Validate household file exists
    if not args.household_yaml.exists():
        print(f"Error: Household file not found: {args.household_yaml}", file=sys.stderr)
        return 1

    try:
        household, params = parse_household_yaml(args.household_yaml)
    except Exception as e:
        print(f"Error parsing household YAML: {e}", file=sys.stderr)
        return 1

    if args.evaluations:
        if not args.evaluations.exists():
            print(f"Error: Evaluations file not found: {args.evaluations}", file=sys.stderr)
            return 1
        try:
            merge_evaluations(household, parse_evaluations_csv(args.evaluations))
        except Exception as e:
            print(f"Error parsing evaluations CSV: {e}", file=sys.stderr)
            return 1

    today = args.today or date.today()

    if args.quotas:
        print(format_quota_report(quota_report(household, today)))
        return 0

    # Command-line flags win over the file's params section
    overrides = dict(params[args.strategy])
    if args.strategy == "heuristic":
        if args.seed is not None:
            overrides["seed"] = args.seed
        if args.epsilon is not None:
            overrides["epsilon"] = args.epsilon
    elif args.time_limit is not None:
        overrides["time_limit"] = args.time_limit

    try:
        strategy = create_strategy(args.strategy, overrides)
    except ValueError as e:
        print(f"Error in {args.strategy} params: {e}", file=sys.stderr)
        return 1

    try:
        plan = plan_week(
            household,
            today,
            strategy,
            require_complete_evaluations=args.require_evaluations,
        )
    except ChoreshareError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Loaded {len(household.tasks)} tasks and {len(household.members)} members")
    print(f"Planning {plan.horizon[0]} to {plan.horizon[-1]}")
    print()
    if args.csv:
        print(format_assignments_csv(plan.result))
    else:
        titles = {task.task_id: task.title for task in household.tasks}
        print(format_results(plan.result, titles, show_reasons=args.reasons))

    return 0 if plan.result.feasible else 2


if __name__ == "__main__":
    sys.exit(main())
