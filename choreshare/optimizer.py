"""MILP-based optimization for chore assignments."""

import logging
from dataclasses import dataclass

import numpy as np
from scipy.optimize import Bounds, LinearConstraint, milp

from choreshare.allocation import build_eligibility
from choreshare.models import (
    AllocationInput,
    AllocationResult,
    AllocationStatus,
    Assignment,
)

logger = logging.getLogger(__name__)

# scipy.optimize.milp status codes
_STATUS_OPTIMAL = 0
_STATUS_LIMIT = 1


@dataclass
class ExactParams:
    """Weights of the binary program."""

    alpha: float = 0.05  # objective cost per point of load above a member's effective target
    beta: float = 0.35  # objective cost per past occurrence in the lookback window
    # Scales the prior-week balance into the load cap; negative so a surplus
    # lowers the cap and a deficit raises it, as the adjusted quota does
    lambda_history: float = -1.0
    preference_bonus: float = 0.7
    preference_threshold: float = 0.2
    time_limit: float = 10.0  # seconds


@dataclass(frozen=True)
class _Pair:
    occurrence_idx: int
    member_idx: int
    coefficient: float
    cost: float
    rotation: int


class ExactAllocator:
    """
    Solve the allocation as a binary program with scipy's HiGHS backend.

    x[o, u] = 1 iff member u takes occurrence o, defined only for eligible
    pairs. Each occurrence gets exactly one member. Each member's load may
    exceed their effective target only through a continuous slack variable
    that the objective penalizes, so an overloaded member never makes the
    whole program infeasible.
    """

    name = "exact"

    def __init__(self, params: ExactParams | None = None):
        self.params = params or ExactParams()

    def effective_target(self, target: float, balance: float) -> float:
        return max(0.0, target + self.params.lambda_history * balance)

    def allocate(self, problem: AllocationInput) -> AllocationResult:
        p = self.params
        occurrences = problem.occurrences
        members = problem.members

        if not occurrences:
            logger.info("Nothing to allocate: every occurrence is already assigned")
            return AllocationResult(
                assignments=[], status=AllocationStatus.ALREADY_ASSIGNED, strategy="exact"
            )

        eligibility = build_eligibility(problem)
        unassignable = [o.key for o in occurrences if not eligibility[o.key]]
        if unassignable:
            # An occurrence nobody can take makes its equality constraint unsatisfiable
            logger.warning(
                "Exact allocation infeasible: %d occurrence(s) have no eligible member",
                len(unassignable),
            )
            return AllocationResult(
                assignments=[],
                feasible=False,
                status=AllocationStatus.INFEASIBLE,
                unassignable=unassignable,
                strategy="exact",
            )

        member_index = {m.user_id: idx for idx, m in enumerate(members)}

        # Enumerate decision variables: eligible pairs first, then one slack per member
        pairs: list[_Pair] = []
        for o_idx, occurrence in enumerate(occurrences):
            for candidate in eligibility[occurrence.key]:
                cost = problem.cost(candidate.user_id, occurrence.task_id)
                adjusted = cost * p.preference_bonus if cost < p.preference_threshold else cost
                rotation = problem.rotation(candidate.user_id, occurrence.task_id)
                pairs.append(
                    _Pair(
                        occurrence_idx=o_idx,
                        member_idx=member_index[candidate.user_id],
                        coefficient=adjusted + p.beta * rotation,
                        cost=cost,
                        rotation=rotation,
                    )
                )

        num_pairs = len(pairs)
        num_members = len(members)
        num_vars = num_pairs + num_members

        def _slack_index(m_idx: int) -> int:
            return num_pairs + m_idx

        # Objective: minimize preference cost + rotation + alpha * total slack
        c = np.zeros(num_vars)
        for var_idx, pair in enumerate(pairs):
            c[var_idx] = pair.coefficient
        for m_idx in range(num_members):
            c[_slack_index(m_idx)] = p.alpha

        # Constraint 1: exactly one member per occurrence
        A_eq = np.zeros((len(occurrences), num_vars))
        for var_idx, pair in enumerate(pairs):
            A_eq[pair.occurrence_idx, var_idx] = 1.0
        b_eq = np.ones(len(occurrences))

        # Constraint 2: sum(points * x) - slack <= effective target, per member
        A_ub = np.zeros((num_members, num_vars))
        b_ub = np.zeros(num_members)
        for var_idx, pair in enumerate(pairs):
            A_ub[pair.member_idx, var_idx] = occurrences[pair.occurrence_idx].points
        for m_idx, member in enumerate(members):
            A_ub[m_idx, _slack_index(m_idx)] = -1.0
            b_ub[m_idx] = self.effective_target(
                member.target, problem.balances.get(member.user_id, 0.0)
            )

        constraints = [
            LinearConstraint(A_eq, b_eq, b_eq),
            LinearConstraint(A_ub, -np.inf, b_ub),
        ]

        # Binary assignment variables, continuous non-negative slack
        lower = np.zeros(num_vars)
        upper = np.concatenate([np.ones(num_pairs), np.full(num_members, np.inf)])
        integrality = np.concatenate(
            [np.ones(num_pairs, dtype=np.intp), np.zeros(num_members, dtype=np.intp)]
        )

        logger.info(
            "Solving MILP: %d occurrences, %d members, %d variables",
            len(occurrences),
            num_members,
            num_vars,
        )
        result = milp(
            c,
            constraints=constraints,
            bounds=Bounds(lower, upper),
            integrality=integrality,
            options={"time_limit": p.time_limit},
        )

        if result.status != _STATUS_OPTIMAL or result.x is None:
            status = (
                AllocationStatus.TIMEOUT
                if result.status == _STATUS_LIMIT
                else AllocationStatus.INFEASIBLE
            )
            logger.warning("MILP returned no optimal solution: %s", result.message)
            return AllocationResult(
                assignments=[], feasible=False, status=status, strategy="exact"
            )

        x = result.x
        chosen: dict[int, _Pair] = {}
        for var_idx, pair in enumerate(pairs):
            if x[var_idx] > 0.5:  # Binary, so check > 0.5
                chosen[pair.occurrence_idx] = pair

        candidates_by_occurrence: dict[int, list[_Pair]] = {}
        for pair in pairs:
            candidates_by_occurrence.setdefault(pair.occurrence_idx, []).append(pair)

        assignments: list[Assignment] = []
        for o_idx, occurrence in enumerate(occurrences):
            pair = chosen.get(o_idx)
            if pair is None:
                continue
            member = members[pair.member_idx]
            assignments.append(
                Assignment(
                    task_id=occurrence.task_id,
                    title=occurrence.title,
                    user_id=member.user_id,
                    user_name=member.name,
                    date=occurrence.date,
                    points=occurrence.points,
                    reason=self._reason(candidates_by_occurrence[o_idx], pair, problem),
                )
            )

        return AllocationResult(
            assignments=assignments,
            feasible=True,
            status=AllocationStatus.OK,
            objective_value=float(result.fun),
            strategy="exact",
        )

    def slack(self, problem: AllocationInput, result: AllocationResult) -> dict[str, float]:
        """Load above each member's effective target in a result (0 when within it)."""
        loads = result.load_by_user()
        return {
            m.user_id: max(
                0.0,
                loads.get(m.user_id, 0)
                - self.effective_target(m.target, problem.balances.get(m.user_id, 0.0)),
            )
            for m in problem.members
        }

    def _reason(self, candidates: list[_Pair], picked: _Pair, problem: AllocationInput) -> str:
        parts = []
        for pair in sorted(candidates, key=lambda c: c.coefficient):
            member = problem.members[pair.member_idx]
            marker = "->" if pair is picked else "  "
            parts.append(
                f"{marker}{member.name}: coeff={pair.coefficient:.3f} "
                f"(cost={pair.cost:.2f}, rot={pair.rotation}x{self.params.beta})"
            )
        return f"MILP optimal. [{' | '.join(parts)}]"

