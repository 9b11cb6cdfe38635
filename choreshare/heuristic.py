"""Greedy allocation with multiplicative load penalties for choreshare."""

import logging
import random
from dataclasses import dataclass

from choreshare.allocation import build_eligibility
from choreshare.models import (
    AllocationInput,
    AllocationResult,
    AllocationStatus,
    Assignment,
    Candidate,
    Occurrence,
    OccurrenceKey,
)

logger = logging.getLogger(__name__)


@dataclass
class HeuristicParams:
    """Tuning constants for the greedy allocator."""

    charge_weight: float = 2.2  # lambda, quadratic load multiplier
    hard_brake: float = 2.0  # linear penalty per unit of load ratio above 1
    rotation_weight: float = 0.35  # gamma, per past occurrence in the lookback window
    epsilon: float = 0.05  # scores this close to the best are drawn at random
    preference_threshold: float = 0.2
    preference_bonus: float = 0.7
    seed: int | None = None


@dataclass(frozen=True)
class CandidateScore:
    """Components of one candidate's decision score for one occurrence."""

    candidate: Candidate
    cost: float
    adjusted_cost: float
    load: float
    load_ratio: float
    charge_multiplier: float
    brake: float
    rotation_count: int
    rotation_penalty: float
    score: float

    def describe(self, rotation_weight: float) -> str:
        cost = f"cost={self.cost:.2f}"
        if self.adjusted_cost != self.cost:
            cost += f"->{self.adjusted_cost:.2f}"
        parts = [
            cost,
            f"load={round(self.load)}/{round(self.candidate.target)} pts",
            f"ratio={self.load_ratio:.2f}",
            f"x{self.charge_multiplier:.2f}",
        ]
        if self.brake:
            parts.append(f"brake+{self.brake:.2f}")
        parts.append(f"rot={self.rotation_count}x{rotation_weight}")
        return f"{self.candidate.name}: score={self.score:.2f} ({', '.join(parts)})"


class HeuristicAllocator:
    """
    Assign occurrences one at a time, heaviest first.

    Each occurrence goes to the eligible member with the lowest decision
    score: their personal cost, multiplied by a quadratic penalty on how full
    their week would become, plus a steep linear brake past their target and
    a penalty for having done the task recently. Near-ties are broken with
    the injected random source.
    """

    name = "heuristic"

    def __init__(self, params: HeuristicParams | None = None, rng: random.Random | None = None):
        self.params = params or HeuristicParams()
        self.rng = rng or random.Random(self.params.seed)

    def score(
        self,
        candidate: Candidate,
        occurrence: Occurrence,
        load: float,
        problem: AllocationInput,
    ) -> CandidateScore:
        p = self.params
        cost = problem.cost(candidate.user_id, occurrence.task_id)
        adjusted_cost = cost * p.preference_bonus if cost < p.preference_threshold else cost

        projected = load + occurrence.points
        load_ratio = projected / candidate.target if candidate.target > 0 else 0.0

        # Multiplicative so a strong preference can outweigh a moderate overload
        charge_multiplier = 1 + p.charge_weight * load_ratio**2
        brake = p.hard_brake * (load_ratio - 1) if load_ratio > 1 else 0.0

        rotation_count = problem.rotation(candidate.user_id, occurrence.task_id)
        rotation_penalty = p.rotation_weight * rotation_count

        return CandidateScore(
            candidate=candidate,
            cost=cost,
            adjusted_cost=adjusted_cost,
            load=load,
            load_ratio=load_ratio,
            charge_multiplier=charge_multiplier,
            brake=brake,
            rotation_count=rotation_count,
            rotation_penalty=rotation_penalty,
            score=adjusted_cost * charge_multiplier + brake + rotation_penalty,
        )

    def pick(self, scored: list[CandidateScore]) -> tuple[CandidateScore, int]:
        """Return the chosen score and how many candidates tied for it."""
        best = scored[0].score
        tied = [s for s in scored if s.score - best < self.params.epsilon] or [scored[0]]
        if len(tied) == 1:
            return tied[0], 1
        return self.rng.choice(tied), len(tied)

    def allocate(self, problem: AllocationInput) -> AllocationResult:
        if not problem.occurrences:
            logger.info("Nothing to allocate: every occurrence is already assigned")
            return AllocationResult(
                assignments=[], status=AllocationStatus.ALREADY_ASSIGNED, strategy="heuristic"
            )

        eligibility = build_eligibility(problem)
        loads: dict[str, float] = {m.user_id: 0.0 for m in problem.members}
        assignments: list[Assignment] = []
        unassignable: list[OccurrenceKey] = []
        done: set[OccurrenceKey] = set()

        # Stable sort: equal-point occurrences keep their calendar order
        ordered = sorted(problem.occurrences, key=lambda o: -o.points)
        logger.info(
            "Allocating %d occurrences between %d members", len(ordered), len(problem.members)
        )

        for occurrence in ordered:
            if occurrence.key in done:
                continue

            candidates = eligibility[occurrence.key]
            if not candidates:
                logger.warning(
                    "No eligible member for %s on %s", occurrence.title, occurrence.date
                )
                unassignable.append(occurrence.key)
                continue

            scored = [
                self.score(c, occurrence, loads.get(c.user_id, 0.0), problem) for c in candidates
            ]
            scored.sort(key=lambda s: s.score)
            picked, tied = self.pick(scored)

            loads[picked.candidate.user_id] = picked.load + occurrence.points
            done.add(occurrence.key)

            details = " | ".join(s.describe(self.params.rotation_weight) for s in scored)
            if tied > 1:
                reason = f"Tie-break between {tied} candidates -> {picked.candidate.name} (random). [{details}]"
            else:
                reason = f"Best score. [{details}]"
            logger.debug("%s on %s -> %s", occurrence.title, occurrence.date, picked.candidate.name)

            assignments.append(
                Assignment(
                    task_id=occurrence.task_id,
                    title=occurrence.title,
                    user_id=picked.candidate.user_id,
                    user_name=picked.candidate.name,
                    date=occurrence.date,
                    points=occurrence.points,
                    reason=reason,
                )
            )

        if not assignments:
            return AllocationResult(
                assignments=[],
                feasible=False,
                status=AllocationStatus.ALL_UNAVAILABLE,
                unassignable=unassignable,
                strategy="heuristic",
            )

        return AllocationResult(
            assignments=assignments,
            status=AllocationStatus.OK,
            unassignable=unassignable,
            strategy="heuristic",
        )
