"""
Optimal chamber assignment.

Each candidate starts at ``BASE_SCORE`` and is adjusted by how well it fits
the request:

* ``+30`` when the chamber type matches the service type
* ``+25`` per requested equipment tag the chamber carries
* ``+20`` when the doctor lists the chamber as preferred
* ``-10`` per floor above the ground floor for low-mobility patients
* ``-5`` per booking already scheduled in the chamber today

The highest score wins. Ties go to the lowest chamber id so the same input
always yields the same chamber.
"""
from typing import Callable, Iterable, List, Optional

from scheduling.types import AssignmentFactors, ScoredChamber

BASE_SCORE = 100
SERVICE_TYPE_BONUS = 30
EQUIPMENT_BONUS = 25
DOCTOR_PREFERENCE_BONUS = 20
FLOOR_PENALTY = 10
USAGE_PENALTY = 5
GROUND_FLOOR = 1


def score_chamber(chamber, factors: AssignmentFactors, today_usage_count: int = 0) -> int:
    score = BASE_SCORE

    if chamber.type == factors.service_type:
        score += SERVICE_TYPE_BONUS

    equipment = chamber.equipment_set
    for tag in factors.equipment_needed:
        if tag in equipment:
            score += EQUIPMENT_BONUS

    if chamber.id in (factors.doctor_preference or ()):
        score += DOCTOR_PREFERENCE_BONUS

    if factors.patient_mobility == "low" and chamber.floor > GROUND_FLOOR:
        score -= FLOOR_PENALTY * (chamber.floor - GROUND_FLOOR)

    score -= USAGE_PENALTY * today_usage_count
    return score


def rank_chambers(
    candidates: Iterable,
    factors: AssignmentFactors,
    usage_count: Optional[Callable[[object], int]] = None,
) -> List[ScoredChamber]:
    """Score every candidate, best first."""
    scored = []
    for chamber in candidates:
        used = usage_count(chamber) if usage_count else 0
        scored.append(ScoredChamber(chamber, score_chamber(chamber, factors, used), used))
    scored.sort(key=lambda s: (-s.score, s.chamber.id))
    return scored


def pick_optimal(
    candidates: Iterable,
    factors: AssignmentFactors,
    usage_count: Optional[Callable[[object], int]] = None,
) -> Optional[ScoredChamber]:
    ranked = rank_chambers(candidates, factors, usage_count)
    return ranked[0] if ranked else None
