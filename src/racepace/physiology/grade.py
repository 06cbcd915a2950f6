"""
Energy cost of running on slopes.

Uses the Minetti et al. (2002) quintic fit of metabolic cost against grade,
the same model used by Strava for grade-adjusted pace.

Reference: Minetti AE et al. "Energy cost of walking and running at extreme
uphill and downhill slopes." J Appl Physiol. 2002.
"""
import math
from typing import Optional

from racepace.physiology.economy import (
    cost_at_speed,
    flat_cost_or_default,
    power_at_speed,
    speed_at_power,
)

# Minetti's flat-ground intercept (J/kg/m); excess_cost() omits it
MINETTI_FLAT_COST = 3.6


def excess_cost(grade: float) -> float:
    """
    Added cost of running on a grade, above level ground, in J/kg/m.

    Not clamped: the polynomial stays finite over the physical range
    [-1, 1], and keeping grades inside that range is the caller's job.
    Very steep downhills (beyond about -20%) cost more again because of
    eccentric braking load; the curve is not monotonic.

    Args:
        grade: slope as a decimal (0.10 = 10% uphill, -0.05 = 5% downhill).

    Returns:
        Delta cost in J/kg/m; 0.0 at grade 0, negative on gentle downhills.
    """
    g = grade
    return (
        155.4 * g**5
        - 30.4 * g**4
        - 43.3 * g**3
        + 46.3 * g**2
        + 19.5 * g
    )


def grade_cost_multiplier(grade: float) -> float:
    """Minetti cost on a grade relative to flat (1.0 at grade 0)."""
    return (MINETTI_FLAT_COST + excess_cost(grade)) / MINETTI_FLAT_COST


def linear_grade_penalty(base_speed_ms: float, grade: float) -> float:
    """
    Crude grade correction used when the energy model can't produce a speed.

    10% of speed per 1% of grade, limited to a 50% speed-up and an 80%
    slow-down.
    """
    penalty = max(-0.5, min(0.8, grade * 10))
    return base_speed_ms * (1 - penalty)


def speed_on_grade(
    base_speed_ms: float,
    grade: float,
    fallback_cost_j_kg_m: float = 4.0,
) -> float:
    """
    Speed on a grade at the same metabolic power as base_speed_ms on the flat.

    Power = cost x speed, so the on-grade speed is the flat power divided by
    (flat cost + excess cost). Off-table speeds use fallback_cost_j_kg_m for
    the flat cost and cost x speed for the power. When the division gives a
    non-finite or non-positive speed (the excess cost cancels the flat cost on
    some downhills), linear_grade_penalty() takes over.

    Args:
        base_speed_ms: flat-ground speed in m/s (the effort level)
        grade: slope as a decimal
        fallback_cost_j_kg_m: flat cost when base_speed_ms is off the table

    Returns:
        Speed in m/s on the grade.
    """
    flat_cost = flat_cost_or_default(base_speed_ms, fallback_cost_j_kg_m)
    target_power = power_at_speed(base_speed_ms)
    if target_power is None:
        target_power = flat_cost * base_speed_ms

    total_cost = flat_cost + excess_cost(grade)
    try:
        speed = target_power / total_cost
    except ZeroDivisionError:
        speed = float("nan")

    if not math.isfinite(speed) or speed <= 0:
        return linear_grade_penalty(base_speed_ms, grade)
    return speed


def equivalent_flat_speed(speed_ms: float, grade: float) -> Optional[float]:
    """
    Grade-adjusted speed: the flat-ground speed with the same metabolic power
    as running speed_ms on the given grade.

    Returns None when either the speed or the resulting power is off the
    economy table.
    """
    flat_cost = cost_at_speed(speed_ms)
    if flat_cost is None:
        return None
    power = (flat_cost + excess_cost(grade)) * speed_ms
    if power <= 0:
        return None
    return speed_at_power(power)
