"""
Flat-ground running economy reference table.

Each row is (speed m/s, metabolic cost J/kg/m, metabolic power W/kg) for
level treadmill running, shaped after the U-shaped cost curve reported by
Black et al. (2018). Cost per metre is
nearly flat across running speeds with a shallow minimum around 3.5-4 m/s;
power (= cost x speed) rises monotonically with speed, which is what makes
the inverse lookup speed_at_power() well defined.

Both lookups interpolate linearly between the two bracketing rows and return
None outside the table. Callers decide the fallback: the pace solver
substitutes a fixed cost (see flat_cost_or_default).
"""
from typing import List, Optional, Sequence, Tuple

# speed_m_s, energy_j_kg_m, energy_j_kg_s
ECONOMY_TABLE: Tuple[Tuple[float, float, float], ...] = (
    (1.5, 4.35, 6.525),
    (2.0, 4.18, 8.36),
    (2.5, 4.06, 10.15),
    (3.0, 3.98, 11.94),
    (3.5, 3.94, 13.79),
    (4.0, 3.94, 15.76),
    (4.5, 3.97, 17.865),
    (5.0, 4.03, 20.15),
    (5.5, 4.12, 22.66),
    (6.0, 4.24, 25.44),
    (6.5, 4.39, 28.535),
)

SPEEDS_M_S: List[float] = [row[0] for row in ECONOMY_TABLE]
COSTS_J_KG_M: List[float] = [row[1] for row in ECONOMY_TABLE]
POWERS_W_KG: List[float] = [row[2] for row in ECONOMY_TABLE]


def _interpolate(x: float, xs: Sequence[float], ys: Sequence[float]) -> Optional[float]:
    """Linear interpolation of y at x over an ascending xs. None when x is outside [xs[0], xs[-1]]."""
    if x < xs[0] or x > xs[-1]:
        return None
    for i in range(len(xs) - 1):
        if xs[i] <= x <= xs[i + 1]:
            return ys[i] + (ys[i + 1] - ys[i]) * (x - xs[i]) / (xs[i + 1] - xs[i])
    return ys[-1]


def cost_at_speed(speed_ms: float) -> Optional[float]:
    """
    Flat-ground metabolic cost of running at a given speed.

    Args:
        speed_ms: running speed in m/s

    Returns:
        Cost in J/kg/m, or None if speed is outside the table.
    """
    return _interpolate(speed_ms, SPEEDS_M_S, COSTS_J_KG_M)


def power_at_speed(speed_ms: float) -> Optional[float]:
    """Flat-ground metabolic power (W/kg) at a given speed, or None outside the table."""
    return _interpolate(speed_ms, SPEEDS_M_S, POWERS_W_KG)


def speed_at_power(power_w_kg: float) -> Optional[float]:
    """
    Inverse lookup: the flat-ground speed that demands a given metabolic power.

    Args:
        power_w_kg: metabolic power in W/kg (J/kg/s)

    Returns:
        Speed in m/s, or None if power is outside the table.
    """
    return _interpolate(power_w_kg, POWERS_W_KG, SPEEDS_M_S)


def flat_cost_or_default(speed_ms: float, default_j_kg_m: float) -> float:
    """Table cost at speed, or default_j_kg_m when the speed is off the table."""
    cost = cost_at_speed(speed_ms)
    return default_j_kg_m if cost is None else cost
