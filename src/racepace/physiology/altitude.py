"""
Altitude adjustment for running performance.

Performance degrades by roughly 1% per 1000 ft (304.8 m) of elevation above
the runner's baseline training elevation, and improves by the same rate
below it. The penalty is a factor applied by dividing speed by it.

Example:
  Racing at 2000 m after training at sea level:
    penalty = 1 + (2000 / 304.8) * 0.01 = 1.0656  (6.56% slower)
  Racing at sea level after training at 2000 m:
    penalty = 1 + (-2000 / 304.8) * 0.01 = 0.9344 (6.56% faster)
"""

# 1000 ft in metres: the altitude step for one unit of degradation
ALTITUDE_INCREMENT_M = 304.8

# Performance lost per altitude step
DEGRADATION_PER_INCREMENT = 0.01

_FEET_PER_METER = 1 / 0.3048


def altitude_penalty(elevation_m: float, baseline_elevation_m: float) -> float:
    """
    Penalty factor for running at elevation_m relative to baseline_elevation_m.

    Returns:
        > 1 slower, < 1 faster, exactly 1.0 at the baseline.
    """
    altitude_diff = elevation_m - baseline_elevation_m
    return 1 + (altitude_diff / ALTITUDE_INCREMENT_M) * DEGRADATION_PER_INCREMENT


def apply_altitude_to_speed(
    speed_ms: float,
    elevation_m: float,
    baseline_elevation_m: float,
) -> float:
    """Speed after the altitude penalty (slower above baseline)."""
    return speed_ms / altitude_penalty(elevation_m, baseline_elevation_m)


def altitude_time_penalty(
    time_seconds: float,
    elevation_m: float,
    baseline_elevation_m: float,
) -> float:
    """Extra seconds (negative for a bonus) that altitude adds to time_seconds of running."""
    altitude_diff = elevation_m - baseline_elevation_m
    return time_seconds * altitude_diff * DEGRADATION_PER_INCREMENT / ALTITUDE_INCREMENT_M


def meters_to_feet(meters: float) -> float:
    return meters * _FEET_PER_METER


def feet_to_meters(feet: float) -> float:
    return feet * 0.3048


def describe_altitude_impact(elevation_m: float, baseline_elevation_m: float) -> str:
    """
    Human-readable altitude impact, e.g. "+3.2% slower due to altitude".
    Changes under 0.1% are reported as no significant impact.
    """
    percent_change = (altitude_penalty(elevation_m, baseline_elevation_m) - 1) * 100

    if abs(percent_change) < 0.1:
        return "No significant altitude impact"
    if percent_change > 0:
        return f"+{percent_change:.1f}% slower due to altitude"
    return f"{abs(percent_change):.1f}% faster due to lower altitude"
