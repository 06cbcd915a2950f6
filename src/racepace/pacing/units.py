"""
Pace/speed conversions and time formatting.

Paces are seconds per kilometre throughout the package; these helpers also
cover the min/km and min/mile forms the display layer works in.
"""
from typing import Optional

METERS_PER_MILE = 1609.344

# 1 mile in kilometers
_KM_PER_MILE = METERS_PER_MILE / 1000.0


def pace_to_speed(pace_s_per_km: float) -> float:
    """Seconds per km → m/s."""
    return 1000.0 / pace_s_per_km


def speed_to_pace(speed_ms: float) -> Optional[float]:
    """
    m/s → seconds per km.

    Returns:
        Pace in seconds/km, or None if speed is zero or negative.
    """
    if speed_ms <= 0:
        return None
    return 1000.0 / speed_ms


def pace_min_per_km_to_speed(pace_min_per_km: float) -> float:
    return 1000.0 / (pace_min_per_km * 60.0)


def pace_per_mile_to_speed(pace_min_per_mile: float) -> float:
    """Minutes per mile → m/s."""
    return METERS_PER_MILE / (pace_min_per_mile * 60.0)


def speed_to_pace_per_mile(speed_ms: float) -> float:
    """m/s → minutes per mile."""
    return METERS_PER_MILE / (speed_ms * 60.0)


def format_pace(pace_s_per_km: float, unit: str = "km") -> str:
    """
    Format a pace (seconds/km) as a human-readable string.

    Args:
        pace_s_per_km: pace in seconds per kilometer
        unit: "km" for per-kilometer (default), "mi" for per-mile

    Returns:
        Formatted string like "5:17/km" or "8:30/mi"
    """
    if unit == "mi":
        pace_s = pace_s_per_km * _KM_PER_MILE
        unit_label = "mi"
    else:
        pace_s = pace_s_per_km
        unit_label = "km"

    minutes = int(pace_s) // 60
    seconds = int(pace_s) % 60
    return f"{minutes}:{seconds:02d}/{unit_label}"


def format_time(time_seconds: float) -> str:
    """Seconds as M:SS, or H:MM:SS from one hour up. Fractions are truncated."""
    total = int(time_seconds)
    hours = total // 3600
    minutes = (total % 3600) // 60
    seconds = total % 60
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def parse_time(time_string: str) -> int:
    """
    Parse "MM:SS" or "HH:MM:SS" into seconds.

    Raises:
        ValueError: any part isn't an integer, or the string has the wrong shape.
    """
    parts = time_string.strip().split(":")
    try:
        values = [int(p) for p in parts]
    except ValueError:
        raise ValueError(f"Invalid time format: {time_string!r}") from None

    if len(values) == 2:
        return values[0] * 60 + values[1]
    if len(values) == 3:
        return values[0] * 3600 + values[1] * 60 + values[2]
    raise ValueError(f"Invalid time format: {time_string!r}. Use MM:SS or HH:MM:SS")
