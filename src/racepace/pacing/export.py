"""CSV export of lap splits, one row per lap."""
import csv
import io
from pathlib import Path
from typing import Optional, Sequence

from racepace.pacing.laps import LapSplit
from racepace.pacing.units import format_pace, format_time

CSV_HEADERS = [
    "Lap",
    "Distance (m)",
    "Split Time",
    "Cumulative Time",
    "Pace (/km)",
    "Elevation Change (m)",
    "Grade (%)",
    "Effort",
]


def lap_split_row(split: LapSplit) -> list:
    """
    Export row for one lap. Distance is the lap's end distance from the start.
    Pace is M:SS per km without the unit suffix.
    """
    return [
        split.lap_number,
        f"{split.end_distance_m:.0f}",
        format_time(split.lap_time_s),
        format_time(split.cumulative_time_s),
        format_pace(split.average_pace_s_per_km, unit="km").split("/")[0],
        f"{split.elevation_change_m:.1f}",
        f"{split.average_grade * 100:.1f}",
        split.effort_level,
    ]


def lap_splits_to_csv(lap_splits: Sequence[LapSplit], path: Optional[Path] = None) -> str:
    """
    Render lap splits as CSV text.

    Args:
        lap_splits: splits in lap order
        path: when given, the CSV is also written there

    Returns:
        The CSV text (header row first, "\\n" line endings).
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for split in lap_splits:
        writer.writerow(lap_split_row(split))
    text = buffer.getvalue()

    if path is not None:
        path.write_text(text, encoding="utf-8")
    return text
