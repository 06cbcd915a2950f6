"""
Lap splits and route analysis for a solved base pace.

The route is cut at fixed lap boundaries (400 m, 1 km, 1 mile, 5 km, ...) and
each lap's time is integrated with the same sub-segment model the solver uses,
restricted to that lap's span. With lap lengths that are a multiple of the
sub-segment length the lap grid matches the solver's grid, so lap times sum
to the predicted finish time.

Effort labels are a presentation convenience (grade buckets), not a
physiological measure:
  > 8%  Very Hard | > 4% Hard | > 1% Moderate | > -2% Easy | > -5% Fast | else Very Fast
"""
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from racepace.config import Settings, get_settings
from racepace.pacing.solver import (
    DownhillAdjustment,
    SolverResult,
    integrate_time,
    solve_for_goal_time,
)
from racepace.route.model import LapBoundary, RouteModel, RouteStats

logger = logging.getLogger(__name__)

# (lower bound in grade %, label), checked top-down; anything below the last is "Very Fast"
_EFFORT_BUCKETS = [
    (8.0, "Very Hard"),
    (4.0, "Hard"),
    (1.0, "Moderate"),
    (-2.0, "Easy"),
    (-5.0, "Fast"),
]


class UnsupportedLapInterval(Exception):
    """Raised for a lap interval key that isn't in the configured lap table."""

    def __init__(self, lap_interval: str, supported: Sequence[str], total_distance_m: float = 0.0):
        super().__init__(
            f"Unsupported lap interval: {lap_interval!r} "
            f"(route {total_distance_m:.0f} m; supported: {', '.join(supported)})"
        )
        self.lap_interval = lap_interval
        self.supported = list(supported)
        self.total_distance_m = total_distance_m


class NoLapsGenerated(Exception):
    """Raised when there are no lap splits to analyse."""

    def __init__(self, total_distance_m: float = 0.0):
        super().__init__(f"No lap splits to analyze (route {total_distance_m:.0f} m)")
        self.total_distance_m = total_distance_m


@dataclass(frozen=True)
class LapSplit:
    """Predicted split for one lap."""
    lap_number: int
    start_distance_m: float
    end_distance_m: float
    lap_distance_m: float
    lap_time_s: float
    cumulative_time_s: float
    start_elevation_m: float
    end_elevation_m: float
    elevation_change_m: float
    elevation_gain_m: float
    elevation_loss_m: float            # positive number
    average_grade: float               # decimal
    average_elevation_m: float
    average_pace_s_per_km: float
    effort_level: str
    has_downhill_speed_cap: bool


@dataclass(frozen=True)
class RouteAnalysis:
    """Route-wide highlights derived from a lap split sequence."""
    hardest_lap: LapSplit              # steepest average grade
    easiest_lap: LapSplit
    slowest_lap: LapSplit
    fastest_lap: LapSplit
    average_pace_s_per_km: float       # mean of lap paces
    pace_std_dev_s_per_km: float       # population standard deviation
    total_climbing_m: float
    total_descending_m: float
    net_elevation_change_m: float


@dataclass(frozen=True)
class LapCalculatorResult:
    """Everything the display layer needs for one plan."""
    lap_interval: str
    lap_distance_m: float
    goal_time_s: float
    solver_result: SolverResult
    lap_splits: Tuple[LapSplit, ...]
    route_analysis: RouteAnalysis
    route_stats: RouteStats


def classify_effort(grade: float) -> str:
    """Effort label for an average grade (decimal)."""
    grade_pct = grade * 100
    for lower_bound, label in _EFFORT_BUCKETS:
        if grade_pct > lower_bound:
            return label
    return "Very Fast"


def resolve_lap_distance(
    lap_interval: str,
    settings: Optional[Settings] = None,
    total_distance_m: float = 0.0,
) -> float:
    """
    Lap length in metres for a lap interval key such as "1km" or "1mile".

    Raises:
        UnsupportedLapInterval: key isn't in the configured lap table.
    """
    settings = settings or get_settings()
    table = settings.lap_distances_m
    lap_distance = table.get(lap_interval)
    if not lap_distance or lap_distance <= 0:
        raise UnsupportedLapInterval(lap_interval, sorted(table), total_distance_m)
    return lap_distance


def build_lap_split(
    route: RouteModel,
    start: LapBoundary,
    end: LapBoundary,
    lap_number: int,
    cumulative_before_s: float,
    solver_result: SolverResult,
    settings: Settings,
) -> LapSplit:
    """Integrate one lap at the solved base speed and collect its stats."""
    adjustments: List[DownhillAdjustment] = []
    lap_time = integrate_time(
        route,
        solver_result.base_speed_ms,
        start.distance_m,
        end.distance_m,
        solver_result.baseline_elevation_m,
        solver_result.sub_segment_length_m,
        settings=settings,
        adjustments=adjustments,
    )
    lap_distance = end.distance_m - start.distance_m
    average_grade = route.average_grade(start.distance_m, end.distance_m)
    gain, loss = route.elevation_gain_loss(start.distance_m, end.distance_m)

    return LapSplit(
        lap_number=lap_number,
        start_distance_m=start.distance_m,
        end_distance_m=end.distance_m,
        lap_distance_m=lap_distance,
        lap_time_s=lap_time,
        cumulative_time_s=cumulative_before_s + lap_time,
        start_elevation_m=start.elevation_m,
        end_elevation_m=end.elevation_m,
        elevation_change_m=end.elevation_m - start.elevation_m,
        elevation_gain_m=gain,
        elevation_loss_m=loss,
        average_grade=average_grade,
        average_elevation_m=route.average_elevation(start.distance_m, end.distance_m),
        average_pace_s_per_km=lap_time / (lap_distance / 1000.0),
        effort_level=classify_effort(average_grade),
        has_downhill_speed_cap=bool(adjustments),
    )


def build_lap_splits(
    route: RouteModel,
    boundaries: Sequence[LapBoundary],
    solver_result: SolverResult,
    settings: Optional[Settings] = None,
) -> List[LapSplit]:
    """One LapSplit per consecutive pair of boundaries, numbered from 1."""
    settings = settings or get_settings()
    splits: List[LapSplit] = []
    cumulative = 0.0
    for i in range(1, len(boundaries)):
        split = build_lap_split(
            route,
            boundaries[i - 1],
            boundaries[i],
            lap_number=i,
            cumulative_before_s=cumulative,
            solver_result=solver_result,
            settings=settings,
        )
        cumulative = split.cumulative_time_s
        splits.append(split)
    return splits


def analyze_route(lap_splits: Sequence[LapSplit], total_distance_m: float = 0.0) -> RouteAnalysis:
    """
    Pick the extreme laps and summarise pace spread and climbing.

    Ties keep the earliest lap.

    Raises:
        NoLapsGenerated: lap_splits is empty.
    """
    if not lap_splits:
        raise NoLapsGenerated(total_distance_m)

    hardest = easiest = slowest = fastest = lap_splits[0]
    for split in lap_splits:
        if split.average_grade > hardest.average_grade:
            hardest = split
        if split.average_grade < easiest.average_grade:
            easiest = split
        if split.average_pace_s_per_km > slowest.average_pace_s_per_km:
            slowest = split
        if split.average_pace_s_per_km < fastest.average_pace_s_per_km:
            fastest = split

    paces = [s.average_pace_s_per_km for s in lap_splits]
    avg_pace = sum(paces) / len(paces)
    pace_std_dev = math.sqrt(sum((p - avg_pace) ** 2 for p in paces) / len(paces))

    return RouteAnalysis(
        hardest_lap=hardest,
        easiest_lap=easiest,
        slowest_lap=slowest,
        fastest_lap=fastest,
        average_pace_s_per_km=avg_pace,
        pace_std_dev_s_per_km=pace_std_dev,
        total_climbing_m=sum(s.elevation_gain_m for s in lap_splits),
        total_descending_m=sum(s.elevation_loss_m for s in lap_splits),
        net_elevation_change_m=sum(s.elevation_change_m for s in lap_splits),
    )


def compute_lap_splits(
    route: RouteModel,
    solver_result: SolverResult,
    lap_interval: str,
    settings: Optional[Settings] = None,
) -> LapCalculatorResult:
    """
    Split the route into laps at the solved base pace and analyse them.

    Args:
        route: the route the solver ran on
        solver_result: output of solve_for_goal_time() for this route
        lap_interval: key into the lap table, e.g. "400m", "1km", "1mile"
        settings: defaults to get_settings()

    Returns:
        LapCalculatorResult with lap_splits and route_analysis.

    Raises:
        UnsupportedLapInterval: unknown lap_interval.
        NoLapsGenerated: the route produced no laps.
    """
    settings = settings or get_settings()
    lap_distance = resolve_lap_distance(lap_interval, settings, route.total_distance_m)

    boundaries = route.generate_lap_boundaries(lap_distance)
    splits = build_lap_splits(route, boundaries, solver_result, settings)
    analysis = analyze_route(splits, route.total_distance_m)
    logger.info("Computed %d %s laps over %.0f m", len(splits), lap_interval, route.total_distance_m)

    return LapCalculatorResult(
        lap_interval=lap_interval,
        lap_distance_m=lap_distance,
        goal_time_s=solver_result.goal_time_s,
        solver_result=solver_result,
        lap_splits=tuple(splits),
        route_analysis=analysis,
        route_stats=route.get_route_stats(),
    )


def plan_race(
    route: RouteModel,
    goal_time_s: float,
    lap_interval: str,
    baseline_elevation_m: Optional[float] = None,
    sub_segment_length_m: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> LapCalculatorResult:
    """
    Solve for the base pace, then split the route into laps.

    The lap interval is checked before solving so a bad key fails fast.
    """
    settings = settings or get_settings()
    resolve_lap_distance(lap_interval, settings, route.total_distance_m)

    solver_result = solve_for_goal_time(
        route,
        goal_time_s,
        baseline_elevation_m=baseline_elevation_m,
        sub_segment_length_m=sub_segment_length_m,
        settings=settings,
    )
    return compute_lap_splits(route, solver_result, lap_interval, settings)
