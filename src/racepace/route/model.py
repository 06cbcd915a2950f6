"""
Route model: distance-indexed elevation profile of a recorded course.

Raw points (from the GPX/FIT decoder, or any mapping with the same keys) are
normalised into RoutePoints carrying cumulative horizontal distance, then into
Segments between consecutive points. All queries are by distance from the
route start, in metres:

  - average_grade / average_elevation: distance-weighted means over a span
  - elevation_gain_loss: climb and descent inside a span, pro-rated for
    segments that only partly overlap it
  - generate_lap_boundaries: fixed-distance checkpoints, final partial lap
    included, elevation linearly interpolated
  - get_route_stats: one aggregate snapshot; grades are smoothed with a short
    moving window before min/max so a single noisy GPS point can't produce a
    40% "grade"

The model is immutable once built. Grade is elevation change / horizontal
distance as a decimal (0.05 = 5% uphill).
"""
import bisect
import math
from dataclasses import dataclass
from statistics import mean
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple

from racepace.config import get_settings

# Mean Earth radius used for great-circle distance
EARTH_RADIUS_M = 6371008.8

DEFAULT_GRADE_SMOOTHING_WINDOW = 5

# Distances closer than this are treated as the same point along the route
_DISTANCE_EPSILON_M = 1e-6


class MalformedRoute(Exception):
    """Raised when a route cannot be paced: too few points, zero length, or missing fields."""

    def __init__(self, message: str, point_count: int = 0, total_distance_m: float = 0.0):
        super().__init__(message)
        self.point_count = point_count
        self.total_distance_m = total_distance_m


@dataclass(frozen=True)
class RoutePoint:
    """One point of the route profile."""
    distance_m: float                 # cumulative horizontal distance from start
    elevation_m: float
    lat: Optional[float] = None       # decimal degrees, when the source had a position
    lon: Optional[float] = None


@dataclass(frozen=True)
class Segment:
    """Span between two consecutive route points."""
    start_distance_m: float
    end_distance_m: float
    start_elevation_m: float
    end_elevation_m: float

    @property
    def horizontal_distance_m(self) -> float:
        return self.end_distance_m - self.start_distance_m

    @property
    def elevation_change_m(self) -> float:
        return self.end_elevation_m - self.start_elevation_m

    @property
    def grade(self) -> float:
        return self.elevation_change_m / self.horizontal_distance_m

    def elevation_at(self, distance_m: float) -> float:
        ratio = (distance_m - self.start_distance_m) / self.horizontal_distance_m
        return self.start_elevation_m + ratio * self.elevation_change_m


@dataclass(frozen=True)
class LapBoundary:
    """A checkpoint along the route. Lap N runs from boundary N-1 to boundary N."""
    index: int
    distance_m: float
    elevation_m: float


@dataclass(frozen=True)
class RouteStats:
    """Aggregate totals for one route."""
    total_distance_m: float
    total_elevation_gain_m: float
    total_elevation_loss_m: float      # positive number
    net_elevation_change_m: float
    min_grade: float                   # smoothed
    max_grade: float                   # smoothed
    min_elevation_m: float
    max_elevation_m: float
    point_count: int


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in metres between two lat/lon positions (degrees)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def smooth_grades(grades: Sequence[float], window: int) -> List[float]:
    """
    Centered moving average over a grade series.

    Windows are truncated at both ends (like a pandas rolling mean with
    center=True, min_periods=1), so the output has the same length as the input.
    """
    if window <= 1 or len(grades) < 2:
        return list(grades)
    half = window // 2
    return [
        mean(grades[max(0, i - half): i + half + 1])
        for i in range(len(grades))
    ]


class RouteModel:
    """
    Distance-indexed route profile.

    Build through parse_route() from raw decoder output, or directly from
    RoutePoints whose distances are already cumulative and strictly increasing.

    Raises:
        MalformedRoute: fewer than two points, or zero total distance.
    """

    def __init__(
        self,
        points: Sequence[RoutePoint],
        grade_smoothing_window: int = DEFAULT_GRADE_SMOOTHING_WINDOW,
    ):
        if len(points) < 2:
            raise MalformedRoute(
                f"Route needs at least two points, got {len(points)}",
                point_count=len(points),
            )
        total = points[-1].distance_m - points[0].distance_m
        if total <= 0:
            raise MalformedRoute(
                f"Route has zero total distance ({len(points)} points)",
                point_count=len(points),
                total_distance_m=total,
            )

        self.points: Tuple[RoutePoint, ...] = tuple(points)
        self.grade_smoothing_window = grade_smoothing_window
        self.segments: Tuple[Segment, ...] = tuple(
            Segment(
                start_distance_m=a.distance_m,
                end_distance_m=b.distance_m,
                start_elevation_m=a.elevation_m,
                end_elevation_m=b.elevation_m,
            )
            for a, b in zip(self.points, self.points[1:])
            if b.distance_m - a.distance_m > _DISTANCE_EPSILON_M
        )
        if not self.segments:
            raise MalformedRoute(
                "Route has no segments with non-zero length",
                point_count=len(points),
                total_distance_m=total,
            )
        self._point_distances = [p.distance_m for p in self.points]
        self._segment_starts = [s.start_distance_m for s in self.segments]
        self._stats: Optional[RouteStats] = None

    def __repr__(self) -> str:
        return (
            f"RouteModel(points={len(self.points)}, "
            f"total_distance_m={self.total_distance_m:.1f})"
        )

    @property
    def start_distance_m(self) -> float:
        return self.points[0].distance_m

    @property
    def total_distance_m(self) -> float:
        return self.points[-1].distance_m - self.points[0].distance_m

    # ─── Point queries ────────────────────────────────────────────────────────

    def _clamp(self, distance_m: float) -> float:
        return max(0.0, min(self.total_distance_m, distance_m))

    def elevation_at(self, distance_m: float) -> float:
        """Elevation at a distance from the start, linearly interpolated and clamped to the route."""
        d = self._clamp(distance_m) + self.start_distance_m
        i = bisect.bisect_right(self._point_distances, d)
        if i <= 0:
            return self.points[0].elevation_m
        if i >= len(self.points):
            return self.points[-1].elevation_m
        p1 = self.points[i - 1]
        p2 = self.points[i]
        span = p2.distance_m - p1.distance_m
        if span <= 0:
            return p2.elevation_m
        ratio = (d - p1.distance_m) / span
        return p1.elevation_m + ratio * (p2.elevation_m - p1.elevation_m)

    def _segment_index_at(self, absolute_distance_m: float) -> int:
        i = bisect.bisect_right(self._segment_starts, absolute_distance_m) - 1
        return max(0, min(len(self.segments) - 1, i))

    def _overlaps(
        self, start_m: float, end_m: float
    ) -> Iterator[Tuple[Segment, float, float]]:
        """Yield (segment, overlap_start, overlap_end) in absolute distances for a span."""
        a = self._clamp(start_m) + self.start_distance_m
        b = self._clamp(end_m) + self.start_distance_m
        i = self._segment_index_at(a)
        while i < len(self.segments):
            seg = self.segments[i]
            if seg.start_distance_m >= b:
                break
            lo = max(seg.start_distance_m, a)
            hi = min(seg.end_distance_m, b)
            if hi > lo:
                yield seg, lo, hi
            i += 1

    # ─── Span queries ─────────────────────────────────────────────────────────

    def average_grade(self, start_m: float, end_m: float) -> float:
        """
        Distance-weighted mean grade over [start_m, end_m].

        The span is clamped to the route. A zero-length span returns the grade
        of the segment containing that point.
        """
        weighted = 0.0
        covered = 0.0
        for seg, lo, hi in self._overlaps(start_m, end_m):
            weighted += seg.grade * (hi - lo)
            covered += hi - lo
        if covered <= 0:
            d = self._clamp(start_m) + self.start_distance_m
            return self.segments[self._segment_index_at(d)].grade
        return weighted / covered

    def average_elevation(self, start_m: float, end_m: float) -> float:
        """Distance-weighted mean elevation over [start_m, end_m] (exact for a piecewise-linear profile)."""
        weighted = 0.0
        covered = 0.0
        for seg, lo, hi in self._overlaps(start_m, end_m):
            mid_elevation = (seg.elevation_at(lo) + seg.elevation_at(hi)) / 2.0
            weighted += mid_elevation * (hi - lo)
            covered += hi - lo
        if covered <= 0:
            return self.elevation_at(start_m)
        return weighted / covered

    def elevation_gain_loss(self, start_m: float, end_m: float) -> Tuple[float, float]:
        """
        Climb and descent (both positive) inside [start_m, end_m].

        Segments partly inside the span contribute in proportion to the overlap.
        """
        gain = 0.0
        loss = 0.0
        for seg, lo, hi in self._overlaps(start_m, end_m):
            share = seg.elevation_change_m * (hi - lo) / seg.horizontal_distance_m
            if share > 0:
                gain += share
            else:
                loss -= share
        return gain, loss

    # ─── Laps and stats ───────────────────────────────────────────────────────

    def generate_lap_boundaries(self, lap_length_m: float) -> List[LapBoundary]:
        """
        Checkpoints every lap_length_m from the start, plus the finish.

        A route of 2.5 laps yields boundaries at 0, L, 2L and the total
        distance (a final partial lap). Boundary 0 is the start line.

        Raises:
            ValueError: lap_length_m is not positive.
        """
        if lap_length_m <= 0:
            raise ValueError(f"Lap length must be positive, got {lap_length_m}")

        total = self.total_distance_m
        boundaries = [LapBoundary(index=0, distance_m=0.0, elevation_m=self.elevation_at(0.0))]
        n = 1
        while n * lap_length_m < total - _DISTANCE_EPSILON_M:
            d = n * lap_length_m
            boundaries.append(LapBoundary(index=n, distance_m=d, elevation_m=self.elevation_at(d)))
            n += 1
        boundaries.append(LapBoundary(index=n, distance_m=total, elevation_m=self.elevation_at(total)))
        return boundaries

    def get_route_stats(self) -> RouteStats:
        """Aggregate totals, computed once and cached."""
        if self._stats is None:
            gain = sum(s.elevation_change_m for s in self.segments if s.elevation_change_m > 0)
            loss = -sum(s.elevation_change_m for s in self.segments if s.elevation_change_m < 0)
            grades = smooth_grades([s.grade for s in self.segments], self.grade_smoothing_window)
            elevations = [p.elevation_m for p in self.points]
            self._stats = RouteStats(
                total_distance_m=self.total_distance_m,
                total_elevation_gain_m=gain,
                total_elevation_loss_m=loss,
                net_elevation_change_m=self.points[-1].elevation_m - self.points[0].elevation_m,
                min_grade=min(grades),
                max_grade=max(grades),
                min_elevation_m=min(elevations),
                max_elevation_m=max(elevations),
                point_count=len(self.points),
            )
        return self._stats


# ─── Construction from raw points ────────────────────────────────────────────

def _read(point: Any, key: str) -> Optional[float]:
    if isinstance(point, dict):
        value = point.get(key)
    else:
        value = getattr(point, key, None)
    return None if value is None else float(value)


def parse_route(
    raw_points: Iterable[Any],
    grade_smoothing_window: Optional[int] = None,
) -> RouteModel:
    """
    Build a RouteModel from decoder output.

    Each raw point is a dict (or object) with ``elevation_meters`` and either
    ``lat``/``lon`` (great-circle distance is integrated between consecutive
    points) or a cumulative ``distance_meters``. Coordinates win when every
    point has them. Consecutive points with no horizontal separation are
    collapsed into the first of them.

    Args:
        raw_points: ordered points from the start of the route.
        grade_smoothing_window: moving-window size for route stats grades;
            defaults to the configured value.

    Returns:
        RouteModel with distances starting at 0.

    Raises:
        MalformedRoute: fewer than two points, missing fields, or zero length.
    """
    if grade_smoothing_window is None:
        grade_smoothing_window = get_settings().grade_smoothing_window

    raw = list(raw_points)
    if len(raw) < 2:
        raise MalformedRoute(
            f"Route needs at least two points, got {len(raw)}",
            point_count=len(raw),
        )

    elevations = [_read(p, "elevation_meters") for p in raw]
    missing = [i for i, e in enumerate(elevations) if e is None]
    if missing:
        raise MalformedRoute(
            f"{len(missing)} of {len(raw)} points have no elevation (first at index {missing[0]})",
            point_count=len(raw),
        )

    lats = [_read(p, "lat") for p in raw]
    lons = [_read(p, "lon") for p in raw]
    given = [_read(p, "distance_meters") for p in raw]

    if all(v is not None for v in lats) and all(v is not None for v in lons):
        distances = [0.0]
        for i in range(1, len(raw)):
            distances.append(distances[-1] + haversine_m(lats[i - 1], lons[i - 1], lats[i], lons[i]))
    elif all(v is not None for v in given):
        distances = [d - given[0] for d in given]
        lats = [None] * len(raw)
        lons = [None] * len(raw)
    else:
        raise MalformedRoute(
            "Route points need either lat/lon on every point or cumulative distance_meters",
            point_count=len(raw),
        )

    points: List[RoutePoint] = []
    for d, e, lat, lon in zip(distances, elevations, lats, lons):
        if points and d - points[-1].distance_m <= _DISTANCE_EPSILON_M:
            continue
        points.append(RoutePoint(distance_m=d, elevation_m=e, lat=lat, lon=lon))

    if len(points) < 2:
        raise MalformedRoute(
            f"Route has zero total distance ({len(raw)} points)",
            point_count=len(raw),
            total_distance_m=0.0,
        )

    return RouteModel(points, grade_smoothing_window=grade_smoothing_window)
