"""
Goal pace solver.

Finds the flat-ground base speed (the effort level) that, once every stretch
of the route is corrected for grade and altitude, adds up to the goal time.

Per stretch, apply_grade_and_altitude():
  1. Flat cost and power at the base speed from the economy table
     (fixed fallback cost when the speed is off the table)
  2. Speed on the grade at the same power (Minetti excess cost)
  3. Downhill safety cap below -8%: progressively limits speed, never
     above 1.5x base speed and never below base speed itself
  4. Altitude penalty relative to the runner's baseline elevation

calculate_total_time() integrates that over fixed sub-segments (50 m by
default) using each sub-segment's average grade and elevation.

The search is a damped proportional update on the base speed rather than
Newton's method: the downhill cap puts a kink in time-vs-speed, and the
proportional step with best-so-far tracking doesn't oscillate on it. Speed
is kept inside a 2:30-12:00 /km envelope. If tolerance isn't reached within
max iterations the best iterate is returned with converged=False and the full
history; that is a warning for the caller, not an error.
"""
import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from racepace.config import Settings, get_settings
from racepace.pacing.units import format_time, pace_to_speed
from racepace.physiology.altitude import altitude_penalty
from racepace.physiology.grade import speed_on_grade
from racepace.route.model import RouteModel

logger = logging.getLogger(__name__)

CancelCheck = Callable[[], bool]


class SolveCancelled(Exception):
    """Raised when the caller's cancel check returns True between sub-segments."""


@dataclass(frozen=True)
class DownhillAdjustment:
    """One stretch where the downhill cap slowed the energy model's speed."""
    start_distance_m: float
    end_distance_m: float
    grade: float
    theoretical_speed_ms: float
    actual_speed_ms: float
    speed_reduction_pct: float       # (theoretical - actual) / theoretical * 100


@dataclass(frozen=True)
class ConvergenceStep:
    """One solver iteration."""
    iteration: int
    base_speed_ms: float
    base_pace_s_per_km: float
    predicted_time_s: float
    error_s: float                   # predicted - goal; positive = too slow
    error_pct: float                 # error as % of goal time


@dataclass(frozen=True)
class SolverResult:
    """Outcome of solve_for_goal_time()."""
    base_speed_ms: float
    base_pace_s_per_km: float
    final_error_s: float
    converged: bool
    iterations: int                  # evaluations recorded in convergence_history
    convergence_history: Tuple[ConvergenceStep, ...]
    predicted_time_s: float
    downhill_adjustments: Tuple[DownhillAdjustment, ...]
    goal_time_s: float
    baseline_elevation_m: float
    sub_segment_length_m: float


# ─── Per-segment speed model ──────────────────────────────────────────────────

def apply_downhill_cap(
    theoretical_speed_ms: float,
    base_speed_ms: float,
    grade: float,
    settings: Optional[Settings] = None,
) -> float:
    """
    Limit speed on steep downhills where the energy model's speed isn't safely runnable.

    Below the start grade (-8%) the allowed fraction of theoretical speed falls
    linearly, reaching 1 - max_reduction (40%) at the full grade (-25%) and
    steeper. The result is also held under speed_multiple (1.5x) base speed,
    and never below base speed.
    """
    settings = settings or get_settings()
    start = settings.downhill_cap_start_grade
    full = settings.downhill_cap_full_grade

    if grade >= start:
        return theoretical_speed_ms

    steepness = min(1.0, max(0.0, (grade - start) / (full - start)))
    limitation = 1.0 - steepness * settings.downhill_cap_max_reduction
    max_safe_speed = base_speed_ms * settings.downhill_cap_speed_multiple

    capped = min(theoretical_speed_ms * limitation, max_safe_speed)
    return max(capped, base_speed_ms)


def apply_grade_and_altitude(
    base_speed_ms: float,
    grade: float,
    elevation_m: float,
    baseline_elevation_m: float,
    settings: Optional[Settings] = None,
    span: Optional[Tuple[float, float]] = None,
    adjustments: Optional[List[DownhillAdjustment]] = None,
) -> float:
    """
    Actual speed on one stretch of route at the effort of base_speed_ms on the flat.

    Args:
        base_speed_ms: flat-ground base speed in m/s
        grade: average grade of the stretch as a decimal
        elevation_m: average elevation of the stretch
        baseline_elevation_m: runner's training elevation
        settings: model constants; defaults to get_settings()
        span: (start, end) distance of the stretch, recorded with any cap
        adjustments: when given together with span, a DownhillAdjustment is
            appended whenever the downhill cap reduces the speed

    Returns:
        Speed in m/s.
    """
    settings = settings or get_settings()

    speed = speed_on_grade(base_speed_ms, grade, settings.fallback_flat_cost_j_kg_m)

    if grade < settings.downhill_cap_start_grade:
        theoretical = speed
        speed = apply_downhill_cap(theoretical, base_speed_ms, grade, settings)
        if adjustments is not None and span is not None and speed < theoretical:
            adjustments.append(DownhillAdjustment(
                start_distance_m=span[0],
                end_distance_m=span[1],
                grade=grade,
                theoretical_speed_ms=theoretical,
                actual_speed_ms=speed,
                speed_reduction_pct=(theoretical - speed) / theoretical * 100.0,
            ))

    return speed / altitude_penalty(elevation_m, baseline_elevation_m)


# ─── Time integration ─────────────────────────────────────────────────────────

def integrate_time(
    route: RouteModel,
    base_speed_ms: float,
    start_m: float,
    end_m: float,
    baseline_elevation_m: float,
    sub_segment_length_m: float,
    settings: Optional[Settings] = None,
    adjustments: Optional[List[DownhillAdjustment]] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> float:
    """
    Predicted seconds to run [start_m, end_m] at a base speed.

    The span is walked in sub_segment_length_m steps from start_m (the last
    one shorter if needed); each step uses its own average grade and elevation.

    Raises:
        SolveCancelled: cancel_check returned True.
    """
    settings = settings or get_settings()
    total_time = 0.0
    k = 0
    while True:
        seg_start = start_m + k * sub_segment_length_m
        if seg_start >= end_m:
            break
        seg_end = min(seg_start + sub_segment_length_m, end_m)
        if cancel_check is not None and cancel_check():
            raise SolveCancelled(
                f"Cancelled at {seg_start:.0f} m of {route.total_distance_m:.0f} m"
            )

        grade = route.average_grade(seg_start, seg_end)
        elevation = route.average_elevation(seg_start, seg_end)
        speed = apply_grade_and_altitude(
            base_speed_ms,
            grade,
            elevation,
            baseline_elevation_m,
            settings=settings,
            span=(seg_start, seg_end),
            adjustments=adjustments,
        )
        total_time += (seg_end - seg_start) / speed
        k += 1

    return total_time


def calculate_total_time(
    route: RouteModel,
    base_speed_ms: float,
    baseline_elevation_m: float = 0.0,
    sub_segment_length_m: Optional[float] = None,
    settings: Optional[Settings] = None,
    adjustments: Optional[List[DownhillAdjustment]] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> float:
    """Predicted finish time in seconds for the whole route at a base speed."""
    settings = settings or get_settings()
    if sub_segment_length_m is None:
        sub_segment_length_m = settings.sub_segment_length_m
    return integrate_time(
        route,
        base_speed_ms,
        0.0,
        route.total_distance_m,
        baseline_elevation_m,
        sub_segment_length_m,
        settings=settings,
        adjustments=adjustments,
        cancel_check=cancel_check,
    )


# ─── Solver ───────────────────────────────────────────────────────────────────

def speed_bounds(settings: Settings) -> Tuple[float, float]:
    """(slowest, fastest) allowed base speed in m/s."""
    return (
        pace_to_speed(settings.slowest_pace_s_per_km),
        pace_to_speed(settings.fastest_pace_s_per_km),
    )


def solve_for_goal_time(
    route: RouteModel,
    goal_time_s: float,
    baseline_elevation_m: Optional[float] = None,
    sub_segment_length_m: Optional[float] = None,
    settings: Optional[Settings] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> SolverResult:
    """
    Find the base (flat-equivalent) speed that finishes the route in goal_time_s.

    Args:
        route: parsed route
        goal_time_s: target finish time in seconds
        baseline_elevation_m: runner's training elevation; defaults to the
            configured baseline
        sub_segment_length_m: integration step; defaults to the configured 50 m
        settings: solver and model constants; defaults to get_settings()
        cancel_check: optional callable polled between sub-segments

    Returns:
        SolverResult. converged is False when tolerance wasn't reached; the
        result then holds the best iterate seen.

    Raises:
        ValueError: goal time or sub-segment length is not positive, or
            max iterations is below 1.
        SolveCancelled: cancel_check returned True.
    """
    settings = settings or get_settings()
    if baseline_elevation_m is None:
        baseline_elevation_m = settings.baseline_elevation_m
    if sub_segment_length_m is None:
        sub_segment_length_m = settings.sub_segment_length_m

    if goal_time_s <= 0 or not math.isfinite(goal_time_s):
        raise ValueError(f"Goal time must be a positive number of seconds, got {goal_time_s}")
    if sub_segment_length_m <= 0:
        raise ValueError(f"Sub-segment length must be positive, got {sub_segment_length_m}")
    if settings.solver_max_iterations < 1:
        raise ValueError("solver_max_iterations must be at least 1")

    logger.info(
        "Solving for goal time %s over %.0f m (baseline %.0f m)",
        format_time(goal_time_s),
        route.total_distance_m,
        baseline_elevation_m,
    )

    min_speed, max_speed = speed_bounds(settings)
    speed = max(min_speed, min(max_speed, route.total_distance_m / goal_time_s))

    history: List[ConvergenceStep] = []
    best_speed = speed
    best_error = math.inf
    best_time = math.inf
    best_adjustments: List[DownhillAdjustment] = []

    for iteration in range(settings.solver_max_iterations):
        adjustments: List[DownhillAdjustment] = []
        predicted = calculate_total_time(
            route,
            speed,
            baseline_elevation_m,
            sub_segment_length_m,
            settings=settings,
            adjustments=adjustments,
            cancel_check=cancel_check,
        )
        error = predicted - goal_time_s
        history.append(ConvergenceStep(
            iteration=iteration,
            base_speed_ms=speed,
            base_pace_s_per_km=1000.0 / speed,
            predicted_time_s=predicted,
            error_s=error,
            error_pct=error / goal_time_s * 100.0,
        ))
        logger.debug(
            "Iteration %d: base pace %.1f s/km, predicted %s, error %.1fs",
            iteration,
            1000.0 / speed,
            format_time(predicted),
            error,
        )

        if abs(error) < abs(best_error):
            best_speed = speed
            best_error = error
            best_time = predicted
            best_adjustments = adjustments

        if abs(error) <= settings.solver_tolerance_s:
            break

        # Too slow (error > 0) → speed up; too fast → slow down
        step = settings.solver_damping * abs(error) / goal_time_s
        speed *= (1 + step) if error > 0 else (1 - step)
        speed = max(min_speed, min(max_speed, speed))

    converged = abs(best_error) <= settings.solver_tolerance_s
    if converged:
        logger.info("Converged in %d iterations (error %.2fs)", len(history), best_error)
    else:
        logger.warning(
            "Solver did not converge after %d iterations. Final error: %.1fs",
            len(history),
            best_error,
        )

    return SolverResult(
        base_speed_ms=best_speed,
        base_pace_s_per_km=1000.0 / best_speed,
        final_error_s=best_error,
        converged=converged,
        iterations=len(history),
        convergence_history=tuple(history),
        predicted_time_s=best_time,
        downhill_adjustments=tuple(best_adjustments),
        goal_time_s=goal_time_s,
        baseline_elevation_m=baseline_elevation_m,
        sub_segment_length_m=sub_segment_length_m,
    )
