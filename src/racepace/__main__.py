"""
Command-line entrypoint: plan goal-time splits for a route file.

Usage:
    python -m racepace plan route.gpx --goal 1:45:00 --lap 1km
    python -m racepace plan route.fit --goal 25:00 --lap 400m --baseline 1600 --csv splits.csv
    uvicorn racepace.api.main:app --host 0.0.0.0 --port 8000  # HTTP API
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from racepace.config import get_settings
from racepace.pacing.export import lap_split_row, lap_splits_to_csv
from racepace.pacing.laps import LapCalculatorResult, NoLapsGenerated, UnsupportedLapInterval, plan_race
from racepace.pacing.units import format_pace, format_time, parse_time
from racepace.physiology.altitude import describe_altitude_impact
from racepace.route.decoder import RouteDecodeError, decode_route_file
from racepace.route.model import MalformedRoute, parse_route

logger = logging.getLogger(__name__)


def _print_report(result: LapCalculatorResult, baseline_elevation_m: float) -> None:
    solver = result.solver_result
    stats = result.route_stats
    analysis = result.route_analysis

    print(f"Distance:        {stats.total_distance_m / 1000:.2f} km")
    print(f"Climb / descent: +{stats.total_elevation_gain_m:.0f} m / -{stats.total_elevation_loss_m:.0f} m")
    print(f"Grade range:     {stats.min_grade * 100:.1f}% to {stats.max_grade * 100:.1f}%")
    print(f"Altitude:        {describe_altitude_impact(stats.max_elevation_m, baseline_elevation_m)} (at highest point)")
    print(f"Goal time:       {format_time(result.goal_time_s)}")
    print(f"Base pace:       {format_pace(solver.base_pace_s_per_km)} (flat equivalent)")
    print(f"Predicted time:  {format_time(solver.predicted_time_s)}")
    if not solver.converged:
        print(f"Note: solver did not fully converge. Error: {solver.final_error_s:.1f}s")
    print()

    header = ["Lap", "Dist", "Split", "Total", "Pace", "Elev", "Grade", "Effort"]
    print("{:>4} {:>7} {:>8} {:>9} {:>6} {:>7} {:>6}  {}".format(*header))
    for split in result.lap_splits:
        row = lap_split_row(split)
        print("{:>4} {:>7} {:>8} {:>9} {:>6} {:>7} {:>6}  {}".format(*row))
    print()

    print(f"Hardest lap: #{analysis.hardest_lap.lap_number} ({analysis.hardest_lap.average_grade * 100:.1f}% grade)")
    print(f"Easiest lap: #{analysis.easiest_lap.lap_number} ({analysis.easiest_lap.average_grade * 100:.1f}% grade)")
    print(f"Slowest lap: #{analysis.slowest_lap.lap_number} ({format_pace(analysis.slowest_lap.average_pace_s_per_km)})")
    print(f"Fastest lap: #{analysis.fastest_lap.lap_number} ({format_pace(analysis.fastest_lap.average_pace_s_per_km)})")
    print(f"Pace variation: ±{analysis.pace_std_dev_s_per_km:.0f} s/km")


def _run_plan(args: argparse.Namespace) -> int:
    settings = get_settings()
    baseline = args.baseline if args.baseline is not None else settings.baseline_elevation_m

    try:
        goal_time_s = parse_time(args.goal)
        route = parse_route(decode_route_file(args.route_file), settings.grade_smoothing_window)
        result = plan_race(
            route,
            goal_time_s,
            args.lap,
            baseline_elevation_m=baseline,
            settings=settings,
        )
    except (RouteDecodeError, MalformedRoute, UnsupportedLapInterval, NoLapsGenerated, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    _print_report(result, baseline)

    if args.csv is not None:
        lap_splits_to_csv(result.lap_splits, path=args.csv)
        logger.info("Wrote %d laps to %s", len(result.lap_splits), args.csv)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="racepace", description="Goal-time race pacing for a route")
    commands = parser.add_subparsers(dest="command", required=True)

    plan = commands.add_parser("plan", help="Solve a route for a goal time and print lap splits")
    plan.add_argument("route_file", type=Path, help="Route file (.gpx or .fit)")
    plan.add_argument("--goal", required=True, help="Goal time, MM:SS or HH:MM:SS")
    plan.add_argument("--lap", default="1km", help="Lap interval (default: 1km)")
    plan.add_argument(
        "--baseline",
        type=float,
        default=None,
        help="Baseline training elevation in metres (default: RACEPACE_BASELINE_ELEVATION_M or 0)",
    )
    plan.add_argument("--csv", type=Path, default=None, help="Also write the splits to this CSV file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    args = build_parser().parse_args(argv)
    if args.command == "plan":
        return _run_plan(args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
