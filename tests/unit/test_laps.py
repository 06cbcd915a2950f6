"""Tests for lap splits, effort labels, and route analysis."""
import pytest

from racepace.config import Settings
from racepace.pacing.laps import (
    LapCalculatorResult,
    NoLapsGenerated,
    UnsupportedLapInterval,
    analyze_route,
    classify_effort,
    compute_lap_splits,
    plan_race,
    resolve_lap_distance,
)
from racepace.pacing.solver import solve_for_goal_time
from racepace.route.model import parse_route


@pytest.fixture(name="hilly_plan")
def hilly_plan_fixture(hilly_route, settings) -> LapCalculatorResult:
    return plan_race(hilly_route, 3000.0, "1km", baseline_elevation_m=0.0, settings=settings)


class TestClassifyEffort:
    @pytest.mark.parametrize("grade,label", [
        (0.12, "Very Hard"),
        (0.05, "Hard"),
        (0.02, "Moderate"),
        (0.0, "Easy"),
        (-0.03, "Fast"),
        (-0.10, "Very Fast"),
    ])
    def test_buckets(self, grade, label):
        assert classify_effort(grade) == label


class TestResolveLapDistance:
    @pytest.mark.parametrize("key,expected", [
        ("400m", 400.0),
        ("1km", 1000.0),
        ("1000m", 1000.0),
        ("1mile", 1609.344),
        ("5km", 5000.0),
    ])
    def test_known_keys(self, settings, key, expected):
        assert resolve_lap_distance(key, settings) == pytest.approx(expected)

    def test_unknown_key(self, settings):
        with pytest.raises(UnsupportedLapInterval) as exc_info:
            resolve_lap_distance("2km", settings, total_distance_m=10000.0)
        assert exc_info.value.lap_interval == "2km"
        assert "1km" in exc_info.value.supported
        assert exc_info.value.total_distance_m == 10000.0

    def test_custom_table(self):
        settings = Settings(_env_file=None, lap_distances_m={"track": 400.0})
        assert resolve_lap_distance("track", settings) == 400.0
        with pytest.raises(UnsupportedLapInterval):
            resolve_lap_distance("1km", settings)


class TestComputeLapSplits:
    def test_laps_partition_route(self, hilly_plan):
        splits = hilly_plan.lap_splits
        assert len(splits) == 10
        assert [s.lap_number for s in splits] == list(range(1, 11))
        assert splits[0].start_distance_m == 0.0
        assert splits[-1].end_distance_m == pytest.approx(10000.0)
        for prev, nxt in zip(splits, splits[1:]):
            assert nxt.start_distance_m == prev.end_distance_m
        assert sum(s.lap_distance_m for s in splits) == pytest.approx(10000.0)

    def test_lap_times_sum_to_predicted_time(self, hilly_plan):
        splits = hilly_plan.lap_splits
        total = sum(s.lap_time_s for s in splits)
        assert total == pytest.approx(hilly_plan.solver_result.predicted_time_s)
        assert splits[-1].cumulative_time_s == pytest.approx(total)

    def test_cumulative_times_increase(self, hilly_plan):
        cumulative = [s.cumulative_time_s for s in hilly_plan.lap_splits]
        assert cumulative == sorted(cumulative)

    def test_mile_laps_approximately_sum(self, hilly_route, settings):
        result = plan_race(hilly_route, 3000.0, "1mile", baseline_elevation_m=0.0, settings=settings)
        splits = result.lap_splits
        assert len(splits) == 7
        assert splits[-1].lap_distance_m == pytest.approx(10000.0 - 6 * 1609.344)
        assert splits[-1].cumulative_time_s == pytest.approx(
            result.solver_result.predicted_time_s, rel=1e-3
        )

    def test_lap_fields(self, hilly_plan):
        first = hilly_plan.lap_splits[0]
        assert first.start_elevation_m == pytest.approx(100.0)
        assert first.end_elevation_m == pytest.approx(120.0)
        assert first.elevation_change_m == pytest.approx(20.0)
        assert first.elevation_gain_m == pytest.approx(20.0)
        assert first.elevation_loss_m == pytest.approx(0.0)
        assert first.average_grade == pytest.approx(0.02)
        assert first.average_elevation_m == pytest.approx(110.0)
        assert first.average_pace_s_per_km == pytest.approx(first.lap_time_s)
        assert first.effort_level == "Moderate"
        assert first.has_downhill_speed_cap is False

    def test_uphill_laps_slower_than_downhill(self, hilly_plan):
        up = hilly_plan.lap_splits[:5]
        down = hilly_plan.lap_splits[5:]
        assert min(s.lap_time_s for s in up) > max(s.lap_time_s for s in down)

    def test_short_final_lap(self, settings):
        route = parse_route(
            [{"distance_meters": d, "elevation_meters": 50.0} for d in (0.0, 500.0, 1000.0)],
            grade_smoothing_window=5,
        )
        solver_result = solve_for_goal_time(route, 300.0, 50.0, settings=settings)
        result = compute_lap_splits(route, solver_result, "400m", settings)
        assert [s.lap_distance_m for s in result.lap_splits] == pytest.approx([400, 400, 200])
        assert result.lap_splits[-1].average_pace_s_per_km == pytest.approx(
            result.lap_splits[0].average_pace_s_per_km
        )

    def test_result_carries_route_stats(self, hilly_plan):
        assert hilly_plan.lap_interval == "1km"
        assert hilly_plan.lap_distance_m == 1000.0
        assert hilly_plan.goal_time_s == 3000.0
        assert hilly_plan.route_stats.total_elevation_gain_m == pytest.approx(100.0)

    def test_unsupported_interval_raises(self, hilly_route, settings):
        solver_result = solve_for_goal_time(hilly_route, 3000.0, 0.0, settings=settings)
        with pytest.raises(UnsupportedLapInterval):
            compute_lap_splits(hilly_route, solver_result, "marathon", settings)


class TestDownhillCapFlags:
    def test_only_the_steep_lap_is_flagged(self, steep_descent_route, settings):
        result = plan_race(steep_descent_route, 750.0, "1km", baseline_elevation_m=125.0, settings=settings)
        flags = [s.has_downhill_speed_cap for s in result.lap_splits]
        assert flags == [False, True, False]
        assert result.lap_splits[1].effort_level == "Very Fast"


class TestAnalyzeRoute:
    def test_hilly_extremes(self, hilly_plan):
        analysis = hilly_plan.route_analysis
        assert analysis.hardest_lap.average_grade == pytest.approx(0.02)
        assert analysis.easiest_lap.average_grade == pytest.approx(-0.02)
        # Altitude above the sea-level baseline makes the top of the climb slowest
        assert analysis.slowest_lap.lap_number == 5
        assert analysis.fastest_lap.lap_number == 10

    def test_climbing_totals(self, hilly_plan):
        analysis = hilly_plan.route_analysis
        assert analysis.total_climbing_m == pytest.approx(100.0)
        assert analysis.total_descending_m == pytest.approx(100.0)
        assert analysis.net_elevation_change_m == pytest.approx(0.0, abs=1e-9)

    def test_average_pace_is_mean_of_laps(self, hilly_plan):
        paces = [s.average_pace_s_per_km for s in hilly_plan.lap_splits]
        assert hilly_plan.route_analysis.average_pace_s_per_km == pytest.approx(sum(paces) / len(paces))
        assert hilly_plan.route_analysis.pace_std_dev_s_per_km > 0

    def test_flat_route_has_even_pacing(self, flat_route, settings):
        result = plan_race(flat_route, 3000.0, "1km", baseline_elevation_m=100.0, settings=settings)
        assert result.route_analysis.pace_std_dev_s_per_km == pytest.approx(0.0, abs=1e-6)
        assert result.route_analysis.average_pace_s_per_km == pytest.approx(300.0, rel=1e-3)

    def test_empty_splits_raise(self):
        with pytest.raises(NoLapsGenerated):
            analyze_route([], total_distance_m=1234.0)


class TestPlanRace:
    def test_bad_interval_fails_before_solving(self, hilly_route, settings):
        # An invalid goal would raise ValueError in the solver; the lap key is checked first
        with pytest.raises(UnsupportedLapInterval):
            plan_race(hilly_route, -1.0, "3km", settings=settings)

    def test_bad_goal_raises_value_error(self, hilly_route, settings):
        with pytest.raises(ValueError):
            plan_race(hilly_route, -1.0, "1km", settings=settings)
