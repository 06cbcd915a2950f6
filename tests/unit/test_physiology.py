"""Tests for the economy table, Minetti grade cost, and altitude adjustment."""
import pytest

from racepace.physiology.altitude import (
    altitude_penalty,
    altitude_time_penalty,
    apply_altitude_to_speed,
    describe_altitude_impact,
    feet_to_meters,
    meters_to_feet,
)
from racepace.physiology.economy import (
    ECONOMY_TABLE,
    POWERS_W_KG,
    cost_at_speed,
    flat_cost_or_default,
    power_at_speed,
    speed_at_power,
)
from racepace.physiology.grade import (
    equivalent_flat_speed,
    excess_cost,
    grade_cost_multiplier,
    linear_grade_penalty,
    speed_on_grade,
)


class TestEconomyTable:
    def test_power_increases_with_speed(self):
        assert POWERS_W_KG == sorted(POWERS_W_KG)
        assert len(set(POWERS_W_KG)) == len(POWERS_W_KG)

    def test_power_is_cost_times_speed(self):
        for speed, cost, power in ECONOMY_TABLE:
            assert power == pytest.approx(cost * speed, rel=1e-3)

    def test_cost_at_table_row(self):
        assert cost_at_speed(3.0) == pytest.approx(3.98)

    def test_cost_interpolates_between_rows(self):
        assert cost_at_speed(3.25) == pytest.approx(3.96)

    @pytest.mark.parametrize("speed", [0.5, 1.49, 6.51, 10.0])
    def test_cost_out_of_range_is_none(self, speed):
        assert cost_at_speed(speed) is None
        assert power_at_speed(speed) is None

    def test_table_edges_are_in_range(self):
        assert cost_at_speed(1.5) == pytest.approx(4.35)
        assert cost_at_speed(6.5) == pytest.approx(4.39)

    def test_speed_at_power_inverts_power_at_speed(self):
        power = power_at_speed(4.2)
        assert speed_at_power(power) == pytest.approx(4.2)

    @pytest.mark.parametrize("power", [1.0, 6.0, 29.0])
    def test_speed_at_power_out_of_range_is_none(self, power):
        assert speed_at_power(power) is None

    def test_flat_cost_falls_back_off_table(self):
        assert flat_cost_or_default(10.0, 4.0) == 4.0
        assert flat_cost_or_default(3.0, 4.0) == pytest.approx(3.98)


class TestExcessCost:
    def test_flat_costs_nothing_extra(self):
        assert excess_cost(0.0) == 0.0

    def test_uphill_costs_more(self):
        assert excess_cost(0.05) > 0
        assert excess_cost(0.10) > excess_cost(0.05)

    def test_gentle_downhill_saves_energy(self):
        assert excess_cost(-0.05) < 0

    def test_10_percent_uphill_multiplier(self):
        """Published Minetti (2002) value: ~1.66x flat cost at 10%."""
        assert grade_cost_multiplier(0.10) == pytest.approx(1.658, abs=0.01)

    def test_5_percent_downhill_multiplier(self):
        assert grade_cost_multiplier(-0.05) == pytest.approx(0.763, abs=0.01)

    def test_steep_downhill_costs_more_than_moderate_downhill(self):
        """The curve bottoms out near -20%; braking makes -30% dearer."""
        assert excess_cost(-0.30) > excess_cost(-0.20)

    @pytest.mark.parametrize("grade", [-1.0, -0.45, -0.1, 0.0, 0.1, 0.45, 1.0])
    def test_finite_over_physical_range(self, grade):
        value = excess_cost(grade)
        assert value == value
        assert abs(value) < 1e3


class TestSpeedOnGrade:
    def test_flat_returns_base_speed_at_table_row(self):
        assert speed_on_grade(3.5, 0.0) == pytest.approx(3.5)

    def test_uphill_slower_downhill_faster(self):
        assert speed_on_grade(3.5, 0.05) < 3.5
        assert speed_on_grade(3.5, -0.05) > 3.5

    def test_off_table_base_speed_uses_fallback_cost(self):
        """Off the table, power is fallback cost x speed, so flat speed is unchanged."""
        assert speed_on_grade(7.0, 0.0) == pytest.approx(7.0)
        assert speed_on_grade(7.0, 0.05) == pytest.approx(7.0 * 4.0 / (4.0 + excess_cost(0.05)))

    def test_non_positive_speed_falls_back_to_linear_penalty(self):
        """A cost that cancels out (total <= 0) falls back to the ±50/80% linear rule."""
        speed = speed_on_grade(7.0, -0.20, fallback_cost_j_kg_m=1.0)
        assert speed == pytest.approx(7.0 * 1.5)

    def test_linear_penalty_limits(self):
        assert linear_grade_penalty(4.0, 0.5) == pytest.approx(4.0 * 0.2)
        assert linear_grade_penalty(4.0, -0.5) == pytest.approx(4.0 * 1.5)
        assert linear_grade_penalty(4.0, 0.02) == pytest.approx(4.0 * 0.8)

    def test_equivalent_flat_speed_roughly_recovers_effort(self):
        on_grade = speed_on_grade(4.0, 0.05)
        assert equivalent_flat_speed(on_grade, 0.05) == pytest.approx(4.0, rel=0.02)

    def test_equivalent_flat_speed_off_table_is_none(self):
        assert equivalent_flat_speed(8.0, 0.0) is None


class TestAltitude:
    def test_no_penalty_at_baseline(self):
        assert altitude_penalty(1600.0, 1600.0) == 1.0

    def test_penalty_above_baseline(self):
        assert altitude_penalty(2000.0, 0.0) == pytest.approx(1.0656, abs=1e-4)

    def test_bonus_below_baseline(self):
        assert altitude_penalty(0.0, 2000.0) == pytest.approx(0.9344, abs=1e-4)

    def test_one_percent_per_thousand_feet(self):
        assert altitude_penalty(304.8, 0.0) == pytest.approx(1.01)

    def test_apply_to_speed_slows_above_baseline(self):
        assert apply_altitude_to_speed(4.0, 304.8, 0.0) == pytest.approx(4.0 / 1.01)

    def test_time_penalty(self):
        assert altitude_time_penalty(3600.0, 304.8, 0.0) == pytest.approx(36.0)
        assert altitude_time_penalty(3600.0, 0.0, 304.8) == pytest.approx(-36.0)

    def test_describe_slower(self):
        assert describe_altitude_impact(2000.0, 0.0) == "+6.6% slower due to altitude"

    def test_describe_faster(self):
        assert describe_altitude_impact(0.0, 2000.0) == "6.6% faster due to lower altitude"

    def test_describe_negligible(self):
        assert describe_altitude_impact(101.0, 100.0) == "No significant altitude impact"

    def test_feet_meters_round_trip(self):
        assert feet_to_meters(1000.0) == pytest.approx(304.8)
        assert meters_to_feet(304.8) == pytest.approx(1000.0)
