"""Shared test fixtures."""
import pytest

from racepace.config import Settings
from racepace.route.model import RouteModel, parse_route


def _profile(elevations, spacing_m: float = 100.0) -> RouteModel:
    return parse_route(
        [
            {"distance_meters": i * spacing_m, "elevation_meters": e}
            for i, e in enumerate(elevations)
        ],
        grade_smoothing_window=5,
    )


@pytest.fixture(name="settings")
def settings_fixture() -> Settings:
    """Reference constants, independent of any RACEPACE_* environment."""
    return Settings(_env_file=None)


@pytest.fixture(name="flat_route")
def flat_route_fixture() -> RouteModel:
    """10 km dead flat at 100 m, a point every 100 m."""
    return _profile([100.0] * 101)


@pytest.fixture(name="hilly_route")
def hilly_route_fixture() -> RouteModel:
    """10 km: 5 km climbing at 2% (100 m → 200 m), then 5 km descending at 2%."""
    up = [100.0 + 2.0 * i for i in range(51)]
    down = [200.0 - 2.0 * i for i in range(1, 51)]
    return _profile(up + down)


@pytest.fixture(name="steep_descent_route")
def steep_descent_route_fixture() -> RouteModel:
    """2.5 km: 1 km flat, 500 m at -15% (200 m → 125 m), 1 km flat."""
    flat_top = [200.0] * 11                          # 0 – 1000 m
    descent = [200.0 - 15.0 * i for i in range(1, 6)]  # 1100 – 1500 m
    flat_bottom = [125.0] * 10                       # 1600 – 2500 m
    return _profile(flat_top + descent + flat_bottom)
