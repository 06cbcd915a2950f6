from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

# Keys accepted for lap intervals, in metres. 1 mile = 1609.344 m.
DEFAULT_LAP_DISTANCES: Dict[str, float] = {
    "400m": 400.0,
    "1000m": 1000.0,
    "1km": 1000.0,
    "1mile": 1609.344,
    "5000m": 5000.0,
    "5km": 5000.0,
}


class Settings(BaseSettings):
    # Solver
    solver_tolerance_s: float = 1.0
    solver_max_iterations: int = 20
    solver_damping: float = 0.5
    sub_segment_length_m: float = 50.0
    slowest_pace_s_per_km: float = 720.0  # 12:00/km
    fastest_pace_s_per_km: float = 150.0  # 2:30/km

    # Physiology
    fallback_flat_cost_j_kg_m: float = 4.0
    downhill_cap_start_grade: float = -0.08
    downhill_cap_full_grade: float = -0.25
    downhill_cap_max_reduction: float = 0.6
    downhill_cap_speed_multiple: float = 1.5

    # Route
    grade_smoothing_window: int = 5
    baseline_elevation_m: float = 0.0
    lap_distances_m: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_LAP_DISTANCES)
    )

    log_level: str = "INFO"

    class Config:
        env_prefix = "RACEPACE_"
        env_file = ".env"
        env_file_encoding = "utf-8"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
