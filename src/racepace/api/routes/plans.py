"""Race plan routes: route stats, lap intervals, goal-time plans."""
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from racepace.config import Settings, get_settings
from racepace.pacing.laps import NoLapsGenerated, UnsupportedLapInterval, plan_race
from racepace.pacing.units import format_time
from racepace.route.model import MalformedRoute, RouteModel, parse_route

router = APIRouter()


class RoutePointIn(BaseModel):
    lat: Optional[float] = None
    lon: Optional[float] = None
    elevation_meters: float
    distance_meters: Optional[float] = None  # cumulative, when there are no coordinates


class RouteRequest(BaseModel):
    points: List[RoutePointIn]


class PlanRequest(RouteRequest):
    goal_time_s: float = Field(gt=0)
    lap_interval: str = "1km"
    baseline_elevation_m: Optional[float] = None
    sub_segment_length_m: Optional[float] = Field(default=None, gt=0)


def _build_route(request: RouteRequest, settings: Settings) -> RouteModel:
    try:
        return parse_route(
            [p.model_dump() for p in request.points],
            grade_smoothing_window=settings.grade_smoothing_window,
        )
    except MalformedRoute as exc:
        raise HTTPException(status_code=422, detail=str(exc))


@router.get("/lap-intervals")
def list_lap_intervals(settings: Settings = Depends(get_settings)):
    """Supported lap interval keys and their lengths in metres."""
    return settings.lap_distances_m


@router.post("/route-stats")
def route_stats(request: RouteRequest, settings: Settings = Depends(get_settings)):
    """Distance, climbing and grade extremes for a route."""
    route = _build_route(request, settings)
    return asdict(route.get_route_stats())


@router.post("/")
def create_plan(request: PlanRequest, settings: Settings = Depends(get_settings)):
    """
    Solve a route for a goal time and return lap splits.

    A solver that didn't reach tolerance still returns 200 with
    solver_result.converged = false.
    """
    route = _build_route(request, settings)
    try:
        result = plan_race(
            route,
            request.goal_time_s,
            request.lap_interval,
            baseline_elevation_m=request.baseline_elevation_m,
            sub_segment_length_m=request.sub_segment_length_m,
            settings=settings,
        )
    except (UnsupportedLapInterval, NoLapsGenerated, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    body = asdict(result)
    body["predicted_time"] = format_time(result.solver_result.predicted_time_s)
    return body
