"""
Route file decoders: GPX and Garmin FIT files into ordered point dicts.

Every decoder returns the same shape, which parse_route() consumes:

  {"lat": float, "lon": float, "elevation_meters": float,
   "distance_meters": Optional[float]}

Points without a position or an elevation are skipped. A file that yields no
usable points is an error.

GPX: track points from every track segment in order; a file with no tracks
falls back to its route points.

FIT: 'record' messages. Garmin stores lat/lon as 32-bit signed integers in
"semicircles" (degrees = semicircles * 180 / 2^31); enhanced_altitude is
preferred over altitude for its higher precision.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import fitparse
import gpxpy
import gpxpy.gpx

logger = logging.getLogger(__name__)

# Garmin semicircle → degree conversion constant
_SEMICIRCLE_TO_DEGREES = 180.0 / (2**31)


class RouteDecodeError(Exception):
    """Raised when a route file cannot be read or holds no usable points."""


def _point(lat: float, lon: float, elevation: float, distance: Optional[float] = None) -> Dict[str, Any]:
    return {
        "lat": float(lat),
        "lon": float(lon),
        "elevation_meters": float(elevation),
        "distance_meters": None if distance is None else float(distance),
    }


def decode_gpx_text(text: str, source: str = "<gpx>") -> List[Dict[str, Any]]:
    """
    Decode GPX XML into route point dicts.

    Raises:
        RouteDecodeError: the XML isn't valid GPX or has no usable points.
    """
    try:
        gpx = gpxpy.parse(text)
    except gpxpy.gpx.GPXException as exc:
        raise RouteDecodeError(f"Failed to parse GPX {source}: {exc}") from exc

    raw = [pt for track in gpx.tracks for segment in track.segments for pt in segment.points]
    if not raw:
        raw = [pt for route in gpx.routes for pt in route.points]

    points: List[Dict[str, Any]] = []
    skipped = 0
    for pt in raw:
        if pt.latitude is None or pt.longitude is None or pt.elevation is None:
            skipped += 1
            continue
        points.append(_point(pt.latitude, pt.longitude, pt.elevation))

    if skipped:
        logger.debug("Skipped %d GPX points without position or elevation in %s", skipped, source)
    if not points:
        raise RouteDecodeError(f"No points with position and elevation in GPX {source}")
    return points


def decode_gpx_file(path: Path) -> List[Dict[str, Any]]:
    """Decode a .gpx file. See decode_gpx_text()."""
    if not path.exists():
        raise RouteDecodeError(f"GPX file not found: {path}")
    return decode_gpx_text(path.read_text(encoding="utf-8"), source=str(path))


def decode_fit_file(path: Path) -> List[Dict[str, Any]]:
    """
    Decode a Garmin .fit activity into route point dicts.

    Raises:
        RouteDecodeError: the file doesn't exist, can't be parsed, or has no
            records with position and elevation.
    """
    if not path.exists():
        raise RouteDecodeError(f"FIT file not found: {path}")

    try:
        fit = fitparse.FitFile(str(path))
        records = list(fit.get_messages("record"))
    except Exception as exc:
        raise RouteDecodeError(f"Failed to parse FIT file {path}: {exc}") from exc

    points: List[Dict[str, Any]] = []
    skipped = 0
    for record in records:
        values = record.get_values()

        raw_lat = values.get("position_lat")
        raw_lon = values.get("position_long")
        # Elevation: prefer enhanced_altitude (higher precision)
        raw_alt = values.get("enhanced_altitude")
        if raw_alt is None:
            raw_alt = values.get("altitude")

        if raw_lat is None or raw_lon is None or raw_alt is None:
            skipped += 1
            continue

        points.append(_point(
            raw_lat * _SEMICIRCLE_TO_DEGREES,
            raw_lon * _SEMICIRCLE_TO_DEGREES,
            raw_alt,
            values.get("distance"),
        ))

    if skipped:
        logger.debug("Skipped %d FIT records without position or altitude in %s", skipped, path)
    if not points:
        raise RouteDecodeError(f"No records with position and altitude in FIT file: {path}")
    return points


def decode_route_file(path: Path) -> List[Dict[str, Any]]:
    """
    Decode a route file, choosing the decoder from the file extension.

    Raises:
        RouteDecodeError: unsupported extension, or the decoder failed.
    """
    suffix = path.suffix.lower()
    if suffix == ".gpx":
        return decode_gpx_file(path)
    if suffix == ".fit":
        return decode_fit_file(path)
    raise RouteDecodeError(f"Unsupported route file type {suffix!r}: {path} (expected .gpx or .fit)")
