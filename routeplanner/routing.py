"""
Routing utilities for the delivery route planner.

This module wraps network calls to OSRM (Open Source Routing Machine)
to produce distance and duration matrices for a set of coordinates and
driving directions for an ordered list of stops. If OSRM cannot be
reached the matrices can fall back to a simple Haversine estimate with
an assumed average speed.

Cells that OSRM could not route are ``None`` in the returned matrices;
the route optimiser treats them as impassable.

Example usage:

    coords = [(1.2834, 103.8607), (1.3048, 103.8318)]
    dist_mat, dur_mat = compute_distance_matrix(coords)

Use your own OSRM server in production for reliability; the public
demo server is rate limited.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import requests

from routeplanner.config import Settings

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

Coord = Tuple[float, float]
Matrix = List[List[Optional[float]]]


class RoutingError(Exception):
    """Raised when the routing service cannot answer a request."""


@dataclass
class Directions:
    polyline: List[Coord]
    instructions: List[str] = field(default_factory=list)
    distance: float = 0.0
    duration: float = 0.0


def haversine_distance(coord1: Coord, coord2: Coord) -> float:
    """Compute the great-circle distance between two coordinates in kilometers."""
    lat1, lon1 = coord1
    lat2, lon2 = coord2
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def _coords_to_str(coords: Sequence[Coord]) -> str:
    # OSRM expects lon,lat order and semicolon separated list
    return ";".join(f"{lon},{lat}" for lat, lon in coords)


def _cell(value) -> Optional[float]:
    return float(value) if isinstance(value, (int, float)) else None


def _get_json(url: str, params: dict, timeout: float) -> dict:
    try:
        resp = requests.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        raise RoutingError(f"OSRM request failed: {exc}") from exc
    if data.get("code") != "Ok":
        raise RoutingError(f"OSRM returned {data.get('code')}: {data.get('message', '')}")
    return data


def compute_osrm_table(
    coords: Sequence[Coord],
    settings: Optional[Settings] = None,
) -> Tuple[Matrix, Matrix]:
    """Call the OSRM table service to compute distance and duration matrices.

    Origins are requested in chunks so that each request asks for at
    most ``settings.max_matrix_elements`` cells; every chunk fills its
    own rows of the full matrix.

    Args:
        coords: List of (lat, lon) tuples.
        settings: Service settings, read from the environment if omitted.

    Returns:
        A tuple (distance_matrix_m, duration_matrix_s). Cells OSRM could
        not route are ``None``.

    Raises:
        RoutingError: If any request fails.
    """
    settings = settings or Settings.from_env()
    size = len(coords)
    if size == 0:
        return [], []
    dist_matrix: Matrix = [[None] * size for _ in range(size)]
    dur_matrix: Matrix = [[None] * size for _ in range(size)]
    chunk_size = max(1, settings.max_matrix_elements // size)
    url = f"{settings.osrm_url.rstrip('/')}/table/v1/{settings.osrm_profile}/{_coords_to_str(coords)}"

    for start in range(0, size, chunk_size):
        sources = range(start, min(start + chunk_size, size))
        params = {
            "annotations": "distance,duration",
            "sources": ";".join(str(i) for i in sources),
        }
        logger.debug("Requesting OSRM table rows %d-%d of %d", sources[0], sources[-1], size)
        data = _get_json(url, params, settings.request_timeout)
        distances = data.get("distances") or []
        durations = data.get("durations") or []
        for offset, row_index in enumerate(sources):
            dist_row = distances[offset] if offset < len(distances) else []
            dur_row = durations[offset] if offset < len(durations) else []
            for col in range(size):
                dist_matrix[row_index][col] = _cell(dist_row[col]) if col < len(dist_row) else None
                dur_matrix[row_index][col] = _cell(dur_row[col]) if col < len(dur_row) else None

    missing = sum(cell is None for row in dist_matrix for cell in row)
    if missing:
        logger.warning("OSRM could not route %d of %d matrix cells", missing, size * size)
    return dist_matrix, dur_matrix


def compute_haversine_matrix(coords: Sequence[Coord], speed_kmh: float) -> Tuple[Matrix, Matrix]:
    """Compute distance and duration matrices using the Haversine formula.

    Args:
        coords: List of (lat, lon) tuples.
        speed_kmh: Assumed constant travel speed in km/h.

    Returns:
        Tuple of (distance_matrix_m, duration_matrix_s).
    """
    n = len(coords)
    dist_matrix: Matrix = [[0.0] * n for _ in range(n)]
    dur_matrix: Matrix = [[0.0] * n for _ in range(n)]
    for i in range(n):
        for j in range(n):
            if i == j:
                continue
            dist_km = haversine_distance(coords[i], coords[j])
            dist_matrix[i][j] = dist_km * 1000.0
            dur_matrix[i][j] = dist_km / speed_kmh * 3600.0
    return dist_matrix, dur_matrix


def compute_distance_matrix(
    coords: Sequence[Coord],
    settings: Optional[Settings] = None,
) -> Tuple[Matrix, Matrix]:
    """Compute distance and duration matrices for a set of coordinates.

    OSRM is used for road distances and durations. If it fails and the
    Haversine fallback is enabled, straight-line estimates at
    ``settings.fallback_speed_kmh`` are returned instead.

    Args:
        coords: List of (lat, lon) coordinate tuples. Index 0 is the start.
        settings: Service settings, read from the environment if omitted.

    Returns:
        Tuple of (distance_matrix_m, duration_matrix_s).

    Raises:
        RoutingError: If OSRM fails and the fallback is disabled.
    """
    settings = settings or Settings.from_env()
    try:
        return compute_osrm_table(coords, settings)
    except RoutingError as exc:
        if not settings.haversine_fallback:
            raise
        logger.warning("%s; falling back to Haversine estimate", exc)
    return compute_haversine_matrix(coords, settings.fallback_speed_kmh)


def drop_last_node(matrix: Sequence[Sequence[Optional[float]]]) -> Matrix:
    """Return the matrix without its last row and column.

    Used to keep a fixed end location out of the stop sequencing.
    """
    return [list(row[:-1]) for row in matrix[:-1]]


def _describe_step(step: dict) -> str:
    maneuver = step.get("maneuver", {})
    kind = maneuver.get("type", "continue")
    modifier = maneuver.get("modifier")
    name = step.get("name")
    text = kind if not modifier else f"{kind} {modifier}"
    if name:
        text += f" onto {name}"
    distance = step.get("distance")
    if isinstance(distance, (int, float)) and distance > 0:
        text += f" ({distance:.0f} m)"
    return text[:1].upper() + text[1:]


def fetch_directions(coords: Sequence[Coord], settings: Optional[Settings] = None) -> Directions:
    """Fetch a driving route through ``coords`` in the given order.

    Args:
        coords: Ordered (lat, lon) tuples: start, stops, optional end.
        settings: Service settings, read from the environment if omitted.

    Returns:
        ``Directions`` with the route geometry as (lat, lon) points and a
        list of human readable turn instructions.

    Raises:
        RoutingError: If fewer than two points are given or OSRM fails.
    """
    if len(coords) < 2:
        raise RoutingError("Directions need at least two points")
    settings = settings or Settings.from_env()
    url = f"{settings.osrm_url.rstrip('/')}/route/v1/{settings.osrm_profile}/{_coords_to_str(coords)}"
    params = {"overview": "full", "geometries": "geojson", "steps": "true"}
    data = _get_json(url, params, settings.request_timeout)
    routes = data.get("routes") or []
    if not routes:
        raise RoutingError("OSRM returned no route")
    route = routes[0]
    polyline = [(lat, lon) for lon, lat in route.get("geometry", {}).get("coordinates", [])]
    instructions = [
        _describe_step(step)
        for leg in route.get("legs", [])
        for step in leg.get("steps", [])
    ]
    return Directions(
        polyline=polyline,
        instructions=instructions,
        distance=float(route.get("distance", 0.0)),
        duration=float(route.get("duration", 0.0)),
    )
