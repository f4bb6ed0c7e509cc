"""
Route planning for a delivery run.

``plan_route`` ties the other modules together: it validates the
request, geocodes every location, fetches the distance and duration
matrices, orders the stops and computes the totals. Any failure is
raised as a ``RoutePlanningError`` subclass so the UI can show a single
message; a missing set of turn-by-turn directions is only a warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from routeplanner.config import Settings
from routeplanner.geocode import GeocodeResult, geocode_location
from routeplanner.inputs import (
    DEFAULT_STOP_MINUTES,
    normalize_location_input,
    normalize_stop_minutes,
    validate_inputs,
)
from routeplanner.optimisation import is_complete, optimise_order, route_total
from routeplanner.routing import (
    Directions,
    RoutingError,
    compute_distance_matrix,
    drop_last_node,
    fetch_directions,
)

logger = logging.getLogger(__name__)


class RoutePlanningError(Exception):
    """Base class for failures surfaced to the user."""


class InvalidInputError(RoutePlanningError):
    def __init__(self, messages: Sequence[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class GeocodingError(RoutePlanningError):
    def __init__(self, query: str):
        self.query = query
        super().__init__(f"Could not find location: {query}")


class PostalMismatchError(RoutePlanningError):
    def __init__(self, query: str):
        self.query = query
        super().__init__(f"Postal code does not match the found address: {query}")


class MatrixError(RoutePlanningError):
    """The travel matrix does not allow a complete route."""


@dataclass
class Location:
    query: str
    latitude: float
    longitude: float
    address: str = ""

    @property
    def coords(self):
        return self.latitude, self.longitude


@dataclass
class PlannedStop(Location):
    # Position of the stop in the list the user entered, starting at 0.
    index: int = 0
    delivered: bool = False


@dataclass
class RoutePlan:
    start: Location
    stops: List[PlannedStop]
    end: Optional[Location]
    total_distance: float
    total_duration: float
    directions: Optional[Directions] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def delivered_count(self) -> int:
        return sum(1 for stop in self.stops if stop.delivered)

    @property
    def remaining_count(self) -> int:
        return len(self.stops) - self.delivered_count

    def next_stop(self) -> Optional[PlannedStop]:
        """The first stop in visiting order that is not delivered yet."""
        for stop in self.stops:
            if not stop.delivered:
                return stop
        return None

    def toggle_delivered(self, position: int) -> PlannedStop:
        stop = self.stops[position]
        stop.delivered = not stop.delivered
        return stop

    def coordinates(self):
        """Start, ordered stops and end as (lat, lon) tuples."""
        points = [self.start.coords] + [stop.coords for stop in self.stops]
        if self.end is not None:
            points.append(self.end.coords)
        return points


def _geocode(query: str) -> GeocodeResult:
    result = geocode_location(query)
    if result is None:
        raise GeocodingError(query)
    if result.postal_mismatch:
        raise PostalMismatchError(query)
    return result


def _location(query: str, result: GeocodeResult) -> Location:
    return Location(query=query, latitude=result.latitude, longitude=result.longitude, address=result.address)


def plan_route(
    start: str,
    stops: Sequence[str],
    end: Optional[str] = None,
    stop_minutes: int = DEFAULT_STOP_MINUTES,
    settings: Optional[Settings] = None,
) -> RoutePlan:
    """Plan the visiting order for a delivery run.

    Args:
        start: Start location (postal code or address).
        stops: Stops to deliver to, in the order the user entered them.
        end: Optional fixed end location; omitted means the route ends at
            the last stop.
        stop_minutes: Minutes spent at each stop, added to the duration.
        settings: Service settings, read from the environment if omitted.

    Returns:
        A ``RoutePlan`` with the stops in visiting order.

    Raises:
        InvalidInputError: If the request fails validation.
        GeocodingError: If a location cannot be found.
        PostalMismatchError: If a postal code resolves to another postal code.
        MatrixError: If the travel matrix does not allow a complete route.
    """
    settings = settings or Settings.from_env()
    start = normalize_location_input(start)
    stops = [normalize_location_input(stop) for stop in stops]
    end = normalize_location_input(end) if end else None
    stop_minutes = normalize_stop_minutes(stop_minutes)

    errors = validate_inputs(start, stops, end)
    if errors:
        raise InvalidInputError(errors)

    start_loc = _location(start, _geocode(start))
    stop_results = [geocode_location(stop) for stop in stops]
    failed = [stop for stop, result in zip(stops, stop_results) if result is None]
    if failed:
        raise GeocodingError(", ".join(failed))
    mismatched = [stop for stop, result in zip(stops, stop_results) if result.postal_mismatch]
    if mismatched:
        raise PostalMismatchError(", ".join(mismatched))
    end_loc = _location(end, _geocode(end)) if end else None

    coords = [start_loc.coords] + [result.coords for result in stop_results]
    if end_loc is not None:
        coords.append(end_loc.coords)
    try:
        dist_matrix, dur_matrix = compute_distance_matrix(coords, settings)
    except RoutingError as exc:
        raise MatrixError(str(exc)) from exc

    sequencing_matrix = drop_last_node(dist_matrix) if end_loc is not None else dist_matrix
    order = optimise_order(sequencing_matrix)
    if not is_complete(order, len(stops)):
        raise MatrixError(f"Only {len(order)} of {len(stops)} stops could be reached")

    end_index = len(coords) - 1 if end_loc is not None else None
    total_distance = route_total(dist_matrix, order, end_index)
    travel_duration = route_total(dur_matrix, order, end_index)
    if total_distance is None or travel_duration is None:
        raise MatrixError("Travel distance or duration is unknown for part of the route")
    total_duration = travel_duration + len(stops) * stop_minutes * 60

    planned = []
    for matrix_index in order:
        stop_index = matrix_index - 1
        result = stop_results[stop_index]
        planned.append(
            PlannedStop(
                query=stops[stop_index],
                latitude=result.latitude,
                longitude=result.longitude,
                address=result.address,
                index=stop_index,
            )
        )
    plan = RoutePlan(
        start=start_loc,
        stops=planned,
        end=end_loc,
        total_distance=total_distance,
        total_duration=total_duration,
    )
    logger.info(
        "Planned %d stops: %.0f m, %.0f s", len(planned), total_distance, total_duration
    )

    try:
        plan.directions = fetch_directions(plan.coordinates(), settings)
    except RoutingError as exc:
        logger.warning("Directions unavailable: %s", exc)
        plan.warnings.append("Turn-by-turn directions are unavailable for this route")
    return plan
