"""Text formatting helpers for distances, durations and itineraries."""

from __future__ import annotations

import math

GOOGLE_MAPS = "google"
WAZE = "waze"


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def format_distance(meters) -> str:
    """Format metres as kilometres, e.g. ``"3.25 km"`` or ``"12.4 km"``."""
    if not _is_number(meters):
        return "-"
    km = meters / 1000
    value = f"{km:.2f}" if km < 10 else f"{km:.1f}"
    return f"{value} km"


def format_duration(seconds) -> str:
    """Format seconds as ``"1 h 5 min"`` or ``"42 min"``."""
    if not _is_number(seconds):
        return "-"
    # Round half up, like a clock display.
    total_minutes = int(math.floor(seconds / 60 + 0.5))
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours} h {minutes} min"
    return f"{minutes} min"


def navigation_url(lat: float, lon: float, app: str = GOOGLE_MAPS) -> str:
    """Deep link that starts driving navigation to (lat, lon)."""
    if app == WAZE:
        return f"https://waze.com/ul?ll={lat},{lon}&navigate=yes"
    return f"https://www.google.com/maps/dir/?api=1&destination={lat},{lon}&travelmode=driving"


def format_route_text(plan) -> str:
    """Format the planned route as plain text for display or sharing."""
    lines = ["Delivery route:\n", f"Start: {plan.start.address or plan.start.query}"]
    for order, stop in enumerate(plan.stops, start=1):
        label = stop.address or stop.query
        status = " (delivered)" if stop.delivered else ""
        lines.append(f"{order}. {stop.query}: {label}{status}")
    if plan.end is not None:
        lines.append(f"End: {plan.end.address or plan.end.query}")
    lines.append(f"\nTotal distance: {format_distance(plan.total_distance)}")
    lines.append(f"Total time: {format_duration(plan.total_duration)}")
    return "\n".join(lines)
