"""
Map visualisation utilities for the delivery route planner.

This module provides a helper function to build an interactive map
using the Folium library. It renders a start marker, numbered markers
for each stop in visiting order, an optional end marker, and draws the
route as a polyline. The map can be embedded directly in a Streamlit
app via ``streamlit_folium``.
"""

from __future__ import annotations

import folium

START_COLOUR = "green"
END_COLOUR = "red"
STOP_COLOUR = "#007bff"
DELIVERED_COLOUR = "#9e9e9e"


def _numbered_icon(number: int, colour: str) -> folium.DivIcon:
    return folium.DivIcon(
        html=(
            f"<div style='font-size: 12px; color: white; background-color: {colour}; "
            "border-radius: 50%; width: 24px; height: 24px; text-align: center; "
            f"line-height: 24px;'>{number}</div>"
        )
    )


def create_folium_map(plan) -> folium.Map:
    """Create a Folium map for a ``RoutePlan``.

    When the plan carries directions their road geometry is drawn;
    otherwise straight segments join the points in visiting order.

    Args:
        plan: The planned route.

    Returns:
        A Folium Map object ready for display.
    """
    points = plan.coordinates()
    # Compute map centre as the mean of all coordinates
    avg_lat = sum(lat for lat, _ in points) / len(points)
    avg_lon = sum(lon for _, lon in points) / len(points)
    m = folium.Map(location=[avg_lat, avg_lon], zoom_start=12, tiles="OpenStreetMap")

    folium.Marker(
        location=list(plan.start.coords),
        popup=folium.Popup(f"Start: {plan.start.address or plan.start.query}", parse_html=True),
        icon=folium.Icon(color=START_COLOUR, icon="play"),
    ).add_to(m)
    for order, stop in enumerate(plan.stops, start=1):
        colour = DELIVERED_COLOUR if stop.delivered else STOP_COLOUR
        folium.Marker(
            location=list(stop.coords),
            popup=folium.Popup(f"{order}. {stop.address or stop.query}", parse_html=True),
            icon=_numbered_icon(order, colour),
        ).add_to(m)
    if plan.end is not None:
        folium.Marker(
            location=list(plan.end.coords),
            popup=folium.Popup(f"End: {plan.end.address or plan.end.query}", parse_html=True),
            icon=folium.Icon(color=END_COLOUR, icon="flag"),
        ).add_to(m)

    if plan.directions is not None and plan.directions.polyline:
        poly_coords = [list(point) for point in plan.directions.polyline]
    else:
        poly_coords = [list(point) for point in points]
    folium.PolyLine(poly_coords, color="blue", weight=4, opacity=0.6).add_to(m)
    m.fit_bounds([[lat, lon] for lat, lon in points])
    return m
