"""
Delivery route planner package initialization.

This package plans a delivery run across a set of stops given as postal
codes or addresses: it geocodes each stop, builds a travel distance and
duration matrix, orders the stops, and renders the route on a map.

Modules:
    config        – Settings from environment variables and logging setup.
    inputs        – Normalisation and validation of typed locations.
    geocode       – Functions to geocode locations using Nominatim.
    routing       – Distance/duration matrices and directions via OSRM.
    optimisation  – Nearest neighbour and 2-opt heuristics for stop ordering.
    planner       – Orchestrates a full route computation.
    formatters    – Distance, duration and itinerary text.
    visualisation – Folium based map creation utilities.
"""

__all__ = [
    "config",
    "inputs",
    "geocode",
    "routing",
    "optimisation",
    "planner",
    "formatters",
    "visualisation",
]
