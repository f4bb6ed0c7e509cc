"""
Streamlit application for delivery route planning.

This script defines the user interface and orchestrates the
underlying modules to geocode stops, compute the visiting order,
display an interactive map, and track deliveries along the way.

To run this app locally for development, install the package and
execute:

    streamlit run routeplanner/app.py

Service settings come from ``ROUTEPLANNER_*`` environment variables and
can be overridden in Streamlit's secrets under the same names.
"""

from __future__ import annotations

import os
import sys
from typing import List

import streamlit as st
from streamlit_folium import folium_static

# Ensure the package can be imported when run as a script via
# `streamlit run routeplanner/app.py`.
parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if parent_dir not in sys.path:
    sys.path.append(parent_dir)

from routeplanner import geocode
from routeplanner.config import ENV_PREFIX, Settings, setup_logging
from routeplanner.formatters import (
    GOOGLE_MAPS,
    WAZE,
    format_distance,
    format_duration,
    format_route_text,
    navigation_url,
)
from routeplanner.inputs import DEFAULT_STOP_MINUTES, MAX_STOP_MINUTES, MAX_STOPS, MIN_STOPS
from routeplanner.planner import InvalidInputError, RoutePlanningError, plan_route
from routeplanner.visualisation import create_folium_map


def load_settings() -> Settings:
    """Settings from the environment, overridden by Streamlit secrets."""
    environ = dict(os.environ)
    try:
        for key, value in st.secrets.items():
            if key.startswith(ENV_PREFIX):
                environ[key] = str(value)
    except FileNotFoundError:
        # No secrets.toml configured.
        pass
    return Settings.from_env(environ)


def render_plan(plan, nav_app: str) -> None:
    col_dist, col_time = st.columns(2)
    col_dist.metric("Total distance", format_distance(plan.total_distance))
    col_time.metric("Total time", format_duration(plan.total_duration))

    for warning in plan.warnings:
        st.warning(warning)

    fol_map = create_folium_map(plan)
    folium_static(fol_map, width=700, height=500)

    st.subheader("Route order")
    st.caption(f"Delivered: {plan.delivered_count} · Remaining: {plan.remaining_count}")
    next_stop = plan.next_stop()
    for position, stop in enumerate(plan.stops):
        label = f"{position + 1}. {stop.query}"
        if stop is next_stop:
            label += " (next stop)"
        col_info, col_nav, col_done = st.columns([4, 1, 1])
        with col_info:
            st.markdown(f"**{label}**")
            if stop.address:
                st.caption(stop.address)
        with col_nav:
            st.link_button("Navigate", navigation_url(stop.latitude, stop.longitude, nav_app))
        with col_done:
            delivered = st.checkbox("Delivered", value=stop.delivered, key=f"delivered_{position}")
            if delivered != stop.delivered:
                plan.toggle_delivered(position)
                st.rerun()
    if plan.end is not None:
        col_info, col_nav = st.columns([5, 1])
        with col_info:
            st.markdown(f"**End: {plan.end.query}**")
            if plan.end.address:
                st.caption(plan.end.address)
        with col_nav:
            st.link_button("Navigate", navigation_url(plan.end.latitude, plan.end.longitude, nav_app))

    if plan.directions is not None and plan.directions.instructions:
        with st.expander("Turn-by-turn directions"):
            for step in plan.directions.instructions:
                st.markdown(f"- {step}")
    st.text_area("Itinerary", format_route_text(plan), height=200)


def main():
    st.set_page_config(page_title="Delivery Route Planner", layout="wide")
    st.title("🚚 Delivery Route Planner")
    settings = load_settings()
    setup_logging(settings.logging_level)
    geocode.configure(settings)

    with st.form("route_form"):
        st.subheader("Route")
        start = st.text_input("Start (postal code or address)", key="start")
        n_stops = st.number_input(
            "Number of stops", min_value=MIN_STOPS, max_value=MAX_STOPS, value=MIN_STOPS, step=1
        )
        stops: List[str] = []
        for i in range(int(n_stops)):
            stops.append(st.text_input(f"Stop {i + 1}", key=f"stop_{i}"))
        end = st.text_input("End (optional)", key="end")
        stop_minutes = st.number_input(
            "Minutes per stop",
            min_value=0,
            max_value=MAX_STOP_MINUTES,
            value=DEFAULT_STOP_MINUTES,
            step=1,
        )
        nav_label = st.radio("Navigation app", ["Google Maps", "Waze"], horizontal=True)
        generate = st.form_submit_button("Optimize route")

    nav_app = WAZE if nav_label == "Waze" else GOOGLE_MAPS

    if generate:
        with st.spinner("Optimizing route…"):
            try:
                st.session_state["plan"] = plan_route(
                    start, stops, end or None, int(stop_minutes), settings
                )
            except InvalidInputError as exc:
                st.session_state.pop("plan", None)
                for message in exc.messages:
                    st.error(message)
            except RoutePlanningError as exc:
                st.session_state.pop("plan", None)
                st.error(str(exc))

    plan = st.session_state.get("plan")
    if plan is not None:
        render_plan(plan, nav_app)


if __name__ == "__main__":
    main()
