"""
Geocoding utilities for the delivery route planner.

This module provides a thin wrapper around the `geopy` library to
convert postal codes and free-form addresses into geographic
coordinates. It uses OpenStreetMap's Nominatim service via geopy's API,
restricted to the configured country. A small cache is maintained in
memory to avoid repeated queries for the same location.

Example usage:

    from routeplanner.geocode import geocode_location
    result = geocode_location("018956")
    print(result.latitude, result.longitude, result.address)

``geocode_location`` returns ``None`` if the location cannot be
geocoded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from geopy.exc import GeocoderServiceError, GeocoderTimedOut
from geopy.geocoders import Nominatim

from routeplanner.config import Settings
from routeplanner.inputs import is_valid_postal

logger = logging.getLogger(__name__)

_geocoder: Optional[Nominatim] = None
_settings = Settings.from_env()


@dataclass(frozen=True)
class GeocodeResult:
    latitude: float
    longitude: float
    address: str
    postal_mismatch: bool = False

    @property
    def coords(self):
        return self.latitude, self.longitude


def configure(settings: Settings) -> None:
    """Use ``settings`` for subsequent lookups and drop cached results."""
    global _settings, _geocoder
    _settings = settings
    _geocoder = None
    clear_cache()


def _get_geocoder() -> Nominatim:
    """Return a singleton Nominatim geocoder instance."""
    global _geocoder
    if _geocoder is None:
        # Nominatim's usage policy requires a custom user agent.
        _geocoder = Nominatim(user_agent=_settings.user_agent)
    return _geocoder


def _query(geocoder: Nominatim, query: str, timeout: float):
    if is_valid_postal(query):
        return geocoder.geocode(
            {"postalcode": query},
            country_codes=_settings.country_code,
            addressdetails=True,
            timeout=timeout,
        )
    return geocoder.geocode(
        query,
        country_codes=_settings.country_code,
        addressdetails=True,
        timeout=timeout,
    )


def _to_result(query: str, location) -> GeocodeResult:
    details = (getattr(location, "raw", None) or {}).get("address") or {}
    reported_postal = str(details.get("postcode", "")).replace(" ", "")
    mismatch = bool(is_valid_postal(query) and reported_postal and reported_postal != query)
    return GeocodeResult(
        latitude=location.latitude,
        longitude=location.longitude,
        address=location.address or "",
        postal_mismatch=mismatch,
    )


class _LookupFailed(Exception):
    """Raised inside the cached lookup so that failures are not cached."""


@lru_cache(maxsize=256)
def _cached_lookup(query: str) -> Optional[GeocodeResult]:
    geocoder = _get_geocoder()
    timeout = _settings.geocode_timeout
    try:
        location = _query(geocoder, query, timeout)
    except GeocoderTimedOut:
        logger.info("Geocoding %r timed out, retrying", query)
        try:
            location = _query(geocoder, query, timeout * 2)
        except (GeocoderTimedOut, GeocoderServiceError) as exc:
            raise _LookupFailed(str(exc)) from exc
    except GeocoderServiceError as exc:
        raise _LookupFailed(str(exc)) from exc
    if location is None:
        logger.info("No geocoding result for %r", query)
        return None
    return _to_result(query, location)


def clear_cache() -> None:
    _cached_lookup.cache_clear()


def geocode_location(query: str) -> Optional[GeocodeResult]:
    """Geocode a postal code or address.

    To reduce API calls, answers from the service are cached in memory,
    including "not found". If a timeout occurs, the request is retried
    once with a longer timeout. Service errors are logged, ``None`` is
    returned and nothing is cached, so the next call asks again.

    Args:
        query: A 6 digit postal code or free form address.

    Returns:
        A ``GeocodeResult`` if geocoding succeeds, otherwise ``None``.
    """
    query = query.strip()
    if not query:
        return None
    try:
        return _cached_lookup(query)
    except _LookupFailed as exc:
        logger.warning("Geocoding %r failed: %s", query, exc)
        return None
