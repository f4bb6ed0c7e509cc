"""Configuration for the delivery route planner."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ENV_PREFIX = "ROUTEPLANNER_"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure and return the application logger."""
    logger = logging.getLogger("routeplanner")
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Settings shared by the geocoding, routing and planning modules."""

    # Geocoding
    country_code: str = "sg"
    user_agent: str = "routeplanner_app"
    geocode_timeout: float = 10.0

    # Routing (OSRM)
    osrm_url: str = "https://router.project-osrm.org"
    osrm_profile: str = "driving"
    request_timeout: float = 30.0
    max_matrix_elements: int = 100

    # Offline fallback when OSRM cannot be reached
    haversine_fallback: bool = True
    fallback_speed_kmh: float = 40.0

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Build settings from ``ROUTEPLANNER_*`` environment variables.

        Unknown, empty or malformed variables keep their defaults, e.g.
        ``ROUTEPLANNER_OSRM_URL=http://localhost:5000``.
        """
        environ = os.environ if environ is None else environ
        settings = cls()
        for name, default in list(vars(settings).items()):
            key = ENV_PREFIX + name.upper()
            raw = environ.get(key)
            if raw is None or raw == "":
                continue
            try:
                if isinstance(default, bool):
                    value = _env_bool(raw)
                elif isinstance(default, int):
                    value = int(raw)
                elif isinstance(default, float):
                    value = float(raw)
                else:
                    value = raw
            except ValueError:
                logger.warning("Ignoring %s=%r, keeping %r", key, raw, default)
                continue
            setattr(settings, name, value)
        return settings

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.INFO)
