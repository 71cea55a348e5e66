"""
Geolocation component models.
"""

from __future__ import annotations

from dataclasses import dataclass


class GeolocationError(Exception):
    """An IP or location lookup step failed."""

    pass


@dataclass(frozen=True)
class Location:
    """Normalized location; every field is optional."""

    country: str | None = None
    region: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class GeolocationConfig:
    """Geolocation configuration."""

    enabled: bool = True
    ip_echo_url: str = "https://api.ipify.org?format=json"
    ip_echo_timeout_seconds: float = 5.0
    lookup_timeout_seconds: float = 5.0

    # 0 disables the breaker
    max_consecutive_failures: int = 3


DEFAULT_CONFIG = GeolocationConfig()
