"""
Geolocation component - IP to location lookup with a provider race.
"""

from ._providers import (
    IpApiCoProvider,
    IpApiProvider,
    JsonLocationProvider,
    build_provider,
    fetch_public_ip,
    normalize_location,
)
from .component import (
    GeolocationResolver,
    create_geolocation_resolver,
    first_success,
    is_public_ip,
)
from .models import GeolocationConfig, GeolocationError, Location
from .ports import LocationProvider

__all__ = [
    # Resolver
    "GeolocationResolver",
    "create_geolocation_resolver",
    "first_success",
    "is_public_ip",
    # Providers
    "IpApiCoProvider",
    "IpApiProvider",
    "JsonLocationProvider",
    "LocationProvider",
    "build_provider",
    "fetch_public_ip",
    "normalize_location",
    # Models
    "GeolocationConfig",
    "GeolocationError",
    "Location",
]
