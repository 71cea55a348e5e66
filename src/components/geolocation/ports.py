"""
Geolocation component port definitions.
"""

from __future__ import annotations

from typing import Protocol

import httpx

from .models import Location


class LocationProvider(Protocol):
    """An external IP -> location service."""

    name: str

    async def lookup(self, ip: str, client: httpx.AsyncClient) -> Location:
        """Look up an IP. Raises GeolocationError on any failure."""
        ...
