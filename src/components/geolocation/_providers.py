"""
HTTP location providers and the IP-echo lookup.

Providers disagree on field names; normalize_location maps them into one
Location shape:

    country  <- country | country_name
    region   <- regionName | region
    city     <- city
    latitude <- lat | latitude
    longitude <- lon | longitude
"""

from __future__ import annotations

from typing import Any

import httpx

from .models import GeolocationError, Location


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _to_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalize_location(data: dict[str, Any]) -> Location:
    """Map a provider payload to a Location."""
    return Location(
        country=_first(data, "country", "country_name"),
        region=_first(data, "regionName", "region"),
        city=_first(data, "city"),
        latitude=_to_float(_first(data, "lat", "latitude")),
        longitude=_to_float(_first(data, "lon", "longitude")),
    )


async def fetch_public_ip(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
) -> str:
    """Ask an IP-echo service for the caller's public address."""
    try:
        response = await client.get(url, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise GeolocationError(f"IP lookup failed: {e}") from e

    ip = data.get("ip") if isinstance(data, dict) else None
    if not ip or not isinstance(ip, str):
        raise GeolocationError("IP lookup returned no address")
    return ip


class JsonLocationProvider:
    """Provider returning a JSON object for GET url_template.format(ip=...)."""

    name = "json"

    def __init__(self, url_template: str, name: str | None = None) -> None:
        self.url_template = url_template
        if name:
            self.name = name

    def is_success(self, data: dict[str, Any]) -> bool:
        return bool(_first(data, "country", "country_name"))

    async def lookup(self, ip: str, client: httpx.AsyncClient) -> Location:
        url = self.url_template.format(ip=ip)
        try:
            response = await client.get(url)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise GeolocationError(f"{self.name}: {e}") from e

        if not isinstance(data, dict) or not self.is_success(data):
            raise GeolocationError(f"{self.name}: lookup rejected for {ip}")
        return normalize_location(data)


class IpApiProvider(JsonLocationProvider):
    """ip-api.com: reports status "success" or "fail"."""

    name = "ip-api"

    def __init__(
        self,
        url_template: str = (
            "http://ip-api.com/json/{ip}?fields=status,message,country,regionName,city,lat,lon"
        ),
        name: str | None = None,
    ) -> None:
        super().__init__(url_template, name)

    def is_success(self, data: dict[str, Any]) -> bool:
        return data.get("status") == "success"


class IpApiCoProvider(JsonLocationProvider):
    """ipapi.co: sets "error": true on failure."""

    name = "ipapi-co"

    def __init__(
        self,
        url_template: str = "https://ipapi.co/{ip}/json/",
        name: str | None = None,
    ) -> None:
        super().__init__(url_template, name)

    def is_success(self, data: dict[str, Any]) -> bool:
        return not data.get("error") and super().is_success(data)


_KNOWN_PROVIDERS: dict[str, type[JsonLocationProvider]] = {
    IpApiProvider.name: IpApiProvider,
    IpApiCoProvider.name: IpApiCoProvider,
}


def build_provider(name: str, url_template: str) -> JsonLocationProvider:
    """Build a provider by configured name; unknown names get the generic parser."""
    cls = _KNOWN_PROVIDERS.get(name, JsonLocationProvider)
    return cls(url_template=url_template, name=name)
