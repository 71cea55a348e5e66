"""
Tests for the geolocation resolver, provider race and payload normalization.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from src.components.geolocation import (
    GeolocationConfig,
    GeolocationError,
    GeolocationResolver,
    IpApiCoProvider,
    IpApiProvider,
    JsonLocationProvider,
    Location,
    build_provider,
    create_geolocation_resolver,
    fetch_public_ip,
    first_success,
    is_public_ip,
    normalize_location,
)

IP_ECHO_URL = "https://echo.test/?format=json"

IP_API_OK = {
    "status": "success",
    "country": "France",
    "regionName": "Bourgogne-Franche-Comté",
    "city": "Besançon",
    "lat": 47.24,
    "lon": 6.02,
}
IPAPI_CO_OK = {
    "country_name": "Switzerland",
    "region": "Vaud",
    "city": "Lausanne",
    "latitude": 46.52,
    "longitude": 6.63,
}


# --- Fakes ---


class FakeProvider:
    """Provider answering after a delay, or failing."""

    def __init__(self, name: str, result: Location | None, delay: float = 0.0) -> None:
        self.name = name
        self.result = result
        self.delay = delay
        self.calls = 0
        self.cancelled = False

    async def lookup(self, ip: str, client: httpx.AsyncClient) -> Location:
        self.calls += 1
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.result is None:
            raise GeolocationError(f"{self.name} failed")
        return self.result


def mock_client(routes: dict[str, object]) -> httpx.AsyncClient:
    """AsyncClient answering by host; a value of Exception raises a transport error."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = routes.get(request.url.host)
        if body is None:
            return httpx.Response(404)
        if body is Exception:
            raise httpx.ConnectError("unreachable", request=request)
        return httpx.Response(200, content=json.dumps(body))

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def run(coro):
    return asyncio.run(coro)


PARIS = Location(country="France", city="Paris", latitude=48.85, longitude=2.35)
LYON = Location(country="France", city="Lyon", latitude=45.76, longitude=4.83)


# --- Normalization ---


class TestNormalizeLocation:
    def test_ip_api_fields(self) -> None:
        loc = normalize_location(IP_API_OK)
        assert loc == Location(
            country="France",
            region="Bourgogne-Franche-Comté",
            city="Besançon",
            latitude=47.24,
            longitude=6.02,
        )

    def test_ipapi_co_fields(self) -> None:
        loc = normalize_location(IPAPI_CO_OK)
        assert loc.country == "Switzerland"
        assert loc.region == "Vaud"
        assert loc.latitude == 46.52
        assert loc.longitude == 6.63

    def test_missing_fields_are_none(self) -> None:
        loc = normalize_location({"country": "France"})
        assert loc.city is None
        assert loc.has_coordinates is False

    def test_string_coordinates_are_parsed(self) -> None:
        loc = normalize_location({"lat": "47.1", "lon": "bad"})
        assert loc.latitude == 47.1
        assert loc.longitude is None


class TestIsPublicIp:
    @pytest.mark.parametrize("ip", ["8.8.8.8", "2001:4860:4860::8888"])
    def test_public(self, ip: str) -> None:
        assert is_public_ip(ip) is True

    @pytest.mark.parametrize("ip", [None, "", "127.0.0.1", "10.0.0.4", "192.168.1.2", "nope"])
    def test_not_public(self, ip: str | None) -> None:
        assert is_public_ip(ip) is False


# --- Providers ---


class TestProviders:
    def test_ip_api_success(self) -> None:
        async def go() -> Location:
            async with mock_client({"ip-api.com": IP_API_OK}) as client:
                return await IpApiProvider().lookup("8.8.8.8", client)

        assert run(go()).city == "Besançon"

    def test_ip_api_fail_status_raises(self) -> None:
        async def go() -> None:
            body = {"status": "fail", "message": "reserved range"}
            async with mock_client({"ip-api.com": body}) as client:
                await IpApiProvider().lookup("8.8.8.8", client)

        with pytest.raises(GeolocationError):
            run(go())

    def test_ipapi_co_error_flag_raises(self) -> None:
        async def go() -> None:
            body = {"error": True, "reason": "RateLimited", "country_name": "X"}
            async with mock_client({"ipapi.co": body}) as client:
                await IpApiCoProvider().lookup("8.8.8.8", client)

        with pytest.raises(GeolocationError):
            run(go())

    def test_http_error_raises_geolocation_error(self) -> None:
        async def go() -> None:
            async with mock_client({}) as client:
                await IpApiCoProvider().lookup("8.8.8.8", client)

        with pytest.raises(GeolocationError):
            run(go())

    def test_url_template_receives_ip(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=IP_API_OK)

        async def go() -> None:
            transport = httpx.MockTransport(handler)
            async with httpx.AsyncClient(transport=transport) as client:
                await JsonLocationProvider("https://geo.test/{ip}/json").lookup("1.2.3.4", client)

        run(go())
        assert seen == ["https://geo.test/1.2.3.4/json"]

    def test_build_provider_by_name(self) -> None:
        assert isinstance(build_provider("ip-api", "http://a/{ip}"), IpApiProvider)
        assert isinstance(build_provider("ipapi-co", "http://b/{ip}"), IpApiCoProvider)
        generic = build_provider("other", "http://c/{ip}")
        assert type(generic) is JsonLocationProvider
        assert generic.name == "other"


class TestFetchPublicIp:
    def test_returns_echoed_ip(self) -> None:
        async def go() -> str:
            async with mock_client({"echo.test": {"ip": "203.0.113.9"}}) as client:
                return await fetch_public_ip(client, IP_ECHO_URL, 1.0)

        assert run(go()) == "203.0.113.9"

    def test_missing_ip_raises(self) -> None:
        async def go() -> str:
            async with mock_client({"echo.test": {}}) as client:
                return await fetch_public_ip(client, IP_ECHO_URL, 1.0)

        with pytest.raises(GeolocationError):
            run(go())


# --- Race ---


class TestFirstSuccess:
    def _race(self, providers: list[FakeProvider], timeout: float = 1.0) -> Location | None:
        async def go() -> Location | None:
            async with mock_client({}) as client:
                return await first_success(providers, "8.8.8.8", client, timeout)

        return run(go())

    def test_earliest_success_wins(self) -> None:
        slow = FakeProvider("slow", PARIS, delay=0.2)
        fast = FakeProvider("fast", LYON, delay=0.01)

        assert self._race([slow, fast]) == LYON

    def test_loser_is_cancelled(self) -> None:
        slow = FakeProvider("slow", PARIS, delay=0.5)
        fast = FakeProvider("fast", LYON, delay=0.0)

        self._race([slow, fast])
        assert slow.cancelled is True

    def test_failure_falls_through_to_other_provider(self) -> None:
        broken = FakeProvider("broken", None, delay=0.0)
        ok = FakeProvider("ok", PARIS, delay=0.05)

        assert self._race([broken, ok]) == PARIS

    def test_all_failing_returns_none(self) -> None:
        providers = [FakeProvider("a", None), FakeProvider("b", None, delay=0.01)]
        assert self._race(providers) is None

    def test_timeout_returns_none(self) -> None:
        providers = [FakeProvider("slow", PARIS, delay=1.0)]
        assert self._race(providers, timeout=0.05) is None
        assert providers[0].cancelled is True

    def test_simultaneous_successes_resolve_in_provider_order(self) -> None:
        first = FakeProvider("first", PARIS)
        second = FakeProvider("second", LYON)
        assert self._race([first, second]) == PARIS

    def test_no_providers(self) -> None:
        assert self._race([]) is None

    def test_every_provider_runs_once(self) -> None:
        providers = [FakeProvider("a", None), FakeProvider("b", PARIS, delay=0.01)]
        self._race(providers)
        assert [p.calls for p in providers] == [1, 1]


# --- Resolver ---


def make_resolver(
    routes: dict[str, object],
    providers: list | None = None,
    **config: object,
) -> GeolocationResolver:
    return create_geolocation_resolver(
        providers=providers if providers is not None else [IpApiProvider(), IpApiCoProvider()],
        config=GeolocationConfig(ip_echo_url=IP_ECHO_URL, **config),  # type: ignore[arg-type]
        client_factory=lambda: mock_client(routes),
    )


class TestGeolocationResolver:
    def test_resolves_public_ip_without_echo(self) -> None:
        resolver = make_resolver({"ip-api.com": IP_API_OK, "ipapi.co": IPAPI_CO_OK})
        loc = run(resolver.resolve("8.8.8.8"))

        assert loc is not None
        assert loc.country in {"France", "Switzerland"}

    def test_private_ip_uses_echo_service(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.host)
            if request.url.host == "echo.test":
                return httpx.Response(200, json={"ip": "203.0.113.9"})
            return httpx.Response(200, json=IP_API_OK)

        resolver = create_geolocation_resolver(
            providers=[IpApiProvider()],
            config=GeolocationConfig(ip_echo_url=IP_ECHO_URL),
            client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        loc = run(resolver.resolve("192.168.0.10"))

        assert loc is not None and loc.city == "Besançon"
        assert seen[0] == "echo.test"

    def test_one_provider_down_still_resolves(self) -> None:
        resolver = make_resolver({"ip-api.com": Exception, "ipapi.co": IPAPI_CO_OK})
        loc = run(resolver.resolve("8.8.8.8"))

        assert loc is not None and loc.city == "Lausanne"

    def test_echo_failure_returns_none(self) -> None:
        resolver = make_resolver({"echo.test": Exception, "ip-api.com": IP_API_OK})
        assert run(resolver.resolve(None)) is None

    def test_all_providers_down_returns_none(self) -> None:
        resolver = make_resolver({"ip-api.com": Exception, "ipapi.co": Exception})
        assert run(resolver.resolve("8.8.8.8")) is None
        assert resolver.consecutive_failures == 1

    def test_disabled_returns_none(self) -> None:
        resolver = make_resolver({"ip-api.com": IP_API_OK}, enabled=False)
        assert run(resolver.resolve("8.8.8.8")) is None

    def test_breaker_trips_after_consecutive_failures(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(500)

        resolver = create_geolocation_resolver(
            providers=[IpApiProvider()],
            config=GeolocationConfig(ip_echo_url=IP_ECHO_URL, max_consecutive_failures=3),
            client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        for _ in range(3):
            assert run(resolver.resolve("8.8.8.8")) is None
        assert resolver.is_tripped is True

        calls_before = calls
        assert run(resolver.resolve("8.8.8.8")) is None
        assert calls == calls_before

        resolver.reset()
        assert resolver.is_tripped is False

    def test_success_resets_failure_count(self) -> None:
        routes: dict[str, object] = {"ip-api.com": Exception}
        resolver = make_resolver(routes, providers=[IpApiProvider()])

        run(resolver.resolve("8.8.8.8"))
        assert resolver.consecutive_failures == 1

        routes["ip-api.com"] = IP_API_OK
        assert run(resolver.resolve("8.8.8.8")) is not None
        assert resolver.consecutive_failures == 0

    def test_zero_threshold_never_trips(self) -> None:
        resolver = make_resolver({}, max_consecutive_failures=0)
        for _ in range(5):
            run(resolver.resolve("8.8.8.8"))
        assert resolver.is_tripped is False
