"""
Geolocation component - best-effort IP to location lookup.

Steps:
1. Determine the visitor's public IP (request address, else IP-echo service)
2. Race every provider; the first successful answer wins
3. Normalize provider fields into one Location shape

Invariants:
- Any failing step yields None; nothing is raised to callers
- One resolution never retries
- After max_consecutive_failures resolutions in a row fail, lookups are
  skipped until a reset
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
from collections.abc import Callable, Sequence

import httpx

from ._providers import fetch_public_ip
from .models import DEFAULT_CONFIG, GeolocationConfig, GeolocationError, Location
from .ports import LocationProvider

logger = logging.getLogger(__name__)


def is_public_ip(ip: str | None) -> bool:
    """True for a routable address worth sending to a provider."""
    if not ip:
        return False
    try:
        return ipaddress.ip_address(ip).is_global
    except ValueError:
        return False


async def first_success(
    providers: Sequence[LocationProvider],
    ip: str,
    client: httpx.AsyncClient,
    timeout: float,
) -> Location | None:
    """
    Run all providers concurrently and return the earliest success.

    Failures are logged and skipped. Returns None when every provider
    fails or the timeout elapses first. Remaining lookups are cancelled
    once the outcome is known; their results are never used.
    """
    if not providers:
        return None

    order: dict[asyncio.Task[Location], int] = {}
    tasks: dict[asyncio.Task[Location], LocationProvider] = {}
    for index, provider in enumerate(providers):
        task = asyncio.create_task(provider.lookup(ip, client))
        tasks[task] = provider
        order[task] = index

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    pending: set[asyncio.Task[Location]] = set(tasks)

    try:
        while pending:
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning("Geolocation lookup timed out after %ss", timeout)
                return None

            done, pending = await asyncio.wait(
                pending,
                timeout=remaining,
                return_when=asyncio.FIRST_COMPLETED,
            )

            # Same-tick finishers resolve in provider order
            for task in sorted(done, key=order.__getitem__):
                exc = task.exception()
                if exc is None:
                    return task.result()
                logger.warning("Geolocation provider %s failed: %s", tasks[task].name, exc)

        return None
    finally:
        for task in pending:
            task.cancel()
        # Losers must settle before the shared client is closed
        await asyncio.gather(*pending, return_exceptions=True)


class GeolocationResolver:
    """Resolves a Location for the current visitor, or None."""

    def __init__(
        self,
        providers: Sequence[LocationProvider],
        config: GeolocationConfig | None = None,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._providers = list(providers)
        self._config = config or DEFAULT_CONFIG
        self._client_factory = client_factory or self._default_client
        self._failures = 0

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._config.lookup_timeout_seconds)

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    @property
    def is_tripped(self) -> bool:
        limit = self._config.max_consecutive_failures
        return limit > 0 and self._failures >= limit

    def reset(self) -> None:
        """Re-arm lookups after repeated failures."""
        self._failures = 0

    async def resolve(self, ip: str | None = None) -> Location | None:
        """
        Resolve the visitor's location.

        Args:
            ip: Visitor address if known. Missing or non-public addresses
                fall back to the IP-echo service.

        Returns:
            Location, or None when any step fails.
        """
        if not self._config.enabled:
            return None

        if self.is_tripped:
            logger.warning("Geolocation disabled after %d consecutive failures", self._failures)
            return None

        location: Location | None = None
        try:
            async with self._client_factory() as client:
                if not is_public_ip(ip):
                    ip = await fetch_public_ip(
                        client,
                        self._config.ip_echo_url,
                        self._config.ip_echo_timeout_seconds,
                    )
                location = await first_success(
                    self._providers,
                    ip,  # type: ignore[arg-type]
                    client,
                    self._config.lookup_timeout_seconds,
                )
        except (GeolocationError, httpx.HTTPError) as e:
            logger.warning("Error getting IP or location data: %s", e)

        if location is None:
            self._failures += 1
            logger.warning(
                "Geolocation attempt %d of %d failed",
                self._failures,
                self._config.max_consecutive_failures,
            )
        else:
            self._failures = 0

        return location


def create_geolocation_resolver(
    providers: Sequence[LocationProvider],
    config: GeolocationConfig | None = None,
    client_factory: Callable[[], httpx.AsyncClient] | None = None,
) -> GeolocationResolver:
    """Create a GeolocationResolver."""
    return GeolocationResolver(
        providers=providers,
        config=config,
        client_factory=client_factory,
    )
