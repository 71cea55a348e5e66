from typing import Protocol


class ChartCachePort(Protocol):
    """Rendered charts keyed by a content hash."""

    def load(self, key: str) -> bytes | None:
        """Cached PNG, or None on a miss."""
        ...

    def store(self, key: str, data: bytes) -> None: ...

    def clear(self) -> int:
        """Drop every cached chart; returns how many were removed."""
        ...
