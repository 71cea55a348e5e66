"""
On-disk cache for rendered dashboard charts.

Keys are the renderer's content hashes (`<32 hex>.png`); anything else is
rejected, so a key can never name a file outside the cache directory.
The directory keeps at most `max_entries` charts; the least recently
written are pruned on store.
"""

import logging
import os
import re
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[0-9a-f]{32}\.png$")

DEFAULT_MAX_ENTRIES = 64


class FileChartCache:
    def __init__(self, cache_dir: str | Path, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.cache_dir = Path(cache_dir)
        self.max_entries = max_entries
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid chart cache key: {key!r}")
        return self.cache_dir / key

    def load(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def store(self, key: str, data: bytes) -> None:
        path = self._path(key)
        # One temp file per writer; readers never see a partial PNG
        with tempfile.NamedTemporaryFile(
            dir=self.cache_dir, prefix=".chart-", suffix=".tmp", delete=False
        ) as tmp:
            tmp.write(data)
        try:
            os.replace(tmp.name, path)
        except OSError:
            Path(tmp.name).unlink(missing_ok=True)
            raise
        self._prune()

    def _prune(self) -> None:
        entries: list[tuple[float, Path]] = []
        for path in self.cache_dir.glob("*.png"):
            try:
                entries.append((path.stat().st_mtime, path))
            except FileNotFoundError:
                continue
        excess = len(entries) - self.max_entries
        if excess <= 0:
            return
        entries.sort()
        for _, path in entries[:excess]:
            path.unlink(missing_ok=True)
        logger.debug("Pruned %d cached chart(s) from %s", excess, self.cache_dir)

    def clear(self) -> int:
        removed = 0
        for path in self.cache_dir.glob("*.png"):
            path.unlink(missing_ok=True)
            removed += 1
        logger.info("Cleared %d cached chart(s) from %s", removed, self.cache_dir)
        return removed
