"""
Bot filter and device classification.

Classifies a request's client signature (User-Agent) before anything is
recorded.

Key behaviors:
- Case-insensitive substring match against a fixed pattern list
- Missing/empty signatures are treated as real visitors
- Best-effort heuristic, not a security boundary
- Device class is binary: "Mobile" substring -> Mobile, else Desktop
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Literal

DeviceClass = Literal["Mobile", "Desktop"]

MOBILE: DeviceClass = "Mobile"
DESKTOP: DeviceClass = "Desktop"


# --- Configuration ---


@dataclass(frozen=True)
class BotFilterConfig:
    """Bot detection configuration."""

    enabled: bool = True

    # Generic markers first, then named crawlers
    bot_patterns: tuple[str, ...] = field(
        default_factory=lambda: (
            "bot",
            "crawler",
            "spider",
            "googlebot",
            "bingbot",
            "yahoo",
            "baidu",
            "yandex",
            "duckduckbot",
        )
    )


DEFAULT_CONFIG = BotFilterConfig()


@lru_cache(maxsize=32)
def _compile(patterns: tuple[str, ...]) -> re.Pattern[str] | None:
    if not patterns:
        return None
    return re.compile("|".join(re.escape(p) for p in patterns), re.IGNORECASE)


# --- Classification ---


def is_bot(client_signature: str | None, config: BotFilterConfig = DEFAULT_CONFIG) -> bool:
    """Return True if the client signature looks like automated traffic."""
    if not config.enabled or not client_signature:
        return False

    pattern = _compile(config.bot_patterns)
    if pattern is None:
        return False
    return pattern.search(client_signature) is not None


def classify_device(client_signature: str | None) -> DeviceClass:
    """Classify a client signature as Mobile or Desktop."""
    if client_signature and "Mobile" in client_signature:
        return MOBILE
    return DESKTOP


def config_from_patterns(patterns: list[str] | tuple[str, ...] | None) -> BotFilterConfig:
    """Build a config from a rules list, keeping the defaults when empty."""
    if not patterns:
        return DEFAULT_CONFIG
    return BotFilterConfig(bot_patterns=tuple(p.lower() for p in patterns))
