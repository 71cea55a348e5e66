# Festival analytics: ports (Protocol interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.email import (
    EmailAddress,
    EmailPort,
    EmailResult,
    EmailStatus,
)

__all__ = [
    "EmailAddress",
    "EmailPort",
    "EmailResult",
    "EmailStatus",
]
