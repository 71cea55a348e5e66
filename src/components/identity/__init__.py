"""
Identity component - visitor and session resolution.
"""

from .component import (
    IdentityResolver,
    InMemoryIdentityStore,
    create_identity_resolver,
    generate_token,
    is_valid_token,
)
from .models import (
    LAST_ACTIVITY_KEY,
    SESSION_ID_KEY,
    SESSION_START_KEY,
    VISITOR_ID_KEY,
    IdentityConfig,
    IdentityStoreError,
    ResolvedIdentity,
    SessionState,
)
from .ports import IdentityStorePort, TimePort

__all__ = [
    # Resolver
    "IdentityResolver",
    "create_identity_resolver",
    "generate_token",
    "is_valid_token",
    # Stores
    "IdentityStorePort",
    "InMemoryIdentityStore",
    "IdentityStoreError",
    # Models
    "IdentityConfig",
    "ResolvedIdentity",
    "SessionState",
    "TimePort",
    # Slots
    "LAST_ACTIVITY_KEY",
    "SESSION_ID_KEY",
    "SESSION_START_KEY",
    "VISITOR_ID_KEY",
]
