"""
Request rate limits, enforced by slowapi.

Counters are fixed 15 minute windows keyed by client address, held in the
`limits` in-memory storage (expired windows are evicted by the storage).
Limit strings are read on every request so they can be tuned at runtime.
"""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

IS_PRODUCTION = os.getenv("APP_ENV", "development") == "production"

API_RATE_LIMIT = "100/15 minutes" if IS_PRODUCTION else "1000/15 minutes"
LOGIN_RATE_LIMIT = "5/15 minutes" if IS_PRODUCTION else "50/15 minutes"


def api_rate_limit() -> str:
    return API_RATE_LIMIT


def login_rate_limit() -> str:
    return LOGIN_RATE_LIMIT


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[api_rate_limit],
    strategy="fixed-window",
    storage_uri="memory://",
)
