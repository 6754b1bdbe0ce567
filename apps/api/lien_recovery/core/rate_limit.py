"""Rate limiting configuration for the API."""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from lien_recovery.core.config import Settings

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")


def create_limiter(config: Settings) -> Limiter:
    """
    Build the request limiter.

    Constructed once by the app factory and stored on ``app.state.limiter``
    so each app instance (and each test client) owns its own counters.
    """
    default_limits = (
        []
        if IS_TESTING or config.RATE_LIMIT_API <= 0
        else [f"{config.RATE_LIMIT_API}/minute"]
    )
    storage_uri = "memory://" if IS_TESTING else config.RATE_LIMIT_STORAGE_URI
    return Limiter(
        key_func=get_remote_address,
        storage_uri=storage_uri,
        default_limits=default_limits,
    )
