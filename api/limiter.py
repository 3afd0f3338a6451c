"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (to mount as middleware) and by the route modules
that apply per-route limits with @limiter.limit().

A single shared instance means all routes share one in-memory counter store.
Separate instances per module would each keep an isolated counter and the
limits would never trigger.


RATE_LIMIT_ENABLED=false turns every limit off (the test suite does this).
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=get_settings().rate_limit_enabled,
)
