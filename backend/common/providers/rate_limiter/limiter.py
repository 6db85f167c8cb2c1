"""Global rate limiter instance for SlowAPI."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from common.core.config import settings

# Storage comes from settings: "memory://" for a single instance, a redis://
# URI when several API instances must share counters.
# Multiple limits: both must be satisfied (whichever is hit first applies)
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["10/second", "300/minute"],
    storage_uri=settings.rate_limit_storage_uri,
)
