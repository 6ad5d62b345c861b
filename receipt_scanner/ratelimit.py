import os

from slowapi import Limiter
from slowapi.util import get_remote_address

SCAN_RATE_LIMIT = os.getenv("SCAN_RATE_LIMIT", "30/minute")

limiter = Limiter(
    key_func=get_remote_address,
    enabled=os.getenv("RATELIMIT_ENABLED", "true").lower() == "true",
)
