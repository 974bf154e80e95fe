"""Rate limiting shared by all routers."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from ride_lifecycle.config import settings

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
