"""
Rate limiting for the session API.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from agrisim.config import settings


limiter = Limiter(key_func=get_remote_address)

# Applied to simulation submissions, the only costly backend call
SIMULATION_RATE_LIMIT = f"{settings.rate_limit_requests}/minute"
