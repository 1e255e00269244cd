"""Rate limiting for credential endpoints"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from galleria.config import settings


# Create limiter instance
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=settings.RATE_LIMIT_DEFAULT,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


# Rate limit configurations for different endpoints
RATE_LIMITS = {
    # Credential checks - keep brute forcing slow
    "signin": "10/minute",
    "signup": "5/minute",
    "refresh": "30/minute",
}


def get_rate_limit(endpoint: str) -> str:
    """Get rate limit for specific endpoint"""
    return RATE_LIMITS.get(endpoint, settings.RATE_LIMIT_DEFAULT[0])
