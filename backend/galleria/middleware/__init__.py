"""Middleware modules for production-ready features"""
from galleria.middleware.monitoring import (
    MonitoringMiddleware,
    record_auth_failure,
    record_token_revoked,
    record_tokens_issued,
)
from galleria.middleware.rate_limit import get_rate_limit, limiter

__all__ = [
    "MonitoringMiddleware",
    "record_auth_failure",
    "record_token_revoked",
    "record_tokens_issued",
    "limiter",
    "get_rate_limit",
]
