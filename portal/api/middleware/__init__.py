"""HTTP middleware: request correlation and sign-in throttling."""

from portal.api.middleware.rate_limit import RateLimitMiddleware
from portal.api.middleware.request_id import RequestIdMiddleware

__all__ = ["RateLimitMiddleware", "RequestIdMiddleware"]
