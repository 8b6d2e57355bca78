"""
Rate limiting package for the Gateway.

Holds the in-process token-bucket limiter and the helper that resolves a
caller's identity from the incoming request.
"""

from .token_bucket import RateBucket, RateDecision, RateLimitMiddleware, TokenBucketRateLimiter

__all__ = ["RateBucket", "RateDecision", "RateLimitMiddleware", "TokenBucketRateLimiter"]
