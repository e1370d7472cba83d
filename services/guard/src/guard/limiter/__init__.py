"""Adaptive rate limiting."""

from .rate_limiter import AdaptiveRateLimiter, RateState, origin_key

__all__ = ["AdaptiveRateLimiter", "RateState", "origin_key"]
