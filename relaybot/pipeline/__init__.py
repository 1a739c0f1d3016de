"""Built-in middleware for the agent pipeline."""

from relaybot.pipeline.access import AllowListMiddleware
from relaybot.pipeline.dedup import DeduplicationMiddleware
from relaybot.pipeline.log import LoggingMiddleware
from relaybot.pipeline.ratelimit import RateLimitMiddleware

__all__ = [
    "AllowListMiddleware",
    "DeduplicationMiddleware",
    "LoggingMiddleware",
    "RateLimitMiddleware",
]
