"""
backend/app/redis_client.py

Shared Redis connection. redis-py connects lazily, so importing this module
never blocks on an unreachable server.
"""

import redis

from .config import settings

redis_client = redis.from_url(settings.redis_url, decode_responses=True)
