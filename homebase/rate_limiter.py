"""
Hybrid in-memory + Redis rate limiting for public endpoints.
Counts live in process memory and are synced to Redis periodically;
without Redis the limiter keeps working from memory alone.
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None
_redis_unavailable = False

# Format: {key: {'count': int, 'reset_time': int, 'last_redis_sync': int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

MEMORY_CACHE_SYNC_INTERVAL = 10  # seconds


def get_redis_client() -> Optional[redis.Redis]:
    """Get or create the Redis client; None when Redis cannot be reached"""
    global redis_client, _redis_unavailable

    if redis_client is not None or _redis_unavailable:
        return redis_client

    redis_url = os.getenv("REDIS_URL")
    try:
        if redis_url:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
        else:
            client = redis.Redis(
                host=os.getenv("REDIS_HOST", "localhost"),
                port=int(os.getenv("REDIS_PORT", "6379")),
                password=os.getenv("REDIS_PASSWORD"),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        client.ping()
        redis_client = client
        logger.info("Redis connected successfully for rate limiting")
    except Exception as e:
        _redis_unavailable = True
        logger.warning(f"⚠️ Redis unavailable, rate limiting will use memory only: {e}")

    return redis_client


def _prune_expired(current_time: int) -> None:
    """Drop entries whose window has ended; caller holds cache_lock"""
    expired = [key for key, entry in memory_cache.items() if current_time >= entry["reset_time"]]
    for key in expired:
        del memory_cache[key]


def check_rate_limit(
    key: str, limit: int, window_seconds: int, client: Optional[redis.Redis] = None
) -> tuple[bool, int, int]:
    """Count one request against key.

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    current_time = int(time.time())

    with cache_lock:
        entry = memory_cache.get(key)
        if entry is None:
            _prune_expired(current_time)
            entry = {"count": 0, "reset_time": current_time + window_seconds, "last_redis_sync": 0}
            if client is not None:
                try:
                    redis_count = client.get(key)
                    redis_ttl = client.ttl(key)
                    if redis_count and redis_ttl > 0:
                        entry = {
                            "count": int(redis_count),
                            "reset_time": current_time + redis_ttl,
                            "last_redis_sync": current_time,
                        }
                except Exception as e:
                    logger.warning(f"⚠️ Failed to load from Redis, using memory only: {e}")
            memory_cache[key] = entry

        if current_time >= entry["reset_time"]:
            entry["count"] = 0
            entry["reset_time"] = current_time + window_seconds
            entry["last_redis_sync"] = 0

        is_allowed = entry["count"] < limit
        if is_allowed:
            entry["count"] += 1

        if client is not None and current_time - entry["last_redis_sync"] >= MEMORY_CACHE_SYNC_INTERVAL:
            try:
                client.set(key, entry["count"], ex=window_seconds)
                entry["last_redis_sync"] = current_time
            except Exception as e:
                logger.warning(f"⚠️ Failed to sync to Redis: {e}")

        ttl = max(0, entry["reset_time"] - current_time)
        return is_allowed, entry["count"], ttl


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a per-IP rate limiter dependency

    Example usage:
        apply_limit = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="partner_apply")

        @router.post("/apply")
        async def apply(data: PartnerApplication, _: None = Depends(apply_limit)):
            ...
    """

    async def rate_limiter(request: Request):
        key = f"{key_prefix}:{client_ip(request)}"
        is_allowed, current_count, ttl = check_rate_limit(
            key, limit, window_seconds, get_redis_client()
        )
        if not is_allowed:
            logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit}")
            raise HTTPException(
                status_code=429,
                detail={
                    "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                    "retry_after": ttl,
                },
                headers={"Retry-After": str(ttl)},
            )

    return rate_limiter
