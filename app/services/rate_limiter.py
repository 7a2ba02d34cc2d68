"""
Per-identity request quotas for AI calls.

The check and the increment happen as one step for a given identity (a lock
in memory, a single $inc upsert in Mongo) so concurrent requests from the
same caller cannot slip past the limit.
"""
import math
import threading
import time
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.models.ai_settings import PlanTier
from app.utils import config
from app.utils.exceptions import ExceptionContext, RateLimitExceeded
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

PUBLIC_BUCKET = "public"
AI_BUCKET = "ai"


class InMemoryRateLimiter:
    """Sliding window kept in process memory"""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._events: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def _sweep(self, cutoff: float) -> None:
        """Drop expired timestamps for every identity, and identities left with none"""
        for key in list(self._events):
            events = self._events[key]
            while events and events[0] <= cutoff:
                events.popleft()
            if not events:
                del self._events[key]

    async def hit(self, key: str, limit: int, window_seconds: int) -> int:
        """Record one request for key; returns how many remain in the window"""
        now = self._clock()
        cutoff = now - window_seconds

        with self._lock:
            self._sweep(cutoff)
            events = self._events.setdefault(key, deque())

            if len(events) >= limit:
                oldest = events[0] if events else now
                if not events:
                    del self._events[key]
                retry_after = max(1, math.ceil(oldest + window_seconds - now))
                raise RateLimitExceeded(limit=limit, window=window_seconds, retry_after=retry_after)

            events.append(now)
            return limit - len(events)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._events)

    def reset(self):
        with self._lock:
            self._events.clear()


class MongoRateLimiter:
    """Fixed window shared by every worker through the rate_limits collection"""

    def __init__(self, collection=None, clock=time.time):
        if collection is None:
            from app.services.db import rate_limits_coll
            collection = rate_limits_coll
        self._coll = collection
        self._clock = clock

    async def _increment(self, key: str, window_start: int, window_seconds: int):
        expires_at = datetime.fromtimestamp(window_start + window_seconds, tz=timezone.utc)
        return await self._coll.find_one_and_update(
            {"key": key, "window_start": window_start},
            {"$inc": {"count": 1}, "$setOnInsert": {"expires_at": expires_at}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    async def hit(self, key: str, limit: int, window_seconds: int) -> int:
        now = self._clock()
        window_start = int(now // window_seconds * window_seconds)

        with ExceptionContext("rate_limit_increment", collection="rate_limits", logger=logger, key=key):
            try:
                doc = await self._increment(key, window_start, window_seconds)
            except DuplicateKeyError:
                # two first-hits raced on the upsert; the document exists now
                doc = await self._increment(key, window_start, window_seconds)

        count = int(doc.get("count", 0))
        if count > limit:
            retry_after = max(1, math.ceil(window_start + window_seconds - now))
            raise RateLimitExceeded(limit=limit, window=window_seconds, retry_after=retry_after)
        return limit - count


_limiter = None


def get_rate_limiter():
    global _limiter
    if _limiter is None:
        if config.RATE_LIMIT_BACKEND == "mongo":
            _limiter = MongoRateLimiter()
        else:
            _limiter = InMemoryRateLimiter()
        logger.info(f"Rate limiter backend: {_limiter.__class__.__name__}")
    return _limiter


def limit_for(plan: PlanTier, bucket: str = AI_BUCKET) -> int:
    if bucket == PUBLIC_BUCKET:
        return config.RATE_LIMIT_PUBLIC
    return config.RATE_LIMIT_PRO if plan == PlanTier.PRO else config.RATE_LIMIT_FREE


async def check_rate_limit(identity: str, plan: PlanTier = PlanTier.FREE, bucket: str = AI_BUCKET) -> None:
    """Raises RateLimitExceeded when identity is over quota; no retry happens here"""
    limit = limit_for(plan, bucket)
    key = f"{bucket}:{identity}"
    try:
        remaining = await get_rate_limiter().hit(key, limit, config.RATE_LIMIT_WINDOW_SECONDS)
    except RateLimitExceeded:
        logger.warning(f"Rate limit exceeded for {key} (limit {limit}/{config.RATE_LIMIT_WINDOW_SECONDS}s)")
        raise
    logger.debug(f"Rate limit ok for {key}: {remaining} remaining")


def client_fingerprint(request) -> str:
    """Best-effort identity for anonymous callers: the client IP"""
    if config.TRUST_X_FORWARDED_FOR:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return f"ip:{first_hop}"
    host = request.client.host if request.client else None
    return f"ip:{host or 'unknown'}"
