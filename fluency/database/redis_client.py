"""
Redis cache for assembled question details.
Each detail is stored under {module}_question:{id}:{complete|uncomplete}:{version}.
"""

import json
import logging
from typing import Optional
from uuid import UUID

import redis

from fluency import config

log = logging.getLogger(__name__)

COMPLETE = "complete"
UNCOMPLETE = "uncomplete"

SCAN_COUNT = 100


class CacheUnavailableError(RuntimeError):
    """Raised on writes while Redis is marked unhealthy by the monitor."""


def create_redis_client(url: Optional[str] = None) -> redis.Redis:
    return redis.from_url(url or config.REDIS_URL, decode_responses=True)


# ─── Key helpers ───────────────────────────────────────────────────────────────

def question_key(module: str, question_id: UUID, status: str, version: int) -> str:
    return f"{module}_question:{question_id}:{status}:{version}"


def question_pattern(module: str, question_id: UUID) -> str:
    return f"{module}_question:{question_id}:*"


def module_pattern(module: str) -> str:
    return f"{module}_question:*"


def key_version(key: str) -> int:
    """Version segment of a question key; -1 when it is not a number."""
    try:
        return int(key.rsplit(":", 1)[-1])
    except ValueError:
        return -1


class QuestionCache:
    """
    Versioned detail cache.

    Writing a version deletes the older keys of the same question; writes
    older than the cached version are skipped. Keys expire after ttl_seconds.
    """

    def __init__(self, client: redis.Redis, ttl_seconds: int = config.CACHE_TTL_SECONDS):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.healthy = True

    def _require_healthy(self):
        if not self.healthy:
            raise CacheUnavailableError("redis is marked unhealthy")

    # ─── Reads ─────────────────────────────────────────────────────────────────

    def get_detail(self, module: str, question_id: UUID) -> Optional[dict]:
        """First cached detail for the question, whatever its status/version."""
        if not self.healthy:
            return None
        for key in self.client.scan_iter(match=question_pattern(module, question_id), count=SCAN_COUNT):
            raw = self.client.get(key)
            if raw:
                return json.loads(raw)
        return None

    def has_version(self, module: str, question_id: UUID, version: int) -> bool:
        """True when a complete or uncomplete entry exists at exactly this version."""
        if not self.healthy:
            return False
        keys = [
            question_key(module, question_id, COMPLETE, version),
            question_key(module, question_id, UNCOMPLETE, version),
        ]
        return self.client.exists(*keys) > 0

    # ─── Writes ────────────────────────────────────────────────────────────────

    def set_detail(self, module: str, question_id: UUID, status: str, version: int, detail: dict) -> str:
        """
        Store a detail and drop the question's older keys. Returns the key that
        is current afterwards.

        A write older than a cached version is skipped, so projections published
        out of order never replace a newer one.
        """
        self._require_healthy()
        key = question_key(module, question_id, status, version)
        existing = {
            k: key_version(k)
            for k in self.client.scan_iter(match=question_pattern(module, question_id), count=SCAN_COUNT)
        }
        newest = max(existing, key=existing.get, default=None)
        if newest is not None and existing[newest] > version:
            log.debug(f"[CACHE] Skipped {key}; {newest} is newer")
            return newest

        self.client.setex(key, self.ttl_seconds, json.dumps(detail))
        stale = [k for k in existing if k != key]
        if stale:
            self.client.delete(*stale)
        return key

    def delete_question(self, module: str, question_id: UUID) -> int:
        self._require_healthy()
        return self._delete_pattern(question_pattern(module, question_id))

    def delete_module(self, module: str) -> int:
        self._require_healthy()
        return self._delete_pattern(module_pattern(module))

    def _delete_pattern(self, pattern: str) -> int:
        deleted = 0
        batch = []
        for key in self.client.scan_iter(match=pattern, count=SCAN_COUNT):
            batch.append(key)
            if len(batch) >= SCAN_COUNT:
                deleted += self.client.delete(*batch)
                batch = []
        if batch:
            deleted += self.client.delete(*batch)
        return deleted

    # ─── Health + metrics ──────────────────────────────────────────────────────

    def ping(self) -> bool:
        """Ping Redis and update the health flag. Logs transitions only."""
        try:
            ok = bool(self.client.ping())
        except redis.RedisError as e:
            log.debug(f"[CACHE] ping failed: {e}")
            ok = False
        if ok != self.healthy:
            if ok:
                log.info("[CACHE] Redis is healthy again; cache operations resumed")
            else:
                log.warning("[CACHE] Redis is unhealthy; cache operations suspended")
        self.healthy = ok
        return ok

    def metrics(self) -> dict:
        """Subset of Redis INFO worth shipping to the metrics webhook."""
        info = self.client.info()
        hits = int(info.get("keyspace_hits", 0))
        misses = int(info.get("keyspace_misses", 0))
        lookups = hits + misses
        return {
            "connected_clients": info.get("connected_clients"),
            "used_memory": info.get("used_memory"),
            "used_memory_human": info.get("used_memory_human"),
            "total_commands_processed": info.get("total_commands_processed"),
            "keyspace_hits": hits,
            "keyspace_misses": misses,
            "hit_rate": round(hits / lookups, 4) if lookups else 0.0,
            "evicted_keys": info.get("evicted_keys"),
            "expired_keys": info.get("expired_keys"),
        }
