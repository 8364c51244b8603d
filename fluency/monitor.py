"""
Background monitor
Redis health ticker and metrics collector, started by the app lifespan.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

import httpx
import redis

from fluency import config
from fluency.database.redis_client import QuestionCache

log = logging.getLogger(__name__)


async def monitor_cache(cache: QuestionCache, interval: float = config.MONITOR_INTERVAL_SECONDS):
    """Ping Redis every interval; the cache flips its health flag on transitions."""
    while True:
        await asyncio.to_thread(cache.ping)
        await asyncio.sleep(interval)


async def collect_metrics(
    cache: QuestionCache,
    webhook_url: Optional[str] = config.METRICS_WEBHOOK_URL,
    interval: float = config.MONITOR_INTERVAL_SECONDS,
):
    """Snapshot Redis INFO every interval and ship it to the webhook, if any."""
    async with httpx.AsyncClient(timeout=5.0) as client:
        while True:
            await asyncio.sleep(interval)
            if not cache.healthy:
                continue
            try:
                snapshot = await asyncio.to_thread(cache.metrics)
            except redis.RedisError as e:
                log.warning(f"[MONITOR] Could not read Redis metrics: {e}")
                continue

            snapshot["timestamp"] = datetime.now(timezone.utc).isoformat()
            if not webhook_url:
                log.debug(f"[MONITOR] Redis metrics: {snapshot}")
                continue
            try:
                response = await client.post(webhook_url, json=snapshot)
                response.raise_for_status()
            except httpx.HTTPError as e:
                log.warning(f"[MONITOR] Metrics webhook failed: {e}")


def start_monitor(cache: QuestionCache) -> List[asyncio.Task]:
    log.info(f"[MONITOR] Starting cache monitor (every {config.MONITOR_INTERVAL_SECONDS}s)")
    return [
        asyncio.create_task(monitor_cache(cache)),
        asyncio.create_task(collect_metrics(cache)),
    ]


async def stop_monitor(tasks: List[asyncio.Task]):
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    log.info("[MONITOR] Stopped")
