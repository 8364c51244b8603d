"""Tests for the background cache monitor."""

import asyncio

import httpx

from fluency import monitor


def run_for(coro_factory, seconds=0.05):
    async def runner():
        task = asyncio.create_task(coro_factory())
        await asyncio.sleep(seconds)
        await monitor.stop_monitor([task])

    asyncio.run(runner())


def test_ticker_tracks_redis_health(cache, fake_redis):
    fake_redis.down = True
    run_for(lambda: monitor.monitor_cache(cache, interval=0.01))
    assert cache.healthy is False

    fake_redis.down = False
    run_for(lambda: monitor.monitor_cache(cache, interval=0.01))
    assert cache.healthy is True


def test_metrics_are_posted_to_webhook(cache, monkeypatch):
    received = []

    def handler(request):
        received.append(request)
        return httpx.Response(204)

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        monitor.httpx, "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )

    run_for(lambda: monitor.collect_metrics(cache, webhook_url="http://metrics.local/redis", interval=0.01))

    assert received
    assert received[0].url == "http://metrics.local/redis"
    assert b"hit_rate" in received[0].content


def test_metrics_skipped_while_unhealthy(cache, fake_redis, monkeypatch):
    cache.healthy = False
    calls = []
    monkeypatch.setattr(cache, "metrics", lambda: calls.append(1) or {})

    run_for(lambda: monitor.collect_metrics(cache, webhook_url=None, interval=0.01))
    assert calls == []
