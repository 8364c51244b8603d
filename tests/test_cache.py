"""Tests for the versioned question cache."""

import logging
import uuid

import pytest

from fluency.database.redis_client import (
    CacheUnavailableError,
    QuestionCache,
    module_pattern,
    question_key,
    question_pattern,
)

QID = uuid.UUID("3f2b8e0c-5d1a-4b6e-9c7f-0a1b2c3d4e5f")


def test_key_layout():
    assert question_key("reading", QID, "complete", 4) == f"reading_question:{QID}:complete:4"
    assert question_pattern("grammar", QID) == f"grammar_question:{QID}:*"
    assert module_pattern("writing") == "writing_question:*"


class TestWrites:
    def test_set_detail_replaces_older_versions(self, cache, fake_redis):
        cache.set_detail("reading", QID, "uncomplete", 1, {"version": 1})
        key = cache.set_detail("reading", QID, "complete", 2, {"version": 2})

        assert list(fake_redis.store) == [key]
        assert fake_redis.ttls[key] == 3600
        assert cache.get_detail("reading", QID) == {"version": 2}

    def test_older_version_does_not_replace_newer(self, cache, fake_redis):
        newer = cache.set_detail("reading", QID, "uncomplete", 3, {"version": 3})
        assert cache.set_detail("reading", QID, "uncomplete", 2, {"version": 2}) == newer

        assert list(fake_redis.store) == [newer]
        assert cache.get_detail("reading", QID) == {"version": 3}

    def test_same_version_replaces_status(self, cache, fake_redis):
        cache.set_detail("reading", QID, "uncomplete", 2, {"status": "uncomplete"})
        key = cache.set_detail("reading", QID, "complete", 2, {"status": "complete"})

        assert list(fake_redis.store) == [key]

    def test_other_questions_and_modules_untouched(self, cache, fake_redis):
        other = uuid.uuid4()
        cache.set_detail("reading", other, "complete", 1, {})
        cache.set_detail("listening", QID, "complete", 1, {})
        cache.set_detail("reading", QID, "complete", 1, {})

        assert len(fake_redis.store) == 3

    def test_delete_module(self, cache, fake_redis):
        for _ in range(3):
            cache.set_detail("speaking", uuid.uuid4(), "uncomplete", 1, {})
        cache.set_detail("writing", QID, "uncomplete", 1, {})

        assert cache.delete_module("speaking") == 3
        assert list(fake_redis.store) == [question_key("writing", QID, "uncomplete", 1)]

    def test_delete_question(self, cache, fake_redis):
        cache.set_detail("grammar", QID, "complete", 7, {})
        assert cache.delete_question("grammar", QID) == 1
        assert fake_redis.store == {}


class TestVersionLookup:
    def test_has_version_checks_both_statuses(self, cache):
        cache.set_detail("reading", QID, "complete", 3, {})
        assert cache.has_version("reading", QID, 3)
        assert not cache.has_version("reading", QID, 2)

        cache.set_detail("reading", QID, "uncomplete", 4, {})
        assert cache.has_version("reading", QID, 4)
        assert not cache.has_version("reading", QID, 3)

    def test_miss(self, cache):
        assert cache.get_detail("reading", QID) is None


class TestHealth:
    def test_unhealthy_reads_miss_and_writes_fail(self, cache):
        cache.set_detail("reading", QID, "complete", 1, {"a": 1})
        cache.healthy = False

        assert cache.get_detail("reading", QID) is None
        assert cache.has_version("reading", QID, 1) is False
        with pytest.raises(CacheUnavailableError):
            cache.set_detail("reading", QID, "complete", 2, {})
        with pytest.raises(CacheUnavailableError):
            cache.delete_question("reading", QID)

    def test_ping_logs_transitions(self, cache, fake_redis, caplog):
        with caplog.at_level(logging.INFO):
            fake_redis.down = True
            assert cache.ping() is False
            assert cache.ping() is False
            fake_redis.down = False
            assert cache.ping() is True

        assert cache.healthy is True
        assert caplog.text.count("Redis is unhealthy") == 1
        assert caplog.text.count("healthy again") == 1

    def test_metrics(self, fake_redis):
        cache = QuestionCache(fake_redis)
        cache.set_detail("reading", QID, "complete", 1, {})
        cache.get_detail("reading", QID)
        fake_redis.get("missing")

        metrics = cache.metrics()
        assert metrics["keyspace_hits"] == 1
        assert metrics["keyspace_misses"] == 1
        assert metrics["hit_rate"] == 0.5
        assert metrics["connected_clients"] == 1
