"""Tests for cache + search synchronization."""

import json

import pytest

from fluency.content import MODULES
from fluency.database import crud
from fluency.database.redis_client import question_key
from fluency.errors import AggregateLoadError


def cached_keys(fake_redis, question):
    return sorted(k for k in fake_redis.store if str(question.id) in k)


class TestPublish:
    def test_writes_versioned_key_and_search_point(self, db, services, fake_redis, make_question):
        question = make_question("reading", "TRUE_FALSE")
        result = services.updator.update_cache_and_search(db, question)

        assert result.ok
        key = question_key("reading", question.id, "uncomplete", 1)
        assert cached_keys(fake_redis, question) == [key]
        assert json.loads(fake_redis.store[key])["id"] == str(question.id)
        assert fake_redis.ttls[key] == 3600

        points = services.index.client.retrieve("reading_questions", ids=[str(question.id)], with_payload=True)
        assert points[0].payload["status"] == "uncomplete"
        assert points[0].payload["detail"]["version"] == 1

    def test_new_version_replaces_old_key(self, db, services, fake_redis, make_question):
        question = make_question("speaking", "WORD_REPETITION")
        question.version = 2
        db.commit()

        services.updator.update_cache_and_search(db, question)
        assert cached_keys(fake_redis, question) == [question_key("speaking", question.id, "uncomplete", 2)]

    def test_out_of_order_publish_keeps_newest(self, db, services, question_service, fake_redis, make_question):
        question = make_question("reading", "TRUE_FALSE")
        question.version = 2
        db.commit()
        older = services.updator.build(db, question)
        question.version = 3
        db.commit()
        newer = services.updator.build(db, question)

        services.updator.publish(newer, search=False)
        services.updator.publish(older, search=False)

        assert cached_keys(fake_redis, question) == [question_key("reading", question.id, "uncomplete", 3)]
        assert question_service.get_detail(MODULES["reading"], question.id)["version"] == 3

    def test_cache_failure_does_not_block_search(self, db, services, fake_redis, make_question):
        question = make_question("writing", "ESSAY")
        question.version = 2
        db.commit()
        fake_redis.down = True

        result = services.updator.update_cache_and_search(db, question)

        assert not result.cache_ok
        assert result.search_ok
        assert "Connection refused" in result.describe()
        points = services.index.client.retrieve("writing_questions", ids=[str(question.id)], with_payload=True)
        assert points[0].payload["version"] == 2

    def test_search_failure_does_not_block_cache(self, db, services, fake_redis, make_question, monkeypatch):
        question = make_question("grammar", "SENTENCE_TRANSFORMATION")
        question.version = 5
        db.commit()

        def unreachable(*args, **kwargs):
            raise ConnectionError("qdrant unreachable")

        monkeypatch.setattr(services.index, "upsert_question", unreachable)
        result = services.updator.update_cache_and_search(db, question)

        assert result.cache_ok
        assert not result.search_ok
        assert question_key("grammar", question.id, "uncomplete", 5) in fake_redis.store

    def test_unhealthy_cache_is_skipped(self, db, services, fake_redis, make_question):
        question = make_question("reading", "MATCHING")
        services.cache.healthy = False

        result = services.updator.update_cache_and_search(db, question)
        assert not result.cache_ok
        assert "unhealthy" in result.cache_error

    def test_publish_without_search(self, db, services, make_question, monkeypatch):
        question = make_question("reading", "MATCHING")
        calls = []
        monkeypatch.setattr(services.index, "upsert_question", lambda *a: calls.append(a))

        result = services.updator.publish(services.updator.build(db, question), search=False)
        assert result.ok
        assert calls == []


class TestBuild:
    def test_loader_errors_propagate(self, db, services):
        question = crud.create_question(db, "listening", {
            "type": "ESSAY", "topic": ["x"], "instruction": "y", "image_urls": [], "max_time": 60,
        })
        with pytest.raises(AggregateLoadError):
            services.updator.build(db, question)


class TestDiscard:
    def test_removes_keys_and_point(self, db, services, fake_redis, make_question):
        question = make_question("reading", "CHOICE_MULTI")
        result = services.updator.discard("reading", question.id)

        assert result.ok
        assert cached_keys(fake_redis, question) == []
        assert services.index.client.retrieve("reading_questions", ids=[str(question.id)]) == []

    def test_reports_partial_failure(self, services, fake_redis, make_question):
        question = make_question("reading", "CHOICE_MULTI")
        fake_redis.down = True

        result = services.updator.discard("reading", question.id)
        assert not result.cache_ok
        assert result.search_ok

    def test_discard_module(self, services, fake_redis, make_question):
        make_question("listening", "MATCHING")
        make_question("listening", "MAP_LABELLING")
        kept = make_question("reading", "MATCHING")

        result = services.updator.discard_module("listening")

        assert result.ok
        assert list(fake_redis.store) == [question_key("reading", kept.id, "uncomplete", 1)]
        assert not services.index.client.collection_exists("listening_questions")
