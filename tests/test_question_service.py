"""Tests for the root question service."""

import uuid

import pytest
from sqlalchemy.exc import OperationalError

from fluency.content import MODULES
from fluency.database import crud, schemas
from fluency.database.redis_client import question_key
from fluency.errors import InternalError, InvalidInputError, NotFoundError

READING = MODULES["reading"]
GRAMMAR = MODULES["grammar"]


def update(field, value):
    return schemas.QuestionFieldUpdateRequest.model_validate({"field": field, "value": value}).root


class TestCreate:
    def test_starts_at_version_one_and_uncomplete(self, make_question, fake_redis):
        question = make_question("reading", "CHOICE_ONE")

        assert question.version == 1
        assert question.module == "reading"
        assert list(fake_redis.store) == [question_key("reading", question.id, "uncomplete", 1)]

    def test_rejects_type_of_another_module(self, make_question, db):
        with pytest.raises(InvalidInputError, match="invalid reading question type 'ESSAY'"):
            make_question("reading", "ESSAY")
        assert crud.count_module_questions(db, "reading") == 0

    def test_sync_failure_rolls_back(self, make_question, fake_redis, services, db):
        fake_redis.down = True

        with pytest.raises(InternalError, match="failed to synchronize new question"):
            make_question("listening", "MATCHING")

        assert crud.count_module_questions(db, "listening") == 0
        assert services.index.client.count("listening_questions").count == 0

    def test_search_failure_rolls_back(self, make_question, services, fake_redis, db, monkeypatch):
        def unreachable(*args, **kwargs):
            raise ConnectionError("qdrant unreachable")

        monkeypatch.setattr(services.index, "upsert_question", unreachable)
        with pytest.raises(InternalError):
            make_question("writing", "ESSAY")

        assert crud.count_module_questions(db, "writing") == 0
        assert fake_redis.store == {}

    def test_commit_failure_discards_projections(self, make_question, services, fake_redis, db, monkeypatch):
        def locked():
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(db, "commit", locked)
        with pytest.raises(InternalError, match="failed to store new question"):
            make_question("reading", "TRUE_FALSE")
        monkeypatch.undo()

        assert crud.count_module_questions(db, "reading") == 0
        assert fake_redis.store == {}
        assert services.index.client.count("reading_questions").count == 0


class TestGetDetail:
    def test_fresh_question_detail(self, make_question, question_service):
        question = make_question("reading", "CHOICE_ONE")
        detail = question_service.get_detail(READING, question.id)

        assert detail["id"] == str(question.id)
        assert detail["choice_one_options"] == []
        assert "choice_one_question" not in detail
        assert detail["title"] == "A Day in Lisbon"

    def test_cache_miss_repopulates(self, make_question, question_service, fake_redis):
        question = make_question("speaking", "PHRASE_REPETITION")
        fake_redis.store.clear()

        detail = question_service.get_detail(MODULES["speaking"], question.id)

        assert detail["phrase_repetition"] == []
        assert question_key("speaking", question.id, "uncomplete", 1) in fake_redis.store

    def test_served_from_cache(self, make_question, question_service, fake_redis):
        question = make_question("reading", "MATCHING")
        key = question_key("reading", question.id, "uncomplete", 1)
        fake_redis.store[key] = '{"id": "cached"}'

        assert question_service.get_detail(READING, question.id) == {"id": "cached"}

    def test_redis_down_falls_back_to_database(self, make_question, question_service, services):
        question = make_question("reading", "MATCHING")
        services.cache.healthy = False

        assert question_service.get_detail(READING, question.id)["id"] == str(question.id)

    def test_unknown_id(self, question_service):
        with pytest.raises(NotFoundError):
            question_service.get_detail(READING, uuid.uuid4())

    def test_other_module_is_not_found(self, make_question, question_service, fake_redis):
        question = make_question("grammar", "CHOICE_ONE")
        fake_redis.store.clear()
        with pytest.raises(NotFoundError):
            question_service.get_detail(READING, question.id)


class TestUpdateField:
    def test_recognized_field_bumps_version_once(self, make_question, question_service, fake_redis, services):
        question = make_question("reading", "TRUE_FALSE")
        question_service.update_field(READING, question.id, update("instruction", "Decide if each is true."))

        assert question.version == 2
        assert question.instruction == "Decide if each is true."
        assert list(fake_redis.store) == [question_key("reading", question.id, "uncomplete", 2)]
        point = services.index.client.retrieve("reading_questions", ids=[str(question.id)], with_payload=True)[0]
        assert point.payload["version"] == 2
        assert point.payload["instruction"] == "decide if each is true."

    def test_module_specific_field(self, make_question, question_service):
        question = make_question("reading", "TRUE_FALSE")
        question_service.update_field(READING, question.id, update("passages", ["One.", "Two."]))
        assert question.passages == ["One.", "Two."]

    def test_field_not_allowed_for_module(self, make_question, question_service, db):
        question = make_question("grammar", "CHOICE_ONE")

        with pytest.raises(InvalidInputError, match="invalid field for grammar question: title"):
            question_service.update_field(GRAMMAR, question.id, update("title", "New title"))

        db.refresh(question)
        assert question.version == 1
        assert question.title is None

    def test_unknown_field_is_rejected_before_lookup(self, question_service):
        class Bogus:
            field = "difficulty"
            value = 3

        with pytest.raises(InvalidInputError):
            question_service.update_field(READING, uuid.uuid4(), Bogus())

    def test_missing_question(self, question_service):
        with pytest.raises(NotFoundError):
            question_service.update_field(READING, uuid.uuid4(), update("max_time", 90))


class TestDelete:
    def test_delete_removes_row_and_keys(self, make_question, question_service, fake_redis, services):
        question = make_question("reading", "MATCHING")
        question_id = question.id

        question_service.delete(READING, question_id)

        with pytest.raises(NotFoundError):
            question_service.get_detail(READING, question_id)
        assert fake_redis.store == {}
        assert services.index.client.retrieve("reading_questions", ids=[str(question_id)]) == []

    def test_search_cleanup_is_best_effort(self, make_question, question_service, services, monkeypatch):
        question = make_question("reading", "MATCHING")

        def unreachable(*args, **kwargs):
            raise ConnectionError("qdrant unreachable")

        monkeypatch.setattr(services.index, "delete_question", unreachable)
        question_service.delete(READING, question.id)

        with pytest.raises(NotFoundError):
            question_service.get_detail(READING, question.id)

    def test_delete_missing(self, question_service):
        with pytest.raises(NotFoundError):
            question_service.delete(READING, uuid.uuid4())

    def test_delete_all(self, make_question, question_service, fake_redis, services, db):
        make_question("reading", "MATCHING")
        make_question("reading", "TRUE_FALSE")
        other = make_question("grammar", "CHOICE_ONE")

        assert question_service.delete_all(READING) == 2
        assert crud.count_module_questions(db, "reading") == 0
        assert crud.count_module_questions(db, "grammar") == 1
        assert list(fake_redis.store) == [question_key("grammar", other.id, "uncomplete", 1)]
        assert not services.index.client.collection_exists("reading_questions")


class TestGetNewUpdates:
    def test_current_version_in_cache_returns_nothing(self, make_question, question_service):
        question = make_question("reading", "TRUE_FALSE")
        question_service.update_field(READING, question.id, update("max_time", 90))
        question_service.update_field(READING, question.id, update("max_time", 100))
        assert question.version == 3

        checks = [schemas.VersionCheck(id=question.id, version=3)]
        assert question_service.get_new_updates(READING, checks) == []

    def test_newer_stored_version_is_returned(self, make_question, question_service):
        question = make_question("reading", "TRUE_FALSE")
        for seconds in (90, 100, 110):
            question_service.update_field(READING, question.id, update("max_time", seconds))
        assert question.version == 4

        result = question_service.get_new_updates(READING, [schemas.VersionCheck(id=question.id, version=3)])

        assert [d["id"] for d in result] == [str(question.id)]
        assert result[0]["version"] == 4
        assert result[0]["max_time"] == 110

    def test_evicted_cache_with_same_version_returns_nothing(self, make_question, question_service, fake_redis):
        question = make_question("reading", "TRUE_FALSE")
        fake_redis.store.clear()

        checks = [schemas.VersionCheck(id=question.id, version=1)]
        assert question_service.get_new_updates(READING, checks) == []

    def test_unknown_ids_are_ignored(self, question_service):
        checks = [schemas.VersionCheck(id=uuid.uuid4(), version=1)]
        assert question_service.get_new_updates(READING, checks) == []


class TestGetByIds:
    def test_request_order_and_unknown_skipped(self, make_question, question_service, fake_redis):
        first = make_question("reading", "MATCHING")
        second = make_question("reading", "TRUE_FALSE")
        fake_redis.store.clear()

        result = question_service.get_by_ids(READING, [second.id, uuid.uuid4(), first.id, second.id])

        assert [d["id"] for d in result] == [str(second.id), str(first.id)]
        assert question_key("reading", first.id, "uncomplete", 1) in fake_redis.store

    def test_other_module_ids_are_skipped(self, make_question, question_service):
        grammar = make_question("grammar", "CHOICE_ONE")
        assert question_service.get_by_ids(READING, [grammar.id]) == []
