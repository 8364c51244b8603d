"""Tests for aggregate loading."""

import pytest
from sqlalchemy.exc import OperationalError

from fluency.content import KINDS, MODULES
from fluency.database import crud, schemas
from fluency.errors import AggregateLoadError
from fluency.services.loader import load_detail


class TestLoadDetail:
    def test_fresh_question_has_empty_collections(self, db, make_question):
        question = make_question("reading", "CHOICE_ONE")
        detail = load_detail(db, question)

        assert detail.id == question.id
        assert detail.version == 1
        assert detail.choice_one_question is None
        assert detail.choice_one_options == []
        # kinds of other types are not loaded at all
        assert detail.true_false is None
        assert detail.matching is None

    def test_loads_children_of_sub_question(self, db, make_question, entity_service):
        reading = MODULES["reading"]
        question = make_question("reading", "FILL_IN_THE_BLANK")
        blank = entity_service.create(reading, KINDS["fill_in_the_blank_question"], schemas.FillInTheBlankQuestionCreate(
            question_id=question.id, question="She ___ to the market.",
        ))
        for word in ("walked", "went"):
            entity_service.create(reading, KINDS["fill_in_the_blank_answer"], schemas.FillInTheBlankAnswerCreate(
                fill_in_the_blank_question_id=blank.id, answer=word, explain="past tense",
            ))

        detail = load_detail(db, question)
        assert detail.fill_in_the_blank_question.question == "She ___ to the market."
        assert {a.answer for a in detail.fill_in_the_blank_answers} == {"walked", "went"}

    def test_module_fields_are_dropped_from_payload(self, db, make_question):
        question = make_question("grammar", "ERROR_IDENTIFICATION")
        payload = load_detail(db, question).to_payload()

        assert "title" not in payload
        assert "audio_urls" not in payload
        assert "error_identification" not in payload
        assert payload["id"] == str(question.id)

    def test_listening_fields(self, db, make_question):
        question = make_question("listening", "MAP_LABELLING")
        payload = load_detail(db, question).to_payload()

        assert payload["audio_urls"] == ["https://cdn.example.com/audio/lisbon.mp3"]
        assert payload["map_labelling"] == []
        assert "passages" not in payload

    def test_unknown_type_is_an_error(self, db):
        question = crud.create_question(db, "reading", {
            "type": "CROSSWORD", "topic": ["x"], "instruction": "y", "image_urls": [], "max_time": 60,
        })
        with pytest.raises(AggregateLoadError, match="unknown question type: reading/CROSSWORD"):
            load_detail(db, question)

    def test_persistence_errors_are_wrapped(self, db, make_question, monkeypatch):
        question = make_question("reading", "TRUE_FALSE")

        def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(crud, "list_entities", broken)
        with pytest.raises(AggregateLoadError, match="failed to load TRUE_FALSE data"):
            load_detail(db, question)
