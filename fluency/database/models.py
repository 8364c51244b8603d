"""
SQLAlchemy models for the question source of truth
Question root → type-specific sub-entities

These rows are the ONLY durable state. Cache entries and search points
are projections rebuilt from them.
"""

import uuid

from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, DateTime, Text, JSON, Uuid,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from fluency.database.database import Base


def _child(target: str, single: bool = False):
    """Owned sub-entity relationship; deleting the owner deletes the rows."""
    return relationship(
        target,
        uselist=not single,
        cascade="all, delete-orphan",
    )


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


# ==========================================
# ROOT QUESTION
# ==========================================

class Question(TimestampMixin, Base):
    """
    Root question shared by all five modules.
    Module-specific columns (title/passages for reading, audio_urls/transcript
    for listening) stay NULL for the other modules.
    """
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    module = Column(String(20), nullable=False, index=True)
    type = Column(String(50), nullable=False, index=True)
    topic = Column(JSON, nullable=False, default=list)
    instruction = Column(Text, nullable=False)
    title = Column(Text, nullable=True)
    passages = Column(JSON, nullable=True)
    audio_urls = Column(JSON, nullable=True)
    transcript = Column(Text, nullable=True)
    image_urls = Column(JSON, nullable=False, default=list)
    max_time = Column(Integer, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("max_time > 0", name="ck_questions_max_time"),
        CheckConstraint("version >= 1", name="ck_questions_version"),
    )

    fill_in_the_blank_question = _child("FillInTheBlankQuestion", single=True)
    choice_one_question = _child("ChoiceOneQuestion", single=True)
    choice_multi_question = _child("ChoiceMultiQuestion", single=True)
    true_false = _child("TrueFalse")
    matching = _child("Matching")
    map_labelling = _child("MapLabelling")
    error_identification = _child("ErrorIdentification", single=True)
    sentence_transformation = _child("SentenceTransformation", single=True)
    word_repetition = _child("WordRepetition")
    phrase_repetition = _child("PhraseRepetition")
    paragraph_repetition = _child("ParagraphRepetition", single=True)
    open_paragraph = _child("OpenParagraph", single=True)
    conversational_repetition = _child("ConversationalRepetition", single=True)
    conversational_open = _child("ConversationalOpen", single=True)
    sentence_completion = _child("SentenceCompletion", single=True)
    essay = _child("Essay", single=True)

    def __repr__(self):
        return f"<Question(id={self.id}, module='{self.module}', type='{self.type}', version={self.version})>"


def _question_fk():
    return Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)


# ==========================================
# FILL IN THE BLANK
# ==========================================

class FillInTheBlankQuestion(TimestampMixin, Base):
    __tablename__ = "fill_in_the_blank_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    question = Column(Text, nullable=False)

    answers = _child("FillInTheBlankAnswer")


class FillInTheBlankAnswer(TimestampMixin, Base):
    __tablename__ = "fill_in_the_blank_answers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    fill_in_the_blank_question_id = Column(
        Uuid, ForeignKey("fill_in_the_blank_questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    answer = Column(Text, nullable=False)
    explain = Column(Text, nullable=False)


# ==========================================
# CHOICE ONE / CHOICE MULTI
# ==========================================

class ChoiceOneQuestion(TimestampMixin, Base):
    __tablename__ = "choice_one_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    question = Column(Text, nullable=False)
    explain = Column(Text, nullable=False)

    options = _child("ChoiceOneOption")


class ChoiceOneOption(TimestampMixin, Base):
    """At most one option per question is correct; the service flips siblings."""
    __tablename__ = "choice_one_options"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    choice_one_question_id = Column(
        Uuid, ForeignKey("choice_one_questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    options = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("choice_one_question_id", "options", name="uq_choice_one_option_text"),
    )


class ChoiceMultiQuestion(TimestampMixin, Base):
    __tablename__ = "choice_multi_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    question = Column(Text, nullable=False)
    explain = Column(Text, nullable=False)

    options = _child("ChoiceMultiOption")


class ChoiceMultiOption(TimestampMixin, Base):
    __tablename__ = "choice_multi_options"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    choice_multi_question_id = Column(
        Uuid, ForeignKey("choice_multi_questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    options = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("choice_multi_question_id", "options", name="uq_choice_multi_option_text"),
    )


# ==========================================
# FLAT ROWS: TRUE/FALSE, MATCHING, MAP LABELLING
# ==========================================

class TrueFalse(TimestampMixin, Base):
    __tablename__ = "true_falses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = _question_fk()
    question = Column(Text, nullable=False)
    answer = Column(String(20), nullable=False)
    explain = Column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("question_id", "question", name="uq_true_false_question"),
        CheckConstraint("answer IN ('TRUE', 'FALSE', 'NOT GIVEN')", name="ck_true_false_answer"),
    )


class Matching(TimestampMixin, Base):
    __tablename__ = "matchings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = _question_fk()
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    explain = Column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("question_id", "question", name="uq_matching_question"),
        UniqueConstraint("question_id", "answer", name="uq_matching_answer"),
    )


class MapLabelling(TimestampMixin, Base):
    __tablename__ = "map_labellings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = _question_fk()
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    explain = Column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("question_id", "question", name="uq_map_labelling_question"),
        UniqueConstraint("question_id", "answer", name="uq_map_labelling_answer"),
    )


# ==========================================
# GRAMMAR
# ==========================================

class ErrorIdentification(TimestampMixin, Base):
    __tablename__ = "error_identifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    error_sentence = Column(Text, nullable=False)
    error_word = Column(Text, nullable=False)
    correct_word = Column(Text, nullable=False)
    explain = Column(Text, nullable=False)


class SentenceTransformation(TimestampMixin, Base):
    __tablename__ = "sentence_transformations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    original_sentence = Column(Text, nullable=False)
    beginning_word = Column(Text, nullable=True)
    example_correct_sentence = Column(Text, nullable=False)
    explain = Column(Text, nullable=False)


# ==========================================
# SPEAKING
# ==========================================

class WordRepetition(TimestampMixin, Base):
    __tablename__ = "word_repetitions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = _question_fk()
    word = Column(Text, nullable=False)
    mean = Column(Text, nullable=False)

    __table_args__ = (UniqueConstraint("question_id", "word", name="uq_word_repetition_word"),)


class PhraseRepetition(TimestampMixin, Base):
    __tablename__ = "phrase_repetitions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = _question_fk()
    phrase = Column(Text, nullable=False)
    mean = Column(Text, nullable=False)

    __table_args__ = (UniqueConstraint("question_id", "phrase", name="uq_phrase_repetition_phrase"),)


class ParagraphRepetition(TimestampMixin, Base):
    __tablename__ = "paragraph_repetitions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    paragraph = Column(Text, nullable=False)
    mean = Column(Text, nullable=False)


class OpenParagraph(TimestampMixin, Base):
    __tablename__ = "open_paragraphs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    question = Column(Text, nullable=False)
    example_passage = Column(Text, nullable=False)
    mean_of_example_passage = Column(Text, nullable=False)


class ConversationalRepetition(TimestampMixin, Base):
    __tablename__ = "conversational_repetitions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    title = Column(Text, nullable=False)
    overview = Column(Text, nullable=False)

    qas = _child("ConversationalRepetitionQA")


class ConversationalRepetitionQA(TimestampMixin, Base):
    __tablename__ = "conversational_repetition_qas"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversational_repetition_id = Column(
        Uuid, ForeignKey("conversational_repetitions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    mean_of_question = Column(Text, nullable=False)
    mean_of_answer = Column(Text, nullable=False)
    explain = Column(Text, nullable=False)


class ConversationalOpen(TimestampMixin, Base):
    __tablename__ = "conversational_opens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    title = Column(Text, nullable=False)
    overview = Column(Text, nullable=False)
    example_conversation = Column(Text, nullable=False)


# ==========================================
# WRITING
# ==========================================

class SentenceCompletion(TimestampMixin, Base):
    __tablename__ = "sentence_completions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    example_sentence = Column(Text, nullable=False)
    given_part_sentence = Column(Text, nullable=False)
    position = Column(String(10), nullable=False)
    required_words = Column(JSON, nullable=False, default=list)
    explain = Column(Text, nullable=False)
    min_words = Column(Integer, nullable=False)
    max_words = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("position IN ('start', 'end')", name="ck_sentence_completion_position"),
        CheckConstraint("min_words > 0 AND max_words >= min_words", name="ck_sentence_completion_words"),
    )


class Essay(TimestampMixin, Base):
    __tablename__ = "essays"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, unique=True)
    essay_type = Column(Text, nullable=False)
    required_points = Column(JSON, nullable=False, default=list)
    min_words = Column(Integer, nullable=False)
    max_words = Column(Integer, nullable=False)
    sample_essay = Column(Text, nullable=False)
    explain = Column(Text, nullable=False)

    __table_args__ = (
        CheckConstraint("min_words > 0 AND max_words >= min_words", name="ck_essay_words"),
    )
