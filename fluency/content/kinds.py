"""
Sub-entity catalog
One entry per type-specific child record: model, schemas, parent and cardinality.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fluency.database import models, schemas


@dataclass(frozen=True)
class EntityKind:
    """
    Describes one sub-entity kind.

    parent:       name of the owning kind, None when owned by the root question
    parent_field: FK column (and create-schema field) pointing at the owner
    single:       at most one row per owner
    as_list:      shape in the aggregate detail (list vs single object)
    exclusive_correct: only one row per owner may have is_correct=True
    """
    name: str
    model: type
    create_schema: type
    response_schema: type
    detail_key: str
    parent: Optional[str] = None
    parent_field: str = "question_id"
    single: bool = False
    as_list: bool = True
    exclusive_correct: bool = False
    update_schema: Any = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self, "update_schema",
            schemas.build_field_update(self.name, self.create_schema, exclude=self.parent_field),
        )

    @property
    def slug(self) -> str:
        return self.name.replace("_", "-")


KINDS: Dict[str, EntityKind] = {k.name: k for k in [
    # Fill in the blank: one question, many answers
    EntityKind(
        name="fill_in_the_blank_question",
        model=models.FillInTheBlankQuestion,
        create_schema=schemas.FillInTheBlankQuestionCreate,
        response_schema=schemas.FillInTheBlankQuestionResponse,
        detail_key="fill_in_the_blank_question",
        single=True, as_list=False,
    ),
    EntityKind(
        name="fill_in_the_blank_answer",
        model=models.FillInTheBlankAnswer,
        create_schema=schemas.FillInTheBlankAnswerCreate,
        response_schema=schemas.FillInTheBlankAnswerResponse,
        detail_key="fill_in_the_blank_answers",
        parent="fill_in_the_blank_question",
        parent_field="fill_in_the_blank_question_id",
    ),
    # Single choice
    EntityKind(
        name="choice_one_question",
        model=models.ChoiceOneQuestion,
        create_schema=schemas.ChoiceQuestionCreate,
        response_schema=schemas.ChoiceQuestionResponse,
        detail_key="choice_one_question",
        single=True, as_list=False,
    ),
    EntityKind(
        name="choice_one_option",
        model=models.ChoiceOneOption,
        create_schema=schemas.ChoiceOneOptionCreate,
        response_schema=schemas.ChoiceOptionResponse,
        detail_key="choice_one_options",
        parent="choice_one_question",
        parent_field="choice_one_question_id",
        exclusive_correct=True,
    ),
    # Multiple choice
    EntityKind(
        name="choice_multi_question",
        model=models.ChoiceMultiQuestion,
        create_schema=schemas.ChoiceQuestionCreate,
        response_schema=schemas.ChoiceQuestionResponse,
        detail_key="choice_multi_question",
        single=True, as_list=False,
    ),
    EntityKind(
        name="choice_multi_option",
        model=models.ChoiceMultiOption,
        create_schema=schemas.ChoiceMultiOptionCreate,
        response_schema=schemas.ChoiceOptionResponse,
        detail_key="choice_multi_options",
        parent="choice_multi_question",
        parent_field="choice_multi_question_id",
    ),
    # Flat rows
    EntityKind(
        name="true_false",
        model=models.TrueFalse,
        create_schema=schemas.TrueFalseCreate,
        response_schema=schemas.TrueFalseResponse,
        detail_key="true_false",
    ),
    EntityKind(
        name="matching",
        model=models.Matching,
        create_schema=schemas.PairCreate,
        response_schema=schemas.PairResponse,
        detail_key="matching",
    ),
    EntityKind(
        name="map_labelling",
        model=models.MapLabelling,
        create_schema=schemas.PairCreate,
        response_schema=schemas.PairResponse,
        detail_key="map_labelling",
    ),
    # Grammar
    EntityKind(
        name="error_identification",
        model=models.ErrorIdentification,
        create_schema=schemas.ErrorIdentificationCreate,
        response_schema=schemas.ErrorIdentificationResponse,
        detail_key="error_identification",
        single=True, as_list=False,
    ),
    EntityKind(
        name="sentence_transformation",
        model=models.SentenceTransformation,
        create_schema=schemas.SentenceTransformationCreate,
        response_schema=schemas.SentenceTransformationResponse,
        detail_key="sentence_transformation",
        single=True, as_list=False,
    ),
    # Speaking
    EntityKind(
        name="word_repetition",
        model=models.WordRepetition,
        create_schema=schemas.WordRepetitionCreate,
        response_schema=schemas.WordRepetitionResponse,
        detail_key="word_repetition",
    ),
    EntityKind(
        name="phrase_repetition",
        model=models.PhraseRepetition,
        create_schema=schemas.PhraseRepetitionCreate,
        response_schema=schemas.PhraseRepetitionResponse,
        detail_key="phrase_repetition",
    ),
    EntityKind(
        name="paragraph_repetition",
        model=models.ParagraphRepetition,
        create_schema=schemas.ParagraphRepetitionCreate,
        response_schema=schemas.ParagraphRepetitionResponse,
        detail_key="paragraph_repetition",
        single=True,
    ),
    EntityKind(
        name="open_paragraph",
        model=models.OpenParagraph,
        create_schema=schemas.OpenParagraphCreate,
        response_schema=schemas.OpenParagraphResponse,
        detail_key="open_paragraph",
        single=True,
    ),
    EntityKind(
        name="conversational_repetition",
        model=models.ConversationalRepetition,
        create_schema=schemas.ConversationalRepetitionCreate,
        response_schema=schemas.ConversationalRepetitionResponse,
        detail_key="conversational_repetition",
        single=True, as_list=False,
    ),
    EntityKind(
        name="conversational_repetition_qa",
        model=models.ConversationalRepetitionQA,
        create_schema=schemas.ConversationalRepetitionQACreate,
        response_schema=schemas.ConversationalRepetitionQAResponse,
        detail_key="conversational_repetition_qas",
        parent="conversational_repetition",
        parent_field="conversational_repetition_id",
    ),
    EntityKind(
        name="conversational_open",
        model=models.ConversationalOpen,
        create_schema=schemas.ConversationalOpenCreate,
        response_schema=schemas.ConversationalOpenResponse,
        detail_key="conversational_open",
        single=True, as_list=False,
    ),
    # Writing
    EntityKind(
        name="sentence_completion",
        model=models.SentenceCompletion,
        create_schema=schemas.SentenceCompletionCreate,
        response_schema=schemas.SentenceCompletionResponse,
        detail_key="sentence_completion",
        single=True,
    ),
    EntityKind(
        name="essay",
        model=models.Essay,
        create_schema=schemas.EssayCreate,
        response_schema=schemas.EssayResponse,
        detail_key="essay",
        single=True,
    ),
]}
