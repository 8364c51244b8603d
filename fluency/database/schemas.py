"""
Pydantic schemas for request/response validation
Separate from SQLAlchemy models for clean API contracts
"""

from typing import Annotated, Any, List, Literal, Optional, Union
from urllib.parse import urlparse
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, RootModel, create_model, model_validator

MAX_TOPIC_LENGTH = 100
MAX_INSTRUCTION_LENGTH = 1000
MAX_TRANSCRIPT_LENGTH = 5000
MAX_AUDIO_URLS = 10
MAX_IMAGE_URLS = 10
MIN_MAX_TIME = 30
MAX_MAX_TIME = 3600
MAX_TITLE_LENGTH = 200
MAX_PASSAGES = 10
MAX_PASSAGE_LENGTH = 5000
MAX_QUESTION_LENGTH = 500
MAX_ANSWER_LENGTH = 500
MAX_OPTION_LENGTH = 500
MAX_EXPLANATION_LENGTH = 1000
MAX_LONG_TEXT_LENGTH = 5000


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


def _absolute_url(value: str) -> str:
    parsed = urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"invalid URL: {value}")
    return value


ShortText = Annotated[str, Field(min_length=1, max_length=MAX_QUESTION_LENGTH), AfterValidator(_not_blank)]
ExplainText = Annotated[str, Field(min_length=1, max_length=MAX_EXPLANATION_LENGTH), AfterValidator(_not_blank)]
LongText = Annotated[str, Field(min_length=1, max_length=MAX_LONG_TEXT_LENGTH), AfterValidator(_not_blank)]
TopicText = Annotated[str, Field(min_length=1, max_length=MAX_TOPIC_LENGTH), AfterValidator(_not_blank)]
InstructionText = Annotated[str, Field(min_length=1, max_length=MAX_INSTRUCTION_LENGTH), AfterValidator(_not_blank)]
TitleText = Annotated[str, Field(min_length=1, max_length=MAX_TITLE_LENGTH), AfterValidator(_not_blank)]
PassageText = Annotated[str, Field(min_length=1, max_length=MAX_PASSAGE_LENGTH), AfterValidator(_not_blank)]
TranscriptText = Annotated[str, Field(min_length=1, max_length=MAX_TRANSCRIPT_LENGTH), AfterValidator(_not_blank)]
Url = Annotated[str, AfterValidator(_absolute_url)]

Topics = Annotated[List[TopicText], Field(min_length=1)]
Passages = Annotated[List[PassageText], Field(min_length=1, max_length=MAX_PASSAGES)]
AudioUrls = Annotated[List[Url], Field(min_length=1, max_length=MAX_AUDIO_URLS)]
ImageUrls = Annotated[List[Url], Field(max_length=MAX_IMAGE_URLS)]
MaxTime = Annotated[int, Field(ge=MIN_MAX_TIME, le=MAX_MAX_TIME, description="Time limit in seconds")]


# ==========================================
# ROOT QUESTION SCHEMAS
# ==========================================

class QuestionCreate(BaseModel):
    """Fields shared by every module's root question"""
    type: str = Field(..., min_length=1, max_length=50, description="Question type discriminator")
    topic: Topics
    instruction: InstructionText
    image_urls: ImageUrls = Field(default_factory=list)
    max_time: MaxTime


class ReadingQuestionCreate(QuestionCreate):
    title: TitleText
    passages: Passages


class ListeningQuestionCreate(QuestionCreate):
    audio_urls: AudioUrls
    transcript: TranscriptText


class QuestionResponse(BaseModel):
    """Root question as returned by the API (module-specific fields omitted when unset)"""
    id: UUID
    type: str
    topic: List[str]
    instruction: str
    title: Optional[str] = None
    passages: Optional[List[str]] = None
    audio_urls: Optional[List[str]] = None
    transcript: Optional[str] = None
    image_urls: List[str] = Field(default_factory=list)
    max_time: int
    version: int

    model_config = ConfigDict(from_attributes=True)


# Tagged field updates: one variant per updatable root field

class TopicUpdate(BaseModel):
    field: Literal["topic"]
    value: Topics


class InstructionUpdate(BaseModel):
    field: Literal["instruction"]
    value: InstructionText


class TitleUpdate(BaseModel):
    field: Literal["title"]
    value: TitleText


class PassagesUpdate(BaseModel):
    field: Literal["passages"]
    value: Passages


class AudioUrlsUpdate(BaseModel):
    field: Literal["audio_urls"]
    value: AudioUrls


class ImageUrlsUpdate(BaseModel):
    field: Literal["image_urls"]
    value: ImageUrls


class TranscriptUpdate(BaseModel):
    field: Literal["transcript"]
    value: TranscriptText


class MaxTimeUpdate(BaseModel):
    field: Literal["max_time"]
    value: MaxTime


QuestionFieldUpdate = Annotated[
    Union[
        TopicUpdate, InstructionUpdate, TitleUpdate, PassagesUpdate,
        AudioUrlsUpdate, ImageUrlsUpdate, TranscriptUpdate, MaxTimeUpdate,
    ],
    Field(discriminator="field"),
]


class QuestionFieldUpdateRequest(RootModel[QuestionFieldUpdate]):
    """Body of PUT /questions/{id}: {"field": ..., "value": ...}"""


class VersionCheck(BaseModel):
    id: UUID
    version: int = Field(..., ge=1)


class GetNewUpdatesRequest(BaseModel):
    questions: List[VersionCheck] = Field(..., min_length=1)


class GetByIdsRequest(BaseModel):
    question_ids: List[UUID] = Field(..., min_length=1)


class QuestionSearchFilters(BaseModel):
    """Query-string filters for GET /questions/search"""
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    query: Optional[str] = Field(None, description="Free text, ranked semantically")
    type: Optional[str] = None
    topic: Optional[str] = Field(None, description="Comma separated, matches any")
    instruction: Optional[str] = None
    title: Optional[str] = None
    passages: Optional[str] = None
    transcript: Optional[str] = None
    image_urls: Optional[str] = None
    max_time: Optional[str] = Field(None, description="Inclusive range 'min-max'")
    metadata: Optional[str] = Field(None, description="Text inside sub-entities")
    status: Optional[Literal["complete", "uncomplete"]] = None


# ==========================================
# SUB-ENTITY SCHEMAS
# ==========================================

class FillInTheBlankQuestionCreate(BaseModel):
    question_id: UUID
    question: ShortText


class FillInTheBlankQuestionResponse(BaseModel):
    id: UUID
    question: str

    model_config = ConfigDict(from_attributes=True)


class FillInTheBlankAnswerCreate(BaseModel):
    fill_in_the_blank_question_id: UUID
    answer: Annotated[str, Field(min_length=1, max_length=MAX_ANSWER_LENGTH), AfterValidator(_not_blank)]
    explain: ExplainText


class FillInTheBlankAnswerResponse(BaseModel):
    id: UUID
    answer: str
    explain: str

    model_config = ConfigDict(from_attributes=True)


class ChoiceQuestionCreate(BaseModel):
    question_id: UUID
    question: ShortText
    explain: ExplainText


class ChoiceQuestionResponse(BaseModel):
    id: UUID
    question: str
    explain: str

    model_config = ConfigDict(from_attributes=True)


class ChoiceOneOptionCreate(BaseModel):
    choice_one_question_id: UUID
    options: Annotated[str, Field(min_length=1, max_length=MAX_OPTION_LENGTH), AfterValidator(_not_blank)]
    is_correct: bool = False


class ChoiceMultiOptionCreate(BaseModel):
    choice_multi_question_id: UUID
    options: Annotated[str, Field(min_length=1, max_length=MAX_OPTION_LENGTH), AfterValidator(_not_blank)]
    is_correct: bool = False


class ChoiceOptionResponse(BaseModel):
    id: UUID
    options: str
    is_correct: bool

    model_config = ConfigDict(from_attributes=True)


class TrueFalseCreate(BaseModel):
    question_id: UUID
    question: ShortText
    answer: Literal["TRUE", "FALSE", "NOT GIVEN"]
    explain: ExplainText


class TrueFalseResponse(BaseModel):
    id: UUID
    question: str
    answer: str
    explain: str

    model_config = ConfigDict(from_attributes=True)


class PairCreate(BaseModel):
    """Matching and map labelling rows share one shape"""
    question_id: UUID
    question: ShortText
    answer: ShortText
    explain: ExplainText


class PairResponse(BaseModel):
    id: UUID
    question: str
    answer: str
    explain: str

    model_config = ConfigDict(from_attributes=True)


class ErrorIdentificationCreate(BaseModel):
    question_id: UUID
    error_sentence: ShortText
    error_word: ShortText
    correct_word: ShortText
    explain: ExplainText


class ErrorIdentificationResponse(BaseModel):
    id: UUID
    error_sentence: str
    error_word: str
    correct_word: str
    explain: str

    model_config = ConfigDict(from_attributes=True)


class SentenceTransformationCreate(BaseModel):
    question_id: UUID
    original_sentence: ShortText
    beginning_word: Optional[ShortText] = None
    example_correct_sentence: ShortText
    explain: ExplainText


class SentenceTransformationResponse(BaseModel):
    id: UUID
    original_sentence: str
    beginning_word: Optional[str] = None
    example_correct_sentence: str
    explain: str

    model_config = ConfigDict(from_attributes=True)


class WordRepetitionCreate(BaseModel):
    question_id: UUID
    word: ShortText
    mean: ShortText


class WordRepetitionResponse(BaseModel):
    id: UUID
    word: str
    mean: str

    model_config = ConfigDict(from_attributes=True)


class PhraseRepetitionCreate(BaseModel):
    question_id: UUID
    phrase: ShortText
    mean: ShortText


class PhraseRepetitionResponse(BaseModel):
    id: UUID
    phrase: str
    mean: str

    model_config = ConfigDict(from_attributes=True)


class ParagraphRepetitionCreate(BaseModel):
    question_id: UUID
    paragraph: LongText
    mean: LongText


class ParagraphRepetitionResponse(BaseModel):
    id: UUID
    paragraph: str
    mean: str

    model_config = ConfigDict(from_attributes=True)


class OpenParagraphCreate(BaseModel):
    question_id: UUID
    question: ShortText
    example_passage: LongText
    mean_of_example_passage: LongText


class OpenParagraphResponse(BaseModel):
    id: UUID
    question: str
    example_passage: str
    mean_of_example_passage: str

    model_config = ConfigDict(from_attributes=True)


class ConversationalRepetitionCreate(BaseModel):
    question_id: UUID
    title: TitleText
    overview: LongText


class ConversationalRepetitionResponse(BaseModel):
    id: UUID
    title: str
    overview: str

    model_config = ConfigDict(from_attributes=True)


class ConversationalRepetitionQACreate(BaseModel):
    conversational_repetition_id: UUID
    question: ShortText
    answer: ShortText
    mean_of_question: ShortText
    mean_of_answer: ShortText
    explain: ExplainText


class ConversationalRepetitionQAResponse(BaseModel):
    id: UUID
    question: str
    answer: str
    mean_of_question: str
    mean_of_answer: str
    explain: str

    model_config = ConfigDict(from_attributes=True)


class ConversationalOpenCreate(BaseModel):
    question_id: UUID
    title: TitleText
    overview: LongText
    example_conversation: LongText


class ConversationalOpenResponse(BaseModel):
    id: UUID
    title: str
    overview: str
    example_conversation: str

    model_config = ConfigDict(from_attributes=True)


class WordCountMixin(BaseModel):
    min_words: int = Field(..., gt=0)
    max_words: int = Field(..., gt=0)

    @model_validator(mode="after")
    def word_range(self):
        if self.max_words < self.min_words:
            raise ValueError("max_words must be greater than or equal to min_words")
        return self


class SentenceCompletionCreate(WordCountMixin):
    question_id: UUID
    example_sentence: ShortText
    given_part_sentence: ShortText
    position: Literal["start", "end"]
    required_words: List[ShortText] = Field(default_factory=list)
    explain: ExplainText


class SentenceCompletionResponse(BaseModel):
    id: UUID
    example_sentence: str
    given_part_sentence: str
    position: str
    required_words: List[str]
    explain: str
    min_words: int
    max_words: int

    model_config = ConfigDict(from_attributes=True)


class EssayCreate(WordCountMixin):
    question_id: UUID
    essay_type: ShortText
    required_points: List[ShortText] = Field(default_factory=list)
    sample_essay: LongText
    explain: ExplainText


class EssayResponse(BaseModel):
    id: UUID
    essay_type: str
    required_points: List[str]
    min_words: int
    max_words: int
    sample_essay: str
    explain: str

    model_config = ConfigDict(from_attributes=True)


def _camel(name: str) -> str:
    return "".join(part.title() for part in name.split("_"))


class EntityFieldUpdate(BaseModel):
    """Base for generated {field, value} variants of a sub-entity kind"""
    field: str
    value: Any


def build_field_update(kind_name: str, create_schema: type, exclude: str):
    """
    Build the tagged {field, value} update type for a sub-entity kind.

    One variant per editable field of `create_schema`; `value` keeps the
    field's own annotation and constraints.
    """
    variants = []
    for name, info in create_schema.model_fields.items():
        if name == exclude:
            continue
        annotation = info.annotation
        if info.metadata:
            annotation = Annotated[(annotation, *info.metadata)]
        variants.append(create_model(
            f"{_camel(kind_name)}{_camel(name)}Update",
            __base__=EntityFieldUpdate,
            field=(Literal[name], ...),
            value=(annotation, ...),
        ))
    if len(variants) == 1:
        annotation = variants[0]
    else:
        annotation = Annotated[Union[tuple(variants)], Field(discriminator="field")]
    return type(f"{_camel(kind_name)}UpdateRequest", (RootModel[annotation],), {})


# ==========================================
# AGGREGATE DETAIL
# ==========================================

class QuestionDetail(QuestionResponse):
    """
    Root question plus every loaded sub-entity of its type.
    Stored as-is in the cache and as the search payload.
    """
    true_false: Optional[List[TrueFalseResponse]] = None
    fill_in_the_blank_question: Optional[FillInTheBlankQuestionResponse] = None
    fill_in_the_blank_answers: Optional[List[FillInTheBlankAnswerResponse]] = None
    choice_one_question: Optional[ChoiceQuestionResponse] = None
    choice_one_options: Optional[List[ChoiceOptionResponse]] = None
    choice_multi_question: Optional[ChoiceQuestionResponse] = None
    choice_multi_options: Optional[List[ChoiceOptionResponse]] = None
    matching: Optional[List[PairResponse]] = None
    map_labelling: Optional[List[PairResponse]] = None
    error_identification: Optional[ErrorIdentificationResponse] = None
    sentence_transformation: Optional[SentenceTransformationResponse] = None
    word_repetition: Optional[List[WordRepetitionResponse]] = None
    phrase_repetition: Optional[List[PhraseRepetitionResponse]] = None
    paragraph_repetition: Optional[List[ParagraphRepetitionResponse]] = None
    open_paragraph: Optional[List[OpenParagraphResponse]] = None
    conversational_repetition: Optional[ConversationalRepetitionResponse] = None
    conversational_repetition_qas: Optional[List[ConversationalRepetitionQAResponse]] = None
    conversational_open: Optional[ConversationalOpenResponse] = None
    sentence_completion: Optional[List[SentenceCompletionResponse]] = None
    essay: Optional[List[EssayResponse]] = None

    def to_payload(self) -> dict:
        """JSON-safe dict; unset module fields and unloaded kinds are dropped."""
        return self.model_dump(mode="json", exclude_none=True)


class QuestionSearchPage(BaseModel):
    questions: List[dict]
    total: int
    page: int
    limit: int

