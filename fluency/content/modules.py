"""
Module registry
Question types, loaded sub-entity kinds and updatable root fields per content module.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Tuple

from fluency.database import schemas

FILL_IN_THE_BLANK = ("fill_in_the_blank_question", "fill_in_the_blank_answer")
CHOICE_ONE = ("choice_one_question", "choice_one_option")
CHOICE_MULTI = ("choice_multi_question", "choice_multi_option")

BASE_FIELDS = frozenset({"topic", "instruction", "image_urls", "max_time"})


@dataclass(frozen=True)
class ModuleDefinition:
    name: str
    create_schema: type
    types: Dict[str, Tuple[str, ...]]
    updatable_fields: FrozenSet[str]
    extra_fields: Tuple[str, ...] = ()

    @property
    def kinds(self) -> Tuple[str, ...]:
        """Every sub-entity kind used by this module, in declaration order"""
        seen = {}
        for kind_names in self.types.values():
            for name in kind_names:
                seen.setdefault(name, None)
        return tuple(seen)

    def kinds_for(self, question_type: str) -> Tuple[str, ...]:
        return self.types.get(question_type, ())


MODULES: Dict[str, ModuleDefinition] = {m.name: m for m in [
    ModuleDefinition(
        name="reading",
        create_schema=schemas.ReadingQuestionCreate,
        types={
            "FILL_IN_THE_BLANK": FILL_IN_THE_BLANK,
            "CHOICE_ONE": CHOICE_ONE,
            "CHOICE_MULTI": CHOICE_MULTI,
            "MATCHING": ("matching",),
            "TRUE_FALSE": ("true_false",),
        },
        updatable_fields=BASE_FIELDS | {"title", "passages"},
        extra_fields=("title", "passages"),
    ),
    ModuleDefinition(
        name="listening",
        create_schema=schemas.ListeningQuestionCreate,
        types={
            "FILL_IN_THE_BLANK": FILL_IN_THE_BLANK,
            "CHOICE_ONE": CHOICE_ONE,
            "CHOICE_MULTI": CHOICE_MULTI,
            "MAP_LABELLING": ("map_labelling",),
            "MATCHING": ("matching",),
        },
        updatable_fields=BASE_FIELDS | {"audio_urls", "transcript"},
        extra_fields=("audio_urls", "transcript"),
    ),
    ModuleDefinition(
        name="grammar",
        create_schema=schemas.QuestionCreate,
        types={
            "FILL_IN_THE_BLANK": FILL_IN_THE_BLANK,
            "CHOICE_ONE": CHOICE_ONE,
            "ERROR_IDENTIFICATION": ("error_identification",),
            "SENTENCE_TRANSFORMATION": ("sentence_transformation",),
        },
        updatable_fields=BASE_FIELDS,
    ),
    ModuleDefinition(
        name="speaking",
        create_schema=schemas.QuestionCreate,
        types={
            "WORD_REPETITION": ("word_repetition",),
            "PHRASE_REPETITION": ("phrase_repetition",),
            "PARAGRAPH_REPETITION": ("paragraph_repetition",),
            "OPEN_PARAGRAPH": ("open_paragraph",),
            "CONVERSATIONAL_REPETITION": ("conversational_repetition", "conversational_repetition_qa"),
            "CONVERSATIONAL_OPEN": ("conversational_open",),
        },
        updatable_fields=BASE_FIELDS,
    ),
    ModuleDefinition(
        name="writing",
        create_schema=schemas.QuestionCreate,
        types={
            "SENTENCE_COMPLETION": ("sentence_completion",),
            "ESSAY": ("essay",),
        },
        updatable_fields=BASE_FIELDS,
    ),
]}
