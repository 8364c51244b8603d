"""
Completion evaluator
Decides whether a question detail has the minimum content its type needs.
Pure functions: no I/O, no mutation.
"""

import logging
from typing import Callable, Dict

from fluency.database.schemas import QuestionDetail

log = logging.getLogger(__name__)

Rule = Callable[[QuestionDetail], bool]


def _rows(key: str, minimum: int) -> Rule:
    def rule(detail: QuestionDetail) -> bool:
        return len(getattr(detail, key) or []) >= minimum
    return rule


def _present(key: str) -> Rule:
    def rule(detail: QuestionDetail) -> bool:
        return getattr(detail, key) is not None
    return rule


def _with_children(parent_key: str, children_key: str, minimum: int) -> Rule:
    def rule(detail: QuestionDetail) -> bool:
        if getattr(detail, parent_key) is None:
            return False
        return len(getattr(detail, children_key) or []) >= minimum
    return rule


def _choice(prefix: str, min_options: int, min_correct: int, min_incorrect: int) -> Rule:
    def rule(detail: QuestionDetail) -> bool:
        if getattr(detail, f"{prefix}_question") is None:
            return False
        options = getattr(detail, f"{prefix}_options") or []
        if len(options) < min_options:
            return False
        correct = sum(1 for o in options if o.is_correct)
        return correct >= min_correct and len(options) - correct >= min_incorrect
    return rule


FILL_IN_THE_BLANK_2 = _with_children("fill_in_the_blank_question", "fill_in_the_blank_answers", 2)
CHOICE_ONE = _choice("choice_one", min_options=2, min_correct=1, min_incorrect=1)
CHOICE_MULTI = _choice("choice_multi", min_options=3, min_correct=2, min_incorrect=1)

RULES: Dict[str, Dict[str, Rule]] = {
    "reading": {
        "FILL_IN_THE_BLANK": FILL_IN_THE_BLANK_2,
        "CHOICE_ONE": CHOICE_ONE,
        "CHOICE_MULTI": CHOICE_MULTI,
        "MATCHING": _rows("matching", 1),
        "TRUE_FALSE": _rows("true_false", 2),
    },
    "listening": {
        "FILL_IN_THE_BLANK": FILL_IN_THE_BLANK_2,
        "CHOICE_ONE": CHOICE_ONE,
        "CHOICE_MULTI": CHOICE_MULTI,
        "MAP_LABELLING": _rows("map_labelling", 2),
        "MATCHING": _rows("matching", 2),
    },
    "grammar": {
        "FILL_IN_THE_BLANK": _with_children("fill_in_the_blank_question", "fill_in_the_blank_answers", 1),
        "CHOICE_ONE": CHOICE_ONE,
        "ERROR_IDENTIFICATION": _present("error_identification"),
        "SENTENCE_TRANSFORMATION": _present("sentence_transformation"),
    },
    "speaking": {
        "WORD_REPETITION": _rows("word_repetition", 1),
        "PHRASE_REPETITION": _rows("phrase_repetition", 1),
        "PARAGRAPH_REPETITION": _rows("paragraph_repetition", 1),
        "OPEN_PARAGRAPH": _rows("open_paragraph", 1),
        "CONVERSATIONAL_REPETITION": _with_children(
            "conversational_repetition", "conversational_repetition_qas", 2
        ),
        "CONVERSATIONAL_OPEN": _present("conversational_open"),
    },
    "writing": {
        "SENTENCE_COMPLETION": _rows("sentence_completion", 1),
        "ESSAY": _rows("essay", 1),
    },
}


def is_complete(module: str, detail: QuestionDetail) -> bool:
    """True when the detail meets its type's minimum-content rule."""
    rule = RULES.get(module, {}).get(detail.type)
    if rule is None:
        log.warning(f"[COMPLETION] No rule for {module}/{detail.type} (question {detail.id}); treating as uncomplete")
        return False
    return rule(detail)
