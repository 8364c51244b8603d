"""
Aggregate loader
Assembles a QuestionDetail from a root question and the sub-entities of its type.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fluency.content import KINDS, MODULES
from fluency.database import crud, models
from fluency.database.schemas import QuestionDetail, QuestionResponse
from fluency.errors import AggregateLoadError


def load_detail(db: Session, question: models.Question) -> QuestionDetail:
    """
    Fan out to every kind loaded by the question's type.

    Child kinds (answers, options, QAs) are only queried when their parent
    row exists. Unknown types are an error, never an empty detail.
    """
    module = MODULES.get(question.module)
    kind_names = module.kinds_for(question.type) if module else ()
    if not kind_names:
        raise AggregateLoadError(f"unknown question type: {question.module}/{question.type}")

    detail = QuestionDetail(**QuestionResponse.model_validate(question).model_dump())
    parents = {}

    try:
        for name in kind_names:
            kind = KINDS[name]
            if kind.parent is None:
                owner_id = question.id
            else:
                parent_row = parents.get(kind.parent)
                owner_id = parent_row.id if parent_row is not None else None

            rows = crud.list_entities(db, kind, owner_id) if owner_id is not None else []
            parents[name] = rows[0] if rows else None

            if kind.as_list:
                setattr(detail, kind.detail_key, [kind.response_schema.model_validate(r) for r in rows])
            elif rows:
                setattr(detail, kind.detail_key, kind.response_schema.model_validate(rows[0]))
    except SQLAlchemyError as e:
        raise AggregateLoadError(f"failed to load {question.type} data") from e

    return detail
