"""
CRUD operations for questions and their sub-entities
Functions flush but never commit; services own the transaction.
"""

from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from fluency.database import models


# ==========================================
# QUESTION CRUD
# ==========================================

def create_question(db: Session, module: str, fields: dict) -> models.Question:
    """Insert a root question at version 1"""
    db_question = models.Question(module=module, version=1, **fields)
    db.add(db_question)
    db.flush()
    return db_question


def get_question(db: Session, module: str, question_id: UUID) -> Optional[models.Question]:
    """Get a question of one module by ID"""
    return db.query(models.Question).filter(
        models.Question.id == question_id,
        models.Question.module == module,
    ).first()


def get_questions_by_ids(db: Session, module: str, question_ids: Iterable[UUID]) -> List[models.Question]:
    ids = list(question_ids)
    if not ids:
        return []
    return db.query(models.Question).filter(
        models.Question.module == module,
        models.Question.id.in_(ids),
    ).all()


def get_updated_questions(db: Session, module: str, checks: Iterable[Tuple[UUID, int]]) -> List[models.Question]:
    """Questions whose stored version is newer than the caller's: (id = ? AND version > ?) OR ..."""
    conditions = [
        and_(models.Question.id == question_id, models.Question.version > version)
        for question_id, version in checks
    ]
    if not conditions:
        return []
    return db.query(models.Question).filter(
        models.Question.module == module,
        or_(*conditions),
    ).all()


def get_module_questions(db: Session, module: str) -> List[models.Question]:
    return db.query(models.Question).filter(models.Question.module == module).order_by(models.Question.created_at).all()


def count_module_questions(db: Session, module: str) -> int:
    return db.query(models.Question).filter(models.Question.module == module).count()


# ==========================================
# SUB-ENTITY CRUD (driven by the kind catalog)
# ==========================================

def get_entity(db: Session, kind, entity_id: UUID):
    return db.query(kind.model).filter(kind.model.id == entity_id).first()


def list_entities(db: Session, kind, parent_id: UUID) -> list:
    """All rows of a kind under one owner, oldest first"""
    parent_col = getattr(kind.model, kind.parent_field)
    return db.query(kind.model).filter(parent_col == parent_id).order_by(kind.model.created_at).all()


def create_entity(db: Session, kind, fields: dict):
    db_entity = kind.model(**fields)
    db.add(db_entity)
    return db_entity


def get_other_correct_entities(db: Session, kind, parent_id: UUID, exclude_id: Optional[UUID] = None) -> list:
    """Rows of a kind under the same owner that are currently marked correct"""
    parent_col = getattr(kind.model, kind.parent_field)
    query = db.query(kind.model).filter(parent_col == parent_id, kind.model.is_correct.is_(True))
    if exclude_id is not None:
        query = query.filter(kind.model.id != exclude_id)
    return query.all()
