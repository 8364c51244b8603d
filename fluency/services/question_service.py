"""
Root question service
Create/read/update/delete for root questions of one module, with
cache-first reads and synchronization after every write.
"""

import logging
from typing import List, Optional
from uuid import UUID

import redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fluency.content import ModuleDefinition
from fluency.database import crud, models, schemas
from fluency.database.redis_client import QuestionCache
from fluency.embeddings.qdrant_manager import QuestionIndex, parse_time_range
from fluency.errors import AggregateLoadError, InternalError, InvalidInputError, NotFoundError
from fluency.services.updator import QuestionUpdator

log = logging.getLogger(__name__)


class QuestionService:
    def __init__(self, db: Session, updator: QuestionUpdator, cache: QuestionCache, index: QuestionIndex):
        self.db = db
        self.updator = updator
        self.cache = cache
        self.index = index

    # ─── Writes ────────────────────────────────────────────────────────────────

    def create(self, module: ModuleDefinition, payload: schemas.QuestionCreate) -> models.Question:
        """
        Insert a root question at version 1.
        Synchronization is part of the create: if either projection fails the
        insert is rolled back, and if the commit fails the projections are
        discarded. Either way the request fails.
        """
        if payload.type not in module.types:
            raise InvalidInputError(
                f"invalid {module.name} question type '{payload.type}'; expected one of {sorted(module.types)}"
            )

        question = crud.create_question(self.db, module.name, payload.model_dump())
        question_id = question.id
        try:
            projection = self.updator.build(self.db, question)
        except AggregateLoadError:
            self.db.rollback()
            raise

        result = self.updator.publish(projection)
        if not result.ok:
            self.db.rollback()
            self.updator.discard(module.name, question_id)
            raise InternalError(f"failed to synchronize new question: {result.describe()}")

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self.updator.discard(module.name, question_id)
            raise InternalError(f"failed to store new question: {e}") from e
        self.db.refresh(question)
        log.info(f"[QUESTION] Created {module.name} question {question_id} ({question.type})")
        return question

    def update_field(self, module: ModuleDefinition, question_id: UUID, update) -> models.Question:
        """Apply one tagged field update, bump the version and resynchronize."""
        if update.field not in module.updatable_fields:
            raise InvalidInputError(f"invalid field for {module.name} question: {update.field}")

        question = self._get_or_404(module, question_id)
        setattr(question, update.field, update.value)
        question.version += 1
        self._commit_and_sync(question)
        return question

    def delete(self, module: ModuleDefinition, question_id: UUID):
        question = self._get_or_404(module, question_id)
        self.db.delete(question)
        self.db.commit()
        self.updator.discard(module.name, question_id)
        log.info(f"[QUESTION] Deleted {module.name} question {question_id}")

    def delete_all(self, module: ModuleDefinition) -> int:
        questions = crud.get_module_questions(self.db, module.name)
        for question in questions:
            self.db.delete(question)
        self.db.commit()
        self.updator.discard_module(module.name)
        log.info(f"[QUESTION] Deleted all {len(questions)} {module.name} questions")
        return len(questions)

    # ─── Reads ─────────────────────────────────────────────────────────────────

    def get_detail(self, module: ModuleDefinition, question_id: UUID) -> dict:
        """Cache first; on a miss rebuild from the database and repopulate the cache."""
        cached = self._cached_detail(module, question_id)
        if cached is not None:
            return cached
        question = self._get_or_404(module, question_id)
        return self._load_and_cache(question)

    def get_new_updates(self, module: ModuleDefinition, checks: List[schemas.VersionCheck]) -> List[dict]:
        """
        Details the caller is missing.
        A check whose exact version is still cached is assumed current; the
        rest are compared against the stored version.
        """
        pending = []
        for check in checks:
            try:
                current = self.cache.has_version(module.name, check.id, check.version)
            except redis.RedisError as e:
                log.warning(f"[CACHE] version lookup failed for {check.id}: {e}")
                current = False
            if not current:
                pending.append((check.id, check.version))

        if not pending:
            return []
        questions = crud.get_updated_questions(self.db, module.name, pending)
        return [self._load_and_cache(q) for q in questions]

    def get_by_ids(self, module: ModuleDefinition, question_ids: List[UUID]) -> List[dict]:
        """Batch fetch in request order; unknown IDs are skipped."""
        ordered = list(dict.fromkeys(question_ids))
        found = {}
        missing = []
        for question_id in ordered:
            cached = self._cached_detail(module, question_id)
            if cached is not None:
                found[question_id] = cached
            else:
                missing.append(question_id)

        for question in crud.get_questions_by_ids(self.db, module.name, missing):
            found[question.id] = self._load_and_cache(question)

        return [found[qid] for qid in ordered if qid in found]

    def search(self, module: ModuleDefinition, filters: schemas.QuestionSearchFilters) -> dict:
        try:
            time_range = parse_time_range(filters.max_time)
        except ValueError as e:
            raise InvalidInputError(str(e))
        questions, total = self.index.search(module.name, filters, time_range)
        return schemas.QuestionSearchPage(
            questions=questions, total=total, page=filters.page, limit=filters.limit
        ).model_dump()

    # ─── Helpers ───────────────────────────────────────────────────────────────

    def _get_or_404(self, module: ModuleDefinition, question_id: UUID) -> models.Question:
        question = crud.get_question(self.db, module.name, question_id)
        if not question:
            raise NotFoundError(f"{module.name} question {question_id} not found")
        return question

    def _cached_detail(self, module: ModuleDefinition, question_id: UUID) -> Optional[dict]:
        try:
            return self.cache.get_detail(module.name, question_id)
        except redis.RedisError as e:
            log.warning(f"[CACHE] read failed for {module.name} question {question_id}: {e}")
            return None

    def _load_and_cache(self, question: models.Question) -> dict:
        projection = self.updator.build(self.db, question)
        self.updator.publish(projection, search=False)
        return projection.payload

    def _commit_and_sync(self, question: models.Question):
        """Flush, rebuild inside the transaction, commit, then publish best-effort."""
        self.db.flush()
        try:
            projection = self.updator.build(self.db, question)
        except AggregateLoadError:
            self.db.rollback()
            raise
        self.db.commit()
        self.updator.publish(projection)
