"""
Question updator
Rebuilds a question's aggregate after any mutation and republishes it to the
cache and the search index.

The relational rows are the source of truth; both projections are
best-effort and their outcome is reported as a ProjectionResult.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import redis
from sqlalchemy.orm import Session

from fluency.database import models
from fluency.database.redis_client import COMPLETE, UNCOMPLETE, CacheUnavailableError, QuestionCache
from fluency.database.schemas import QuestionDetail
from fluency.embeddings.qdrant_manager import QuestionIndex
from fluency.services.completion import is_complete
from fluency.services.loader import load_detail

log = logging.getLogger(__name__)

CACHE_ERRORS = (redis.RedisError, CacheUnavailableError)


@dataclass
class Projection:
    module: str
    detail: QuestionDetail
    complete: bool

    @property
    def status(self) -> str:
        return COMPLETE if self.complete else UNCOMPLETE

    @property
    def payload(self) -> dict:
        return self.detail.to_payload()


@dataclass
class ProjectionResult:
    """Which of the two secondary stores accepted the write."""
    cache_ok: bool = True
    search_ok: bool = True
    cache_error: Optional[str] = None
    search_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.cache_ok and self.search_ok

    def describe(self) -> str:
        problems = []
        if not self.cache_ok:
            problems.append(f"cache: {self.cache_error}")
        if not self.search_ok:
            problems.append(f"search: {self.search_error}")
        return "; ".join(problems) or "ok"


class QuestionUpdator:
    def __init__(self, cache: QuestionCache, index: QuestionIndex):
        self.cache = cache
        self.index = index

    def build(self, db: Session, question: models.Question) -> Projection:
        """Load the aggregate and evaluate completion. Loader errors propagate."""
        detail = load_detail(db, question)
        return Projection(module=question.module, detail=detail, complete=is_complete(question.module, detail))

    def publish(self, projection: Projection, search: bool = True) -> ProjectionResult:
        """Write the projection to the cache and (optionally) the search index, independently."""
        result = ProjectionResult()
        payload = projection.payload
        question_id = projection.detail.id

        try:
            self.cache.set_detail(
                projection.module, question_id, projection.status, projection.detail.version, payload
            )
        except CACHE_ERRORS as e:
            result.cache_ok = False
            result.cache_error = str(e)

        if search:
            try:
                self.index.upsert_question(projection.module, payload, projection.status)
            except Exception as e:
                result.search_ok = False
                result.search_error = str(e)

        if not result.ok:
            log.warning(f"[SYNC] {projection.module} question {question_id} v{projection.detail.version} "
                        f"partially synchronized: {result.describe()}")
        return result

    def update_cache_and_search(self, db: Session, question: models.Question) -> ProjectionResult:
        return self.publish(self.build(db, question))

    def discard(self, module: str, question_id: UUID) -> ProjectionResult:
        """Remove a deleted question from both projections."""
        result = ProjectionResult()
        try:
            self.cache.delete_question(module, question_id)
        except CACHE_ERRORS as e:
            result.cache_ok = False
            result.cache_error = str(e)
        try:
            self.index.delete_question(module, question_id)
        except Exception as e:
            result.search_ok = False
            result.search_error = str(e)
        if not result.ok:
            log.warning(f"[SYNC] cleanup of {module} question {question_id} incomplete: {result.describe()}")
        return result

    def discard_module(self, module: str) -> ProjectionResult:
        """Remove every cached detail and the search collection of a module."""
        result = ProjectionResult()
        try:
            removed = self.cache.delete_module(module)
            log.info(f"[SYNC] Removed {removed} cached {module} details")
        except CACHE_ERRORS as e:
            result.cache_ok = False
            result.cache_error = str(e)
        try:
            self.index.delete_module(module)
        except Exception as e:
            result.search_ok = False
            result.search_error = str(e)
        if not result.ok:
            log.warning(f"[SYNC] cleanup of module {module} incomplete: {result.describe()}")
        return result
