"""
Service container and FastAPI dependencies
Clients are built once at startup and handed to request handlers through app.state.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from fluency import config
from fluency.database.database import build_engine, build_session_factory, get_db
from fluency.database.redis_client import QuestionCache, create_redis_client
from fluency.embeddings.generator import EmbeddingGenerator
from fluency.embeddings.qdrant_manager import QuestionIndex, create_qdrant_client
from fluency.services.entity_service import EntityService
from fluency.services.question_service import QuestionService
from fluency.services.updator import QuestionUpdator

log = logging.getLogger(__name__)


@dataclass
class Services:
    engine: Engine
    session_factory: sessionmaker
    cache: QuestionCache
    index: QuestionIndex
    updator: QuestionUpdator

    def close(self):
        self.cache.client.close()
        self.index.client.close()
        self.engine.dispose()


def build_services() -> Services:
    """Wire the production clients from configuration."""
    engine = build_engine()
    cache = QuestionCache(create_redis_client(), ttl_seconds=config.CACHE_TTL_SECONDS)
    index = QuestionIndex(create_qdrant_client(), EmbeddingGenerator(model_name=config.EMBEDDING_MODEL))
    log.info("[STARTUP] Postgres, Redis and Qdrant clients configured")
    return Services(
        engine=engine,
        session_factory=build_session_factory(engine),
        cache=cache,
        index=index,
        updator=QuestionUpdator(cache, index),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_question_service(
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> QuestionService:
    return QuestionService(db, services.updator, services.cache, services.index)


def get_entity_service(
    services: Services = Depends(get_services),
    db: Session = Depends(get_db),
) -> EntityService:
    return EntityService(db, services.updator)
