"""Shared test fixtures."""

import fnmatch
import hashlib

import pytest
import redis
from fastapi.testclient import TestClient
from qdrant_client import QdrantClient

from fluency.content import MODULES
from fluency.database import models  # noqa: F401  (registers tables)
from fluency.database.database import Base, build_engine, build_session_factory
from fluency.database.redis_client import QuestionCache
from fluency.dependencies import Services
from fluency.embeddings.qdrant_manager import QuestionIndex
from fluency.main import create_app
from fluency.services.entity_service import EntityService
from fluency.services.question_service import QuestionService
from fluency.services.updator import QuestionUpdator


class FakeRedis:
    """In-memory stand-in for the redis calls the cache makes."""

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.down = False
        self.hits = 0
        self.misses = 0

    def _check(self):
        if self.down:
            raise redis.ConnectionError("Connection refused")

    def get(self, key):
        self._check()
        if key in self.store:
            self.hits += 1
            return self.store[key]
        self.misses += 1
        return None

    def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl
        return True

    def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                self.ttls.pop(key, None)
                removed += 1
        return removed

    def exists(self, *keys):
        self._check()
        return sum(1 for key in keys if key in self.store)

    def scan_iter(self, match=None, count=None):
        self._check()
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    def ping(self):
        self._check()
        return True

    def info(self):
        self._check()
        return {
            "connected_clients": 1,
            "used_memory": 1024,
            "used_memory_human": "1.00K",
            "total_commands_processed": 10,
            "keyspace_hits": self.hits,
            "keyspace_misses": self.misses,
            "evicted_keys": 0,
            "expired_keys": 0,
        }

    def close(self):
        pass


class FakeEmbedder:
    """Deterministic small vectors derived from a hash of the text."""

    DIM = 8

    def generate_embedding(self, text):
        digest = hashlib.sha256((text or "").encode("utf-8")).digest()
        return [0.1 + b / 255 for b in digest[: self.DIM]]

    def get_embedding_dimension(self):
        return self.DIM


@pytest.fixture
def engine(tmp_path):
    """A fresh temporary SQLite database with all tables."""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return QuestionCache(fake_redis, ttl_seconds=3600)


@pytest.fixture
def index():
    index = QuestionIndex(QdrantClient(":memory:"), FakeEmbedder())
    yield index
    index.client.close()


@pytest.fixture
def services(engine, cache, index):
    return Services(
        engine=engine,
        session_factory=build_session_factory(engine),
        cache=cache,
        index=index,
        updator=QuestionUpdator(cache, index),
    )


@pytest.fixture
def db(services):
    session = services.session_factory()
    yield session
    session.close()


@pytest.fixture
def question_service(db, services):
    return QuestionService(db, services.updator, services.cache, services.index)


@pytest.fixture
def entity_service(db, services):
    return EntityService(db, services.updator)


@pytest.fixture
def client(services):
    """TestClient over injected services; lifespan is not run."""
    client = TestClient(create_app(services), raise_server_exceptions=False)
    yield client
    client.close()


@pytest.fixture
def question_payload():
    """Build a valid create body for a module/type, with overrides."""

    def build(module="reading", question_type="CHOICE_ONE", **overrides):
        body = {
            "type": question_type,
            "topic": ["Travel"],
            "instruction": "Choose the correct answer.",
            "max_time": 120,
        }
        if module == "reading":
            body["title"] = "A Day in Lisbon"
            body["passages"] = ["The tram climbed the hill slowly."]
        elif module == "listening":
            body["audio_urls"] = ["https://cdn.example.com/audio/lisbon.mp3"]
            body["transcript"] = "Welcome aboard the number 28 tram."
        body.update(overrides)
        return body

    return build


@pytest.fixture
def make_question(question_service, question_payload):
    """Create a root question through the service and return the ORM row."""

    def make(module="reading", question_type="CHOICE_ONE", **overrides):
        definition = MODULES[module]
        payload = definition.create_schema(**question_payload(module, question_type, **overrides))
        return question_service.create(definition, payload)

    return make
