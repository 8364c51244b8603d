"""
Database connection and session management
Postgres connection for the question source of truth
"""

from typing import Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from fluency import config

# Base class for declarative models
Base = declarative_base()


def build_engine(url: Optional[str] = None) -> Engine:
    """Create an engine; pool settings only apply to server databases."""
    url = url or config.DATABASE_URL
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    """
    Database session dependency for FastAPI
    Yields a database session and ensures it's closed after use
    """
    db = request.app.state.services.session_factory()
    try:
        yield db
    finally:
        db.close()
