"""
API routers
Per-module question and sub-entity routes plus health checks
"""

from .entities import build_entity_router
from .health import router as health_router
from .questions import build_question_router

__all__ = ["build_entity_router", "build_question_router", "health_router"]
