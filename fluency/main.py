"""
Fluency Content API: Main Application
FastAPI application serving reading, listening, speaking, writing and grammar
question content, backed by Postgres with a Redis cache and a Qdrant search index.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fluency import __version__, config
from fluency.content import MODULES
from fluency.database.database import Base
from fluency.dependencies import Services, build_services
from fluency.errors import register_exception_handlers
from fluency.monitor import start_monitor, stop_monitor
from fluency.routers import build_entity_router, build_question_router, health_router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s  %(levelname)s  %(message)s",
)
log = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Build the application.
    When services are given (tests) they are used as-is; otherwise the
    production clients are wired on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: connect clients, create tables, start the monitor."""
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services()
        Base.metadata.create_all(bind=app.state.services.engine)
        tasks = start_monitor(app.state.services.cache)
        log.info(f"[STARTUP] Fluency Content API {__version__} ready ({', '.join(MODULES)})")
        yield
        await stop_monitor(tasks)
        app.state.services.close()

    app = FastAPI(
        title="Fluency Content API",
        description="Language-learning question content with cached and searchable projections",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # ─── Routers ───────────────────────────────────────────────────────────────

    for module in MODULES.values():
        app.include_router(build_question_router(module))   # /api/{module}/questions/*
        app.include_router(build_entity_router(module))     # /api/{module}/{kind}/*
    app.include_router(health_router)                        # /health/*

    @app.get("/")
    def root():
        return {
            "name": "Fluency Content API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                **{name: f"/api/{name}/questions" for name in MODULES},
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
