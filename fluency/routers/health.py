"""
Health check endpoints
Service verification for Postgres, Redis and Qdrant
"""

import asyncio
from datetime import datetime, timezone

import httpx
import redis
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from fluency import config
from fluency.dependencies import Services, get_services

router = APIRouter(prefix="/health", tags=["health"])


def qdrant_base_url() -> str:
    if config.QDRANT_URL:
        return config.QDRANT_URL.rstrip("/")
    return f"http://{config.QDRANT_HOST}:{config.QDRANT_PORT}"


@router.get("")
async def health_check():
    """
    Basic health check - API is running
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "fluency-content-api",
    }


@router.get("/postgres")
def postgres_health(services: Services = Depends(get_services)):
    """
    Verify the question database connection
    """
    try:
        with services.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "service": "postgres",
            "dialect": services.engine.dialect.name,
            "purpose": "Question source of truth",
        }
    except SQLAlchemyError as e:
        raise HTTPException(status_code=503, detail=f"Postgres unhealthy: {str(e)}")


@router.get("/redis")
def redis_health(services: Services = Depends(get_services)):
    """
    Verify Redis and report the cache health flag
    """
    try:
        services.cache.client.ping()
    except redis.RedisError as e:
        raise HTTPException(status_code=503, detail=f"Redis unhealthy: {str(e)}")
    return {
        "status": "healthy",
        "service": "redis",
        "cache_enabled": services.cache.healthy,
        "purpose": "Question detail cache",
    }


@router.get("/qdrant")
async def qdrant_health():
    """
    Verify Qdrant connection (search index)
    """
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(f"{qdrant_base_url()}/collections")
            response.raise_for_status()
            collections = response.json()

        return {
            "status": "healthy",
            "service": "qdrant",
            "collections": collections.get("result", {}).get("collections", []),
            "purpose": "Question search index",
        }
    except httpx.HTTPError as e:
        raise HTTPException(status_code=503, detail=f"Qdrant unhealthy: {str(e)}")


@router.get("/all")
async def all_services_health(services: Services = Depends(get_services)):
    """
    Check all services at once
    """
    results = {"api": {"status": "healthy"}}
    overall_healthy = True

    checks = [
        ("postgres", lambda: postgres_health(services)),
        ("redis", lambda: redis_health(services)),
    ]
    for name, check in checks:
        try:
            results[name] = {"status": "healthy", "details": await asyncio.to_thread(check)}
        except HTTPException as e:
            results[name] = {"status": "unhealthy", "error": e.detail}
            overall_healthy = False

    try:
        results["qdrant"] = {"status": "healthy", "details": await qdrant_health()}
    except HTTPException as e:
        results["qdrant"] = {"status": "unhealthy", "error": e.detail}
        overall_healthy = False

    return {
        "overall_status": "healthy" if overall_healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": results,
    }
