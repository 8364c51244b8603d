"""
Runtime configuration
All values come from the environment (optionally a .env file)
"""

import os

from dotenv import load_dotenv

load_dotenv()

# ─── Postgres ──────────────────────────────────────────────────────────────────

POSTGRES_USER = os.getenv("POSTGRES_USER", "fluency_user")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "fluency_pass")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "localhost")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")
POSTGRES_DB = os.getenv("POSTGRES_DB", "fluency")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}",
)

# ─── Redis ─────────────────────────────────────────────────────────────────────

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", str(24 * 60 * 60)))

# ─── Qdrant + embeddings ───────────────────────────────────────────────────────

QDRANT_URL = os.getenv("QDRANT_URL")
QDRANT_HOST = os.getenv("QDRANT_HOST", "localhost")
QDRANT_PORT = int(os.getenv("QDRANT_PORT", "6333"))

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")

# ─── Background monitor ────────────────────────────────────────────────────────

MONITOR_INTERVAL_SECONDS = float(os.getenv("MONITOR_INTERVAL_SECONDS", "10"))
METRICS_WEBHOOK_URL = os.getenv("METRICS_WEBHOOK_URL")

# ─── API ───────────────────────────────────────────────────────────────────────

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
