from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

load_dotenv()

from . import settings  # noqa: E402
from .errors import register_exception_handlers  # noqa: E402
from .middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware  # noqa: E402
from .routers import (  # noqa: E402
    admin,
    auth,
    comments,
    feed,
    likes,
    notifications,
    posts,
    system,
    users,
)

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


def _alembic_config() -> Config:
    base_dir = Path(__file__).resolve().parent.parent
    cfg = Config(str(base_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    return cfg


def run_migrations() -> None:
    """Bring the schema up to the latest Alembic revision."""
    logger.info("Upgrading database schema to head")
    try:
        command.upgrade(_alembic_config(), "head")
    except Exception as e:
        logger.error(f"Schema upgrade failed: {e}", exc_info=True)
        raise
    logger.info("Database schema is up to date")


def cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if "*" in origins:
        logger.warning("CORS_ORIGINS allows any origin; restrict it in production")
    return origins


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting SocialConnect API")
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        run_migrations()
    else:
        logger.info("Skipping migrations (RUN_MIGRATIONS_ON_STARTUP is off)")
    yield
    logger.info("SocialConnect API stopped")


app = FastAPI(
    title="SocialConnect API",
    version="1.0.0",
    description="Social networking API: posts, likes, comments, follows and notifications",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
    max_age=600,
)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)


app.include_router(system.router)
app.include_router(auth.router)
app.include_router(feed.router)
app.include_router(posts.router)
app.include_router(likes.router)
app.include_router(comments.router)
app.include_router(users.router)
app.include_router(notifications.router)
app.include_router(admin.router)


# Uploaded avatars and post images
if os.environ.get("VAULT_LOCATION"):
    vault_dir = Path(os.environ["VAULT_LOCATION"])
    vault_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/vault", StaticFiles(directory=str(vault_dir)), name="vault")
    logger.info(f"Serving uploads from {vault_dir} at /vault")
