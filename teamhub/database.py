# teamhub/database.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

load_dotenv()

DEFAULT_SQLITE_URL = "sqlite+aiosqlite:///" + (Path(__file__).resolve().parents[1] / "teamhub.db").as_posix()

# sync driver names we accept in DATABASE_URL, mapped to the async driver we run
_ASYNC_DRIVERS = {
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
    "postgresql+psycopg2": "postgresql+asyncpg",
    "postgresql+psycopg": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}

# libpq sslmode -> asyncpg ssl flag; "prefer"/"allow" are dropped
_SSL_FLAGS = {"require": "true", "verify-ca": "true", "verify-full": "true", "disable": "false"}


def _normalize_database_url(raw_url: Optional[str]) -> Optional[str]:
    """Rewrite a configured URL so it uses an async driver asyncpg/aiosqlite understands."""
    if not raw_url:
        return raw_url
    try:
        url = make_url(raw_url)
    except ArgumentError:
        return raw_url

    url = url.set(drivername=_ASYNC_DRIVERS.get(url.drivername.lower(), url.drivername))
    if url.drivername == "postgresql+asyncpg" and "sslmode" in url.query:
        query = {k: v for k, v in url.query.items() if k != "sslmode"}
        flag = _SSL_FLAGS.get(str(url.query["sslmode"]).strip().lower())
        if flag is not None:
            query["ssl"] = flag
        url = url.set(query=query)
    return url.render_as_string(hide_password=False)


def _database_url_from_env(env: Mapping[str, str]) -> Optional[str]:
    """First of ``DATABASE_URL`` / ``POSTGRES_URL`` that is set, normalized."""
    for key in ("DATABASE_URL", "POSTGRES_URL"):
        if env.get(key):
            return _normalize_database_url(env[key])
    return None


DATABASE_URL: str = _database_url_from_env(os.environ) or DEFAULT_SQLITE_URL
ECHO = os.getenv("SQLALCHEMY_ECHO", "0").lower() in {"1", "true", "yes"}

Base = declarative_base()

engine: AsyncEngine
SessionLocal: sessionmaker
CURRENT_DATABASE_URL: str


def configure_engine(database_url: str) -> None:
    """(Re)bind the module-level engine and session factory.

    Startup calls this again with ``DEFAULT_SQLITE_URL`` when Postgres stays
    unreachable and the fallback is allowed.
    """
    global engine, SessionLocal, CURRENT_DATABASE_URL

    engine = create_async_engine(database_url, echo=ECHO, pool_pre_ping=True)
    SessionLocal = sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)
    CURRENT_DATABASE_URL = database_url


configure_engine(DATABASE_URL)


async def get_db():
    async with SessionLocal() as session:
        yield session


async def init_models(bind: Optional[AsyncEngine] = None) -> None:
    """Create every table registered by ``teamhub.models``."""
    import teamhub.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
