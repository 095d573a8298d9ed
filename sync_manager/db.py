# sync_manager/db.py
import logging
from typing import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from sync_manager.config import get_settings

log = logging.getLogger(__name__)


def _normalize_database_url(url: str) -> str:
    if not url:
        return "sqlite:///./data.db"

    url = url.strip()

    if url.startswith("sqlite:"):
        return url

    if url.startswith("postgresql+psycopg://"):
        return url

    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)

    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)

    return url


def mask_db_url(url: str) -> str:
    if not url or "://" not in url or "@" not in url:
        return url
    scheme, rest = url.split("://", 1)
    creds, tail = rest.split("@", 1)
    user = creds.split(":", 1)[0]
    return f"{scheme}://{user}:***@{tail}"


def build_engine(url: str) -> Engine:
    settings = get_settings()

    if url.startswith("sqlite:"):
        return create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=1800,
    )


DATABASE_URL = _normalize_database_url(get_settings().database_url)
engine = build_engine(DATABASE_URL)

log.info("[BOOT] DB URL = %s", mask_db_url(DATABASE_URL))


def init_db() -> None:
    # importe les tables pour que SQLModel.metadata les connaisse
    from sync_manager.models import product  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
