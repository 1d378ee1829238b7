from pathlib import Path

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from trainer.config import settings


def _engine_kwargs(database_url: str) -> dict:
    # SQLite connections are shared between the CLI and test threads
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


def _ensure_sqlite_dir(database_url: str):
    """Create the parent directory of a file-backed SQLite database"""
    prefix = "sqlite:///"
    if database_url.startswith(prefix) and ":memory:" not in database_url:
        Path(database_url[len(prefix):]).parent.mkdir(parents=True, exist_ok=True)


_ensure_sqlite_dir(settings.database_url)

engine = create_engine(settings.database_url, echo=False, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db():
    """Create all tables"""
    # Import models so they register with Base.metadata
    import trainer.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized at {settings.database_url}")
