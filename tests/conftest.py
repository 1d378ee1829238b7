"""
Pytest Configuration and Fixtures.

Every test gets a fresh in-memory SQLite database.
"""
import os

# Keep the module-level engine off the real data directory
os.environ.setdefault("TRAINER_DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from trainer.database import Base
import trainer.models  # noqa: F401
from trainer.crud import create_profile, save_lesson
from trainer.schemas import ProfileCreate

# 2023-11-14 22:13:20 UTC
T0 = 1_700_000_000_000
DAY_MS = 86_400_000


@pytest.fixture
def session_factory():
    """Sessionmaker bound to a private in-memory database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def profile(db):
    """First profile (admin)."""
    return create_profile(db, ProfileCreate(name="Anna"))


def lesson_content(examples, concept="Глаголы движения"):
    """Lesson document with all examples in one concept group."""
    return {
        "concept": concept,
        "explanation": "Verbs of motion",
        "source": "textbook",
        "subconcepts": [
            {
                "concept": "идти",
                "explanation": "going on foot",
                "source": "textbook",
                "examples": examples,
            }
        ],
    }


def numbered_examples(count):
    return [
        {"russian": f"Предложение {i}", "english": f"Sentence {i}", "source": f"ex{i}"}
        for i in range(count)
    ]


@pytest.fixture
def make_lesson(db):
    """Store a lesson with the given examples (or N numbered examples)."""
    def _make(lesson_id, examples=None, count=10):
        if examples is None:
            examples = numbered_examples(count)
        return save_lesson(db, lesson_id, lesson_content(examples))
    return _make
