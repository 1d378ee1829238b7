from sqlalchemy.orm import Session
from loguru import logger
from typing import Dict, List, Optional

from trainer.schemas import Analytics, PrioritySentence
from trainer.priority import rank_sentences
from trainer.crud.analytics import load_analytics, save_analytics
from trainer.crud.lesson import get_lesson, extract_examples


def _select(db: Session, lesson_id: str, analytics: Analytics) -> List[PrioritySentence]:
    lesson = get_lesson(db, lesson_id)
    if lesson is None:
        logger.warning(f"Lesson {lesson_id} not found, no priority sentences")
        return []
    return rank_sentences(lesson_id, extract_examples(lesson), analytics.errors)


def select_priority_sentences(db: Session, lesson_id: str, profile_id: Optional[str]) -> List[PrioritySentence]:
    """Rank a lesson's sentences against the current error log (not stored)"""
    return _select(db, lesson_id, load_analytics(db, profile_id))


def save_priority_sentences(db: Session, lesson_id: str, profile_id: Optional[str]) -> List[PrioritySentence]:
    """
    Re-rank a lesson's sentences and store the selection, replacing the old one.

    A missing lesson or one without examples keeps no stored selection.
    """
    analytics = load_analytics(db, profile_id)
    sentences = _select(db, lesson_id, analytics)
    if not sentences:
        if analytics.priority_sentences.pop(lesson_id, None) is not None:
            save_analytics(db, profile_id, analytics)
        return []

    analytics.priority_sentences[lesson_id] = sentences
    save_analytics(db, profile_id, analytics)

    logger.info(f"Saved {len(sentences)} priority sentences for lesson {lesson_id}")
    return sentences


def get_priority_sentences(db: Session, lesson_id: str, profile_id: Optional[str]) -> List[PrioritySentence]:
    """
    Stored priority sentences of a lesson, selected and saved on first read.

    The stored selection is not refreshed when new errors are logged;
    call save_priority_sentences to re-rank.
    """
    analytics = load_analytics(db, profile_id)
    cached = analytics.priority_sentences.get(lesson_id)
    if cached:
        return cached
    return save_priority_sentences(db, lesson_id, profile_id)


def get_all_priority_sentences(db: Session, profile_id: Optional[str]) -> Dict[str, List[PrioritySentence]]:
    """Stored priority sentences of every lesson"""
    return load_analytics(db, profile_id).priority_sentences
