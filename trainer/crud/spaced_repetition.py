from sqlalchemy.orm import Session
from loguru import logger
from datetime import datetime
from typing import List, Optional

from trainer.schemas import SpacedRepetitionInfo
from trainer.exceptions import StorageError
from trainer.crud.analytics import load_analytics, save_analytics, record_lesson_completion
from trainer.spaced_repetition import (
    CLEAN_ERRORS,
    apply_completion,
    apply_visibility,
    due_for_review,
    find_info,
    refresh_statuses as refresh_document_statuses,
)


def _format_ms(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d")


def record_completion(
    db: Session,
    lesson_id: str,
    error_count: int,
    profile_id: Optional[str],
    now: Optional[int] = None
) -> SpacedRepetitionInfo:
    """
    Record a completed review pass and schedule the next review.

    Raises:
        StorageError: the updated document could not be saved
    """
    analytics = load_analytics(db, profile_id)
    info = apply_completion(analytics, lesson_id, error_count, now)
    save_analytics(db, profile_id, analytics)

    logger.info(
        f"Lesson {lesson_id} reviewed with {error_count} errors: "
        f"level {info.repetition_level}, next review {_format_ms(info.next_review_date)}"
    )
    return info


def mark_completed_and_maybe_hide(
    db: Session,
    lesson_id: str,
    profile_id: Optional[str],
    now: Optional[int] = None
) -> SpacedRepetitionInfo:
    """
    First-time completion of a lesson.

    Lessons finished with at most two logged errors are hidden from the
    default lesson list; noisier lessons stay visible for more practice.

    Raises:
        StorageError: the updated document could not be saved
    """
    analytics = load_analytics(db, profile_id)
    error_count = sum(1 for item in analytics.errors if item.lesson_id == lesson_id)
    should_hide = error_count <= CLEAN_ERRORS

    record_lesson_completion(analytics, lesson_id)
    info = apply_completion(analytics, lesson_id, error_count, now, is_hidden=should_hide)
    save_analytics(db, profile_id, analytics)

    logger.info(
        f"Lesson {lesson_id} completed with {error_count} logged errors "
        f"({'hidden' if should_hide else 'kept visible'}), next review {_format_ms(info.next_review_date)}"
    )
    return info


def toggle_visibility(
    db: Session,
    lesson_id: str,
    is_hidden: bool,
    profile_id: Optional[str]
) -> Optional[SpacedRepetitionInfo]:
    """Hide or show a lesson; returns None if the change could not be saved"""
    analytics = load_analytics(db, profile_id)
    info = apply_visibility(analytics, lesson_id, is_hidden)
    try:
        save_analytics(db, profile_id, analytics)
    except StorageError:
        return None

    logger.info(f"Lesson {lesson_id} {'hidden' if is_hidden else 'shown'}")
    return info


def get_lessons_due_for_review(
    db: Session,
    profile_id: Optional[str],
    now: Optional[int] = None
) -> List[SpacedRepetitionInfo]:
    """Visible completed lessons whose review date has passed"""
    return due_for_review(load_analytics(db, profile_id), now)


def refresh_statuses(db: Session, profile_id: Optional[str], now: Optional[int] = None) -> List[str]:
    """
    Mark lessons whose review date has passed as due for review.

    Returns:
        Ids of the lessons that changed status
    """
    analytics = load_analytics(db, profile_id)
    changed = refresh_document_statuses(analytics, now)
    if changed:
        save_analytics(db, profile_id, analytics)
        logger.info(f"{len(changed)} lesson(s) now due for review: {', '.join(changed)}")
    return changed


def get_repetition_info(db: Session, lesson_id: str, profile_id: Optional[str]) -> Optional[SpacedRepetitionInfo]:
    """Review record of one lesson, if tracked"""
    return find_info(load_analytics(db, profile_id), lesson_id)


def get_hidden_lessons(db: Session, profile_id: Optional[str]) -> List[SpacedRepetitionInfo]:
    """Review records of hidden lessons"""
    return [info for info in load_analytics(db, profile_id).spaced_repetition if info.is_hidden]


def get_all_repetition_info(db: Session, profile_id: Optional[str]) -> List[SpacedRepetitionInfo]:
    """All review records of a profile"""
    return load_analytics(db, profile_id).spaced_repetition
