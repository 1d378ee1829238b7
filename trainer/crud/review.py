from sqlalchemy.orm import Session
from loguru import logger
from typing import List, Optional

from trainer.schemas import LessonStatus, ReviewSentence, SpacedRepetitionInfo
from trainer.spaced_repetition import ReviewScheduler, find_info, now_ms
from trainer.crud.analytics import load_analytics
from trainer.crud.lesson import get_lesson
from trainer.crud.priority_sentences import get_priority_sentences

# Cap on the bonus a lesson earns from its depth in the review cycle
MAX_LEVEL_BOOST = 5


def _candidate_lessons(
    db: Session,
    profile_id: Optional[str],
    lesson_id: Optional[str],
    now: int
) -> List[SpacedRepetitionInfo]:
    analytics = load_analytics(db, profile_id)

    if lesson_id:
        info = find_info(analytics, lesson_id)
        if info is None:
            # Untracked lesson: preview its review sentences before any completion
            if get_lesson(db, lesson_id) is None:
                return []
            info = SpacedRepetitionInfo(
                lesson_id=lesson_id,
                status=LessonStatus.DUE_FOR_REVIEW,
                repetition_level=0,
            )
        return [] if info.is_hidden else [info]

    # Completed lessons past their date count too, in case statuses were not refreshed
    return [
        info for info in analytics.spaced_repetition
        if not info.is_hidden and (
            info.status == LessonStatus.DUE_FOR_REVIEW or ReviewScheduler.is_due(info, now)
        )
    ]


def sentences_due_for_review(
    db: Session,
    profile_id: Optional[str],
    lesson_id: Optional[str] = None,
    now: Optional[int] = None
) -> List[ReviewSentence]:
    """
    Priority sentences to review today, highest adjusted priority first.

    Lessons deeper in the review cycle get up to +5 priority.

    Args:
        db: Database session
        profile_id: Learner profile
        lesson_id: Restrict to one lesson (included even if not yet due)
        now: Reference time in epoch ms (defaults to now)
    """
    current = now if now is not None else now_ms()
    queue: List[ReviewSentence] = []

    for info in _candidate_lessons(db, profile_id, lesson_id, current):
        boost = min(info.repetition_level, MAX_LEVEL_BOOST)
        for sentence in get_priority_sentences(db, info.lesson_id, profile_id):
            queue.append(ReviewSentence(
                **sentence.model_dump(),
                lesson_id=info.lesson_id,
                repetition_level=info.repetition_level,
                adjusted_priority=sentence.priority + boost,
            ))

    queue.sort(key=lambda s: s.adjusted_priority, reverse=True)
    logger.debug(f"{len(queue)} sentence(s) due for review for profile {profile_id}")
    return queue
