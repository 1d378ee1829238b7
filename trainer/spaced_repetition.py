import time
from typing import List, Optional
from loguru import logger

from trainer.schemas import Analytics, LessonStatus, SpacedRepetitionInfo

# Review intervals in days, indexed by repetition level.
# Level 0 = first review the day after learning, level 6 = quarterly plateau.
REVIEW_INTERVALS_DAYS = [1, 3, 7, 14, 30, 60, 120]
MAX_LEVEL = len(REVIEW_INTERVALS_DAYS) - 1
DAY_MS = 86_400_000

# Error count thresholds for level adaptation
STRUGGLED_ERRORS = 5  # more than this: step back one level
CLEAN_ERRORS = 2  # at most this on first completion: lesson is auto-hidden


def now_ms() -> int:
    """Current time as epoch milliseconds"""
    return int(time.time() * 1000)


class ReviewScheduler:
    """
    Forgetting-curve review scheduler for whole lessons.

    Every full completion of a lesson moves it one step along a fixed
    interval table; a pass with many errors holds it one step back.
    """

    @staticmethod
    def calculate_repetition_level(completion_count: int, error_count: int) -> int:
        """
        Calculate the repetition level after a completion.

        Args:
            completion_count: Number of completions including this one (1-based)
            error_count: Errors observed during this pass

        Returns:
            Level in [0, MAX_LEVEL]
        """
        if completion_count <= len(REVIEW_INTERVALS_DAYS):
            level = max(completion_count - 1, 0)
        else:
            level = MAX_LEVEL

        # Struggled: don't advance yet. 3-5 errors repeats at the tentative
        # cadence, 0-2 errors advances normally; both keep the tentative level.
        if error_count > STRUGGLED_ERRORS:
            level = max(level - 1, 0)

        return min(level, MAX_LEVEL)

    @staticmethod
    def calculate_next_review(repetition_level: int, reference: Optional[int] = None) -> int:
        """
        Calculate the next review timestamp.

        Args:
            repetition_level: Level to schedule for (clamped to the table)
            reference: Epoch ms to count from (defaults to now)

        Returns:
            Epoch ms of the next review
        """
        base = reference if reference is not None else now_ms()
        level = max(0, min(MAX_LEVEL, repetition_level))
        return base + REVIEW_INTERVALS_DAYS[level] * DAY_MS

    @staticmethod
    def is_due(info: SpacedRepetitionInfo, now: Optional[int] = None) -> bool:
        """Check if a completed, visible lesson has reached its review date"""
        current = now if now is not None else now_ms()
        return (
            not info.is_hidden
            and info.status == LessonStatus.COMPLETED
            and info.next_review_date > 0
            and info.next_review_date <= current
        )

    @staticmethod
    def is_cycle_complete(info: SpacedRepetitionInfo) -> bool:
        """Check if the lesson has reached the plateau interval"""
        return info.repetition_level >= MAX_LEVEL


def find_info(analytics: Analytics, lesson_id: str) -> Optional[SpacedRepetitionInfo]:
    """Return the review record for a lesson, if tracked"""
    for info in analytics.spaced_repetition:
        if info.lesson_id == lesson_id:
            return info
    return None


def get_or_create_info(analytics: Analytics, lesson_id: str) -> SpacedRepetitionInfo:
    """Return the review record for a lesson, creating it on first use"""
    info = find_info(analytics, lesson_id)
    if info is None:
        info = SpacedRepetitionInfo(lesson_id=lesson_id)
        analytics.spaced_repetition.append(info)
    return info


def apply_completion(
    analytics: Analytics,
    lesson_id: str,
    error_count: int,
    now: Optional[int] = None,
    is_hidden: Optional[bool] = None
) -> SpacedRepetitionInfo:
    """
    Record a full pass through a lesson and schedule its next review.

    Mutates the document in place.

    Args:
        analytics: Profile analytics document
        lesson_id: Completed lesson
        error_count: Errors observed during this pass
        now: Completion time in epoch ms (defaults to now)
        is_hidden: New visibility, or None to keep the current one

    Returns:
        The updated review record
    """
    completed_at = now if now is not None else now_ms()
    error_count = max(error_count, 0)

    info = get_or_create_info(analytics, lesson_id)
    info.completion_dates.append(completed_at)
    info.repetition_level = ReviewScheduler.calculate_repetition_level(
        len(info.completion_dates), error_count
    )
    info.next_review_date = ReviewScheduler.calculate_next_review(info.repetition_level, completed_at)
    info.status = LessonStatus.COMPLETED
    info.last_error_count = error_count
    if is_hidden is not None:
        info.is_hidden = is_hidden

    logger.debug(
        f"Lesson {lesson_id}: completion #{len(info.completion_dates)}, "
        f"{error_count} errors -> level {info.repetition_level}"
    )
    return info


def apply_visibility(analytics: Analytics, lesson_id: str, is_hidden: bool) -> SpacedRepetitionInfo:
    """Hide or show a lesson, tracking it if it was never tracked before"""
    info = find_info(analytics, lesson_id)
    if info is None:
        status = (
            LessonStatus.COMPLETED
            if lesson_id in analytics.completed_lessons
            else LessonStatus.NOT_STARTED
        )
        info = SpacedRepetitionInfo(lesson_id=lesson_id, status=status, is_hidden=is_hidden)
        analytics.spaced_repetition.append(info)
    else:
        info.is_hidden = is_hidden
    return info


def due_for_review(analytics: Analytics, now: Optional[int] = None) -> List[SpacedRepetitionInfo]:
    """Visible completed lessons whose review date has passed, in storage order"""
    current = now if now is not None else now_ms()
    return [info for info in analytics.spaced_repetition if ReviewScheduler.is_due(info, current)]


def refresh_statuses(analytics: Analytics, now: Optional[int] = None) -> List[str]:
    """
    Flip every due lesson from Completed to DueForReview.

    One-way: records already in DueForReview are not matched again.

    Returns:
        Ids of the lessons that changed status
    """
    changed = []
    for info in due_for_review(analytics, now):
        info.status = LessonStatus.DUE_FOR_REVIEW
        changed.append(info.lesson_id)
    return changed
