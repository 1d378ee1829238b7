"""
Unit tests for the review scheduler.

Stateless: operate on in-memory analytics documents, no database.
"""
import pytest

from trainer.schemas import Analytics, LessonStatus, SpacedRepetitionInfo
from trainer.spaced_repetition import (
    DAY_MS,
    MAX_LEVEL,
    REVIEW_INTERVALS_DAYS,
    ReviewScheduler,
    apply_completion,
    apply_visibility,
    due_for_review,
    find_info,
    refresh_statuses,
)

T0 = 1_700_000_000_000


class TestRepetitionLevel:
    @pytest.mark.parametrize("count,expected", [(1, 0), (2, 1), (4, 3), (7, 6), (8, 6), (30, 6)])
    def test_clean_pass_follows_completion_count(self, count, expected):
        assert ReviewScheduler.calculate_repetition_level(count, 0) == expected

    def test_many_errors_step_back_one_level(self):
        assert ReviewScheduler.calculate_repetition_level(4, 8) == 2

    def test_shaky_pass_keeps_tentative_level(self):
        assert ReviewScheduler.calculate_repetition_level(4, 5) == 3
        assert ReviewScheduler.calculate_repetition_level(4, 3) == 3

    def test_level_never_below_zero(self):
        assert ReviewScheduler.calculate_repetition_level(1, 50) == 0

    def test_plateau_with_errors_steps_below_last_level(self):
        assert ReviewScheduler.calculate_repetition_level(12, 6) == MAX_LEVEL - 1


class TestNextReview:
    def test_interval_table(self):
        assert REVIEW_INTERVALS_DAYS == [1, 3, 7, 14, 30, 60, 120]

    def test_next_review_from_reference(self):
        assert ReviewScheduler.calculate_next_review(2, T0) == T0 + 7 * DAY_MS

    def test_level_is_clamped(self):
        assert ReviewScheduler.calculate_next_review(99, T0) == T0 + 120 * DAY_MS


class TestApplyCompletion:
    def test_error_adaptive_regression(self):
        analytics = Analytics()
        for i in range(3):
            apply_completion(analytics, "lesson1", 0, now=T0 + i)

        info = apply_completion(analytics, "lesson1", 8, now=T0 + 10)

        assert len(info.completion_dates) == 4
        assert info.repetition_level == 2
        assert info.next_review_date == T0 + 10 + REVIEW_INTERVALS_DAYS[2] * DAY_MS

    def test_mixed_error_sequence(self):
        analytics = Analytics()
        levels = []
        times = [T0, T0 + 2 * DAY_MS, T0 + 5 * DAY_MS]
        for errors, t in zip([1, 7, 0], times):
            levels.append(apply_completion(analytics, "lessonX", errors, now=t).repetition_level)

        info = find_info(analytics, "lessonX")
        assert levels == [0, 0, 2]
        assert len(info.completion_dates) == 3
        assert info.next_review_date == times[2] + 7 * DAY_MS
        assert info.status == LessonStatus.COMPLETED
        assert info.last_error_count == 0

    def test_completion_history_is_append_only(self):
        analytics = Analytics()
        seen = []
        for i in range(10):
            info = apply_completion(analytics, "lesson1", i % 9, now=T0 + i * DAY_MS)
            assert info.completion_dates[:len(seen)] == seen
            seen = list(info.completion_dates)
            assert 0 <= info.repetition_level <= MAX_LEVEL

        assert seen == [T0 + i * DAY_MS for i in range(10)]

    def test_plateau_is_stable(self):
        analytics = Analytics()
        for i in range(7):
            apply_completion(analytics, "lesson1", 0, now=T0 + i)
        for errors in [0, 2, 5, 1]:
            info = apply_completion(analytics, "lesson1", errors, now=T0 + 100)
            assert info.repetition_level == MAX_LEVEL

    def test_one_record_per_lesson(self):
        analytics = Analytics()
        apply_completion(analytics, "a", 0, now=T0)
        apply_completion(analytics, "b", 0, now=T0)
        apply_completion(analytics, "a", 0, now=T0 + 1)

        assert [info.lesson_id for info in analytics.spaced_repetition] == ["a", "b"]

    def test_visibility_kept_unless_given(self):
        analytics = Analytics()
        apply_completion(analytics, "a", 0, now=T0, is_hidden=True)
        info = apply_completion(analytics, "a", 0, now=T0 + 1)
        assert info.is_hidden is True


class TestVisibility:
    def test_new_record_for_completed_lesson(self):
        analytics = Analytics(completed_lessons=["lessonY"])
        info = apply_visibility(analytics, "lessonY", True)
        assert info.status == LessonStatus.COMPLETED
        assert info.is_hidden is True

    def test_new_record_for_unstarted_lesson(self):
        info = apply_visibility(Analytics(), "lessonY", True)
        assert info.status == LessonStatus.NOT_STARTED

    def test_existing_record_only_changes_flag(self):
        analytics = Analytics()
        apply_completion(analytics, "a", 0, now=T0)
        before = find_info(analytics, "a").model_copy(deep=True)

        info = apply_visibility(analytics, "a", True)

        assert info.is_hidden is True
        assert info.model_dump(exclude={"is_hidden"}) == before.model_dump(exclude={"is_hidden"})


class TestDueForReview:
    def _analytics(self):
        return Analytics(spaced_repetition=[
            SpacedRepetitionInfo(lesson_id="due", status=LessonStatus.COMPLETED, next_review_date=T0 - 1),
            SpacedRepetitionInfo(lesson_id="future", status=LessonStatus.COMPLETED, next_review_date=T0 + 1),
            SpacedRepetitionInfo(lesson_id="hidden", status=LessonStatus.COMPLETED, next_review_date=T0 - 1, is_hidden=True),
            SpacedRepetitionInfo(lesson_id="unset", status=LessonStatus.COMPLETED, next_review_date=0),
            SpacedRepetitionInfo(lesson_id="started", status=LessonStatus.IN_PROGRESS, next_review_date=T0 - 1),
        ])

    def test_filter(self):
        assert [info.lesson_id for info in due_for_review(self._analytics(), T0)] == ["due"]

    def test_refresh_is_one_way_and_idempotent(self):
        analytics = self._analytics()

        assert refresh_statuses(analytics, T0) == ["due"]
        assert find_info(analytics, "due").status == LessonStatus.DUE_FOR_REVIEW
        assert find_info(analytics, "hidden").status == LessonStatus.COMPLETED

        assert refresh_statuses(analytics, T0) == []
        assert find_info(analytics, "due").status == LessonStatus.DUE_FOR_REVIEW
