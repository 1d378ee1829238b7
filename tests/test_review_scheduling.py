"""
Integration tests for the review scheduler against an in-memory database.
"""
import pytest
from sqlalchemy.exc import OperationalError

from trainer.crud import (
    add_error,
    get_all_repetition_info,
    get_hidden_lessons,
    get_lessons_due_for_review,
    get_repetition_info,
    load_analytics,
    mark_completed_and_maybe_hide,
    record_completion,
    refresh_statuses,
    save_analytics,
    save_lesson_progress,
    toggle_visibility,
)
from trainer.exceptions import NotFoundError, StorageError
from trainer.models import AnalyticsDocument
from trainer.schemas import LessonStatus

T0 = 1_700_000_000_000
DAY_MS = 86_400_000


def _fail_commit(*args, **kwargs):
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


class TestRecordCompletion:
    def test_persists_review_state(self, db, profile):
        record_completion(db, "lessonX", 1, profile.id, now=T0)
        record_completion(db, "lessonX", 7, profile.id, now=T0 + DAY_MS)
        t3 = T0 + 3 * DAY_MS
        record_completion(db, "lessonX", 0, profile.id, now=t3)

        info = get_repetition_info(db, "lessonX", profile.id)
        assert info.completion_dates == [T0, T0 + DAY_MS, t3]
        assert info.repetition_level == 2
        assert info.next_review_date == t3 + 7 * DAY_MS
        assert info.status == LessonStatus.COMPLETED

    def test_without_profile_nothing_is_stored(self, db):
        info = record_completion(db, "lessonX", 0, None, now=T0)

        assert info.repetition_level == 0
        assert load_analytics(db, None).spaced_repetition == []

    def test_storage_failure_is_raised(self, db, profile, monkeypatch):
        monkeypatch.setattr(db, "commit", _fail_commit)
        with pytest.raises(StorageError):
            record_completion(db, "lessonX", 0, profile.id, now=T0)

    def test_unknown_profile_is_rejected(self, db, profile):
        with pytest.raises(NotFoundError):
            record_completion(db, "lesson1", 0, "typo-profile", now=T0)

        assert db.get(AnalyticsDocument, "typo-profile") is None
        assert db.query(AnalyticsDocument).count() == 1


class TestMarkCompleted:
    def test_clean_lesson_is_hidden(self, db, profile):
        add_error(db, "lesson1", "Я иду", "I go", profile.id, now=T0)

        info = mark_completed_and_maybe_hide(db, "lesson1", profile.id, now=T0)

        assert info.is_hidden is True
        assert info.last_error_count == 1
        assert info.next_review_date == T0 + DAY_MS

    def test_noisy_lesson_stays_visible(self, db, profile):
        for t in range(3):
            add_error(db, "lesson1", "Я иду", "I go", profile.id, now=T0 + t)
        add_error(db, "other", "Я иду", "I go", profile.id, now=T0)

        info = mark_completed_and_maybe_hide(db, "lesson1", profile.id, now=T0)

        assert info.is_hidden is False
        assert info.last_error_count == 3

    def test_completion_bookkeeping(self, db, profile):
        save_lesson_progress(db, "lesson1", "I go", profile.id, sentence="s1", now=T0)
        save_lesson_progress(db, "lesson1", "You go", profile.id, sentence="s2", now=T0)

        mark_completed_and_maybe_hide(db, "lesson1", profile.id, now=T0)
        mark_completed_and_maybe_hide(db, "lesson1", profile.id, now=T0 + DAY_MS)

        analytics = load_analytics(db, profile.id)
        assert analytics.completed_lessons == ["lesson1"]
        assert analytics.lesson_completion_counts["lesson1"] == [2]
        assert analytics.total_exercises_completed == 2
        assert analytics.lesson_progress == []
        assert analytics.completed_sentences["lesson1"] == []


class TestVisibility:
    def test_untracked_lesson_never_due(self, db, profile):
        analytics = load_analytics(db, profile.id)
        analytics.completed_lessons.append("lessonY")
        save_analytics(db, profile.id, analytics)

        info = toggle_visibility(db, "lessonY", True, profile.id)
        assert info.status == LessonStatus.COMPLETED
        assert info.is_hidden is True

        # Make it due by date
        analytics = load_analytics(db, profile.id)
        analytics.spaced_repetition[0].next_review_date = T0 - DAY_MS
        save_analytics(db, profile.id, analytics)

        assert get_lessons_due_for_review(db, profile.id, now=T0) == []
        assert [i.lesson_id for i in get_hidden_lessons(db, profile.id)] == ["lessonY"]

    def test_untracked_unstarted_lesson(self, db, profile):
        info = toggle_visibility(db, "lessonZ", False, profile.id)
        assert info.status == LessonStatus.NOT_STARTED
        assert len(get_all_repetition_info(db, profile.id)) == 1

    def test_showing_again_makes_lesson_due(self, db, profile):
        record_completion(db, "lesson1", 0, profile.id, now=T0)
        toggle_visibility(db, "lesson1", True, profile.id)
        assert get_lessons_due_for_review(db, profile.id, now=T0 + 2 * DAY_MS) == []

        toggle_visibility(db, "lesson1", False, profile.id)
        due = get_lessons_due_for_review(db, profile.id, now=T0 + 2 * DAY_MS)
        assert [i.lesson_id for i in due] == ["lesson1"]

    def test_storage_failure_returns_none(self, db, profile, monkeypatch):
        monkeypatch.setattr(db, "commit", _fail_commit)
        assert toggle_visibility(db, "lesson1", True, profile.id) is None


class TestRefreshStatuses:
    def test_due_lessons_flip_once(self, db, profile):
        record_completion(db, "lesson1", 0, profile.id, now=T0)
        record_completion(db, "lesson2", 0, profile.id, now=T0 + 5 * DAY_MS)

        assert refresh_statuses(db, profile.id, now=T0 + 2 * DAY_MS) == ["lesson1"]
        assert get_repetition_info(db, "lesson1", profile.id).status == LessonStatus.DUE_FOR_REVIEW
        assert get_repetition_info(db, "lesson2", profile.id).status == LessonStatus.COMPLETED

        assert refresh_statuses(db, profile.id, now=T0 + 2 * DAY_MS) == []
        assert get_lessons_due_for_review(db, profile.id, now=T0 + 2 * DAY_MS) == []

    def test_review_completion_returns_to_completed(self, db, profile):
        record_completion(db, "lesson1", 0, profile.id, now=T0)
        refresh_statuses(db, profile.id, now=T0 + 2 * DAY_MS)

        info = record_completion(db, "lesson1", 0, profile.id, now=T0 + 2 * DAY_MS)

        assert info.status == LessonStatus.COMPLETED
        assert info.repetition_level == 1
        assert info.next_review_date == T0 + 5 * DAY_MS
