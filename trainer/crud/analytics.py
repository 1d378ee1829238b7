from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from loguru import logger
from pathlib import Path
from datetime import datetime
from typing import List, Optional
import json

from trainer.models import AnalyticsDocument, Profile
from trainer.schemas import Analytics, AnalyticsItem, LessonProgress, ProblemSentence, SentencePair
from trainer.exceptions import NotFoundError, StorageError, ValidationError
from trainer.priority import sentence_id, sentence_key
from trainer.spaced_repetition import now_ms

# Error log entries under this lesson id match sentences from any lesson
PRACTICE_LESSON_ID = "practice"


def load_analytics(db: Session, profile_id: Optional[str]) -> Analytics:
    """
    Load a profile's analytics document.

    Without a profile an empty document is returned and nothing is stored.
    A profile without a document yet gets an empty one.
    """
    if not profile_id:
        return Analytics()

    row = db.get(AnalyticsDocument, profile_id)
    if row is None:
        return Analytics()
    return Analytics.model_validate(row.data)


def save_analytics(db: Session, profile_id: Optional[str], analytics: Analytics):
    """
    Write a profile's analytics document, replacing the stored one.

    Raises:
        NotFoundError: the profile does not exist
        StorageError: the document could not be written
    """
    if not profile_id:
        logger.warning("Analytics not saved: no profile id")
        return

    row = db.get(AnalyticsDocument, profile_id)
    if row is None and db.get(Profile, profile_id) is None:
        logger.error(f"Analytics not saved: profile {profile_id} does not exist")
        raise NotFoundError(f"Profile {profile_id} not found")

    try:
        if row is None:
            row = AnalyticsDocument(profile_id=profile_id)
            db.add(row)
        row.data = analytics.to_document()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error saving analytics for profile {profile_id}: {e}")
        raise StorageError(f"Could not save analytics for profile {profile_id}") from e


def add_error(
    db: Session,
    lesson_id: str,
    russian: str,
    english: str,
    profile_id: Optional[str],
    now: Optional[int] = None
) -> AnalyticsItem:
    """Log one mistake on a sentence"""
    analytics = load_analytics(db, profile_id)
    timestamp = now if now is not None else now_ms()

    item = AnalyticsItem(
        id=f"{sentence_id(lesson_id, russian, english)}-{timestamp}",
        lesson_id=lesson_id,
        sentence=SentencePair(russian=russian, english=english),
        errors=1,
        timestamp=timestamp,
    )
    analytics.errors.append(item)
    save_analytics(db, profile_id, analytics)
    return item


def _normalize(text: str) -> str:
    return text.strip().lower()


def remove_error(
    db: Session,
    lesson_id: str,
    russian: str,
    english: str,
    profile_id: Optional[str],
    error_id: Optional[str] = None
) -> int:
    """
    Drop logged mistakes for a sentence the learner has now answered correctly.

    Matches by error id, or by lesson and either text (trimmed, case-insensitive).
    The practice lesson id matches the sentence in any lesson.

    Returns:
        Number of removed entries
    """
    analytics = load_analytics(db, profile_id)
    wanted_ru = _normalize(russian)
    wanted_en = _normalize(english)

    def matches(item: AnalyticsItem) -> bool:
        if error_id and item.id == error_id:
            return True
        same_text = (
            _normalize(item.sentence.russian) == wanted_ru
            or _normalize(item.sentence.english) == wanted_en
        )
        if lesson_id == PRACTICE_LESSON_ID:
            return same_text
        return item.lesson_id == lesson_id and same_text

    kept = [item for item in analytics.errors if not matches(item)]
    removed = len(analytics.errors) - len(kept)
    if removed:
        analytics.errors = kept
        save_analytics(db, profile_id, analytics)
        logger.info(f"Removed {removed} error(s) for \"{english}\" ({lesson_id})")
    else:
        logger.debug(f"No logged error matches \"{english}\" ({lesson_id})")
    return removed


def record_lesson_completion(analytics: Analytics, lesson_id: str):
    """Completion bookkeeping on the document: counters, progress reset"""
    if lesson_id in analytics.completed_lessons:
        counts = analytics.lesson_completion_counts.get(lesson_id) or [0]
        analytics.lesson_completion_counts[lesson_id] = [counts[0] + 1]
    else:
        analytics.completed_lessons.append(lesson_id)
        analytics.lesson_completion_counts[lesson_id] = [1]

    analytics.total_exercises_completed += len(analytics.completed_sentences.get(lesson_id, []))

    # A completed lesson starts its next pass from scratch
    if lesson_id in analytics.completed_sentences:
        analytics.completed_sentences[lesson_id] = []
    analytics.lesson_progress = [p for p in analytics.lesson_progress if p.lesson_id != lesson_id]


def save_lesson_progress(
    db: Session,
    lesson_id: str,
    last_exercise_english: str,
    profile_id: Optional[str],
    sentence: Optional[str] = None,
    now: Optional[int] = None
) -> Optional[LessonProgress]:
    """Remember the position inside an unfinished lesson"""
    analytics = load_analytics(db, profile_id)
    if lesson_id in analytics.completed_lessons:
        return None

    timestamp = now if now is not None else now_ms()
    completed = analytics.completed_sentences.setdefault(lesson_id, [])
    if sentence and sentence not in completed:
        completed.append(sentence)

    progress = LessonProgress(
        lesson_id=lesson_id,
        last_exercise_english=last_exercise_english,
        timestamp=timestamp,
        completed_sentences=list(completed),
    )
    analytics.lesson_progress = [p for p in analytics.lesson_progress if p.lesson_id != lesson_id]
    analytics.lesson_progress.append(progress)
    analytics.last_practice_date = timestamp

    save_analytics(db, profile_id, analytics)
    return progress


def get_lesson_progress(db: Session, lesson_id: str, profile_id: Optional[str]) -> dict:
    """Last exercise and completed sentences of an unfinished lesson"""
    analytics = load_analytics(db, profile_id)
    if lesson_id in analytics.completed_lessons:
        return {"last_exercise_english": None, "completed_sentences": []}

    progress = next((p for p in analytics.lesson_progress if p.lesson_id == lesson_id), None)
    return {
        "last_exercise_english": progress.last_exercise_english if progress else None,
        "completed_sentences": analytics.completed_sentences.get(lesson_id, []),
    }


def get_most_problematic_sentences(
    db: Session,
    profile_id: Optional[str],
    limit: int = 10
) -> List[ProblemSentence]:
    """Sentences with the most logged mistakes"""
    analytics = load_analytics(db, profile_id)

    grouped = {}
    for item in analytics.errors:
        key = sentence_key(item.lesson_id, item.sentence.russian, item.sentence.english)
        if key not in grouped:
            grouped[key] = ProblemSentence(
                lesson_id=item.lesson_id,
                sentence=item.sentence,
                errors=0,
                last_timestamp=item.timestamp,
            )
        grouped[key].errors += item.errors
        grouped[key].last_timestamp = max(grouped[key].last_timestamp, item.timestamp)

    ranked = sorted(grouped.values(), key=lambda p: p.errors, reverse=True)
    return ranked[:limit]


def create_analytics_backup(db: Session, profile_id: str, backup_dir: str) -> Path:
    """Write the profile's analytics document to a timestamped JSON file"""
    analytics = load_analytics(db, profile_id)
    directory = Path(backup_dir)
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / f"analytics_{profile_id}_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.json"
    path.write_text(json.dumps(analytics.to_document(), ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info(f"Analytics backup written to {path}")
    return path


def import_analytics_file(db: Session, profile_id: str, file_path: str) -> Analytics:
    """Replace a profile's analytics with a JSON document from disk"""
    try:
        raw = json.loads(Path(file_path).read_text(encoding="utf-8"))
        analytics = Analytics.model_validate(raw)
    except (OSError, ValueError) as e:
        raise ValidationError(f"Invalid analytics file {file_path}: {e}") from e

    save_analytics(db, profile_id, analytics)
    logger.info(f"Imported analytics for profile {profile_id} from {file_path}")
    return analytics
