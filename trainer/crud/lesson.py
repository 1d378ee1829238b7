from sqlalchemy.orm import Session
from pydantic import ValidationError as PydanticValidationError
from loguru import logger
from pathlib import Path
from typing import List, Optional
import json

from trainer.models import Lesson
from trainer.schemas import Example, LessonContent, Subconcept
from trainer.exceptions import AuthorizationError, NotFoundError, ValidationError
from trainer.crud.profile import is_admin

def list_lessons(db: Session) -> List[str]:
    """Ids of all stored lessons"""
    return [row.id for row in db.query(Lesson.id).order_by(Lesson.id).all()]

def get_lesson(db: Session, lesson_id: str) -> Optional[LessonContent]:
    """Get lesson content by ID, or None if it doesn't exist"""
    row = db.query(Lesson).filter(Lesson.id == lesson_id).first()
    if row is None:
        return None
    return LessonContent.model_validate(row.content)

def extract_examples(lesson: LessonContent) -> List[Example]:
    """All example sentences of a lesson, depth-first in authored order"""
    examples: List[Example] = []

    def visit(subconcept: Subconcept):
        examples.extend(subconcept.examples)
        for child in subconcept.subconcepts:
            visit(child)

    for subconcept in lesson.subconcepts:
        visit(subconcept)
    return examples

def save_lesson(db: Session, lesson_id: str, content: dict) -> LessonContent:
    """Validate and store a lesson, replacing any lesson with the same id"""
    try:
        lesson = LessonContent.model_validate(content)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid lesson {lesson_id}: {e}") from e

    row = db.query(Lesson).filter(Lesson.id == lesson_id).first()
    if row is None:
        row = Lesson(id=lesson_id)
        db.add(row)
    row.concept = lesson.concept
    row.level = lesson.level.value if lesson.level else None
    row.content = lesson.model_dump(mode="json", exclude_none=True)
    db.commit()

    logger.info(f"Saved lesson {lesson_id} ({len(extract_examples(lesson))} examples)")
    return lesson

def import_lesson_file(db: Session, file_path: str) -> str:
    """Store a lesson JSON file under its file stem; returns the lesson id"""
    path = Path(file_path)
    try:
        content = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ValidationError(f"Cannot read lesson file {path.name}: {e}") from e

    save_lesson(db, path.stem, content)
    return path.stem

def import_lessons_dir(db: Session, directory: str) -> dict:
    """
    Import every *.json lesson in a directory.

    Returns:
        Mapping of file name to an error message, or None on success
    """
    results = {}
    for path in sorted(Path(directory).glob("*.json")):
        try:
            import_lesson_file(db, str(path))
            results[path.name] = None
        except ValidationError as e:
            logger.warning(str(e))
            results[path.name] = str(e)
    return results

def delete_lesson(db: Session, lesson_id: str, requesting_profile_id: Optional[str]):
    """Delete a lesson; admin only"""
    if not is_admin(db, requesting_profile_id):
        raise AuthorizationError("Only an admin can delete lessons")

    row = db.query(Lesson).filter(Lesson.id == lesson_id).first()
    if row is None:
        raise NotFoundError(f"Lesson {lesson_id} not found")

    db.delete(row)
    db.commit()
    logger.info(f"Deleted lesson {lesson_id}")
