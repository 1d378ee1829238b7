from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Dict, List, Optional
from datetime import datetime
from enum import Enum


class CamelModel(BaseModel):
    """Document model stored with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LessonStatus(str, Enum):
    """Lifecycle of a lesson in the review schedule"""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DUE_FOR_REVIEW = "due_review"


class LessonLevel(str, Enum):
    """CEFR level of a lesson"""
    A0 = "A0"
    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"


# ===================================================================
# LESSON CONTENT
# ===================================================================

class Example(BaseModel):
    """Russian/English sentence pair authored in a lesson"""
    russian: str
    english: str
    source: str = ""
    note: Optional[str] = None

class Subconcept(BaseModel):
    """Concept group; examples may nest arbitrarily deep"""
    concept: str
    explanation: str = ""
    formula: Optional[str] = None
    source: str = ""
    examples: List[Example] = Field(default_factory=list)
    subconcepts: List["Subconcept"] = Field(default_factory=list)

class LessonContent(BaseModel):
    """Schema for an uploaded lesson file"""
    concept: str
    explanation: str = ""
    source: str = ""
    subconcepts: List[Subconcept] = Field(default_factory=list)
    level: Optional[LessonLevel] = None


# ===================================================================
# ANALYTICS DOCUMENT
# ===================================================================

class SentencePair(BaseModel):
    russian: str
    english: str

class AnalyticsItem(CamelModel):
    """One logged mistake on a sentence"""
    id: Optional[str] = None
    lesson_id: str
    sentence: SentencePair
    errors: int = 1
    timestamp: int = 0

class LessonProgress(CamelModel):
    """Position inside a lesson that has not been completed yet"""
    lesson_id: str
    last_exercise_english: str
    timestamp: int
    completed_sentences: List[str] = Field(default_factory=list)

class SpacedRepetitionInfo(CamelModel):
    """Review state of one lesson for one profile"""
    lesson_id: str
    status: LessonStatus = LessonStatus.NOT_STARTED
    completion_dates: List[int] = Field(default_factory=list)  # epoch ms, append-only
    repetition_level: int = Field(default=0, ge=0)
    next_review_date: int = 0  # epoch ms, 0 = unset
    is_hidden: bool = False
    last_error_count: int = 0
    level: Optional[LessonLevel] = None

class PrioritySentence(CamelModel):
    """Sentence selected for targeted review, ranked by difficulty"""
    id: str
    russian: str
    english: str
    priority: int
    error_count: int = 0
    source: str = ""

class ReviewSentence(PrioritySentence):
    """Priority sentence queued for today's review"""
    lesson_id: str
    repetition_level: int = 0
    adjusted_priority: int

class ProblemSentence(CamelModel):
    """Sentence with its total logged mistakes"""
    lesson_id: str
    sentence: SentencePair
    errors: int
    last_timestamp: int

class Analytics(CamelModel):
    """Per-profile analytics document"""
    errors: List[AnalyticsItem] = Field(default_factory=list)
    completed_lessons: List[str] = Field(default_factory=list)
    loaded_lessons: List[str] = Field(default_factory=list)
    total_exercises_completed: int = 0
    last_practice_date: int = 0
    lesson_progress: List[LessonProgress] = Field(default_factory=list)
    completed_sentences: Dict[str, List[str]] = Field(default_factory=dict)
    lesson_completion_counts: Dict[str, List[int]] = Field(default_factory=dict)
    spaced_repetition: List[SpacedRepetitionInfo] = Field(default_factory=list)
    priority_sentences: Dict[str, List[PrioritySentence]] = Field(default_factory=dict)

    def to_document(self) -> dict:
        """Serialize for storage with camelCase keys"""
        return self.model_dump(mode="json", by_alias=True)


# ===================================================================
# PROFILES
# ===================================================================

class UserSettings(CamelModel):
    """Exercise preferences of a profile"""
    timer_enabled: bool = False
    timer_duration: int = 30
    dark_mode: bool = False
    exercise_mode: str = "ru-to-en-typing"
    exercises_per_session: int = 10
    hide_completed: Optional[bool] = None
    show_due_for_review: Optional[bool] = None

class ProfileCreate(BaseModel):
    """Schema for creating a profile"""
    name: str
    avatar: Optional[str] = None

class ProfileResponse(ProfileCreate):
    """Schema for profile response"""
    id: str
    is_admin: bool
    settings: dict
    created_at: datetime
    last_active_at: datetime

    class Config:
        from_attributes = True
