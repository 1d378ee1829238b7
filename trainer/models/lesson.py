from sqlalchemy import Column, String, DateTime, JSON
from datetime import datetime
from trainer.database import Base

class Lesson(Base):
    """Lesson content document (concept tree with example sentence pairs)"""
    __tablename__ = "lessons"
    
    id = Column(String, primary_key=True, index=True)  # file stem, e.g. "lesson5"
    concept = Column(String, nullable=False)
    level = Column(String)  # CEFR level, optional
    content = Column(JSON, nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow)
