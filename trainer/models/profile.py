from sqlalchemy import Column, String, Boolean, DateTime, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from trainer.database import Base

class Profile(Base):
    """Learner identity with its own analytics document and settings"""
    __tablename__ = "profiles"
    
    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    avatar = Column(String)
    is_admin = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)  # at most one active profile
    settings = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_active_at = Column(DateTime, default=datetime.utcnow)
    
    analytics = relationship(
        "AnalyticsDocument",
        back_populates="profile",
        uselist=False,
        cascade="all, delete-orphan",
    )
