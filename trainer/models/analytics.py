from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from trainer.database import Base

class AnalyticsDocument(Base):
    """Per-profile analytics: error log, completions and review scheduling state"""
    __tablename__ = "analytics_documents"
    
    profile_id = Column(String, ForeignKey("profiles.id"), primary_key=True)
    data = Column(JSON, nullable=False)  # camelCase document, see schemas.Analytics
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    profile = relationship("Profile", back_populates="analytics")
