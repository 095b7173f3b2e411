from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, ForeignKey, JSON, DateTime

from app.core.base import Base


class Exercise(Base):
    __tablename__ = "exercises"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=True)
    equipment = Column(String, nullable=True)
    difficulty = Column(String, nullable=True)
    muscles = Column(JSON, nullable=False, default=list)
    objectives = Column(JSON, nullable=False, default=list)
    gender = Column(String, nullable=False, default="unisex")
    image_url = Column(String, nullable=True)
    video_url = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
