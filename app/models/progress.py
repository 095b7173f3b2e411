from datetime import datetime

from sqlalchemy import Column, Integer, Float, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.core.base import Base


class Progress(Base):
    __tablename__ = "progress"

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    weight = Column(Float, nullable=True)
    body_fat = Column(Float, nullable=True)
    muscle_mass = Column(Float, nullable=True)
    measurements = Column(JSON, nullable=True)  # {"cintura": 80, ...} in cm
    notes = Column(Text, nullable=True)
    photo_url = Column(String, nullable=True)
    recorded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    client = relationship("User", back_populates="progress")
