from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, JSON, DateTime
from sqlalchemy.orm import relationship

from app.core.base import Base


class Routine(Base):
    __tablename__ = "routines"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    trainer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Set when the routine was built for one client directly
    client_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    exercises = Column(JSON, nullable=False, default=list)
    training_objective = Column(String, nullable=True)
    level = Column(String, nullable=True)
    days_per_week = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    trainer = relationship("User", foreign_keys=[trainer_id])
    assignments = relationship("RoutineAssignment", back_populates="routine", cascade="all, delete-orphan")


class RoutineAssignment(Base):
    __tablename__ = "routine_assignments"

    id = Column(Integer, primary_key=True)
    routine_id = Column(Integer, ForeignKey("routines.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    trainer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    training_objectives = Column(JSON, nullable=True)
    pyramidal_reps = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)

    routine = relationship("Routine", back_populates="assignments")
    client = relationship("User", foreign_keys=[client_id])
    trainer = relationship("User", foreign_keys=[trainer_id])


class RoutineTemplate(Base):
    __tablename__ = "routine_templates"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    training_objective = Column(String, nullable=False, index=True)
    level = Column(String, nullable=False)
    days_per_week = Column(Integer, nullable=False)
    gender = Column(String, default="unisex", nullable=False)
    split_type = Column(String, nullable=True)
    days = Column(JSON, nullable=False, default=list)
    is_preset = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
