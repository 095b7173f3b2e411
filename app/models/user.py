import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Float, Enum, Boolean, ForeignKey, JSON, DateTime, Date, Text
from sqlalchemy.orm import relationship

from app.core.base import Base


class RoleEnum(str, enum.Enum):
    trainer = "TRAINER"
    client = "CLIENT"
    admin = "ADMIN"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password = Column(String, nullable=False)
    role = Column(Enum(RoleEnum), nullable=False, default=RoleEnum.client)
    phone = Column(String, nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    refresh_token = Column(String, nullable=True, index=True)
    refresh_token_expires = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    client_profile = relationship("ClientProfile", back_populates="user", uselist=False, cascade="all, delete")
    trainer_profile = relationship("TrainerProfile", back_populates="user", uselist=False, cascade="all, delete")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete")
    progress = relationship("Progress", back_populates="client", cascade="all, delete")


class ClientProfile(Base):
    __tablename__ = "client_profiles"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    phone = Column(String, nullable=True)
    birth_date = Column(Date, nullable=True)
    gender = Column(String, nullable=True)
    height = Column(Float, nullable=True)
    weight = Column(Float, nullable=True)
    goals = Column(Text, nullable=True)
    medical_conditions = Column(Text, nullable=True)
    fitness_level = Column(String, nullable=True)
    emergency_contact = Column(String, nullable=True)
    profile_image = Column(String, nullable=True)  # S3 key
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="client_profile")


class TrainerProfile(Base):
    __tablename__ = "trainer_profiles"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    bio = Column(Text, nullable=True)
    specialties = Column(JSON, nullable=True)
    certifications = Column(JSON, nullable=True)
    experience_years = Column(Integer, nullable=True)
    phone = Column(String, nullable=True)
    hourly_rate = Column(Float, nullable=True)
    social_links = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="trainer_profile")
