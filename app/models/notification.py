import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, Boolean, Enum, ForeignKey, JSON, DateTime
from sqlalchemy.orm import relationship

from app.core.base import Base


class NotificationTypeEnum(str, enum.Enum):
    routine_assigned = "ROUTINE_ASSIGNED"
    progress_update = "PROGRESS_UPDATE"
    new_client = "NEW_CLIENT"
    payment_reminder = "PAYMENT_REMINDER"
    goal_achieved = "GOAL_ACHIEVED"
    appointment = "APPOINTMENT"
    message = "MESSAGE"
    system = "SYSTEM"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Enum(NotificationTypeEnum), nullable=False, default=NotificationTypeEnum.system)
    is_read = Column(Boolean, default=False, nullable=False)
    data = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    read_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="notifications")
