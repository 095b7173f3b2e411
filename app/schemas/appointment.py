from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field

from app.models.appointment import AppointmentStatusEnum
from app.schemas.common import UTCDateTime


class AppointmentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    start_time: UTCDateTime
    end_time: UTCDateTime
    client_id: Optional[int] = None
    trainer_id: Optional[int] = None
    location: Optional[str] = None
    type: Optional[str] = None
    notes: Optional[str] = None
    # minutes before start_time
    reminders: List[int] = []


class AppointmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_time: Optional[UTCDateTime] = None
    end_time: Optional[UTCDateTime] = None
    location: Optional[str] = None
    type: Optional[str] = None
    status: Optional[AppointmentStatusEnum] = None
    notes: Optional[str] = None


class AppointmentRead(BaseModel):
    id: int
    trainer_id: int
    client_id: int
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    type: Optional[str] = None
    status: AppointmentStatusEnum
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReminderCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: Optional[str] = None
    reminder_time: UTCDateTime
    appointment_id: Optional[int] = None
    type: str = "custom"


class ReminderRead(BaseModel):
    id: int
    user_id: int
    appointment_id: Optional[int] = None
    title: str
    message: Optional[str] = None
    reminder_time: datetime
    type: str
    is_sent: bool = False
    sent_at: Optional[datetime] = None

    class Config:
        from_attributes = True
