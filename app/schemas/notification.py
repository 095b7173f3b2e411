from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.models.notification import NotificationTypeEnum


class NotificationRead(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: NotificationTypeEnum
    is_read: bool = False
    data: Optional[dict] = None
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    class Config:
        from_attributes = True
