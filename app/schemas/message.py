from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class MessageSend(BaseModel):
    # Empty values are answered with 400 by the handler
    receiver_id: Optional[int] = None
    content: Optional[str] = None


class MessageRead(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
