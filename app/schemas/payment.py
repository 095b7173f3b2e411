from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.common import UTCDateTime


class CreateSubscriptionRequest(BaseModel):
    plan: str


class ClientPaymentUpdate(BaseModel):
    amount: Optional[float] = Field(None, ge=0)
    status: Optional[str] = None  # paid / pending / overdue
    due_date: Optional[UTCDateTime] = None
    plan: Optional[str] = None


class PreferenceCreate(BaseModel):
    client_id: int
    amount: float = Field(..., gt=0)
    description: Optional[str] = None
    plan: Optional[str] = None
