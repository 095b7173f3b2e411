from datetime import datetime
from typing import Optional, Dict

from pydantic import BaseModel, Field

from app.schemas.common import UTCDateTime


class ProgressCreate(BaseModel):
    weight: Optional[float] = Field(None, gt=0)
    body_fat: Optional[float] = Field(None, ge=0, le=100)
    muscle_mass: Optional[float] = Field(None, ge=0)
    measurements: Optional[Dict[str, float]] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = None
    recorded_at: Optional[UTCDateTime] = None


class ProgressRead(BaseModel):
    id: int
    client_id: int
    weight: Optional[float] = None
    body_fat: Optional[float] = None
    muscle_mass: Optional[float] = None
    measurements: Optional[Dict[str, float]] = None
    notes: Optional[str] = None
    photo_url: Optional[str] = None
    recorded_at: Optional[datetime] = None

    class Config:
        from_attributes = True
