from datetime import date
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class ClientCreate(BaseModel):
    """A trainer adding a client, new or already registered."""
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    height: Optional[float] = Field(None, gt=0)
    weight: Optional[float] = Field(None, gt=0)
    goals: Optional[str] = None
    medical_conditions: Optional[str] = None
    fitness_level: Optional[str] = None


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    phone: Optional[str] = None
    is_active: Optional[bool] = None
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    height: Optional[float] = Field(None, gt=0)
    weight: Optional[float] = Field(None, gt=0)
    goals: Optional[str] = None
    medical_conditions: Optional[str] = None
    fitness_level: Optional[str] = None
    emergency_contact: Optional[str] = None


class WhatsAppTestMessage(BaseModel):
    to: Optional[str] = None
    message: Optional[str] = None
