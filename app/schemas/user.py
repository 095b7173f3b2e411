from datetime import date, datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, EmailStr

from app.models.user import RoleEnum


class UserRead(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: RoleEnum
    phone: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClientProfileRead(BaseModel):
    id: int
    user_id: int
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    goals: Optional[str] = None
    medical_conditions: Optional[str] = None
    fitness_level: Optional[str] = None
    emergency_contact: Optional[str] = None
    profile_image: Optional[str] = None

    class Config:
        from_attributes = True


class ClientProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    gender: Optional[str] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    goals: Optional[str] = None
    medical_conditions: Optional[str] = None
    fitness_level: Optional[str] = None
    emergency_contact: Optional[str] = None


class TrainerProfileRead(BaseModel):
    id: int
    user_id: int
    bio: Optional[str] = None
    specialties: Optional[List[str]] = None
    certifications: Optional[List[str]] = None
    experience_years: Optional[int] = None
    phone: Optional[str] = None
    hourly_rate: Optional[float] = None
    social_links: Optional[Dict[str, str]] = None

    class Config:
        from_attributes = True


class TrainerProfileUpdate(BaseModel):
    name: Optional[str] = None
    bio: Optional[str] = None
    specialties: Optional[List[str]] = None
    certifications: Optional[List[str]] = None
    experience_years: Optional[int] = None
    phone: Optional[str] = None
    hourly_rate: Optional[float] = None
    social_links: Optional[Dict[str, str]] = None
