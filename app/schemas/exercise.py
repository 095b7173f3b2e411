from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field


class ExerciseBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    type: Optional[str] = None
    equipment: Optional[str] = None
    difficulty: Optional[str] = None
    muscles: List[str] = []
    objectives: List[str] = []
    gender: str = "unisex"
    image_url: Optional[str] = None
    video_url: Optional[str] = None


class ExerciseCreate(ExerciseBase):
    pass


class ExerciseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    type: Optional[str] = None
    equipment: Optional[str] = None
    difficulty: Optional[str] = None
    muscles: Optional[List[str]] = None
    objectives: Optional[List[str]] = None
    gender: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None


class ExerciseRead(ExerciseBase):
    id: int
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
