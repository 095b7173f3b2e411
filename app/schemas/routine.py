from datetime import datetime
from typing import Optional, List, Any

from pydantic import BaseModel, Field

from app.schemas.common import UTCDateTime


class RoutineCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    client_id: Optional[int] = None
    exercises: List[dict] = []
    training_objective: Optional[str] = None
    level: Optional[str] = None
    days_per_week: Optional[int] = Field(None, ge=1, le=7)


class RoutineUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    exercises: Optional[List[dict]] = None
    training_objective: Optional[str] = None
    level: Optional[str] = None
    days_per_week: Optional[int] = Field(None, ge=1, le=7)


class RoutineRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    trainer_id: int
    client_id: Optional[int] = None
    exercises: List[Any] = []
    training_objective: Optional[str] = None
    level: Optional[str] = None
    days_per_week: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RoutineAssignRequest(BaseModel):
    routine_id: int
    client_id: int
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    training_objectives: Optional[List[str]] = None
    pyramidal_reps: Optional[dict] = None
    notes: Optional[str] = None


class RoutineAssignmentRead(BaseModel):
    id: int
    routine_id: int
    client_id: int
    trainer_id: int
    assigned_date: Optional[datetime] = None
    start_date: datetime
    end_date: datetime
    training_objectives: Optional[List[str]] = None
    pyramidal_reps: Optional[dict] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class TemplateGenerateRequest(BaseModel):
    # Checked by the template service so that errors carry domain messages
    objetivo: str
    dias: int
    nivel: str
    genero: str = "unisex"


class RoutineTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    training_objective: str
    level: str
    days_per_week: int = Field(..., ge=1, le=7)
    gender: str = "unisex"
    split_type: Optional[str] = None
    days: List[dict] = []


class RoutineTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    training_objective: Optional[str] = None
    level: Optional[str] = None
    days_per_week: Optional[int] = Field(None, ge=1, le=7)
    gender: Optional[str] = None
    split_type: Optional[str] = None
    days: Optional[List[dict]] = None


class RoutineTemplateRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    training_objective: str
    level: str
    days_per_week: int
    gender: str
    split_type: Optional[str] = None
    days: List[Any] = []
    is_preset: bool = False
    is_active: bool = True
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DuplicateTemplateRequest(BaseModel):
    name: Optional[str] = None
