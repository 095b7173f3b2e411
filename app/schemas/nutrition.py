from datetime import datetime
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field

from app.schemas.common import UTCDateTime


class NutritionPlanCreate(BaseModel):
    client_id: int
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    daily_calories: Optional[int] = Field(None, gt=0)
    macros: Optional[Dict[str, float]] = None
    meals: List[dict] = []
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None


class NutritionPlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    daily_calories: Optional[int] = Field(None, gt=0)
    macros: Optional[Dict[str, float]] = None
    meals: Optional[List[dict]] = None
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    is_active: Optional[bool] = None


class NutritionPlanRead(BaseModel):
    id: int
    trainer_id: int
    client_id: int
    name: str
    description: Optional[str] = None
    daily_calories: Optional[int] = None
    macros: Optional[Dict[str, float]] = None
    meals: List[Any] = []
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
