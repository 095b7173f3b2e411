from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.schemas.user import UserRead


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Optional[str] = None
    phone: Optional[str] = None


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserRead


class RefreshTokenRequest(BaseModel):
    refresh_token: str
