"""Staff account schemas."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from restaurant_pos.core.rbac import UserRole
from restaurant_pos.models.user import UserStatus


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: UserRole = UserRole.CASHIER


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
