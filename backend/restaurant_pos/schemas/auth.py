"""Authentication schemas."""

from pydantic import BaseModel, EmailStr

from restaurant_pos.core.rbac import UserRole
from restaurant_pos.models.user import UserStatus


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    status: UserStatus

    model_config = {"from_attributes": True}


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
