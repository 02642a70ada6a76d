"""Menu item schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=100)
    available: bool = True
    preparation_time: int = Field(15, ge=0)


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    available: Optional[bool] = None
    preparation_time: Optional[int] = Field(None, ge=0)


class MenuItemResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    category: str
    available: bool
    preparation_time: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
