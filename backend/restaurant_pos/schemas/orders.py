"""Order schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from restaurant_pos.models.order import OrderStatus, OrderType


class OrderItemCreate(BaseModel):
    menu_item_id: int
    quantity: int = Field(..., ge=1)
    notes: Optional[str] = None


class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = Field(..., min_length=1)
    order_type: OrderType = OrderType.DINE_IN
    customer_name: Optional[str] = Field(None, max_length=200)
    customer_phone: Optional[str] = Field(None, max_length=50)
    customer_email: Optional[EmailStr] = None
    table_number: Optional[str] = Field(None, max_length=20)
    delivery_address: Optional[str] = None
    notes: Optional[str] = None
    discount: Decimal = Field(Decimal("0"), ge=0)
    estimated_time: int = Field(30, ge=1, description="Minutes")


class OrderUpdate(BaseModel):
    """Fields that stay editable after creation. Items and amounts are fixed."""

    customer_name: Optional[str] = Field(None, max_length=200)
    customer_phone: Optional[str] = Field(None, max_length=50)
    customer_email: Optional[EmailStr] = None
    table_number: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    notes: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: int
    menu_item_id: int
    name: str
    quantity: int
    price: float
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class StatusHistoryResponse(BaseModel):
    status: OrderStatus
    timestamp: datetime
    updated_by: Optional[int] = None
    updated_by_name: Optional[str] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: int
    order_number: str
    order_type: OrderType
    status: OrderStatus
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    notes: Optional[str] = None
    items: List[OrderItemResponse] = []
    subtotal: float
    tax: float
    discount: float
    total: float
    estimated_time: int
    actual_time: Optional[int] = None
    cashier_id: int
    kitchen_assigned_to: Optional[int] = None
    kitchen_started_at: Optional[datetime] = None
    kitchen_completed_at: Optional[datetime] = None
    status_history: List[StatusHistoryResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
