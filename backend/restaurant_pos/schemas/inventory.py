"""Inventory schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from restaurant_pos.core.config import settings
from restaurant_pos.core.timeutils import local_today, utcnow
from restaurant_pos.models.inventory import (
    InventoryCategory,
    InventoryItem,
    InventoryUnit,
    StockAction,
    StockStatus,
)


class SupplierInfo(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    contact: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)


class InventoryItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: InventoryCategory
    current_stock: Decimal = Field(Decimal("0"), ge=0)
    min_stock: Decimal = Field(Decimal("0"), ge=0)
    max_stock: Decimal = Field(..., ge=0)
    unit: InventoryUnit
    cost_per_unit: Decimal = Field(Decimal("0"), ge=0)
    supplier: Optional[SupplierInfo] = None
    storage_location: Optional[str] = Field(None, max_length=100)
    expiry_date: Optional[date] = None
    barcode: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    low_stock_alerts: bool = True


class InventoryItemUpdate(BaseModel):
    """Current stock is absent on purpose: it only moves through stock updates."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[InventoryCategory] = None
    min_stock: Optional[Decimal] = Field(None, ge=0)
    max_stock: Optional[Decimal] = Field(None, ge=0)
    unit: Optional[InventoryUnit] = None
    cost_per_unit: Optional[Decimal] = Field(None, ge=0)
    supplier: Optional[SupplierInfo] = None
    storage_location: Optional[str] = Field(None, max_length=100)
    expiry_date: Optional[date] = None
    barcode: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    low_stock_alerts: Optional[bool] = None


class StockUpdate(BaseModel):
    """A stock ledger entry.

    ``restock``, ``usage`` and ``waste`` move stock by ``quantity``;
    ``adjustment`` sets stock to exactly ``quantity`` (a counted value).
    """

    action: StockAction
    quantity: Decimal = Field(..., ge=0)
    reason: Optional[str] = Field(None, max_length=255)


class StockHistoryResponse(BaseModel):
    id: int
    action: StockAction
    quantity: float
    reason: Optional[str] = None
    performed_by: Optional[int] = None
    performed_by_name: Optional[str] = None
    timestamp: datetime

    model_config = {"from_attributes": True}


class InventoryItemResponse(BaseModel):
    id: int
    name: str
    category: InventoryCategory
    description: Optional[str] = None
    barcode: Optional[str] = None
    current_stock: float
    min_stock: float
    max_stock: float
    unit: InventoryUnit
    cost_per_unit: float
    supplier: SupplierInfo
    storage_location: Optional[str] = None
    expiry_date: Optional[date] = None
    last_restocked: Optional[datetime] = None
    low_stock_alerts: bool
    stock_status: StockStatus
    total_value: float
    days_until_expiry: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_item(cls, item: InventoryItem, today: Optional[date] = None) -> "InventoryItemResponse":
        today = today or local_today(utcnow(), settings.timezone)
        return cls(
            id=item.id,
            name=item.name,
            category=item.category,
            description=item.description,
            barcode=item.barcode,
            current_stock=item.current_stock,
            min_stock=item.min_stock,
            max_stock=item.max_stock,
            unit=item.unit,
            cost_per_unit=item.cost_per_unit,
            supplier=SupplierInfo.model_construct(
                name=item.supplier_name,
                contact=item.supplier_contact,
                email=item.supplier_email,
                phone=item.supplier_phone,
            ),
            storage_location=item.storage_location,
            expiry_date=item.expiry_date,
            last_restocked=item.last_restocked,
            low_stock_alerts=item.low_stock_alerts,
            stock_status=item.stock_status,
            total_value=item.total_value,
            days_until_expiry=item.days_until_expiry(today),
            created_at=item.created_at,
            updated_at=item.updated_at,
        )
