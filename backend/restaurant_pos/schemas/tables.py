"""Table schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from restaurant_pos.models.table import (
    MAX_TABLE_CAPACITY,
    MaintenanceStatus,
    TableLocation,
    TableShape,
    TableStatus,
)


class TableCreate(BaseModel):
    table_number: str = Field(..., min_length=1, max_length=20)
    capacity: int = Field(..., ge=1, le=MAX_TABLE_CAPACITY)
    shape: TableShape = TableShape.SQUARE
    location: TableLocation = TableLocation.INDOOR
    features: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


class TableUpdate(BaseModel):
    """Descriptive fields only; status moves through the status endpoint."""

    table_number: Optional[str] = Field(None, min_length=1, max_length=20)
    capacity: Optional[int] = Field(None, ge=1, le=MAX_TABLE_CAPACITY)
    shape: Optional[TableShape] = None
    location: Optional[TableLocation] = None
    features: Optional[List[str]] = None
    notes: Optional[str] = None


class TableStatusUpdate(BaseModel):
    status: TableStatus
    customer_name: Optional[str] = Field(None, max_length=200)
    party_size: Optional[int] = Field(None, ge=1, le=MAX_TABLE_CAPACITY)
    contact: Optional[str] = Field(None, max_length=200)
    issue: Optional[str] = None


class MaintenanceReport(BaseModel):
    issue: str = Field(..., min_length=1)


class OccupantResponse(BaseModel):
    customer_name: str
    party_size: int
    contact: Optional[str] = None
    reservation_id: Optional[int] = None


class MaintenanceEntryResponse(BaseModel):
    id: int
    issue: str
    reported_by: Optional[int] = None
    reported_at: datetime
    status: MaintenanceStatus
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[int] = None

    model_config = {"from_attributes": True}


class TableResponse(BaseModel):
    id: int
    table_number: str
    capacity: int
    status: TableStatus
    shape: TableShape
    location: TableLocation
    features: List[str] = []
    notes: Optional[str] = None
    current_order_id: Optional[int] = None
    current_reservation_id: Optional[int] = None
    occupied_at: Optional[datetime] = None
    occupied_by: Optional[OccupantResponse] = None
    last_cleaned: Optional[datetime] = None
    maintenance_history: List[MaintenanceEntryResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
