"""Reservation schemas."""

from __future__ import annotations

from datetime import date as date_type, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from restaurant_pos.models.reservation import (
    MAX_DURATION,
    MAX_PARTY_SIZE,
    MIN_DURATION,
    Occasion,
    ReservationStatus,
)

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ReservationCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_phone: str = Field(..., min_length=1, max_length=50)
    customer_email: Optional[EmailStr] = None
    party_size: int = Field(..., ge=1, le=MAX_PARTY_SIZE)
    date: date_type
    time: str = Field(..., pattern=HHMM_PATTERN, description="24h HH:MM, restaurant-local")
    duration: Optional[int] = Field(None, ge=MIN_DURATION, le=MAX_DURATION, description="Minutes; omitted means the configured default")
    table_id: int
    occasion: Optional[Occasion] = None
    special_requests: Optional[str] = None
    notes: Optional[str] = None


class ReservationUpdate(BaseModel):
    customer_name: Optional[str] = Field(None, min_length=1, max_length=200)
    customer_phone: Optional[str] = Field(None, min_length=1, max_length=50)
    customer_email: Optional[EmailStr] = None
    party_size: Optional[int] = Field(None, ge=1, le=MAX_PARTY_SIZE)
    date: Optional[date_type] = None
    time: Optional[str] = Field(None, pattern=HHMM_PATTERN)
    duration: Optional[int] = Field(None, ge=MIN_DURATION, le=MAX_DURATION)
    table_id: Optional[int] = None
    occasion: Optional[Occasion] = None
    special_requests: Optional[str] = None
    notes: Optional[str] = None


class ReservationStatusUpdate(BaseModel):
    status: ReservationStatus


class ReservationResponse(BaseModel):
    id: int
    reservation_number: str
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    party_size: int
    date: date_type
    time: str
    duration: int
    end_time: str
    crosses_midnight: bool = False
    table_id: int
    table_number: Optional[str] = None
    status: ReservationStatus
    occasion: Optional[Occasion] = None
    special_requests: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    seated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
