"""Preboarding Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from hris.common.constants import (
    PreboardingItemStatus,
    PreboardingItemType,
    PreboardingStatus,
)


# ═════════════════════════════════════════════════════════════════════
# Requests
# ═════════════════════════════════════════════════════════════════════


class PreboardingItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    item_type: PreboardingItemType
    field_key: Optional[str] = Field(default=None, max_length=50)
    sort_order: int = 0


class PreboardingChecklistCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=30)
    date_of_birth: Optional[date] = None
    address: Optional[dict] = None
    position_title: Optional[str] = Field(default=None, max_length=200)
    department_name: Optional[str] = Field(default=None, max_length=150)
    employment_type: Optional[str] = Field(default=None, max_length=50)
    start_date: Optional[date] = None
    salary: Optional[Decimal] = Field(default=None, ge=0)
    salary_frequency: Optional[str] = Field(default=None, max_length=20)
    deadline: Optional[date] = None
    items: list[PreboardingItemCreate] = Field(default_factory=list)


class ItemSubmitRequest(BaseModel):
    form_value: Optional[str] = Field(default=None, max_length=2000)


class ItemRejectRequest(BaseModel):
    reason: str = Field(..., max_length=2000)


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class PreboardingItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    checklist_id: uuid.UUID
    name: str
    description: Optional[str] = None
    item_type: PreboardingItemType
    field_key: Optional[str] = None
    sort_order: int
    status: PreboardingItemStatus
    form_value: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[uuid.UUID] = None
    rejection_reason: Optional[str] = None


class PreboardingChecklistOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    position_title: Optional[str] = None
    department_name: Optional[str] = None
    employment_type: Optional[str] = None
    start_date: Optional[date] = None
    deadline: Optional[date] = None
    status: PreboardingStatus
    progress_percentage: int
    completed_at: Optional[datetime] = None
    created_at: datetime
    items: list[PreboardingItemOut]
