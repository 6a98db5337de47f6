"""Document request Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hris.common.constants import DocumentRequestStatus
from hris.core_hr.schemas import EmployeeBrief


class DocumentRequestCreate(BaseModel):
    document_type: str = Field(..., min_length=1, max_length=100)
    purpose: Optional[str] = Field(default=None, max_length=1000)


class DocumentStatusUpdate(BaseModel):
    """HR status change. Omitting ``admin_notes`` keeps the existing notes."""

    status: DocumentRequestStatus
    admin_notes: Optional[str] = Field(default=None, max_length=1000)


class DocumentRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    document_type: str
    purpose: Optional[str] = None
    status: DocumentRequestStatus
    processed_at: Optional[datetime] = None
    collected_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DocumentRequestDetail(DocumentRequestOut):
    employee: EmployeeBrief


class DocumentRequestListOut(BaseModel):
    """Requests plus a count per status (every status present, zero-filled)."""

    data: list[DocumentRequestDetail]
    summary: dict[DocumentRequestStatus, int]
