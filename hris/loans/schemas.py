"""Loan application Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hris.common.constants import LoanApplicationStatus, LoanType
from hris.core_hr.schemas import EmployeeBrief


# ═════════════════════════════════════════════════════════════════════
# Requests
# ═════════════════════════════════════════════════════════════════════


class LoanApplicationCreate(BaseModel):
    loan_type: LoanType
    amount_requested: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    term_months: int = Field(..., ge=1, le=120)
    purpose: Optional[str] = Field(default=None, max_length=2000)


class LoanApplicationUpdate(BaseModel):
    """Partial edit of a draft; omitted fields are left unchanged."""

    loan_type: Optional[LoanType] = None
    amount_requested: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    term_months: Optional[int] = Field(default=None, ge=1, le=120)
    purpose: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("loan_type", "amount_requested", "term_months")
    @classmethod
    def _not_cleared(cls, v):
        if v is None:
            raise ValueError("This field cannot be cleared.")
        return v


class LoanApproveRequest(BaseModel):
    """Review payload; omitted amounts default to what was requested."""

    amount_approved: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    approved_term_months: Optional[int] = Field(default=None, ge=1, le=120)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    remarks: Optional[str] = Field(default=None, max_length=2000)


class LoanRejectRequest(BaseModel):
    remarks: str = Field(..., max_length=2000)


class LoanCancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=2000)


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════


class LoanApplicationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    reference_number: str
    employee_id: uuid.UUID
    loan_type: LoanType
    amount_requested: Decimal
    term_months: int
    purpose: Optional[str] = None
    status: LoanApplicationStatus
    submitted_at: Optional[datetime] = None
    reviewer_id: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    amount_approved: Optional[Decimal] = None
    approved_term_months: Optional[int] = None
    interest_rate: Optional[Decimal] = None
    remarks: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime


class LoanApplicationDetail(LoanApplicationOut):
    employee: EmployeeBrief
    reviewer: Optional[EmployeeBrief] = None
