"""Core HR Pydantic v2 schemas shared by the workflow modules."""


import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from hris.common.constants import EmploymentStatus, EmploymentType


class EmployeeBrief(BaseModel):
    """Minimal employee info embedded in workflow responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_number: str
    full_name: str
    initials: str
    position_title: Optional[str] = None
    department_id: Optional[uuid.UUID] = None


class EmployeeOut(BaseModel):
    """Full employee record (returned by preboarding conversion)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    employee_number: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[dict] = None
    department_id: Optional[uuid.UUID] = None
    position_title: Optional[str] = None
    employment_type: EmploymentType
    employment_status: EmploymentStatus
    hire_date: Optional[date] = None
    basic_salary: Optional[Decimal] = None
    pay_frequency: Optional[str] = None
    preboarding_checklist_id: Optional[uuid.UUID] = None
    created_at: datetime
