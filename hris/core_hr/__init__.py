"""Core HR module — Department and Employee models and shared schemas."""

from hris.core_hr.models import Department, Employee

__all__ = ["Employee", "Department"]
