"""Minimal Pydantic models for the Personio API v1."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import Any

from pydantic import BaseModel, ConfigDict


class PersonioBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class EmployeeAttribute(PersonioBaseModel):
    """Employee attributes are wrapped as ``{"label": ..., "value": ...}``."""

    label: str | None = None
    value: Any = None


class EmployeeAttributes(PersonioBaseModel):
    id: EmployeeAttribute
    email: EmployeeAttribute | None = None
    status: EmployeeAttribute | None = None
    first_name: EmployeeAttribute | None = None
    last_name: EmployeeAttribute | None = None


class EmployeePayload(PersonioBaseModel):
    type: str | None = None
    attributes: EmployeeAttributes


class TimeOffTypeAttributes(PersonioBaseModel):
    id: int
    name: str
    category: str | None = None
    half_day_requests_enabled: bool = False


class TimeOffTypePayload(PersonioBaseModel):
    type: str | None = None
    attributes: TimeOffTypeAttributes


class TimeOffPeriodAttributes(PersonioBaseModel):
    id: int
    status: str = "pending"
    comment: str | None = None
    start_date: str
    end_date: str
    half_day_start: bool = False
    half_day_end: bool = False
    time_off_type: TimeOffTypePayload | None = None
    employee: EmployeePayload | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime


class TimeOffPeriodPayload(PersonioBaseModel):
    type: str | None = None
    attributes: TimeOffPeriodAttributes


class PageMetadata(PersonioBaseModel):
    total_elements: int | None = None
    current_page: int | None = None
    total_pages: int | None = None


class ErrorPayload(PersonioBaseModel):
    code: int | None = None
    message: str | None = None


class PersonioResponse(PersonioBaseModel):
    success: bool = False
    data: Any = None
    metadata: PageMetadata | None = None
    error: ErrorPayload | None = None


class AuthToken(PersonioBaseModel):
    token: str


class AuthResponse(PersonioBaseModel):
    success: bool = False
    data: AuthToken | None = None
    error: ErrorPayload | None = None


__all__ = [
    "AuthResponse",
    "AuthToken",
    "EmployeeAttribute",
    "EmployeeAttributes",
    "EmployeePayload",
    "ErrorPayload",
    "PageMetadata",
    "PersonioResponse",
    "TimeOffPeriodAttributes",
    "TimeOffPeriodPayload",
    "TimeOffTypeAttributes",
    "TimeOffTypePayload",
]
