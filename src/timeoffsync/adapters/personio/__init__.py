"""Public interface for the Personio adapter."""

from __future__ import annotations

from .client import PersonioClient
from .links import PERSONIO_LINK_LABEL, PersonioLinkBuilder
from .schema import EmployeePayload, PersonioResponse, TimeOffPeriodPayload, TimeOffTypePayload
from .translator import (
    build_time_off_form,
    correct_updated_at,
    translate_employee,
    translate_time_off,
    translate_time_off_type,
)

__all__ = [
    "PERSONIO_LINK_LABEL",
    "EmployeePayload",
    "PersonioClient",
    "PersonioLinkBuilder",
    "PersonioResponse",
    "TimeOffPeriodPayload",
    "TimeOffTypePayload",
    "build_time_off_form",
    "correct_updated_at",
    "translate_employee",
    "translate_time_off",
    "translate_time_off_type",
]
