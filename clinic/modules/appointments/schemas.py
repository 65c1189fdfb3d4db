# clinic/modules/appointments/schemas.py
from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BeforeValidator, field_serializer, field_validator

from clinic.core.schemas import CamelModel, RequiredStr
from clinic.modules.appointments.models import ApptStatus


class ProviderRole(str, Enum):
    DENTIST = "DENTIST"
    PHYSICIAN = "PHYSICIAN"


def _upper(v):
    return v.strip().upper() if isinstance(v, str) else v


ProviderRoleIn = Annotated[ProviderRole, BeforeValidator(_upper)]


class AppointmentCreateRequest(CamelModel):
    """
    Payload to book an appointment.
    - provider_name may be omitted: the first registered provider of the role is used.
    - id and status are assigned by the server.
    """
    patient_name: RequiredStr
    patient_email: str = ""
    patient_phone: str = ""
    provider_role: ProviderRoleIn
    provider_name: Optional[str] = None
    date: dt.date
    time: dt.time
    notes: str = ""

    @field_validator("patient_email", "patient_phone", "notes", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("provider_name", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class AppointmentUpdateRequest(CamelModel):
    """
    Partial update: only the fields present in the body are merged.
    """
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None
    provider_role: Optional[ProviderRoleIn] = None
    provider_name: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    status: Optional[ApptStatus] = None
    notes: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v):
        if v is None or isinstance(v, ApptStatus):
            return v
        return ApptStatus.parse(v)

    def changes(self) -> dict:
        """Fields the caller actually sent, explicit nulls dropped."""
        return {
            k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None
        }


class AppointmentPublic(CamelModel):
    id: str
    patient_name: str
    patient_email: str
    patient_phone: str
    provider_role: str
    provider_name: str
    date: dt.date
    time: dt.time
    status: str
    notes: str

    @field_serializer("time")
    def serialize_time(self, value: dt.time) -> str:
        return value.strftime("%H:%M")


class AppointmentEnvelope(CamelModel):
    appointment: AppointmentPublic


class AppointmentList(CamelModel):
    appointments: List[AppointmentPublic]


class AppointmentFilters(CamelModel):
    """
    Query filters, combined with AND.
    - role=CLIENT & name=...   -> appointments of that patient
    - role=DENTIST|PHYSICIAN   -> appointments of that provider role
    - provider_role / provider_name -> provider match
    """
    role: Optional[str] = None
    name: Optional[str] = None
    provider_role: Optional[str] = None
    provider_name: Optional[str] = None
