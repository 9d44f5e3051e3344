"""
Schémas Pydantic pour le module Rendez-vous.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.enums import AppointmentStatus, AppointmentType


class AppointmentCreate(BaseModel):
    """Schéma pour créer un rendez-vous."""
    patient_id: int
    professional_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    type: AppointmentType = AppointmentType.EVALUATION
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_time_range(self) -> "AppointmentCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time doit être postérieur à start_time")
        return self


class AppointmentStatusUpdate(BaseModel):
    """Changement de statut (ex: COMPLETED après la consultation)."""
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    professional_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    type: AppointmentType
    status: AppointmentStatus
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AppointmentList(BaseModel):
    items: List[AppointmentResponse]
    total: int = Field(..., ge=0)
