"""
Routes FastAPI pour le module Rendez-vous.

Endpoints pour :
- /appointments : Agenda (liste par période, création)
- /appointments/{id}/status : Changement de statut
- /appointments/{id}/cancel : Annulation

MULTI-TENANT: Tous les endpoints injectent automatiquement le tenant_id
depuis l'utilisateur authentifié.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.v1.appointment.schemas import (
    AppointmentCreate,
    AppointmentList,
    AppointmentResponse,
    AppointmentStatusUpdate,
)
from app.api.v1.appointment.services import (
    AppointmentNotFoundError,
    AppointmentService,
    AppointmentStateError,
    PatientNotFoundError,
    ProfessionalNotFoundError,
)
from app.api.v1.subscription.guards import require_active_subscription, require_usage_limit
from app.api.v1.user.tenant_users_security import get_current_tenant_id
from app.core.auth.user_auth import get_current_user
from app.core.clock import Clock, get_clock
from app.database.session import get_db
from app.models.enums import UsageMetric
from app.models.user.user import User

router = APIRouter(prefix="/appointments", tags=["Rendez-vous"])


@router.get("", response_model=AppointmentList)
def list_appointments(
    start: Optional[datetime] = Query(None, description="Début de période"),
    end: Optional[datetime] = Query(None, description="Fin de période"),
    professional_id: Optional[int] = Query(None),
    patient_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    """Agenda de la clinique sur une période."""
    items = AppointmentService(db, tenant_id).list_appointments(
        start=start, end=end, professional_id=professional_id, patient_id=patient_id
    )
    return AppointmentList(items=items, total=len(items))


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(require_active_subscription),
        Depends(require_usage_limit(UsageMetric.APPOINTMENTS)),
    ],
)
def create_appointment(
    data: AppointmentCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """
    Crée un rendez-vous.

    - 402 : abonnement inactif
    - 403 : limite mensuelle de rendez-vous atteinte
    """
    try:
        return AppointmentService(db, tenant_id, clock=clock).create(data, created_by=current_user.id)
    except PatientNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ProfessionalNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    try:
        return AppointmentService(db, tenant_id).update_status(appointment_id, data.status)
    except AppointmentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    try:
        return AppointmentService(db, tenant_id).cancel(appointment_id)
    except AppointmentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AppointmentStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
