"""
Routes FastAPI pour le module Patient.

Endpoints pour :
- /patients : Dossiers patients (liste paginée, création, lecture,
  mise à jour, archivage)

MULTI-TENANT: Tous les endpoints injectent automatiquement le tenant_id
depuis l'utilisateur authentifié.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.v1.dependencies import PaginationParams
from app.api.v1.patient.schemas import PatientCreate, PatientList, PatientResponse, PatientUpdate
from app.api.v1.patient.services import PatientNotFoundError, PatientService
from app.api.v1.subscription.guards import require_active_subscription, require_usage_limit
from app.api.v1.user.tenant_users_security import get_current_tenant_id
from app.core.auth.user_auth import get_current_user, require_role
from app.database.session import get_db
from app.models.enums import UsageMetric, UserRole
from app.models.user.user import User

router = APIRouter(prefix="/patients", tags=["Patients"])


@router.get("", response_model=PatientList)
def list_patients(
    pagination: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Nom, téléphone ou email"),
    tag: Optional[str] = Query(None, description="Filtrer par tag"),
    include_inactive: bool = Query(False, description="Inclure les patients archivés"),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    """Liste les patients de la clinique."""
    items, total = PatientService(db, tenant_id).get_all(
        page=pagination.page,
        size=pagination.size,
        sort_by=pagination.sort_by,
        sort_order=pagination.sort_order,
        search=search,
        tag=tag,
        include_inactive=include_inactive,
    )
    return PatientList(
        items=items,
        total=total,
        page=pagination.page,
        size=pagination.size,
        pages=pagination.pages(total),
    )


@router.post(
    "",
    response_model=PatientResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[
        Depends(require_active_subscription),
        Depends(require_usage_limit(UsageMetric.PATIENTS)),
    ],
)
def create_patient(
    data: PatientCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    """
    Crée un patient.

    - 402 : abonnement inactif
    - 403 : limite de patients du plan atteinte
    """
    return PatientService(db, tenant_id).create(data)


@router.get("/{patient_id}", response_model=PatientResponse)
def get_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    try:
        return PatientService(db, tenant_id).get_by_id(patient_id)
    except PatientNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/{patient_id}", response_model=PatientResponse)
def update_patient(
    patient_id: int,
    data: PatientUpdate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    try:
        return PatientService(db, tenant_id).update(patient_id, data)
    except PatientNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def archive_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(require_role(UserRole.ADMIN, UserRole.RECEPTIONIST)),
):
    """Archive un patient (il n'est plus compté dans la limite du plan)."""
    try:
        PatientService(db, tenant_id).archive(patient_id)
    except PatientNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
