"""
Routes API pour le module Platform.

Gestion au niveau plateforme (SuperAdmin) :
- /platform/clinics : Liste, détail, création, modification des cliniques
- /platform/clinics/{id}/extend-trial, /change-plan, /subscription-status :
  Actions sur l'abonnement d'une clinique
- /platform/dashboard : Statistiques globales (MRR, essais, répartition)
- /platform/compliance/update-statuses : Recalcul des statuts de conformité

IMPORTANT: Toutes ces routes nécessitent une authentification SuperAdmin.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.v1.compliance.services import update_all_statuses
from app.api.v1.dependencies import PaginationParams
from app.api.v1.platform.schemas import (
    ChangePlanRequest,
    ClinicCreate,
    ClinicDetail,
    ClinicList,
    ClinicResponse,
    ClinicUpdate,
    ComplianceRunResult,
    ExtendTrialRequest,
    PlatformDashboard,
    SubscriptionStatusUpdate,
)
from app.api.v1.platform.services import (
    AdminClinicsService,
    ClinicNotFoundError,
    PlanNotFoundError,
    PlatformStatsService,
    SubdomainExistsError,
    SubscriptionInvariantError,
)
from app.api.v1.platform.super_admin_security import get_current_super_admin
from app.api.v1.subscription.schemas import SubscriptionResponse
from app.core.clock import Clock, get_clock
from app.database.session import get_db
from app.models.enums import PlanTier, SubscriptionStatus
from app.models.platform.super_admin import SuperAdmin

# =============================================================================
# ROUTER
# =============================================================================

router = APIRouter(prefix="/platform", tags=["Platform Administration"])


def _subscription_error(e: Exception) -> HTTPException:
    if isinstance(e, ClinicNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, PlanNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# =============================================================================
# CLINICS
# =============================================================================

@router.get(
    "/clinics",
    response_model=ClinicList,
    summary="Liste des cliniques",
)
def list_clinics(
        pagination: PaginationParams = Depends(),
        search: Optional[str] = Query(None, description="Nom, sous-domaine ou email"),
        subscription_status: Optional[SubscriptionStatus] = Query(None, alias="status"),
        plan_tier: Optional[PlanTier] = Query(None),
        db: Session = Depends(get_db),
        current_admin: SuperAdmin = Depends(get_current_super_admin),
):
    """Liste les cliniques avec leur abonnement et leurs compteurs."""
    items, total = AdminClinicsService(db).list_clinics(
        search=search,
        status=subscription_status,
        plan_tier=plan_tier,
        page=pagination.page,
        size=pagination.size,
    )
    return ClinicList(
        items=items,
        total=total,
        page=pagination.page,
        size=pagination.size,
        pages=pagination.pages(total),
    )


@router.post(
    "/clinics",
    response_model=ClinicResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Créer une clinique",
)
def create_clinic(
        data: ClinicCreate,
        db: Session = Depends(get_db),
        current_admin: SuperAdmin = Depends(get_current_super_admin),
        clock: Clock = Depends(get_clock),
):
    """Crée une clinique avec un abonnement d'essai."""
    try:
        return AdminClinicsService(db, clock=clock).create_clinic(data)
    except SubdomainExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PlanNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/clinics/{tenant_id}",
    response_model=ClinicDetail,
    summary="Détails d'une clinique",
)
def get_clinic(
        tenant_id: int,
        db: Session = Depends(get_db),
        current_admin: SuperAdmin = Depends(get_current_super_admin),
):
    try:
        return AdminClinicsService(db).get_clinic(tenant_id)
    except ClinicNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch(
    "/clinics/{tenant_id}",
    response_model=ClinicResponse,
    summary="Modifier une clinique",
)
def update_clinic(
        tenant_id: int,
        data: ClinicUpdate,
        db: Session = Depends(get_db),
        current_admin: SuperAdmin = Depends(get_current_super_admin),
):
    try:
        return AdminClinicsService(db).update_clinic(tenant_id, data)
    except ClinicNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# =============================================================================
# ABONNEMENT D'UNE CLINIQUE
# =============================================================================

@router.post(
    "/clinics/{tenant_id}/extend-trial",
    response_model=SubscriptionResponse,
    summary="Prolonger l'essai",
)
def extend_trial(
        tenant_id: int,
        data: ExtendTrialRequest,
        db: Session = Depends(get_db),
        current_admin: SuperAdmin = Depends(get_current_super_admin),
        clock: Clock = Depends(get_clock),
):
    """Prolonge l'essai (depuis la fin d'essai actuelle, ou maintenant)."""
    try:
        return AdminClinicsService(db, clock=clock).extend_trial(tenant_id, data.days)
    except (ClinicNotFoundError, SubscriptionInvariantError) as e:
        raise _subscription_error(e)


@router.post(
    "/clinics/{tenant_id}/change-plan",
    response_model=SubscriptionResponse,
    summary="Changer de plan",
)
def change_plan(
        tenant_id: int,
        data: ChangePlanRequest,
        db: Session = Depends(get_db),
        current_admin: SuperAdmin = Depends(get_current_super_admin),
):
    try:
        return AdminClinicsService(db).change_plan(tenant_id, data.plan_id)
    except (ClinicNotFoundError, PlanNotFoundError, SubscriptionInvariantError) as e:
        raise _subscription_error(e)


@router.post(
    "/clinics/{tenant_id}/subscription-status",
    response_model=SubscriptionResponse,
    summary="Forcer le statut d'abonnement",
)
def update_subscription_status(
        tenant_id: int,
        data: SubscriptionStatusUpdate,
        db: Session = Depends(get_db),
        current_admin: SuperAdmin = Depends(get_current_super_admin),
        clock: Clock = Depends(get_clock),
):
    try:
        return AdminClinicsService(db, clock=clock).update_subscription_status(tenant_id, data.status)
    except (ClinicNotFoundError, SubscriptionInvariantError) as e:
        raise _subscription_error(e)


# =============================================================================
# DASHBOARD / TÂCHES
# =============================================================================

@router.get(
    "/dashboard",
    response_model=PlatformDashboard,
    summary="Statistiques globales de la plateforme",
)
def get_dashboard(
        db: Session = Depends(get_db),
        current_admin: SuperAdmin = Depends(get_current_super_admin),
        clock: Clock = Depends(get_clock),
):
    return PlatformStatsService(db, clock=clock).get_dashboard_stats()


@router.post(
    "/compliance/update-statuses",
    response_model=ComplianceRunResult,
    summary="Recalculer les statuts de conformité",
)
def run_compliance_update(
        db: Session = Depends(get_db),
        current_admin: SuperAdmin = Depends(get_current_super_admin),
        clock: Clock = Depends(get_clock),
):
    """
    Recalcule les statuts des documents de toutes les cliniques actives.

    Destiné à un planificateur externe (appel quotidien).
    """
    tenant_ids = AdminClinicsService(db).list_tenant_ids()
    results = update_all_statuses(db, tenant_ids, clock=clock)
    return ComplianceRunResult(tenants=len(results), updated=sum(results.values()))
