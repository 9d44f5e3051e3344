"""
Routes FastAPI pour le module Abonnement.

Endpoints pour :
- /subscription : Abonnement de la clinique courante
- /subscription/usage : Consommation vs limites du plan
- /subscription/plans : Catalogue des plans
- /subscription/invoices : Factures
- /subscription/checkout, /subscription/portal : Redirections fournisseur de paiement

MULTI-TENANT: Tous les endpoints portent sur la clinique de l'utilisateur.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.v1.subscription.schemas import (
    BillingSessionResponse,
    CheckoutRequest,
    InvoiceList,
    PlanResponse,
    SubscriptionResponse,
    UsageCheckResponse,
    UsageMetricsResponse,
)
from app.api.v1.subscription.services import (
    BillingCustomerMissingError,
    PlanNotFoundError,
    SubscriptionNotFoundError,
    SubscriptionService,
)
from app.api.v1.user.tenant_users_security import get_current_tenant_id
from app.core.auth.user_auth import get_current_user, require_role
from app.core.clock import Clock, get_clock
from app.database.session import get_db
from app.models.enums import UsageMetric, UserRole
from app.models.user.user import User
from app.services.billing.provider import BillingProviderClient, BillingProviderError, get_billing_client

router = APIRouter(prefix="/subscription", tags=["Abonnement"])


# =============================================================================
# HELPERS
# =============================================================================

def get_billing_client_or_503(
    billing: Optional[BillingProviderClient] = Depends(get_billing_client),
) -> BillingProviderClient:
    """Client de paiement, ou 503 si le fournisseur n'est pas configuré."""
    if billing is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Fournisseur de paiement non configuré",
        )
    return billing


# =============================================================================
# ABONNEMENT
# =============================================================================

@router.get("", response_model=SubscriptionResponse)
def get_subscription(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """
    Abonnement de la clinique, avec statut actif et jours d'essai restants.

    Un essai terminé est basculé en EXPIRED lors de cette lecture.
    """
    service = SubscriptionService(db, tenant_id, clock=clock)
    subscription = service.get_subscription()
    if subscription is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Abonnement non trouvé")

    response = SubscriptionResponse.model_validate(subscription)
    response.is_active = service.is_subscription_active()
    response.trial_days_remaining = service.get_trial_days_remaining()
    return response


@router.get("/plans", response_model=List[PlanResponse])
def list_plans(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),
    current_user: User = Depends(get_current_user),
):
    """Catalogue des plans souscriptibles."""
    return SubscriptionService(db, tenant_id).list_plans()


@router.get("/invoices", response_model=InvoiceList)
def list_invoices(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(require_role(UserRole.ADMIN, UserRole.FINANCIAL)),
):
    """Dernières factures de la clinique."""
    items = SubscriptionService(db, tenant_id).list_invoices(limit=limit)
    return InvoiceList(items=items, total=len(items))


# =============================================================================
# CONSOMMATION
# =============================================================================

@router.get("/usage", response_model=UsageMetricsResponse)
def get_usage(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Consommation courante de la clinique (stockage en Mo)."""
    try:
        return SubscriptionService(db, tenant_id, clock=clock).get_usage_metrics()
    except SubscriptionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/usage/{metric}", response_model=UsageCheckResponse)
def check_usage(
    metric: UsageMetric,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Vérifie si une création de plus est autorisée pour une métrique."""
    try:
        result = SubscriptionService(db, tenant_id, clock=clock).check_usage_limit(metric)
    except SubscriptionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return UsageCheckResponse(metric=result.metric, allowed=result.allowed, current=result.current, limit=result.limit)


@router.post("/usage/snapshot", status_code=status.HTTP_204_NO_CONTENT)
def snapshot_usage(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    clock: Clock = Depends(get_clock),
):
    """Enregistre les relevés de consommation du mois courant."""
    SubscriptionService(db, tenant_id, clock=clock).snapshot_usage()


# =============================================================================
# PAIEMENT
# =============================================================================

@router.post("/checkout", response_model=BillingSessionResponse)
def create_checkout(
    data: CheckoutRequest,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    billing: BillingProviderClient = Depends(get_billing_client_or_503),
):
    """Crée une session de paiement pour souscrire un plan."""
    try:
        url = SubscriptionService(db, tenant_id).create_checkout_session(data.plan_id, billing)
    except SubscriptionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PlanNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except BillingProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return BillingSessionResponse(url=url)


@router.post("/portal", response_model=BillingSessionResponse)
def create_portal(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    billing: BillingProviderClient = Depends(get_billing_client_or_503),
):
    """Crée une session du portail de facturation."""
    try:
        url = SubscriptionService(db, tenant_id).create_billing_portal_session(billing)
    except SubscriptionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except BillingCustomerMissingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except BillingProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return BillingSessionResponse(url=url)
