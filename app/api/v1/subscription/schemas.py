"""
Schémas Pydantic pour le module Abonnement.

Contient les schémas pour :
- Plan (catalogue)
- Subscription (abonnement de la clinique)
- Invoice (factures)
- Usage (consommation vs limites du plan)
- Checkout / portail de facturation
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import BillingPeriod, InvoiceStatus, PlanTier, SubscriptionStatus, UsageMetric


# =============================================================================
# PLAN SCHEMAS
# =============================================================================

class PlanResponse(BaseModel):
    """Plan du catalogue."""
    id: int
    name: str
    tier: PlanTier
    price: Decimal
    billing_period: BillingPeriod
    max_users: int
    max_patients: int
    max_appointments: int
    max_storage: int = Field(..., description="Stockage en Go")
    features: List[str] = []
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# SUBSCRIPTION SCHEMAS
# =============================================================================

class SubscriptionResponse(BaseModel):
    """Abonnement de la clinique."""
    id: int
    tenant_id: int
    plan_id: int
    plan: PlanResponse
    status: SubscriptionStatus
    trial_ends_at: Optional[datetime] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    # Calculés
    is_active: bool = False
    trial_days_remaining: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class InvoiceResponse(BaseModel):
    """Facture."""
    id: int
    provider_invoice_id: str
    amount: Decimal
    status: InvoiceStatus
    pdf_url: Optional[str] = None
    hosted_invoice_url: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceList(BaseModel):
    items: List[InvoiceResponse]
    total: int


# =============================================================================
# USAGE SCHEMAS
# =============================================================================

class UsageValue(BaseModel):
    """Consommation courante d'une métrique et plafond du plan."""
    current: int
    limit: int


class UsageMetricsResponse(BaseModel):
    """Consommation de la clinique (stockage en Mo)."""
    users: UsageValue
    patients: UsageValue
    appointments: UsageValue
    storage: UsageValue


class UsageCheckResponse(BaseModel):
    """Résultat d'une vérification de limite."""
    metric: UsageMetric
    allowed: bool
    current: int
    limit: int


# =============================================================================
# CHECKOUT / PORTAIL
# =============================================================================

class CheckoutRequest(BaseModel):
    """Demande de passage à un plan payant."""
    plan_id: int


class BillingSessionResponse(BaseModel):
    """URL de redirection vers le fournisseur de paiement."""
    url: str
