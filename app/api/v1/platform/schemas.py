"""
Schémas Pydantic pour le module Platform.

Gestion au niveau plateforme (SuperAdmin) :
- Clinic : liste, détail, création, modification
- Actions d'abonnement : prolongation d'essai, changement de plan, statut
- Dashboard : statistiques globales et MRR
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.api.v1.subscription.schemas import SubscriptionResponse
from app.models.enums import PlanTier, SubscriptionStatus, UserRole


# =============================================================================
# CLINIC SCHEMAS
# =============================================================================

class ClinicCreate(BaseModel):
    """Création d'une clinique (abonnement d'essai créé automatiquement)."""
    name: str = Field(..., min_length=1, max_length=255)
    trade_name: Optional[str] = Field(None, max_length=255)
    tax_id: Optional[str] = Field(None, max_length=20)
    subdomain: Optional[str] = Field(None, max_length=63, pattern="^[a-z0-9-]+$")
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    timezone: str = "Europe/Paris"
    plan_id: Optional[int] = Field(None, description="Plan de l'essai (défaut : plan gratuit)")


class ClinicUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    trade_name: Optional[str] = None
    tax_id: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    timezone: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "email", "timezone", "is_active")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Ce champ ne peut pas être null")
        return v


class ClinicCounts(BaseModel):
    users: int = 0
    patients: int = 0
    appointments: int = 0
    professionals: int = 0


class ClinicSubscriptionSummary(BaseModel):
    status: SubscriptionStatus
    trial_ends_at: Optional[datetime] = None
    plan_name: str
    plan_tier: PlanTier


class ClinicSummary(BaseModel):
    """Ligne de la liste des cliniques."""
    id: int
    name: str
    trade_name: Optional[str] = None
    subdomain: Optional[str] = None
    email: str
    phone: Optional[str] = None
    is_active: bool
    created_at: datetime
    subscription: Optional[ClinicSubscriptionSummary] = None
    counts: ClinicCounts


class ClinicList(BaseModel):
    """Liste paginée de cliniques."""
    items: List[ClinicSummary]
    total: int
    page: int
    size: int
    pages: int


class ClinicUserSummary(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    is_active: bool
    last_login_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ClinicDetail(BaseModel):
    id: int
    name: str
    trade_name: Optional[str] = None
    tax_id: Optional[str] = None
    subdomain: Optional[str] = None
    email: str
    phone: Optional[str] = None
    timezone: str
    is_active: bool
    created_at: datetime
    subscription: Optional[SubscriptionResponse] = None
    users: List[ClinicUserSummary]
    counts: ClinicCounts


class ClinicResponse(BaseModel):
    id: int
    name: str
    trade_name: Optional[str] = None
    subdomain: Optional[str] = None
    email: str
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# ACTIONS D'ABONNEMENT
# =============================================================================

class ExtendTrialRequest(BaseModel):
    days: int = Field(..., ge=1, le=365, description="Jours ajoutés à la fin d'essai")


class ChangePlanRequest(BaseModel):
    plan_id: int


class SubscriptionStatusUpdate(BaseModel):
    status: SubscriptionStatus


# =============================================================================
# DASHBOARD
# =============================================================================

class StatusCount(BaseModel):
    status: SubscriptionStatus
    count: int


class PlanCount(BaseModel):
    plan: str
    tier: PlanTier
    count: int


class PlatformDashboard(BaseModel):
    """Statistiques globales de la plateforme."""
    total_clinics: int
    active_trials: int
    active_subscriptions: int
    new_clinics_this_month: int
    new_clinics_this_week: int
    mrr: Decimal = Field(..., description="Revenu mensuel récurrent (annuel / 12)")
    subscriptions_by_status: List[StatusCount]
    subscriptions_by_plan: List[PlanCount]


class ComplianceRunResult(BaseModel):
    """Recalcul des statuts de conformité sur toutes les cliniques."""
    tenants: int
    updated: int
