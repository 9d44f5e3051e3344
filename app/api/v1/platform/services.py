"""
Services métier pour le module Platform.

Gestion au niveau plateforme (SuperAdmin) :
- AdminClinicsService : cliniques et actions sur leur abonnement
- PlatformStatsService : statistiques globales (MRR, essais, répartition)

Ces services ne sont pas scopés par tenant : ils opèrent sur toutes les
cliniques et ne sont exposés qu'aux SuperAdmins.
"""
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.api.v1.platform.schemas import ClinicCreate, ClinicUpdate
from app.core.clock import Clock, SystemClock, to_utc
from app.core.config import settings
from app.models.appointment.appointment import Appointment
from app.models.enums import PlanTier, SubscriptionStatus
from app.models.patient.patient import Patient
from app.models.tenants.plan import Plan
from app.models.tenants.subscription import Subscription
from app.models.tenants.tenant import Tenant
from app.models.user.professional import Professional
from app.models.user.user import User

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class ClinicNotFoundError(Exception):
    """Clinique non trouvée."""
    pass


class SubdomainExistsError(Exception):
    """Sous-domaine déjà utilisé."""
    pass


class PlanNotFoundError(Exception):
    """Plan non trouvé."""
    pass


class SubscriptionInvariantError(Exception):
    """Action d'abonnement impossible (ex: clinique sans abonnement)."""
    pass


# =============================================================================
# ADMIN CLINICS SERVICE
# =============================================================================

class AdminClinicsService:
    """Service pour la gestion des cliniques par l'équipe plateforme."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or SystemClock()

    def _get_tenant(self, tenant_id: int) -> Tenant:
        tenant = self.db.get(Tenant, tenant_id)
        if not tenant:
            raise ClinicNotFoundError(f"Clinique {tenant_id} non trouvée")
        return tenant

    def _get_subscription(self, tenant_id: int) -> Subscription:
        self._get_tenant(tenant_id)
        subscription = self.db.execute(
            select(Subscription).where(Subscription.tenant_id == tenant_id)
        ).scalar_one_or_none()
        if subscription is None:
            raise SubscriptionInvariantError(f"Aucun abonnement pour la clinique {tenant_id}")
        return subscription

    def _get_plan(self, plan_id: int) -> Plan:
        plan = self.db.get(Plan, plan_id)
        if not plan:
            raise PlanNotFoundError(f"Plan {plan_id} non trouvé")
        return plan

    def _default_plan(self) -> Plan:
        """Plan gratuit actif, sinon le moins cher des plans actifs."""
        plan = self.db.execute(
            select(Plan)
            .where(Plan.is_active.is_(True))
            .order_by((Plan.tier == PlanTier.FREE).desc(), Plan.price, Plan.id)
            .limit(1)
        ).scalar_one_or_none()
        if plan is None:
            raise PlanNotFoundError("Aucun plan actif pour démarrer un essai")
        return plan

    def _counts(self, tenant_ids: List[int]) -> Dict[int, Dict[str, int]]:
        """Compteurs (users, patients, rendez-vous, praticiens) par clinique."""
        counts = {tenant_id: {} for tenant_id in tenant_ids}
        if not tenant_ids:
            return counts

        for key, model in (
                ("users", User),
                ("patients", Patient),
                ("appointments", Appointment),
                ("professionals", Professional),
        ):
            rows = self.db.execute(
                select(model.tenant_id, func.count())
                .where(model.tenant_id.in_(tenant_ids))
                .group_by(model.tenant_id)
            ).all()
            for tenant_id, count in rows:
                counts[tenant_id][key] = count
        return counts

    @staticmethod
    def _subscription_summary(subscription: Optional[Subscription]) -> Optional[dict]:
        if subscription is None:
            return None
        return {
            "status": subscription.status,
            "trial_ends_at": subscription.trial_ends_at,
            "plan_name": subscription.plan.name,
            "plan_tier": subscription.plan.tier,
        }

    # =========================================================================
    # LECTURE
    # =========================================================================

    def list_clinics(
            self,
            search: Optional[str] = None,
            status: Optional[SubscriptionStatus] = None,
            plan_tier: Optional[PlanTier] = None,
            page: int = 1,
            size: int = 20,
    ) -> Tuple[List[dict], int]:
        """Liste les cliniques avec abonnement et compteurs, les plus récentes d'abord."""
        query = select(Tenant)

        if search:
            search_term = f"%{search}%"
            query = query.where(
                or_(
                    Tenant.name.ilike(search_term),
                    Tenant.subdomain.ilike(search_term),
                    Tenant.email.ilike(search_term),
                )
            )

        if status or plan_tier:
            query = query.join(Subscription, Subscription.tenant_id == Tenant.id)
            if status:
                query = query.where(Subscription.status == status)
            if plan_tier:
                query = query.join(Plan, Plan.id == Subscription.plan_id).where(Plan.tier == plan_tier)

        total = self.db.execute(select(func.count()).select_from(query.subquery())).scalar() or 0

        query = query.order_by(Tenant.created_at.desc(), Tenant.id.desc())
        query = query.offset((page - 1) * size).limit(size)
        tenants = list(self.db.execute(query).scalars().all())

        counts = self._counts([t.id for t in tenants])
        items = [
            {
                "id": t.id,
                "name": t.name,
                "trade_name": t.trade_name,
                "subdomain": t.subdomain,
                "email": t.email,
                "phone": t.phone,
                "is_active": t.is_active,
                "created_at": t.created_at,
                "subscription": self._subscription_summary(t.subscription),
                "counts": counts[t.id],
            }
            for t in tenants
        ]
        return items, total

    def get_clinic(self, tenant_id: int) -> dict:
        """Détail d'une clinique : abonnement, utilisateurs, compteurs."""
        tenant = self._get_tenant(tenant_id)
        return {
            "id": tenant.id,
            "name": tenant.name,
            "trade_name": tenant.trade_name,
            "tax_id": tenant.tax_id,
            "subdomain": tenant.subdomain,
            "email": tenant.email,
            "phone": tenant.phone,
            "timezone": tenant.timezone,
            "is_active": tenant.is_active,
            "created_at": tenant.created_at,
            "subscription": tenant.subscription,
            "users": tenant.users,
            "counts": self._counts([tenant.id])[tenant.id],
        }

    # =========================================================================
    # ÉCRITURE
    # =========================================================================

    def create_clinic(self, data: ClinicCreate) -> Tenant:
        """
        Crée une clinique et son abonnement d'essai (TRIAL_DAYS jours).

        Raises:
            SubdomainExistsError, PlanNotFoundError
        """
        if data.subdomain:
            existing = self.db.execute(
                select(Tenant).where(Tenant.subdomain == data.subdomain)
            ).scalar_one_or_none()
            if existing:
                raise SubdomainExistsError(f"Le sous-domaine '{data.subdomain}' est déjà utilisé")

        plan = self._get_plan(data.plan_id) if data.plan_id else self._default_plan()

        tenant = Tenant(**data.model_dump(exclude={"plan_id"}))
        tenant.subscription = Subscription(
            plan_id=plan.id,
            status=SubscriptionStatus.TRIALING,
            trial_ends_at=self.clock.now() + timedelta(days=settings.TRIAL_DAYS),
        )
        self.db.add(tenant)
        self.db.commit()
        self.db.refresh(tenant)

        logger.info(f"🏥 Clinique {tenant.id} créée, essai {plan.name} de {settings.TRIAL_DAYS} jours")
        return tenant

    def update_clinic(self, tenant_id: int, data: ClinicUpdate) -> Tenant:
        tenant = self._get_tenant(tenant_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(tenant, field, value)
        self.db.commit()
        self.db.refresh(tenant)
        return tenant

    def extend_trial(self, tenant_id: int, days: int) -> Subscription:
        """
        Prolonge l'essai de `days` jours à partir de la fin d'essai
        existante (ou de maintenant) et repasse l'abonnement en TRIALING.

        Raises:
            ClinicNotFoundError, SubscriptionInvariantError
        """
        subscription = self._get_subscription(tenant_id)

        base = to_utc(subscription.trial_ends_at) or self.clock.now()
        subscription.trial_ends_at = base + timedelta(days=days)
        subscription.status = SubscriptionStatus.TRIALING
        self.db.commit()
        self.db.refresh(subscription)

        logger.info(f"⏳ Essai de la clinique {tenant_id} prolongé de {days} jours")
        return subscription

    def change_plan(self, tenant_id: int, plan_id: int) -> Subscription:
        """
        Raises:
            ClinicNotFoundError, SubscriptionInvariantError, PlanNotFoundError
        """
        subscription = self._get_subscription(tenant_id)
        plan = self._get_plan(plan_id)

        subscription.plan_id = plan.id
        self.db.commit()
        self.db.refresh(subscription)

        logger.info(f"Clinique {tenant_id} passée au plan {plan.name}")
        return subscription

    def update_subscription_status(self, tenant_id: int, status: SubscriptionStatus) -> Subscription:
        """
        Raises:
            ClinicNotFoundError, SubscriptionInvariantError
        """
        subscription = self._get_subscription(tenant_id)

        subscription.status = status
        if status == SubscriptionStatus.CANCELLED and subscription.cancelled_at is None:
            subscription.cancelled_at = self.clock.now()
        self.db.commit()
        self.db.refresh(subscription)
        return subscription

    def list_tenant_ids(self, active_only: bool = True) -> List[int]:
        query = select(Tenant.id).order_by(Tenant.id)
        if active_only:
            query = query.where(Tenant.is_active.is_(True))
        return list(self.db.execute(query).scalars().all())


# =============================================================================
# PLATFORM STATS SERVICE
# =============================================================================

class PlatformStatsService:
    """Service pour les statistiques globales de la plateforme."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or SystemClock()

    def _count(self, model, *criteria) -> int:
        return self.db.execute(select(func.count()).select_from(model).where(*criteria)).scalar() or 0

    def get_mrr(self) -> Decimal:
        """Revenu mensuel récurrent des abonnements ACTIVE (plans annuels / 12)."""
        subscriptions = self.db.execute(
            select(Subscription).where(Subscription.status == SubscriptionStatus.ACTIVE)
        ).scalars().all()
        total = sum((s.plan.monthly_price for s in subscriptions), Decimal("0"))
        return total.quantize(Decimal("0.01"))

    def get_dashboard_stats(self) -> dict:
        now = self.clock.now()
        thirty_days_ago = now - timedelta(days=30)
        seven_days_ago = now - timedelta(days=7)

        by_status = self.db.execute(
            select(Subscription.status, func.count()).group_by(Subscription.status)
        ).all()

        by_plan = self.db.execute(
            select(Plan.name, Plan.tier, func.count())
            .join(Subscription, Subscription.plan_id == Plan.id)
            .group_by(Plan.id, Plan.name, Plan.tier)
            .order_by(Plan.id)
        ).all()

        return {
            "total_clinics": self._count(Tenant),
            "active_trials": self._count(
                Subscription,
                Subscription.status == SubscriptionStatus.TRIALING,
                Subscription.trial_ends_at > now,
            ),
            "active_subscriptions": self._count(
                Subscription, Subscription.status == SubscriptionStatus.ACTIVE
            ),
            "new_clinics_this_month": self._count(Tenant, Tenant.created_at >= thirty_days_ago),
            "new_clinics_this_week": self._count(Tenant, Tenant.created_at >= seven_days_ago),
            "mrr": self.get_mrr(),
            "subscriptions_by_status": [
                {"status": status, "count": count}
                for status, count in sorted(by_status, key=lambda row: row[0].value)
            ],
            "subscriptions_by_plan": [
                {"plan": name, "tier": tier, "count": count}
                for name, tier, count in by_plan
            ],
        }
