"""
Services métier pour le module Abonnement.

Contient :
- SubscriptionService : statut d'abonnement, limites d'usage, essai gratuit,
  relevés de consommation, factures, passage au paiement

Règles :
- Un abonnement TRIALING dont l'essai est terminé passe en EXPIRED à la
  première lecture via get_subscription() (écriture idempotente).
- Les limites sont vérifiées par comptage direct (pas de compteur dénormalisé) :
  `allowed = current < limit`.

MULTI-TENANT: Toutes les opérations sont filtrées par tenant_id.
"""
import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List, Optional

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from app.core.clock import Clock, SystemClock, month_bounds, to_utc
from app.core.config import settings
from app.models.appointment.appointment import Appointment
from app.models.compliance.compliance_document import ComplianceDocument
from app.models.enums import SubscriptionStatus, UsageMetric
from app.models.patient.patient import Patient
from app.models.tenants.invoice import Invoice
from app.models.tenants.plan import Plan
from app.models.tenants.subscription import Subscription
from app.models.tenants.tenant import Tenant
from app.models.tenants.usage_record import UsageRecord
from app.models.user.user import User
from app.services.billing.provider import BillingProviderClient
from app.services.tenant_store import TenantScopedRepository

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024
MB_PER_GB = 1024


# =============================================================================
# EXCEPTIONS
# =============================================================================

class SubscriptionNotFoundError(Exception):
    """Aucun abonnement pour cette clinique."""
    pass


class PlanNotFoundError(Exception):
    """Plan non trouvé ou non souscriptible."""
    pass


class BillingCustomerMissingError(Exception):
    """La clinique n'a pas encore de client chez le fournisseur de paiement."""
    pass


# =============================================================================
# RÉSULTATS
# =============================================================================

@dataclass
class UsageCheck:
    """Résultat d'une vérification de limite."""
    metric: UsageMetric
    allowed: bool
    current: int
    limit: int


# =============================================================================
# SUBSCRIPTION SERVICE (MULTI-TENANT)
# =============================================================================

class SubscriptionService:
    """
    Service pour l'abonnement et la consommation d'une clinique.

    MULTI-TENANT: Toutes les opérations sont filtrées par tenant_id.
    """

    def __init__(self, db: Session, tenant_id: int, clock: Optional[Clock] = None):
        self.db = db
        self.tenant_id = tenant_id
        self.clock = clock or SystemClock()

    def _load(self) -> Optional[Subscription]:
        """Lecture brute, sans transition d'expiration."""
        query = select(Subscription).where(Subscription.tenant_id == self.tenant_id)
        return self.db.execute(query).scalar_one_or_none()

    # =========================================================================
    # STATUT
    # =========================================================================

    def get_subscription(self) -> Optional[Subscription]:
        """
        Récupère l'abonnement de la clinique.

        Effet de bord : un essai terminé est persisté en EXPIRED.
        """
        subscription = self._load()
        if subscription is None:
            return None

        trial_ends_at = to_utc(subscription.trial_ends_at)
        if (
            subscription.status == SubscriptionStatus.TRIALING
            and trial_ends_at is not None
            and self.clock.now() > trial_ends_at
        ):
            subscription.status = SubscriptionStatus.EXPIRED
            self.db.commit()
            logger.info(f"⏰ Essai terminé, abonnement {subscription.id} expiré (tenant={self.tenant_id})")

        return subscription

    def is_subscription_active(self) -> bool:
        """ACTIVE, ou TRIALING dont l'essai n'est pas terminé."""
        subscription = self.get_subscription()
        if subscription is None:
            return False

        if subscription.status == SubscriptionStatus.ACTIVE:
            return True

        if subscription.status == SubscriptionStatus.TRIALING:
            trial_ends_at = to_utc(subscription.trial_ends_at)
            return trial_ends_at is None or self.clock.now() < trial_ends_at

        return False

    def get_trial_days_remaining(self) -> Optional[int]:
        """
        Jours d'essai restants (arrondi supérieur, jamais négatif).

        None si pas d'abonnement, pas en essai, ou pas de date de fin.
        """
        subscription = self._load()
        if (
            subscription is None
            or subscription.status != SubscriptionStatus.TRIALING
            or subscription.trial_ends_at is None
        ):
            return None

        remaining = to_utc(subscription.trial_ends_at) - self.clock.now()
        days = math.ceil(remaining / timedelta(days=1))
        return max(0, days)

    # =========================================================================
    # CONSOMMATION
    # =========================================================================

    def _current_usage(self, metric: UsageMetric) -> int:
        """Comptage direct de la consommation d'une métrique."""
        if metric == UsageMetric.USERS:
            return TenantScopedRepository(self.db, self.tenant_id, User).count(User.is_active.is_(True))

        if metric == UsageMetric.PATIENTS:
            return TenantScopedRepository(self.db, self.tenant_id, Patient).count(Patient.is_active.is_(True))

        if metric == UsageMetric.APPOINTMENTS:
            month_start, month_end = month_bounds(self.clock.now())
            return TenantScopedRepository(self.db, self.tenant_id, Appointment).count(
                and_(Appointment.created_at >= month_start, Appointment.created_at < month_end)
            )

        if metric == UsageMetric.STORAGE:
            total_bytes = TenantScopedRepository(self.db, self.tenant_id, ComplianceDocument).sum(
                ComplianceDocument.file_size
            )
            return int(total_bytes) // BYTES_PER_MB

        raise ValueError(f"Métrique inconnue: {metric}")

    @staticmethod
    def _plan_limit(plan: Plan, metric: UsageMetric) -> int:
        """Plafond du plan (stockage converti en Mo)."""
        limits = {
            UsageMetric.USERS: plan.max_users,
            UsageMetric.PATIENTS: plan.max_patients,
            UsageMetric.APPOINTMENTS: plan.max_appointments,
            UsageMetric.STORAGE: plan.max_storage * MB_PER_GB,
        }
        return limits[metric]

    def check_usage_limit(self, metric: UsageMetric) -> UsageCheck:
        """
        Vérifie si une création de plus est autorisée pour la métrique.

        Raises:
            SubscriptionNotFoundError: la clinique n'a pas d'abonnement
        """
        subscription = self._load()
        if subscription is None:
            raise SubscriptionNotFoundError(f"Aucun abonnement pour le tenant {self.tenant_id}")

        current = self._current_usage(metric)
        limit = self._plan_limit(subscription.plan, metric)
        return UsageCheck(metric=metric, allowed=current < limit, current=current, limit=limit)

    def get_usage_metrics(self) -> Dict[str, Dict[str, int]]:
        """
        Consommation de toutes les métriques (stockage en Mo).

        Raises:
            SubscriptionNotFoundError: la clinique n'a pas d'abonnement
        """
        subscription = self._load()
        if subscription is None:
            raise SubscriptionNotFoundError(f"Aucun abonnement pour le tenant {self.tenant_id}")

        return {
            metric.value: {
                "current": self._current_usage(metric),
                "limit": self._plan_limit(subscription.plan, metric),
            }
            for metric in UsageMetric
        }

    def record_usage(self, metric: UsageMetric, value: int) -> UsageRecord:
        """Enregistre (upsert) la valeur du mois courant pour une métrique."""
        period_start, period_end = month_bounds(self.clock.now())
        records = TenantScopedRepository(self.db, self.tenant_id, UsageRecord)

        existing = records.list(
            UsageRecord.metric == metric,
            UsageRecord.period_start == period_start,
        )
        if existing:
            record = existing[0]
            record.value = value
            return records.save(record)

        record = UsageRecord(
            metric=metric,
            value=value,
            period_start=period_start,
            period_end=period_end,
        )
        return records.add(record)

    def snapshot_usage(self) -> List[UsageRecord]:
        """Enregistre la consommation courante de toutes les métriques."""
        return [self.record_usage(metric, self._current_usage(metric)) for metric in UsageMetric]

    # =========================================================================
    # CATALOGUE / FACTURES
    # =========================================================================

    def list_plans(self) -> List[Plan]:
        """Plans souscriptibles, du moins cher au plus cher."""
        query = select(Plan).where(Plan.is_active.is_(True)).order_by(Plan.price, Plan.id)
        return list(self.db.execute(query).scalars().all())

    def list_invoices(self, limit: int = 20) -> List[Invoice]:
        """Dernières factures de la clinique."""
        query = (
            select(Invoice)
            .join(Subscription, Invoice.subscription_id == Subscription.id)
            .where(Subscription.tenant_id == self.tenant_id)
            .order_by(Invoice.created_at.desc())
            .limit(limit)
        )
        return list(self.db.execute(query).scalars().all())

    # =========================================================================
    # PAIEMENT
    # =========================================================================

    def create_checkout_session(self, plan_id: int, billing: BillingProviderClient) -> str:
        """
        Démarre la souscription d'un plan payant.

        Crée le client chez le fournisseur si nécessaire.

        Returns:
            URL de la page de paiement

        Raises:
            SubscriptionNotFoundError, PlanNotFoundError, BillingProviderError
        """
        subscription = self._load()
        if subscription is None:
            raise SubscriptionNotFoundError(f"Aucun abonnement pour le tenant {self.tenant_id}")

        plan = self.db.get(Plan, plan_id)
        if plan is None or not plan.is_active or not plan.provider_price_id:
            raise PlanNotFoundError(f"Plan {plan_id} non disponible")

        if not subscription.provider_customer_id:
            tenant = self.db.get(Tenant, self.tenant_id)
            customer = billing.create_customer(email=tenant.email, name=tenant.name, tenant_id=self.tenant_id)
            subscription.provider_customer_id = customer["id"]
            self.db.commit()

        session = billing.create_checkout_session(
            customer_id=subscription.provider_customer_id,
            price_id=plan.provider_price_id,
            tenant_id=self.tenant_id,
            success_url=f"{settings.FRONTEND_URL}/settings/billing?success=true",
            cancel_url=f"{settings.FRONTEND_URL}/settings/billing?canceled=true",
        )
        return session["url"]

    def create_billing_portal_session(self, billing: BillingProviderClient) -> str:
        """
        URL du portail de facturation.

        Raises:
            SubscriptionNotFoundError, BillingCustomerMissingError, BillingProviderError
        """
        subscription = self._load()
        if subscription is None:
            raise SubscriptionNotFoundError(f"Aucun abonnement pour le tenant {self.tenant_id}")
        if not subscription.provider_customer_id:
            raise BillingCustomerMissingError("Aucun moyen de paiement enregistré pour cette clinique")

        session = billing.create_billing_portal_session(
            customer_id=subscription.provider_customer_id,
            return_url=f"{settings.FRONTEND_URL}/settings/billing",
        )
        return session["url"]
