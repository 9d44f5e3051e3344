"""
Réconciliation des événements du fournisseur de paiement.

Chaque événement (déjà authentifié par sa signature) est traduit en
mutation de l'abonnement ou des factures de la clinique concernée.
La clinique est identifiée par `metadata.tenant_id` (posé à la création
de la session de paiement) ou par l'identifiant d'abonnement fournisseur.

Événements traités :
- checkout.session.completed      → ACTIVE, plan et période, fin de l'essai
- customer.subscription.updated   → statut mappé, plan et période
- customer.subscription.deleted   → CANCELLED
- invoice.paid                    → facture créée ou marquée payée
- invoice.payment_failed          → PAST_DUE

Les autres types, ou les événements ne désignant aucune clinique connue,
sont ignorés (journalisés).
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.clock import Clock, SystemClock
from app.models.enums import InvoiceStatus, SubscriptionStatus
from app.models.tenants.invoice import Invoice
from app.models.tenants.plan import Plan
from app.models.tenants.subscription import Subscription
from app.services.billing.provider import BillingProviderClient

logger = logging.getLogger(__name__)

# Statuts fournisseur → statuts internes (défaut : ACTIVE)
PROVIDER_STATUS_MAP = {
    "past_due": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELLED,
    "trialing": SubscriptionStatus.TRIALING,
}


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    """Timestamp Unix (secondes) → datetime UTC."""
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _reference_id(value: Any) -> Optional[str]:
    """Référence fournisseur : chaîne ou objet développé {"id": ...}."""
    if isinstance(value, dict):
        return value.get("id")
    return value


def _price_id(provider_subscription: Dict[str, Any]) -> Optional[str]:
    items = provider_subscription.get("items", {}).get("data", [])
    if not items:
        return None
    return (items[0].get("price") or {}).get("id")


class BillingWebhookService:
    """
    Applique les événements du fournisseur de paiement.

    Pas de tenant_id à la construction : l'événement désigne la clinique.
    """

    def __init__(
            self,
            db: Session,
            billing: Optional[BillingProviderClient] = None,
            clock: Optional[Clock] = None,
    ):
        self.db = db
        self.billing = billing
        self.clock = clock or SystemClock()
        self.handlers = {
            "checkout.session.completed": self._handle_checkout_completed,
            "customer.subscription.updated": self._handle_subscription_updated,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "invoice.paid": self._handle_invoice_paid,
            "invoice.payment_failed": self._handle_invoice_payment_failed,
        }

    def handle_event(self, event: Dict[str, Any]) -> bool:
        """
        Traite un événement.

        Returns:
            True si l'événement a modifié des données, False s'il est ignoré

        Raises:
            BillingProviderError: échec d'un appel au fournisseur (propagé)
        """
        event_type = event.get("type")
        handler = self.handlers.get(event_type)
        if handler is None:
            logger.info(f"Événement de paiement ignoré: {event_type}")
            return False

        obj = event.get("data", {}).get("object", {})
        handled = handler(obj)
        if handled:
            self.db.commit()
            logger.info(f"💳 Événement {event_type} traité ({event.get('id')})")
        else:
            logger.warning(f"⚠️ Événement {event_type} sans abonnement correspondant ({event.get('id')})")
        return handled

    # =========================================================================
    # RECHERCHE
    # =========================================================================

    def _by_tenant(self, metadata: Optional[Dict[str, Any]]) -> Optional[Subscription]:
        tenant_id = (metadata or {}).get("tenant_id")
        if not tenant_id:
            return None
        try:
            tenant_id = int(tenant_id)
        except (TypeError, ValueError):
            return None
        query = select(Subscription).where(Subscription.tenant_id == tenant_id)
        return self.db.execute(query).scalar_one_or_none()

    def _by_provider_id(self, provider_subscription_id: Optional[str]) -> Optional[Subscription]:
        if not provider_subscription_id:
            return None
        query = select(Subscription).where(Subscription.provider_subscription_id == provider_subscription_id)
        return self.db.execute(query).scalar_one_or_none()

    def _plan_for_price(self, price_id: Optional[str]) -> Optional[Plan]:
        if not price_id:
            return None
        query = select(Plan).where(Plan.provider_price_id == price_id)
        return self.db.execute(query).scalar_one_or_none()

    def _apply_provider_subscription(self, subscription: Subscription, provider_subscription: Dict[str, Any]) -> None:
        """Reporte plan et période depuis l'abonnement fournisseur."""
        plan = self._plan_for_price(_price_id(provider_subscription))
        if plan is not None:
            subscription.plan_id = plan.id

        period_start = _from_timestamp(provider_subscription.get("current_period_start"))
        period_end = _from_timestamp(provider_subscription.get("current_period_end"))
        if period_start:
            subscription.current_period_start = period_start
        if period_end:
            subscription.current_period_end = period_end

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def _handle_checkout_completed(self, session: Dict[str, Any]) -> bool:
        provider_subscription_id = _reference_id(session.get("subscription"))
        subscription = self._by_tenant(session.get("metadata"))
        if subscription is None or not provider_subscription_id:
            return False

        subscription.status = SubscriptionStatus.ACTIVE
        subscription.provider_subscription_id = provider_subscription_id
        subscription.trial_ends_at = None

        customer_id = _reference_id(session.get("customer"))
        if customer_id:
            subscription.provider_customer_id = customer_id

        if self.billing is not None:
            provider_subscription = self.billing.retrieve_subscription(provider_subscription_id)
            self._apply_provider_subscription(subscription, provider_subscription)
        else:
            logger.warning("⚠️ Client de paiement absent : plan et période non synchronisés")
        return True

    def _handle_subscription_updated(self, provider_subscription: Dict[str, Any]) -> bool:
        subscription = (
            self._by_tenant(provider_subscription.get("metadata"))
            or self._by_provider_id(provider_subscription.get("id"))
        )
        if subscription is None:
            return False

        subscription.status = PROVIDER_STATUS_MAP.get(
            provider_subscription.get("status"), SubscriptionStatus.ACTIVE
        )
        self._apply_provider_subscription(subscription, provider_subscription)
        return True

    def _handle_subscription_deleted(self, provider_subscription: Dict[str, Any]) -> bool:
        subscription = (
            self._by_tenant(provider_subscription.get("metadata"))
            or self._by_provider_id(provider_subscription.get("id"))
        )
        if subscription is None:
            return False

        subscription.status = SubscriptionStatus.CANCELLED
        subscription.cancelled_at = self.clock.now()
        return True

    def _handle_invoice_paid(self, invoice: Dict[str, Any]) -> bool:
        subscription = self._by_provider_id(_reference_id(invoice.get("subscription")))
        if subscription is None:
            return False

        now = self.clock.now()
        existing = self.db.execute(
            select(Invoice).where(Invoice.provider_invoice_id == invoice["id"])
        ).scalar_one_or_none()

        if existing is not None:
            existing.status = InvoiceStatus.PAID
            existing.paid_at = now
            return True

        self.db.add(Invoice(
            subscription_id=subscription.id,
            provider_invoice_id=invoice["id"],
            amount=Decimal(invoice.get("amount_paid") or 0) / 100,
            status=InvoiceStatus.PAID,
            pdf_url=invoice.get("invoice_pdf"),
            hosted_invoice_url=invoice.get("hosted_invoice_url"),
            period_start=_from_timestamp(invoice.get("period_start")) or now,
            period_end=_from_timestamp(invoice.get("period_end")) or now,
            paid_at=now,
        ))
        return True

    def _handle_invoice_payment_failed(self, invoice: Dict[str, Any]) -> bool:
        subscription = self._by_provider_id(_reference_id(invoice.get("subscription")))
        if subscription is None:
            return False

        subscription.status = SubscriptionStatus.PAST_DUE
        return True
