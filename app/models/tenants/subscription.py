# app/models/tenants/subscription.py
"""
Modèle Subscription - Abonnement d'une clinique.

Ce module définit la table `subscriptions` (un abonnement par clinique).
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import SubscriptionStatus
from app.models.mixins import TimestampMixin

# Imports conditionnels pour éviter les imports circulaires
if TYPE_CHECKING:
    from app.models.tenants.tenant import Tenant
    from app.models.tenants.plan import Plan
    from app.models.tenants.invoice import Invoice


# =============================================================================
# MODÈLE
# =============================================================================

class Subscription(Base, TimestampMixin):
    """
    Représente l'abonnement d'une clinique à DentFlow.

    Cycle de vie :
    - TRIALING à la création de la clinique (essai gratuit)
    - ACTIVE après le premier paiement
    - PAST_DUE en cas d'échec de paiement
    - CANCELLED à la résiliation
    - EXPIRED quand l'essai se termine sans conversion (transition
      appliquée paresseusement à la première lecture)

    Example:
        subscription = Subscription(
            tenant_id=1,
            plan_id=2,
            status=SubscriptionStatus.TRIALING,
            trial_ends_at=now + timedelta(days=14),
        )
    """

    __tablename__ = "subscriptions"
    __table_args__ = {
        "comment": "Abonnements des cliniques (un par clinique)"
    }

    # ========================
    # Clé primaire
    # ========================
    id: Mapped[int] = mapped_column(
        primary_key=True,
        doc="Identifiant unique de l'abonnement"
    )

    # ========================
    # Clés étrangères
    # ========================
    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
        doc="ID de la clinique",
        info={"description": "Un seul abonnement par clinique"}
    )

    plan_id: Mapped[int] = mapped_column(
        ForeignKey("subscription_plans.id"),
        nullable=False,
        doc="Plan souscrit"
    )

    # ========================
    # Statut
    # ========================
    status: Mapped[SubscriptionStatus] = mapped_column(
        Enum(SubscriptionStatus, name="subscription_status_enum", create_constraint=True),
        nullable=False,
        default=SubscriptionStatus.TRIALING,
        doc="Statut de l'abonnement",
        info={"description": "TRIALING, ACTIVE, PAST_DUE, CANCELLED, EXPIRED"}
    )

    # ========================
    # Fournisseur de paiement
    # ========================
    provider_customer_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        unique=True,
        doc="ID client chez le fournisseur (cus_...)"
    )

    provider_subscription_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        unique=True,
        doc="ID abonnement chez le fournisseur (sub_...)"
    )

    # ========================
    # Période
    # ========================
    trial_ends_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        doc="Fin de la période d'essai"
    )

    current_period_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    current_period_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # ========================
    # Relations
    # ========================
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="subscription")

    plan: Mapped["Plan"] = relationship("Plan")

    invoices: Mapped[List["Invoice"]] = relationship(
        "Invoice",
        back_populates="subscription",
        cascade="all, delete-orphan",
        order_by="Invoice.created_at.desc()",
    )

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, tenant_id={self.tenant_id}, status={self.status})>"
