# app/models/tenants/plan.py
"""
Modèle Plan - Catalogue des offres commerciales.

Chaque plan fixe les limites d'usage vérifiées avant la création
d'utilisateurs, patients, rendez-vous et documents.
"""
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Enum, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.enums import BillingPeriod, PlanTier
from app.models.mixins import TimestampMixin
from app.models.types import JSONFeatures


class Plan(Base, TimestampMixin):
    """
    Offre d'abonnement.

    Attributes:
        tier: Niveau commercial (FREE, STARTER, PROFESSIONAL, ENTERPRISE)
        price: Prix par période de facturation
        provider_price_id: Identifiant du prix chez le fournisseur de paiement
        max_users / max_patients: Limites absolues (actifs)
        max_appointments: Limite mensuelle de rendez-vous créés
        max_storage: Stockage documents, en Go
    """

    __tablename__ = "subscription_plans"
    __table_args__ = {
        "comment": "Catalogue des plans d'abonnement"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    tier: Mapped[PlanTier] = mapped_column(
        Enum(PlanTier, name="plan_tier_enum", create_constraint=True),
        nullable=False,
        doc="Niveau commercial du plan",
    )

    # ========================
    # Tarification
    # ========================
    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
    )

    billing_period: Mapped[BillingPeriod] = mapped_column(
        Enum(BillingPeriod, name="billing_period_enum", create_constraint=True),
        nullable=False,
        default=BillingPeriod.MONTHLY,
    )

    provider_price_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        unique=True,
        doc="ID du prix chez le fournisseur de paiement (price_...)",
    )

    # ========================
    # Limites
    # ========================
    max_users: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    max_patients: Mapped[int] = mapped_column(Integer, default=500, nullable=False)
    max_appointments: Mapped[int] = mapped_column(
        Integer,
        default=1000,
        nullable=False,
        info={"description": "Rendez-vous créés par mois calendaire"}
    )
    max_storage: Mapped[int] = mapped_column(
        Integer,
        default=5,
        nullable=False,
        info={"description": "Stockage en Go"}
    )

    features: Mapped[list] = mapped_column(JSONFeatures, nullable=False, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def monthly_price(self) -> Decimal:
        """Prix ramené au mois (MRR)."""
        if self.billing_period == BillingPeriod.YEARLY:
            return self.price / 12
        return self.price

    def __repr__(self) -> str:
        return f"<Plan(id={self.id}, tier={self.tier}, price={self.price})>"
