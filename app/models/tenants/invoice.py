# app/models/tenants/invoice.py
"""
Modèle Invoice - Factures synchronisées depuis le fournisseur de paiement.
"""
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import InvoiceStatus
from app.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from app.models.tenants.subscription import Subscription


class Invoice(Base, TimestampMixin):
    """
    Facture d'un abonnement.

    Créée ou mise à jour par le webhook `invoice.paid` ;
    `provider_invoice_id` sert de clé d'idempotence.
    """

    __tablename__ = "invoices"
    __table_args__ = {
        "comment": "Factures émises par le fournisseur de paiement"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    subscription_id: Mapped[int] = mapped_column(
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    provider_invoice_id: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        doc="ID de la facture chez le fournisseur (in_...)"
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus, name="invoice_status_enum", create_constraint=True),
        nullable=False,
        default=InvoiceStatus.OPEN,
    )

    pdf_url: Mapped[Optional[str]] = mapped_column(String(500))
    hosted_invoice_url: Mapped[Optional[str]] = mapped_column(String(500))

    period_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    period_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    subscription: Mapped["Subscription"] = relationship("Subscription", back_populates="invoices")

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, amount={self.amount}, status={self.status})>"
