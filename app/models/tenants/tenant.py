# app/models/tenants/tenant.py
"""
Modèle Tenant - Représente une clinique cliente de la plateforme DentFlow.

Chaque clinique est isolée : toutes les entités métier portent un tenant_id
et aucune requête ne doit franchir cette frontière.
"""
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.mixins import TimestampMixin

# Imports conditionnels pour éviter les imports circulaires
if TYPE_CHECKING:
    from app.models.tenants.subscription import Subscription
    from app.models.user.user import User


class Tenant(Base, TimestampMixin):
    """
    Représente une clinique cliente de DentFlow (locataire).

    Un tenant a :
    - Ses propres utilisateurs, patients, rendez-vous et documents
    - Un unique abonnement (essai, payant, résilié...)
    """

    __tablename__ = "tenants"
    __table_args__ = {
        "comment": "Cliniques clientes de la plateforme"
    }

    # ========================
    # Clé primaire
    # ========================
    id: Mapped[int] = mapped_column(primary_key=True)

    # ========================
    # Identification
    # ========================
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Nom commercial de la clinique"
    )

    trade_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        comment="Raison sociale"
    )

    tax_id: Mapped[Optional[str]] = mapped_column(
        String(20),
        comment="Identifiant fiscal"
    )

    subdomain: Mapped[Optional[str]] = mapped_column(
        String(63),
        unique=True,
        comment="Sous-domaine d'accès (ex: sourire.dentflow.app)"
    )

    # ========================
    # Contact
    # ========================
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Email du contact principal"
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(20),
        comment="Téléphone du contact principal"
    )

    # ========================
    # Configuration
    # ========================
    timezone: Mapped[str] = mapped_column(
        String(50),
        default="Europe/Paris",
        nullable=False
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        comment="Clinique active (accès autorisé)"
    )

    # ========================
    # Relations
    # ========================
    subscription: Mapped[Optional["Subscription"]] = relationship(
        "Subscription",
        back_populates="tenant",
        uselist=False,
        cascade="all, delete-orphan",
    )

    users: Mapped[List["User"]] = relationship(
        "User",
        back_populates="tenant",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name='{self.name}')>"
