"""
Modèle User - Utilisateurs d'une clinique.

Ce module définit la table `users` : comptes de connexion
(administrateurs, dentistes, secrétariat, assistants, comptabilité).
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import UserRole
from app.models.mixins import TenantMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.tenants.tenant import Tenant


class User(TimestampMixin, TenantMixin, Base):
    """
    Représente un utilisateur d'une clinique.

    Attributes:
        id: Identifiant unique
        tenant_id: Clinique de rattachement
        email: Email de connexion (unique)
        name: Nom affiché
        role: Rôle dans la clinique
        is_active: Compte actif (compté dans la limite d'utilisateurs)
    """

    __tablename__ = "users"
    __table_args__ = {
        "comment": "Utilisateurs des cliniques"
    }

    # === Colonnes ===

    id: Mapped[int] = mapped_column(
        primary_key=True,
        doc="Identifiant unique de l'utilisateur",
        info={"description": "Clé primaire auto-incrémentée"}
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        doc="Adresse email de connexion"
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role_enum", create_constraint=True),
        nullable=False,
        default=UserRole.RECEPTIONIST,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="Compte actif"
    )

    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # === Relations ===

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="users")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"
