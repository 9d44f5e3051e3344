"""
Modèle SuperAdmin - Administrateurs de la plateforme DentFlow.

IMPORTANT :
- Les super-admins sont SÉPARÉS des utilisateurs clients (table `users`)
- Ils n'ont PAS de tenant_id (accès cross-tenant)
- Utilisés pour : gestion des cliniques, des essais et des abonnements
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.mixins import TimestampMixin


class SuperAdmin(TimestampMixin, Base):
    """
    Administrateur de la plateforme.

    Attributes:
        email: Email de connexion (unique)
        name: Nom affiché
        is_active: Compte actif
    """

    __tablename__ = "super_admins"
    __table_args__ = {
        "comment": "Administrateurs de la plateforme DentFlow (équipe interne)"
    }

    id: Mapped[int] = mapped_column(
        primary_key=True,
        doc="Identifiant unique du super-admin"
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        doc="Adresse email unique de connexion"
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<SuperAdmin(id={self.id}, email='{self.email}')>"
