"""
Modèle Professional - Praticiens d'une clinique.

Un document réglementaire (diplôme, assurance RC...) peut être
rattaché à un praticien.
"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.mixins import TenantMixin, TimestampMixin


class Professional(TimestampMixin, TenantMixin, Base):
    """
    Praticien exerçant dans la clinique.

    Attributes:
        user_id: Compte utilisateur associé (optionnel)
        license_number: Numéro d'inscription à l'ordre
        specialty: Spécialité (orthodontie, implantologie...)
    """

    __tablename__ = "professionals"
    __table_args__ = {
        "comment": "Praticiens des cliniques"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    license_number: Mapped[Optional[str]] = mapped_column(
        String(50),
        doc="Numéro d'inscription à l'ordre"
    )

    specialty: Mapped[Optional[str]] = mapped_column(String(100))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(20))

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Professional(id={self.id}, name='{self.name}')>"
