"""
Modèle Patient - Dossier administratif d'un patient de la clinique.

Les champs de contact et de consentement (opt-in) alimentent
la segmentation des campagnes.
"""

from datetime import date
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, Date, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import Gender
from app.models.mixins import TenantMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.patient.patient_tag import PatientTag


class Patient(TimestampMixin, TenantMixin, Base):
    """
    Représente un patient.

    Un patient archivé (is_active=False) n'est plus compté dans la limite
    du plan et n'apparaît plus dans les segments.

    Attributes:
        birth_date: Date de naissance (filtres d'âge)
        gender: Genre déclaré
        source: Canal d'acquisition (instagram, bouche-à-oreille...)
        whatsapp_opt_in / email_opt_in / sms_opt_in: Consentements marketing
    """

    __tablename__ = "patients"
    __table_args__ = {
        "comment": "Dossiers patients des cliniques"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    # ========================
    # Identité
    # ========================
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)

    birth_date: Mapped[Optional[date]] = mapped_column(Date)

    gender: Mapped[Optional[Gender]] = mapped_column(
        Enum(Gender, name="gender_enum", create_constraint=True),
        nullable=True,
    )

    # ========================
    # Contact
    # ========================
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    email: Mapped[Optional[str]] = mapped_column(String(255))

    source: Mapped[Optional[str]] = mapped_column(
        String(50),
        doc="Canal d'acquisition du patient"
    )

    # ========================
    # Consentements
    # ========================
    whatsapp_opt_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    email_opt_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sms_opt_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    notes: Mapped[Optional[str]] = mapped_column(Text)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # ========================
    # Relations
    # ========================
    tags: Mapped[List["PatientTag"]] = relationship(
        "PatientTag",
        back_populates="patient",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def tag_names(self) -> List[str]:
        return sorted(t.tag for t in self.tags)

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, name='{self.name}')>"
