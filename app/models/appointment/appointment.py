"""
Modèle Appointment - Rendez-vous de l'agenda.

Un rendez-vous au statut COMPLETED compte comme une "visite"
pour les filtres de segmentation.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import AppointmentStatus, AppointmentType
from app.models.mixins import TenantMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.patient.patient import Patient
    from app.models.user.professional import Professional


class Appointment(TimestampMixin, TenantMixin, Base):
    """
    Rendez-vous d'un patient avec un praticien.

    created_at sert au décompte mensuel de la limite du plan
    (rendez-vous créés dans le mois, quelle que soit leur date).
    """

    __tablename__ = "appointments"
    __table_args__ = {
        "comment": "Rendez-vous des cliniques"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    professional_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("professionals.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    type: Mapped[AppointmentType] = mapped_column(
        Enum(AppointmentType, name="appointment_type_enum", create_constraint=True),
        nullable=False,
        default=AppointmentType.EVALUATION,
    )

    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, name="appointment_status_enum", create_constraint=True),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
    )

    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    patient: Mapped["Patient"] = relationship("Patient")
    professional: Mapped[Optional["Professional"]] = relationship("Professional")

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, start={self.start_time}, status={self.status})>"
