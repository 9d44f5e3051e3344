"""
Modèle PatientTag - Étiquettes d'un patient.

Table séparée plutôt qu'un tableau : le filtre "au moins un tag parmi"
s'exprime en EXISTS portable PostgreSQL / SQLite.
"""

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base

if TYPE_CHECKING:
    from app.models.patient.patient import Patient


class PatientTag(Base):
    """Étiquette libre (ex: "vip", "orthodontie")."""

    __tablename__ = "patient_tags"
    __table_args__ = (
        UniqueConstraint("patient_id", "tag", name="uq_patient_tag"),
        {"comment": "Étiquettes des patients"},
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    tag: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    patient: Mapped["Patient"] = relationship("Patient", back_populates="tags")
