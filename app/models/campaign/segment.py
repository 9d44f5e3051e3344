"""
Modèle Segment - Audience de patients définie par des filtres.
"""

from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.mixins import TenantMixin, TimestampMixin
from app.models.types import JSONFilters


class Segment(TimestampMixin, TenantMixin, Base):
    """
    Segment de patients.

    `filters` contient l'objet de filtres déclaratif (clés absentes = pas de contrainte).
    `patient_count` est un instantané pris à la création ou au changement de filtres :
    l'audience réelle est réévaluée au lancement d'une campagne.
    """

    __tablename__ = "segments"
    __table_args__ = {
        "comment": "Segments de patients pour les campagnes"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    filters: Mapped[dict] = mapped_column(JSONFilters, nullable=False, default=dict)

    patient_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        info={"description": "Instantané informatif, pas la source de vérité"}
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Segment(id={self.id}, name='{self.name}')>"
