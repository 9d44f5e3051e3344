# app/models/tenants/usage_record.py
"""
Modèle UsageRecord - Relevés de consommation mensuelle.

Instantanés informatifs : les vérifications de limites recalculent
toujours la consommation depuis les tables métier.
"""

from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.enums import UsageMetric
from app.models.mixins import TenantMixin, TimestampMixin


class UsageRecord(Base, TenantMixin, TimestampMixin):
    """
    Valeur d'une métrique pour une clinique sur un mois.

    Unicité (tenant_id, metric, period_start) : un relevé par métrique et par mois,
    mis à jour en place (upsert).
    """

    __tablename__ = "usage_records"
    __table_args__ = (
        UniqueConstraint("tenant_id", "metric", "period_start", name="uq_usage_record_period"),
        {"comment": "Relevés mensuels de consommation"},
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    metric: Mapped[UsageMetric] = mapped_column(
        Enum(UsageMetric, name="usage_metric_enum", create_constraint=True),
        nullable=False,
    )

    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<UsageRecord(tenant_id={self.tenant_id}, metric={self.metric}, value={self.value})>"
