"""
Modèle Campaign - Campagne de messages vers un segment.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import CampaignChannel, CampaignStatus, CampaignType
from app.models.mixins import TenantMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.campaign.segment import Segment


class Campaign(TimestampMixin, TenantMixin, Base):
    """
    Campagne (anniversaires, relance, promotion...).

    Cycle de vie : DRAFT → SCHEDULED → SENDING ⇄ PAUSED → COMPLETED,
    CANCELLED possible depuis tout état non terminal.
    Les compteurs (sent, delivered, read, failed) sont alimentés par
    le module d'envoi.
    """

    __tablename__ = "campaigns"
    __table_args__ = {
        "comment": "Campagnes de communication patients"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    segment_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("segments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    type: Mapped[CampaignType] = mapped_column(
        Enum(CampaignType, name="campaign_type_enum", create_constraint=True),
        nullable=False,
    )

    channel: Mapped[CampaignChannel] = mapped_column(
        Enum(CampaignChannel, name="campaign_channel_enum", create_constraint=True),
        nullable=False,
    )

    status: Mapped[CampaignStatus] = mapped_column(
        Enum(CampaignStatus, name="campaign_status_enum", create_constraint=True),
        nullable=False,
        default=CampaignStatus.DRAFT,
        index=True,
    )

    # ========================
    # Contenu
    # ========================
    subject: Mapped[Optional[str]] = mapped_column(String(200))
    content: Mapped[str] = mapped_column(Text, nullable=False)
    audio_url: Mapped[Optional[str]] = mapped_column(String(500))

    # ========================
    # Planification
    # ========================
    scheduled_for: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # ========================
    # Compteurs
    # ========================
    target_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sent_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    delivered_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    read_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    segment: Mapped[Optional["Segment"]] = relationship("Segment")

    def __repr__(self) -> str:
        return f"<Campaign(id={self.id}, name='{self.name}', status={self.status})>"
