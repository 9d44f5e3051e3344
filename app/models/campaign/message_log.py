"""
Modèle MessageLog - Message individuel d'une campagne.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base_class import Base
from app.models.enums import CampaignChannel, MessageStatus
from app.models.mixins import TenantMixin, TimestampMixin


class MessageLog(TimestampMixin, TenantMixin, Base):
    """
    Message destiné à un patient.

    Créé au statut QUEUED au lancement de la campagne,
    puis mis à jour par le module d'envoi.
    """

    __tablename__ = "message_logs"
    __table_args__ = {
        "comment": "Journal des messages envoyés aux patients"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    campaign_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    channel: Mapped[CampaignChannel] = mapped_column(
        Enum(CampaignChannel, name="campaign_channel_enum", create_constraint=True),
        nullable=False,
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)
    audio_url: Mapped[Optional[str]] = mapped_column(String(500))

    status: Mapped[MessageStatus] = mapped_column(
        Enum(MessageStatus, name="message_status_enum", create_constraint=True),
        nullable=False,
        default=MessageStatus.QUEUED,
    )

    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
