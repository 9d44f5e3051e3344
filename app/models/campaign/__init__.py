"""
Campaign models.

- Segment : Audience définie par des filtres déclaratifs
- Campaign : Envoi groupé vers un segment
- MessageLog : Message individuel (un par patient ciblé)
"""
from app.models.campaign.segment import Segment
from app.models.campaign.campaign import Campaign
from app.models.campaign.message_log import MessageLog

__all__ = [
    "Segment",
    "Campaign",
    "MessageLog",
]
