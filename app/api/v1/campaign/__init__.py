"""
Module Campagnes API.

Expose les routes des segments de patients et des campagnes.
"""
from app.api.v1.campaign.routes import campaign_router, segment_router

__all__ = ["campaign_router", "segment_router"]
