"""
Module Abonnement API.

Expose les routes d'abonnement, de consommation et de facturation,
ainsi que les gardes (abonnement actif, limites du plan).
"""
from app.api.v1.subscription.routes import router

__all__ = ["router"]
