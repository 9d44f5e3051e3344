"""
Module Facturation API.

Expose le point d'entrée des webhooks du fournisseur de paiement.
"""
from app.api.v1.billing.routes import router

__all__ = ["router"]
