"""
Module Conformité API.

Expose les routes de suivi des documents réglementaires
(licences, assurances, contrôles d'équipements).
"""
from app.api.v1.compliance.routes import router

__all__ = ["router"]
