"""
Module Rapports API.

Expose l'export CSV des données de la clinique.
"""
from app.api.v1.report.routes import router

__all__ = ["router"]
