"""
Platform models - Administration de la plateforme DentFlow.

- SuperAdmin : Administrateurs DentFlow (équipe interne, accès cross-tenant)
"""
from app.models.platform.super_admin import SuperAdmin

__all__ = [
    "SuperAdmin",
]
