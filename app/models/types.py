"""
Types SQLAlchemy personnalisés pour DentFlow.

Ce module définit des types compatibles SQLite (tests) et PostgreSQL (production).
"""

from sqlalchemy import JSON, Text
from sqlalchemy.dialects.postgresql import JSONB


# ============================================================================
# JSONBCompatible - Type JSON compatible multi-dialecte
# ============================================================================
#
# - Sur PostgreSQL : JSONB
# - Sur SQLite/autres : JSON standard
#
# Usage dans les modèles:
#     from app.models.types import JSONBCompatible
#
#     class MyModel(Base):
#         data: Mapped[dict] = mapped_column(JSONBCompatible, nullable=False, default=dict)
#
# ============================================================================

JSONBCompatible = JSON().with_variant(JSONB(astext_type=Text()), 'postgresql')


# Filtres déclaratifs d'un segment de patients
JSONFilters = JSONBCompatible

# Liste des fonctionnalités d'un plan
JSONFeatures = JSONBCompatible
