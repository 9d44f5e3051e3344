"""
Mixins réutilisables pour les modèles SQLAlchemy.

Ce module définit des mixins qui ajoutent des colonnes communes
à plusieurs modèles (timestamps, rattachement au tenant).
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    """Horodatage UTC utilisé comme valeur par défaut des colonnes."""
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    Mixin ajoutant les colonnes created_at et updated_at.

    - created_at : auto-rempli à la création
    - updated_at : auto-mis à jour à chaque modification

    Usage:
        class MyModel(TimestampMixin, Base):
            __tablename__ = "my_table"
            id: Mapped[int] = mapped_column(primary_key=True)
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        doc="Date et heure de création",
        info={"description": "Timestamp de création", "auto_generated": True}
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=None,
        onupdate=utcnow,
        doc="Date et heure de dernière modification",
        info={"description": "Timestamp de mise à jour", "auto_generated": True}
    )


class TenantMixin:
    """
    Mixin ajoutant la colonne tenant_id (clinique propriétaire).

    Toute entité métier porte cette colonne : c'est la frontière
    d'isolation entre cliniques.
    """

    tenant_id: Mapped[int] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="ID de la clinique propriétaire",
        info={"description": "Frontière d'isolation multi-tenant"}
    )
