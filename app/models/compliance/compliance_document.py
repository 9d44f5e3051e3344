"""
Modèle ComplianceDocument - Documents réglementaires de la clinique.

Le statut est dérivé de la date d'expiration (VALID, EXPIRING_SOON, EXPIRED)
sauf pendant un renouvellement (PENDING_RENEWAL, positionné manuellement).
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base_class import Base
from app.models.enums import DocumentCategory, DocumentStatus
from app.models.mixins import TenantMixin, utcnow

if TYPE_CHECKING:
    from app.models.user.professional import Professional


class ComplianceDocument(TenantMixin, Base):
    """
    Document réglementaire (licence, assurance, contrôle d'équipement...).

    Attributes:
        category: Catégorie réglementaire
        file_url / file_name / file_size / mime_type: Métadonnées du fichier
            stocké dans l'object store (file_size en octets, compté dans le quota)
        expiration_date: Date d'expiration (NULL = sans expiration)
        status: Statut dérivé
        professional_id: Praticien concerné (optionnel)
        renewal_started_at: Début du renouvellement en cours
    """

    __tablename__ = "compliance_documents"
    __table_args__ = {
        "comment": "Documents réglementaires et dates d'expiration"
    }

    id: Mapped[int] = mapped_column(primary_key=True)

    # ========================
    # Identification
    # ========================
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    category: Mapped[DocumentCategory] = mapped_column(
        Enum(DocumentCategory, name="document_category_enum", create_constraint=True),
        nullable=False,
        index=True,
    )

    document_number: Mapped[Optional[str]] = mapped_column(
        String(100),
        doc="Numéro officiel du document"
    )

    # ========================
    # Fichier
    # ========================
    file_url: Mapped[str] = mapped_column(String(500), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        info={"description": "Taille en octets"}
    )
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)

    # ========================
    # Validité
    # ========================
    issue_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    expiration_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        index=True,
        doc="Date d'expiration (NULL = sans expiration)"
    )

    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus, name="document_status_enum", create_constraint=True),
        nullable=False,
        default=DocumentStatus.VALID,
        index=True,
    )

    # ========================
    # Rattachement et traçabilité
    # ========================
    professional_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("professionals.id", ondelete="SET NULL"),
        nullable=True,
    )

    uploaded_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=utcnow)

    notes: Mapped[Optional[str]] = mapped_column(Text)

    # ========================
    # Alertes / renouvellement
    # ========================
    alert_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    renewal_started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    professional: Mapped[Optional["Professional"]] = relationship("Professional")

    def __repr__(self) -> str:
        return f"<ComplianceDocument(id={self.id}, name='{self.name}', status={self.status})>"
