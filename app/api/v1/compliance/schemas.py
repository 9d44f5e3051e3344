"""
Schémas Pydantic pour le module Conformité.

Contient les schémas pour :
- ComplianceDocument (création, mise à jour partielle, réponse)
- Dashboard de conformité
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.enums import DocumentCategory, DocumentStatus


# =============================================================================
# DOCUMENT SCHEMAS
# =============================================================================

class ComplianceDocumentBase(BaseModel):
    """Champs communs pour un document réglementaire."""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: DocumentCategory
    document_number: Optional[str] = Field(None, max_length=100)
    issue_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = Field(None, description="NULL = sans expiration")
    professional_id: Optional[int] = Field(None, description="Praticien concerné")
    notes: Optional[str] = None


class ComplianceDocumentCreate(ComplianceDocumentBase):
    """
    Schéma pour enregistrer un document.

    Le fichier est déjà déposé dans l'object store : seules ses
    métadonnées sont transmises.
    """
    file_url: str = Field(..., max_length=500)
    file_name: str = Field(..., max_length=255)
    file_size: int = Field(0, ge=0, description="Taille en octets")
    mime_type: str = Field("application/pdf", max_length=100)


class ComplianceDocumentUpdate(BaseModel):
    """
    Schéma pour mettre à jour un document (mise à jour partielle).

    Un champ absent n'est pas modifié ; `expiration_date: null` explicite
    efface la date (et recalcule le statut).
    """
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[DocumentCategory] = None
    document_number: Optional[str] = None
    issue_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    professional_id: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("name", "category")
    @classmethod
    def reject_null(cls, v):
        # Colonnes NOT NULL : absentes = inchangées, null = refusé
        if v is None:
            raise ValueError("Ce champ ne peut pas être null")
        return v


class ProfessionalSummary(BaseModel):
    """Praticien rattaché (résumé)."""
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class ComplianceDocumentResponse(BaseModel):
    """Schéma de réponse complet pour un document."""
    id: int
    name: str
    description: Optional[str] = None
    category: DocumentCategory
    document_number: Optional[str] = None
    file_url: str
    file_name: str
    file_size: int
    mime_type: str
    issue_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    status: DocumentStatus
    professional_id: Optional[int] = None
    professional: Optional[ProfessionalSummary] = None
    uploaded_by: Optional[int] = None
    uploaded_at: datetime
    updated_at: Optional[datetime] = None
    notes: Optional[str] = None
    alert_sent_at: Optional[datetime] = None
    renewal_started_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ComplianceDocumentList(BaseModel):
    """Liste de documents."""
    items: List[ComplianceDocumentResponse]
    total: int


# =============================================================================
# DASHBOARD / OPÉRATIONS
# =============================================================================

class CategoryCount(BaseModel):
    category: DocumentCategory
    count: int


class ComplianceDashboard(BaseModel):
    """Synthèse de conformité de la clinique."""
    total_documents: int
    valid_documents: int
    expiring_soon_documents: int
    expired_documents: int
    pending_renewal_documents: int
    by_category: List[CategoryCount]
    upcoming_expirations: List[ComplianceDocumentResponse]


class StatusUpdateResult(BaseModel):
    """Résultat du recalcul des statuts."""
    updated: int
