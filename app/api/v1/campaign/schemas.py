"""
Schémas Pydantic pour le module Campagnes.

Contient les schémas pour :
- SegmentFilters (filtres déclaratifs d'audience)
- Segment (création, mise à jour, réponse, aperçu)
- Campaign (création, mise à jour, planification, réponse, analytics)
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.enums import CampaignChannel, CampaignStatus, CampaignType, Gender


# =============================================================================
# FILTRES
# =============================================================================

class SegmentFilters(BaseModel):
    """
    Filtres d'audience. Toutes les clés sont optionnelles ;
    une clé absente n'impose aucune contrainte.
    """
    age_min: Optional[int] = Field(None, ge=0, le=150)
    age_max: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[Gender] = None
    tags: Optional[List[str]] = Field(None, description="Au moins un des tags")
    last_visit_days_ago: Optional[int] = Field(
        None, ge=0, description="Visite terminée dans les N derniers jours"
    )
    no_visit_days_ago: Optional[int] = Field(
        None, ge=0, description="Aucune visite terminée dans les N derniers jours"
    )
    source: Optional[str] = None
    has_whatsapp: Optional[bool] = None
    has_email: Optional[bool] = None


# =============================================================================
# SEGMENT SCHEMAS
# =============================================================================

class SegmentCreate(BaseModel):
    """Schéma pour créer un segment."""
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    filters: SegmentFilters = Field(default_factory=SegmentFilters)
    is_active: bool = True


class SegmentUpdate(BaseModel):
    """Mise à jour partielle ; de nouveaux filtres recalculent patient_count."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    filters: Optional[SegmentFilters] = None
    is_active: Optional[bool] = None

    @field_validator("name", "filters", "is_active")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Ce champ ne peut pas être null")
        return v


class SegmentResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    filters: SegmentFilters
    patient_count: int
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PreviewPatient(BaseModel):
    """Patient de l'échantillon d'aperçu."""
    id: int
    name: str
    phone: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SegmentPreview(BaseModel):
    """
    Aperçu d'un segment.

    `patients` est un échantillon borné : `count` peut être supérieur.
    """
    count: int
    patients: List[PreviewPatient]


# =============================================================================
# CAMPAIGN SCHEMAS
# =============================================================================

class CampaignCreate(BaseModel):
    """Schéma pour créer une campagne (statut DRAFT)."""
    segment_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    type: CampaignType
    channel: CampaignChannel
    subject: Optional[str] = Field(None, max_length=200)
    content: str = Field(..., min_length=1)
    audio_url: Optional[str] = Field(None, max_length=500)
    scheduled_for: Optional[datetime] = None


class CampaignUpdate(BaseModel):
    """Mise à jour partielle (uniquement en DRAFT)."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    type: Optional[CampaignType] = None
    channel: Optional[CampaignChannel] = None
    subject: Optional[str] = Field(None, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    audio_url: Optional[str] = Field(None, max_length=500)
    scheduled_for: Optional[datetime] = None

    @field_validator("name", "type", "channel", "content")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Ce champ ne peut pas être null")
        return v


class CampaignSchedule(BaseModel):
    scheduled_for: datetime


class SegmentSummary(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class CampaignResponse(BaseModel):
    id: int
    segment_id: Optional[int] = None
    segment: Optional[SegmentSummary] = None
    name: str
    description: Optional[str] = None
    type: CampaignType
    channel: CampaignChannel
    status: CampaignStatus
    subject: Optional[str] = None
    content: str
    audio_url: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    target_count: int
    sent_count: int
    delivered_count: int
    read_count: int
    failed_count: int
    created_by: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DailyCount(BaseModel):
    date: str
    count: int


class CampaignAnalytics(BaseModel):
    """Taux en pourcentage (0 si dénominateur nul)."""
    delivery_rate: float
    open_rate: float
    sent_over_time: List[DailyCount]
