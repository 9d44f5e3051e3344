"""
Schémas Pydantic pour le module Patient.

Contient les schémas pour :
- Patient (dossier administratif, contacts, consentements, tags)
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.models.enums import Gender


def _normalize_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    """Tags en minuscules, sans doublons ni valeurs vides."""
    if tags is None:
        return None
    return sorted({t.strip().lower() for t in tags if t and t.strip()})


# =============================================================================
# PATIENT SCHEMAS
# =============================================================================

class PatientBase(BaseModel):
    """Champs communs pour Patient."""
    name: str = Field(..., min_length=1, max_length=200)
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    source: Optional[str] = Field(None, max_length=50, description="Canal d'acquisition")
    whatsapp_opt_in: bool = False
    email_opt_in: bool = False
    sms_opt_in: bool = False
    notes: Optional[str] = None


class PatientCreate(PatientBase):
    """Schéma pour créer un patient."""
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return _normalize_tags(v)


class PatientUpdate(BaseModel):
    """Schéma pour mettre à jour un patient (`tags` remplace la liste)."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    source: Optional[str] = Field(None, max_length=50)
    whatsapp_opt_in: Optional[bool] = None
    email_opt_in: Optional[bool] = None
    sms_opt_in: Optional[bool] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("name", "whatsapp_opt_in", "email_opt_in", "sms_opt_in")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Ce champ ne peut pas être null")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _normalize_tags(v)


class PatientResponse(BaseModel):
    """Schéma de réponse complet pour un patient."""
    id: int
    name: str
    birth_date: Optional[date] = None
    gender: Optional[Gender] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    source: Optional[str] = None
    whatsapp_opt_in: bool
    email_opt_in: bool
    sms_opt_in: bool
    notes: Optional[str] = None
    is_active: bool
    tags: List[str] = Field(default_factory=list, validation_alias="tag_names")
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PatientList(BaseModel):
    """Liste paginée de patients."""
    items: List[PatientResponse]
    total: int
    page: int
    size: int
    pages: int
