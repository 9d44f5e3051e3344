"""
Routes FastAPI pour le module Campagnes.

Endpoints pour :
- /segments : Segments de patients (CRUD, aperçu)
- /campaigns : Campagnes (CRUD, cycle de vie, analytics)

MULTI-TENANT: Tous les endpoints injectent automatiquement le tenant_id
depuis l'utilisateur authentifié.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.v1.campaign.schemas import (
    CampaignAnalytics,
    CampaignCreate,
    CampaignResponse,
    CampaignSchedule,
    CampaignUpdate,
    SegmentCreate,
    SegmentFilters,
    SegmentPreview,
    SegmentResponse,
    SegmentUpdate,
)
from app.api.v1.campaign.services import (
    CampaignService,
    CampaignStateError,
    SegmentInUseError,
    SegmentNotFoundError,
    SegmentService,
)
from app.api.v1.user.tenant_users_security import get_current_tenant_id
from app.core.auth.user_auth import get_current_user
from app.core.clock import Clock, get_clock
from app.database.session import get_db
from app.models.enums import CampaignStatus
from app.models.user.user import User

segment_router = APIRouter(prefix="/segments", tags=["Segments"])
campaign_router = APIRouter(prefix="/campaigns", tags=["Campagnes"])


def _not_found(label: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} non trouvé(e)")


# =============================================================================
# SEGMENTS
# =============================================================================

@segment_router.get("", response_model=List[SegmentResponse])
def list_segments(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    """Liste les segments de la clinique."""
    return SegmentService(db, tenant_id).list_segments()


@segment_router.post("", response_model=SegmentResponse, status_code=status.HTTP_201_CREATED)
def create_segment(
    data: SegmentCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Crée un segment (patient_count calculé à la création)."""
    return SegmentService(db, tenant_id, clock=clock).create_segment(data)


@segment_router.post("/preview", response_model=SegmentPreview)
def preview_segment(
    filters: SegmentFilters,
    limit: Optional[int] = Query(None, ge=1, le=100, description="Taille de l'échantillon"),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Compte les patients correspondant aux filtres et en renvoie un échantillon."""
    return SegmentService(db, tenant_id, clock=clock).preview_segment(filters, limit=limit)


@segment_router.get("/{segment_id}", response_model=SegmentResponse)
def get_segment(
    segment_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    segment = SegmentService(db, tenant_id).get_segment(segment_id)
    if segment is None:
        raise _not_found("Segment")
    return segment


@segment_router.patch("/{segment_id}", response_model=SegmentResponse)
def update_segment(
    segment_id: int,
    data: SegmentUpdate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    segment = SegmentService(db, tenant_id, clock=clock).update_segment(segment_id, data)
    if segment is None:
        raise _not_found("Segment")
    return segment


@segment_router.delete("/{segment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_segment(
    segment_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    """Supprime un segment (409 s'il est utilisé par une campagne en cours)."""
    try:
        deleted = SegmentService(db, tenant_id).delete_segment(segment_id)
    except SegmentInUseError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not deleted:
        raise _not_found("Segment")


# =============================================================================
# CAMPAGNES
# =============================================================================

@campaign_router.get("", response_model=List[CampaignResponse])
def list_campaigns(
    campaign_status: Optional[CampaignStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    """Liste les campagnes de la clinique."""
    return CampaignService(db, tenant_id).list_campaigns(status=campaign_status)


@campaign_router.post("", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
def create_campaign(
    data: CampaignCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Crée une campagne en brouillon."""
    try:
        return CampaignService(db, tenant_id, clock=clock).create_campaign(data, created_by=current_user.id)
    except SegmentNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@campaign_router.get("/{campaign_id}", response_model=CampaignResponse)
def get_campaign(
    campaign_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    campaign = CampaignService(db, tenant_id).get_campaign(campaign_id)
    if campaign is None:
        raise _not_found("Campagne")
    return campaign


@campaign_router.patch("/{campaign_id}", response_model=CampaignResponse)
def update_campaign(
    campaign_id: int,
    data: CampaignUpdate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    """Modifie une campagne (brouillon uniquement, sinon 409)."""
    try:
        campaign = CampaignService(db, tenant_id).update_campaign(campaign_id, data)
    except CampaignStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if campaign is None:
        raise _not_found("Campagne")
    return campaign


@campaign_router.delete("/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_campaign(
    campaign_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    try:
        deleted = CampaignService(db, tenant_id).delete_campaign(campaign_id)
    except CampaignStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not deleted:
        raise _not_found("Campagne")


@campaign_router.post("/{campaign_id}/schedule", response_model=CampaignResponse)
def schedule_campaign(
    campaign_id: int,
    data: CampaignSchedule,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
):
    try:
        campaign = CampaignService(db, tenant_id).schedule_campaign(campaign_id, data.scheduled_for)
    except CampaignStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if campaign is None:
        raise _not_found("Campagne")
    return campaign


@campaign_router.post("/{campaign_id}/{action}", response_model=CampaignResponse)
def transition_campaign(
    campaign_id: int,
    action: str,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """
    Transitions : start, pause, resume, complete, cancel.

    409 si la transition est interdite depuis le statut courant.
    """
    service = CampaignService(db, tenant_id, clock=clock)
    transitions = {
        "start": service.start_campaign,
        "pause": service.pause_campaign,
        "resume": service.resume_campaign,
        "complete": service.complete_campaign,
        "cancel": service.cancel_campaign,
    }
    if action not in transitions:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Action inconnue: {action}")

    try:
        campaign = transitions[action](campaign_id)
    except CampaignStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if campaign is None:
        raise _not_found("Campagne")
    return campaign


@campaign_router.get("/{campaign_id}/analytics", response_model=CampaignAnalytics)
def get_campaign_analytics(
    campaign_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    analytics = CampaignService(db, tenant_id, clock=clock).get_analytics(campaign_id)
    if analytics is None:
        raise _not_found("Campagne")
    return analytics
