"""
Routes FastAPI pour le module Conformité.

Endpoints pour :
- /compliance/documents : Documents réglementaires (CRUD)
- /compliance/documents/{id}/renewal : Démarrage d'un renouvellement
- /compliance/expiring : Documents expirés ou proches de l'expiration
- /compliance/dashboard : Synthèse de conformité
- /compliance/update-statuses : Recalcul des statuts

MULTI-TENANT: Tous les endpoints injectent automatiquement le tenant_id
depuis l'utilisateur authentifié.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.v1.compliance.schemas import (
    ComplianceDashboard,
    ComplianceDocumentCreate,
    ComplianceDocumentList,
    ComplianceDocumentResponse,
    ComplianceDocumentUpdate,
    StatusUpdateResult,
)
from app.api.v1.compliance.services import ComplianceService, ProfessionalNotFoundError
from app.api.v1.subscription.guards import require_usage_limit
from app.api.v1.user.tenant_users_security import get_current_tenant_id
from app.core.auth.user_auth import get_current_user, require_role
from app.core.clock import Clock, get_clock
from app.database.session import get_db
from app.models.enums import DocumentCategory, DocumentStatus, UsageMetric, UserRole
from app.models.user.user import User

router = APIRouter(prefix="/compliance", tags=["Conformité"])


# =============================================================================
# DOCUMENTS
# =============================================================================

@router.get("/documents", response_model=ComplianceDocumentList)
def list_documents(
    category: Optional[DocumentCategory] = Query(None, description="Filtrer par catégorie"),
    doc_status: Optional[DocumentStatus] = Query(None, alias="status", description="Filtrer par statut"),
    professional_id: Optional[int] = Query(None, description="Filtrer par praticien"),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Liste les documents réglementaires de la clinique."""
    service = ComplianceService(db, tenant_id, clock=clock)
    items = service.list_documents(category=category, status=doc_status, professional_id=professional_id)
    return ComplianceDocumentList(items=items, total=len(items))


@router.post(
    "/documents",
    response_model=ComplianceDocumentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_usage_limit(UsageMetric.STORAGE))],
)
def create_document(
    data: ComplianceDocumentCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """
    Enregistre un document réglementaire (fichier déjà déposé).

    Le statut est calculé depuis la date d'expiration.
    """
    try:
        service = ComplianceService(db, tenant_id, clock=clock)
        return service.create_document(data, uploaded_by=current_user.id)
    except ProfessionalNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/documents/{document_id}", response_model=ComplianceDocumentResponse)
def get_document(
    document_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Récupère un document par son ID."""
    document = ComplianceService(db, tenant_id, clock=clock).get_document(document_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document non trouvé")
    return document


@router.patch("/documents/{document_id}", response_model=ComplianceDocumentResponse)
def update_document(
    document_id: int,
    data: ComplianceDocumentUpdate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """
    Met à jour un document.

    Le statut est recalculé uniquement si la date d'expiration est modifiée.
    """
    try:
        document = ComplianceService(db, tenant_id, clock=clock).update_document(document_id, data)
    except ProfessionalNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document non trouvé")
    return document


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    clock: Clock = Depends(get_clock),
):
    """Supprime un document (admin uniquement)."""
    if not ComplianceService(db, tenant_id, clock=clock).delete_document(document_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document non trouvé")


@router.post("/documents/{document_id}/renewal", response_model=ComplianceDocumentResponse)
def start_renewal(
    document_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Marque le début du renouvellement (statut PENDING_RENEWAL)."""
    document = ComplianceService(db, tenant_id, clock=clock).mark_renewal_started(document_id)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document non trouvé")
    return document


# =============================================================================
# SUIVI
# =============================================================================

@router.get("/expiring", response_model=ComplianceDocumentList)
def list_expiring_documents(
    days: int = Query(30, ge=1, le=365, description="Horizon en jours"),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Documents expirés ou expirant dans les `days` prochains jours."""
    items = ComplianceService(db, tenant_id, clock=clock).get_expiring_documents(days)
    return ComplianceDocumentList(items=items, total=len(items))


@router.get("/dashboard", response_model=ComplianceDashboard)
def get_dashboard(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Synthèse de conformité de la clinique."""
    return ComplianceService(db, tenant_id, clock=clock).get_dashboard()


@router.post("/update-statuses", response_model=StatusUpdateResult)
def update_statuses(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(require_role(UserRole.ADMIN)),
    clock: Clock = Depends(get_clock),
):
    """Recalcule les statuts des documents (hors renouvellements en cours)."""
    updated = ComplianceService(db, tenant_id, clock=clock).update_statuses()
    return StatusUpdateResult(updated=updated)
