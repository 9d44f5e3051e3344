"""
Routes FastAPI pour le module Rapports.

Endpoint :
- GET /reports/{report_type} : fichier CSV en pièce jointe
  (patients, appointments, compliance, campaigns)

MULTI-TENANT: Les rapports portent sur la clinique de l'utilisateur.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.api.v1.report.services import ReportService, ReportType
from app.api.v1.user.tenant_users_security import get_current_tenant_id
from app.core.auth.user_auth import require_role
from app.core.clock import Clock, get_clock
from app.database.session import get_db
from app.models.enums import UserRole
from app.models.user.user import User

router = APIRouter(prefix="/reports", tags=["Rapports"])


@router.get("/{report_type}")
def download_report(
    report_type: ReportType,
    start_date: Optional[datetime] = Query(None, description="Début de période (défaut : 1er du mois)"),
    end_date: Optional[datetime] = Query(None, description="Fin de période (défaut : maintenant)"),
    professional_id: Optional[int] = Query(None, description="Rendez-vous d'un praticien"),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),  # MULTI-TENANT
    current_user: User = Depends(require_role(UserRole.ADMIN, UserRole.FINANCIAL)),
    clock: Clock = Depends(get_clock),
):
    """Génère un rapport et le renvoie en téléchargement."""
    result = ReportService(db, tenant_id, clock=clock).generate(
        report_type,
        start_date=start_date,
        end_date=end_date,
        professional_id=professional_id,
    )
    return Response(
        content=result.content,
        media_type=result.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
