"""
Services métier pour le module Rapports.

Chaque rapport agrège les données de la clinique et les rend en CSV
(UTF-8, ligne d'en-tête). Période par défaut : du 1er du mois courant
jusqu'à maintenant.

MULTI-TENANT: Toutes les opérations sont filtrées par tenant_id.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.core.clock import Clock, SystemClock, month_bounds, to_utc
from app.models.appointment.appointment import Appointment
from app.models.campaign.campaign import Campaign
from app.models.compliance.compliance_document import ComplianceDocument
from app.models.patient.patient import Patient
from app.services.reports.csv_writer import ReportResult, file_date, format_date, format_time, render_csv
from app.services.tenant_store import TenantScopedRepository

logger = logging.getLogger(__name__)


class ReportType(str, Enum):
    PATIENTS = "patients"
    APPOINTMENTS = "appointments"
    COMPLIANCE = "compliance"
    CAMPAIGNS = "campaigns"


GENDER_LABELS = {
    "MALE": "Homme",
    "FEMALE": "Femme",
    "OTHER": "Autre",
}

APPOINTMENT_TYPE_LABELS = {
    "EVALUATION": "Bilan",
    "TREATMENT": "Soin",
    "RETURN": "Contrôle",
    "EMERGENCY": "Urgence",
    "MAINTENANCE": "Entretien",
}

APPOINTMENT_STATUS_LABELS = {
    "SCHEDULED": "Planifié",
    "CONFIRMED": "Confirmé",
    "WAITING": "En salle d'attente",
    "IN_PROGRESS": "En cours",
    "COMPLETED": "Terminé",
    "NO_SHOW": "Absent",
    "CANCELLED": "Annulé",
}

DOCUMENT_STATUS_LABELS = {
    "VALID": "Valide",
    "EXPIRING_SOON": "Expire bientôt",
    "EXPIRED": "Expiré",
    "PENDING_RENEWAL": "Renouvellement en cours",
}


def _label(labels: dict, value: Optional[Enum]) -> Optional[str]:
    if value is None:
        return None
    return labels.get(value.value, value.value)


class ReportService:
    """
    Génération des rapports d'une clinique.

    MULTI-TENANT: Toutes les opérations sont filtrées par tenant_id.
    """

    def __init__(self, db: Session, tenant_id: int, clock: Optional[Clock] = None):
        self.db = db
        self.tenant_id = tenant_id
        self.clock = clock or SystemClock()

    def get_date_range(
            self,
            start_date: Optional[datetime] = None,
            end_date: Optional[datetime] = None,
    ) -> Tuple[datetime, datetime]:
        """Période du rapport ; début par défaut = 1er du mois de la date de fin."""
        end = to_utc(end_date) or self.clock.now()
        start = to_utc(start_date) or month_bounds(end)[0]
        return start, end

    def generate(
            self,
            report_type: ReportType,
            start_date: Optional[datetime] = None,
            end_date: Optional[datetime] = None,
            professional_id: Optional[int] = None,
    ) -> ReportResult:
        """Point d'entrée unique (utilisé par la route)."""
        if report_type == ReportType.PATIENTS:
            result = self.generate_patient_list()
        elif report_type == ReportType.APPOINTMENTS:
            result = self.generate_appointment_history(start_date, end_date, professional_id)
        elif report_type == ReportType.COMPLIANCE:
            result = self.generate_compliance_report()
        else:
            result = self.generate_campaign_report(start_date, end_date)

        logger.info(f"📄 Rapport {report_type.value} généré (tenant={self.tenant_id}, {len(result.content)} octets)")
        return result

    # =========================================================================
    # RAPPORTS
    # =========================================================================

    def generate_patient_list(self) -> ReportResult:
        """Patients actifs, par ordre alphabétique."""
        patients = TenantScopedRepository(self.db, self.tenant_id, Patient).list(
            Patient.is_active.is_(True),
            order_by=Patient.name,
        )

        columns = [
            ("Nom", "name"),
            ("Date de naissance", "birth_date"),
            ("Téléphone", "phone"),
            ("Email", "email"),
            ("Genre", "gender"),
            ("Origine", "source"),
            ("Tags", "tags"),
            ("Date d'inscription", "created_at"),
        ]
        rows = (
            {
                "name": p.name,
                "birth_date": format_date(p.birth_date),
                "phone": p.phone,
                "email": p.email,
                "gender": _label(GENDER_LABELS, p.gender),
                "source": p.source,
                "tags": ", ".join(p.tag_names) or None,
                "created_at": format_date(p.created_at),
            }
            for p in patients
        )

        return ReportResult(
            content=render_csv(columns, rows),
            filename=f"liste-patients-{file_date(self.clock.now())}.csv",
        )

    def generate_appointment_history(
            self,
            start_date: Optional[datetime] = None,
            end_date: Optional[datetime] = None,
            professional_id: Optional[int] = None,
    ) -> ReportResult:
        """Rendez-vous de la période (optionnellement pour un praticien), du plus récent au plus ancien."""
        start, end = self.get_date_range(start_date, end_date)

        criteria = [Appointment.start_time >= start, Appointment.start_time <= end]
        if professional_id:
            criteria.append(Appointment.professional_id == professional_id)

        appointments = TenantScopedRepository(self.db, self.tenant_id, Appointment).list(
            *criteria,
            order_by=Appointment.start_time.desc(),
        )

        columns = [
            ("Date", "date"),
            ("Heure", "time"),
            ("Patient", "patient"),
            ("Praticien", "professional"),
            ("Type", "type"),
            ("Statut", "status"),
            ("Notes", "notes"),
        ]
        rows = (
            {
                "date": format_date(a.start_time),
                "time": format_time(a.start_time),
                "patient": a.patient.name if a.patient else None,
                "professional": a.professional.name if a.professional else None,
                "type": _label(APPOINTMENT_TYPE_LABELS, a.type),
                "status": _label(APPOINTMENT_STATUS_LABELS, a.status),
                "notes": a.notes,
            }
            for a in appointments
        )

        return ReportResult(
            content=render_csv(columns, rows),
            filename=f"historique-rendez-vous-{file_date(start)}-{file_date(end)}.csv",
        )

    def generate_compliance_report(self) -> ReportResult:
        """Documents réglementaires avec leur statut, par date d'expiration."""
        documents = TenantScopedRepository(self.db, self.tenant_id, ComplianceDocument).list(
            order_by=[
                ComplianceDocument.expiration_date.asc().nulls_last(),
                ComplianceDocument.name,
            ],
        )

        columns = [
            ("Document", "name"),
            ("Catégorie", "category"),
            ("Numéro", "document_number"),
            ("Praticien", "professional"),
            ("Date d'émission", "issue_date"),
            ("Date d'expiration", "expiration_date"),
            ("Statut", "status"),
        ]
        rows = (
            {
                "name": d.name,
                "category": d.category.value,
                "document_number": d.document_number,
                "professional": d.professional.name if d.professional else None,
                "issue_date": format_date(d.issue_date),
                "expiration_date": format_date(d.expiration_date),
                "status": _label(DOCUMENT_STATUS_LABELS, d.status),
            }
            for d in documents
        )

        return ReportResult(
            content=render_csv(columns, rows),
            filename=f"conformite-{file_date(self.clock.now())}.csv",
        )

    def generate_campaign_report(
            self,
            start_date: Optional[datetime] = None,
            end_date: Optional[datetime] = None,
    ) -> ReportResult:
        """Compteurs des campagnes créées sur la période."""
        start, end = self.get_date_range(start_date, end_date)

        campaigns = TenantScopedRepository(self.db, self.tenant_id, Campaign).list(
            Campaign.created_at >= start,
            Campaign.created_at <= end,
            order_by=Campaign.created_at.desc(),
        )

        columns = [
            ("Campagne", "name"),
            ("Type", "type"),
            ("Canal", "channel"),
            ("Statut", "status"),
            ("Ciblés", "target_count"),
            ("Envoyés", "sent_count"),
            ("Délivrés", "delivered_count"),
            ("Lus", "read_count"),
            ("Échecs", "failed_count"),
            ("Lancée le", "started_at"),
        ]
        rows = (
            {
                "name": c.name,
                "type": c.type.value,
                "channel": c.channel.value,
                "status": c.status.value,
                "target_count": c.target_count,
                "sent_count": c.sent_count,
                "delivered_count": c.delivered_count,
                "read_count": c.read_count,
                "failed_count": c.failed_count,
                "started_at": format_date(c.started_at),
            }
            for c in campaigns
        )

        return ReportResult(
            content=render_csv(columns, rows),
            filename=f"campagnes-{file_date(start)}-{file_date(end)}.csv",
        )
