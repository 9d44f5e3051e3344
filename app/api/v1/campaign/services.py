"""
Services métier pour le module Campagnes.

Contient :
- build_filter_criteria : traduction des filtres de segment en critères SQL
- SegmentService : CRUD des segments, aperçu d'audience
- CampaignService : CRUD et cycle de vie des campagnes, analytics

Évaluation d'un segment : chaque filtre présent ajoute un prédicat (ET)
sur les patients actifs de la clinique. Une "visite" est un rendez-vous
COMPLETED dont le début tombe dans [maintenant - N jours, maintenant].

Cycle de vie d'une campagne :

    DRAFT ──schedule──▶ SCHEDULED
    DRAFT | SCHEDULED ──start──▶ SENDING ⇄ PAUSED
    SENDING | PAUSED ──complete──▶ COMPLETED
    (non terminal) ──cancel──▶ CANCELLED

MULTI-TENANT: Toutes les opérations sont filtrées par tenant_id.
"""
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, exists, select
from sqlalchemy.orm import Session

from app.api.v1.campaign.schemas import (
    CampaignCreate,
    CampaignUpdate,
    SegmentCreate,
    SegmentFilters,
    SegmentUpdate,
)
from app.core.clock import Clock, SystemClock, to_utc, years_ago
from app.core.config import settings
from app.models.appointment.appointment import Appointment
from app.models.campaign.campaign import Campaign
from app.models.campaign.message_log import MessageLog
from app.models.campaign.segment import Segment
from app.models.enums import AppointmentStatus, CampaignStatus, MessageStatus
from app.models.patient.patient import Patient
from app.models.patient.patient_tag import PatientTag
from app.services.tenant_store import TenantScopedRepository

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (CampaignStatus.COMPLETED, CampaignStatus.CANCELLED)

ANALYTICS_WINDOW_DAYS = 7


# =============================================================================
# EXCEPTIONS
# =============================================================================

class SegmentNotFoundError(Exception):
    """Segment non trouvé dans la clinique."""
    pass


class SegmentInUseError(Exception):
    """Segment référencé par une campagne en cours."""
    pass


class CampaignStateError(Exception):
    """Transition interdite depuis le statut courant de la campagne."""
    pass


# =============================================================================
# ÉVALUATION DES FILTRES
# =============================================================================

def _visit_exists(days: int, now: datetime):
    """EXISTS d'une visite terminée dans les `days` derniers jours."""
    return exists(
        select(Appointment.id).where(
            Appointment.patient_id == Patient.id,
            Appointment.status == AppointmentStatus.COMPLETED,
            Appointment.start_time >= now - timedelta(days=days),
            Appointment.start_time <= now,
        )
    )


def build_filter_criteria(filters: SegmentFilters, now: datetime) -> List[Any]:
    """
    Critères SQL (à combiner en ET) sur Patient pour un jeu de filtres.

    Inclut toujours `is_active`. Âge révolu calculé depuis la date de
    naissance : age_min=18 retient les patients nés au plus tard il y a
    18 ans jour pour jour ; age_max=65 exclut ceux qui ont fêté leurs 66 ans.
    """
    now = to_utc(now)
    today = now.date()
    criteria = [Patient.is_active.is_(True)]

    if filters.age_min is not None:
        criteria.append(Patient.birth_date <= years_ago(today, filters.age_min))

    if filters.age_max is not None:
        criteria.append(Patient.birth_date > years_ago(today, filters.age_max + 1))

    if filters.gender is not None:
        criteria.append(Patient.gender == filters.gender)

    if filters.tags:
        criteria.append(Patient.tags.any(PatientTag.tag.in_(filters.tags)))

    if filters.last_visit_days_ago is not None:
        criteria.append(_visit_exists(filters.last_visit_days_ago, now))

    if filters.no_visit_days_ago is not None:
        criteria.append(~_visit_exists(filters.no_visit_days_ago, now))

    if filters.source:
        criteria.append(Patient.source == filters.source)

    # False n'impose aucune contrainte
    if filters.has_whatsapp:
        criteria.extend([
            Patient.whatsapp_opt_in.is_(True),
            Patient.phone.is_not(None),
            Patient.phone != "",
        ])

    if filters.has_email:
        criteria.extend([
            Patient.email_opt_in.is_(True),
            Patient.email.is_not(None),
            Patient.email != "",
        ])

    return criteria


def _stored_filters(filters: SegmentFilters) -> Dict[str, Any]:
    """Filtres sérialisés pour la colonne JSON (clés absentes omises)."""
    return filters.model_dump(mode="json", exclude_none=True)


# =============================================================================
# SEGMENT SERVICE (MULTI-TENANT)
# =============================================================================

class SegmentService:
    """
    Service pour la gestion des segments de patients.

    MULTI-TENANT: Toutes les opérations sont filtrées par tenant_id.
    """

    def __init__(self, db: Session, tenant_id: int, clock: Optional[Clock] = None):
        self.db = db
        self.tenant_id = tenant_id
        self.clock = clock or SystemClock()
        self.segments = TenantScopedRepository(db, tenant_id, Segment)
        self.patients = TenantScopedRepository(db, tenant_id, Patient)

    # =========================================================================
    # ÉVALUATION
    # =========================================================================

    def count_matching_patients(self, filters: SegmentFilters) -> int:
        return self.patients.count(*build_filter_criteria(filters, self.clock.now()))

    def get_matching_patients(self, filters: SegmentFilters, limit: Optional[int] = None) -> List[Patient]:
        """Patients correspondant aux filtres, triés par nom."""
        return self.patients.list(
            *build_filter_criteria(filters, self.clock.now()),
            order_by=[Patient.name, Patient.id],
            limit=limit,
        )

    def preview_segment(self, filters: SegmentFilters, limit: Optional[int] = None) -> dict:
        """
        Nombre total de patients correspondants et échantillon borné.

        L'échantillon n'est pas exhaustif : `count` peut le dépasser.
        """
        if limit is None:
            limit = settings.SEGMENT_PREVIEW_LIMIT
        return {
            "count": self.count_matching_patients(filters),
            "patients": self.get_matching_patients(filters, limit=limit),
        }

    # =========================================================================
    # CRUD
    # =========================================================================

    def list_segments(self) -> List[Segment]:
        return self.segments.list(order_by=Segment.created_at.desc())

    def get_segment(self, segment_id: int) -> Optional[Segment]:
        return self.segments.get(segment_id)

    def create_segment(self, data: SegmentCreate) -> Segment:
        """Crée un segment avec un instantané du nombre de patients."""
        segment = Segment(
            name=data.name,
            description=data.description,
            filters=_stored_filters(data.filters),
            patient_count=self.count_matching_patients(data.filters),
            is_active=data.is_active,
        )
        self.segments.add(segment)
        logger.info(f"Segment {segment.id} créé (tenant={self.tenant_id}, patients={segment.patient_count})")
        return segment

    def update_segment(self, segment_id: int, data: SegmentUpdate) -> Optional[Segment]:
        """Mise à jour partielle ; recalcule patient_count si les filtres changent."""
        segment = self.segments.get(segment_id)
        if segment is None:
            return None

        update_data = data.model_dump(exclude_unset=True)
        filters = update_data.pop("filters", None)

        for field, value in update_data.items():
            setattr(segment, field, value)

        if filters is not None:
            new_filters = SegmentFilters.model_validate(filters)
            segment.filters = _stored_filters(new_filters)
            segment.patient_count = self.count_matching_patients(new_filters)

        return self.segments.save(segment)

    def delete_segment(self, segment_id: int) -> bool:
        """
        Supprime un segment. Retourne False si absent.

        Raises:
            SegmentInUseError: une campagne non terminée l'utilise
        """
        segment = self.segments.get(segment_id)
        if segment is None:
            return False

        campaigns = TenantScopedRepository(self.db, self.tenant_id, Campaign)
        in_use = campaigns.count(
            Campaign.segment_id == segment_id,
            Campaign.status.not_in(TERMINAL_STATUSES),
        )
        if in_use:
            raise SegmentInUseError(
                f"Segment utilisé par {in_use} campagne(s) en cours, suppression impossible"
            )

        self.segments.delete(segment)
        logger.info(f"Segment {segment_id} supprimé (tenant={self.tenant_id})")
        return True


# =============================================================================
# CAMPAIGN SERVICE (MULTI-TENANT)
# =============================================================================

class CampaignService:
    """
    Service pour les campagnes et leur cycle de vie.

    MULTI-TENANT: Toutes les opérations sont filtrées par tenant_id.
    Les opérations sur une campagne absente retournent None / False ;
    une transition interdite lève CampaignStateError.
    """

    def __init__(self, db: Session, tenant_id: int, clock: Optional[Clock] = None):
        self.db = db
        self.tenant_id = tenant_id
        self.clock = clock or SystemClock()
        self.campaigns = TenantScopedRepository(db, tenant_id, Campaign)
        self.segment_service = SegmentService(db, tenant_id, clock=self.clock)

    def _get_segment(self, segment_id: int) -> Segment:
        segment = self.segment_service.get_segment(segment_id)
        if segment is None:
            raise SegmentNotFoundError(f"Segment {segment_id} non trouvé")
        return segment

    @staticmethod
    def _require_status(campaign: Campaign, allowed: tuple, action: str) -> None:
        if campaign.status not in allowed:
            raise CampaignStateError(
                f"Impossible de {action} une campagne au statut {campaign.status.value}"
            )

    # =========================================================================
    # CRUD
    # =========================================================================

    def list_campaigns(self, status: Optional[CampaignStatus] = None) -> List[Campaign]:
        criteria = [Campaign.status == status] if status else []
        return self.campaigns.list(*criteria, order_by=Campaign.created_at.desc())

    def get_campaign(self, campaign_id: int) -> Optional[Campaign]:
        return self.campaigns.get(campaign_id)

    def create_campaign(self, data: CampaignCreate, created_by: Optional[int] = None) -> Campaign:
        """
        Crée une campagne en DRAFT.

        target_count reprend l'instantané du segment ; il est recalculé au lancement.

        Raises:
            SegmentNotFoundError: segment inconnu dans la clinique
        """
        target_count = 0
        if data.segment_id:
            target_count = self._get_segment(data.segment_id).patient_count

        campaign = Campaign(
            segment_id=data.segment_id,
            name=data.name,
            description=data.description,
            type=data.type,
            channel=data.channel,
            subject=data.subject,
            content=data.content,
            audio_url=data.audio_url,
            scheduled_for=to_utc(data.scheduled_for),
            target_count=target_count,
            created_by=created_by,
        )
        self.campaigns.add(campaign)
        logger.info(f"Campagne {campaign.id} créée (tenant={self.tenant_id})")
        return campaign

    def update_campaign(self, campaign_id: int, data: CampaignUpdate) -> Optional[Campaign]:
        """
        Raises:
            CampaignStateError: la campagne n'est plus en DRAFT
        """
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            return None
        self._require_status(campaign, (CampaignStatus.DRAFT,), "modifier")

        update_data = data.model_dump(exclude_unset=True)
        if "scheduled_for" in update_data:
            update_data["scheduled_for"] = to_utc(update_data["scheduled_for"])

        for field, value in update_data.items():
            setattr(campaign, field, value)

        return self.campaigns.save(campaign)

    def delete_campaign(self, campaign_id: int) -> bool:
        """
        Raises:
            CampaignStateError: la campagne n'est plus en DRAFT
        """
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            return False
        self._require_status(campaign, (CampaignStatus.DRAFT,), "supprimer")

        self.campaigns.delete(campaign)
        return True

    # =========================================================================
    # CYCLE DE VIE
    # =========================================================================

    def schedule_campaign(self, campaign_id: int, scheduled_for: datetime) -> Optional[Campaign]:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            return None
        self._require_status(campaign, (CampaignStatus.DRAFT,), "planifier")

        campaign.status = CampaignStatus.SCHEDULED
        campaign.scheduled_for = to_utc(scheduled_for)
        return self.campaigns.save(campaign)

    def start_campaign(self, campaign_id: int) -> Optional[Campaign]:
        """
        Lance l'envoi : l'audience du segment est réévaluée maintenant et
        un message QUEUED est créé par patient.
        """
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            return None
        self._require_status(campaign, (CampaignStatus.DRAFT, CampaignStatus.SCHEDULED), "lancer")

        patients: List[Patient] = []
        if campaign.segment is not None:
            filters = SegmentFilters.model_validate(campaign.segment.filters or {})
            patients = self.segment_service.get_matching_patients(filters)

        messages = TenantScopedRepository(self.db, self.tenant_id, MessageLog)
        for patient in patients:
            messages.add(
                MessageLog(
                    patient_id=patient.id,
                    campaign_id=campaign.id,
                    channel=campaign.channel,
                    content=campaign.content,
                    audio_url=campaign.audio_url,
                    status=MessageStatus.QUEUED,
                ),
                commit=False,
            )

        campaign.status = CampaignStatus.SENDING
        campaign.started_at = self.clock.now()
        campaign.target_count = len(patients)
        self.campaigns.save(campaign)

        logger.info(f"📣 Campagne {campaign.id} lancée : {len(patients)} message(s) en file (tenant={self.tenant_id})")
        return campaign

    def pause_campaign(self, campaign_id: int) -> Optional[Campaign]:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            return None
        self._require_status(campaign, (CampaignStatus.SENDING,), "suspendre")

        campaign.status = CampaignStatus.PAUSED
        return self.campaigns.save(campaign)

    def resume_campaign(self, campaign_id: int) -> Optional[Campaign]:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            return None
        self._require_status(campaign, (CampaignStatus.PAUSED,), "reprendre")

        campaign.status = CampaignStatus.SENDING
        return self.campaigns.save(campaign)

    def complete_campaign(self, campaign_id: int) -> Optional[Campaign]:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            return None
        self._require_status(campaign, (CampaignStatus.SENDING, CampaignStatus.PAUSED), "terminer")

        campaign.status = CampaignStatus.COMPLETED
        campaign.completed_at = self.clock.now()
        return self.campaigns.save(campaign)

    def cancel_campaign(self, campaign_id: int) -> Optional[Campaign]:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            return None
        if campaign.status in TERMINAL_STATUSES:
            raise CampaignStateError("La campagne est déjà terminée ou annulée")

        campaign.status = CampaignStatus.CANCELLED
        campaign.completed_at = self.clock.now()
        return self.campaigns.save(campaign)

    # =========================================================================
    # ANALYTICS
    # =========================================================================

    def get_analytics(self, campaign_id: int) -> Optional[dict]:
        """
        Taux de délivrance (délivrés / ciblés), taux d'ouverture
        (lus / délivrés), et messages envoyés par jour sur 7 jours.
        """
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            return None

        delivery_rate = (
            campaign.delivered_count / campaign.target_count * 100
            if campaign.target_count > 0 else 0.0
        )
        open_rate = (
            campaign.read_count / campaign.delivered_count * 100
            if campaign.delivered_count > 0 else 0.0
        )

        since = self.clock.now() - timedelta(days=ANALYTICS_WINDOW_DAYS)
        messages = TenantScopedRepository(self.db, self.tenant_id, MessageLog).list(
            and_(MessageLog.campaign_id == campaign_id, MessageLog.sent_at >= since),
        )
        per_day = Counter(to_utc(m.sent_at).date().isoformat() for m in messages)

        return {
            "delivery_rate": delivery_rate,
            "open_rate": open_rate,
            "sent_over_time": [
                {"date": day, "count": count} for day, count in sorted(per_day.items())
            ],
        }
