"""
Services métier pour le module Rendez-vous.

created_at est horodaté via l'horloge injectée : il sert au décompte
mensuel de la limite du plan (rendez-vous créés dans le mois).

MULTI-TENANT: Toutes les opérations sont filtrées par tenant_id.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.api.v1.appointment.schemas import AppointmentCreate
from app.core.clock import Clock, SystemClock, to_utc
from app.models.appointment.appointment import Appointment
from app.models.enums import AppointmentStatus
from app.models.patient.patient import Patient
from app.models.user.professional import Professional
from app.services.tenant_store import TenantScopedRepository

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class AppointmentNotFoundError(Exception):
    """Rendez-vous non trouvé."""
    pass


class PatientNotFoundError(Exception):
    """Patient non trouvé dans la clinique."""
    pass


class ProfessionalNotFoundError(Exception):
    """Praticien non trouvé dans la clinique."""
    pass


class AppointmentStateError(Exception):
    """Rendez-vous déjà terminé ou annulé."""
    pass


# =============================================================================
# APPOINTMENT SERVICE (MULTI-TENANT)
# =============================================================================

class AppointmentService:
    """
    Service pour l'agenda de la clinique.

    MULTI-TENANT: Toutes les opérations sont filtrées par tenant_id.
    """

    CLOSED_STATUSES = (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)

    def __init__(self, db: Session, tenant_id: int, clock: Optional[Clock] = None):
        self.db = db
        self.tenant_id = tenant_id
        self.clock = clock or SystemClock()
        self.appointments = TenantScopedRepository(db, tenant_id, Appointment)

    def list_appointments(
            self,
            start: Optional[datetime] = None,
            end: Optional[datetime] = None,
            professional_id: Optional[int] = None,
            patient_id: Optional[int] = None,
    ) -> List[Appointment]:
        """Rendez-vous commençant dans [start, end], par ordre chronologique."""
        criteria = []
        if start:
            criteria.append(Appointment.start_time >= to_utc(start))
        if end:
            criteria.append(Appointment.start_time <= to_utc(end))
        if professional_id:
            criteria.append(Appointment.professional_id == professional_id)
        if patient_id:
            criteria.append(Appointment.patient_id == patient_id)

        return self.appointments.list(*criteria, order_by=Appointment.start_time)

    def get_by_id(self, appointment_id: int) -> Appointment:
        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(f"Rendez-vous {appointment_id} non trouvé")
        return appointment

    def create(self, data: AppointmentCreate, created_by: Optional[int] = None) -> Appointment:
        """
        Crée un rendez-vous (limite mensuelle vérifiée en amont).

        Raises:
            PatientNotFoundError, ProfessionalNotFoundError
        """
        if TenantScopedRepository(self.db, self.tenant_id, Patient).get(data.patient_id) is None:
            raise PatientNotFoundError(f"Patient {data.patient_id} non trouvé")

        if data.professional_id and TenantScopedRepository(
                self.db, self.tenant_id, Professional
        ).get(data.professional_id) is None:
            raise ProfessionalNotFoundError(f"Praticien {data.professional_id} non trouvé")

        appointment = Appointment(
            patient_id=data.patient_id,
            professional_id=data.professional_id,
            start_time=to_utc(data.start_time),
            end_time=to_utc(data.end_time),
            type=data.type,
            notes=data.notes,
            created_by=created_by,
            created_at=self.clock.now(),
        )
        self.appointments.add(appointment)
        logger.info(f"Rendez-vous {appointment.id} créé (tenant={self.tenant_id})")
        return appointment

    def update_status(self, appointment_id: int, status: AppointmentStatus) -> Appointment:
        appointment = self.get_by_id(appointment_id)
        appointment.status = status
        return self.appointments.save(appointment)

    def cancel(self, appointment_id: int) -> Appointment:
        """
        Raises:
            AppointmentStateError: rendez-vous déjà terminé ou annulé
        """
        appointment = self.get_by_id(appointment_id)
        if appointment.status in self.CLOSED_STATUSES:
            raise AppointmentStateError(
                f"Rendez-vous {appointment_id} déjà {appointment.status.value}"
            )
        appointment.status = AppointmentStatus.CANCELLED
        return self.appointments.save(appointment)
