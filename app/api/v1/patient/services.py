"""
Services métier pour le module Patient.

Contient la logique CRUD pour :
- PatientService (MULTI-TENANT)

Un patient n'est jamais supprimé physiquement : l'archivage
(is_active=False) le retire des limites du plan et des segments.

MULTI-TENANT: Toutes les opérations Patient sont filtrées par tenant_id.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.api.v1.patient.schemas import PatientCreate, PatientUpdate
from app.models.patient.patient import Patient
from app.models.patient.patient_tag import PatientTag
from app.services.tenant_store import TenantScopedRepository

logger = logging.getLogger(__name__)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class PatientNotFoundError(Exception):
    """Patient non trouvé."""
    pass


# =============================================================================
# PATIENT SERVICE (MULTI-TENANT)
# =============================================================================

class PatientService:
    """
    Service pour la gestion des patients.

    MULTI-TENANT: Toutes les opérations sont filtrées par tenant_id.
    """

    SORTABLE_FIELDS = ("name", "created_at", "birth_date")

    def __init__(self, db: Session, tenant_id: int):
        """
        Args:
            db: Session SQLAlchemy
            tenant_id: ID du tenant courant (extrait de l'utilisateur authentifié)
        """
        self.db = db
        self.tenant_id = tenant_id
        self.patients = TenantScopedRepository(db, tenant_id, Patient)

    def get_all(
            self,
            page: int = 1,
            size: int = 20,
            sort_by: Optional[str] = None,
            sort_order: str = "asc",
            search: Optional[str] = None,
            tag: Optional[str] = None,
            include_inactive: bool = False,
    ) -> Tuple[List[Patient], int]:
        """Liste les patients avec pagination et filtres."""
        criteria = []
        if not include_inactive:
            criteria.append(Patient.is_active.is_(True))
        if search:
            pattern = f"%{search}%"
            criteria.append(or_(
                Patient.name.ilike(pattern),
                Patient.phone.ilike(pattern),
                Patient.email.ilike(pattern),
            ))
        if tag:
            criteria.append(Patient.tags.any(PatientTag.tag == tag.lower()))

        total = self.patients.count(*criteria)

        order_column = getattr(Patient, sort_by if sort_by in self.SORTABLE_FIELDS else "name")
        if sort_order.lower() == "desc":
            order_column = order_column.desc()

        items = self.patients.list(
            *criteria,
            order_by=[order_column, Patient.id],
            offset=(page - 1) * size,
            limit=size,
        )
        return items, total

    def get_by_id(self, patient_id: int) -> Patient:
        """
        Récupère un patient par son ID.

        MULTI-TENANT: Un patient d'une autre clinique est introuvable.
        """
        patient = self.patients.get(patient_id)
        if patient is None:
            raise PatientNotFoundError(f"Patient {patient_id} non trouvé")
        return patient

    def create(self, data: PatientCreate) -> Patient:
        """Crée un patient (les limites du plan sont vérifiées en amont)."""
        patient = Patient(
            **data.model_dump(exclude={"tags"}),
            tags=[PatientTag(tag=tag) for tag in data.tags],
        )
        self.patients.add(patient)
        logger.info(f"Patient {patient.id} créé (tenant={self.tenant_id})")
        return patient

    def update(self, patient_id: int, data: PatientUpdate) -> Patient:
        """Met à jour un patient ; `tags` remplace l'ensemble des étiquettes."""
        patient = self.get_by_id(patient_id)

        update_data = data.model_dump(exclude_unset=True)
        tags = update_data.pop("tags", None)

        for field, value in update_data.items():
            setattr(patient, field, value)

        if tags is not None:
            existing = {t.tag: t for t in patient.tags}
            patient.tags = [existing.get(tag) or PatientTag(tag=tag) for tag in tags]

        return self.patients.save(patient)

    def archive(self, patient_id: int) -> Patient:
        """Archive un patient (suppression logique)."""
        patient = self.get_by_id(patient_id)
        patient.is_active = False
        self.patients.save(patient)
        logger.info(f"Patient {patient_id} archivé (tenant={self.tenant_id})")
        return patient
