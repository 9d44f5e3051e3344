"""
Services métier pour le module Conformité.

Le statut d'un document réglementaire est dérivé de sa date d'expiration :

    expiration absente          → VALID
    expiration < maintenant     → EXPIRED
    expiration ≤ maintenant+30j → EXPIRING_SOON
    sinon                       → VALID

PENDING_RENEWAL est positionné explicitement (renouvellement lancé) et
n'est jamais quitté automatiquement : seule une mise à jour qui modifie
la date d'expiration recalcule le statut.

Les statuts ne sont pas réévalués à chaque lecture : `update_statuses()`
doit être appelé périodiquement par un planificateur externe.

MULTI-TENANT: Toutes les opérations sont filtrées par tenant_id.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.api.v1.compliance.schemas import ComplianceDocumentCreate, ComplianceDocumentUpdate
from app.core.clock import Clock, SystemClock, to_utc
from app.models.compliance.compliance_document import ComplianceDocument
from app.models.enums import DocumentCategory, DocumentStatus
from app.models.user.professional import Professional
from app.services.tenant_store import TenantScopedRepository

logger = logging.getLogger(__name__)

# Fenêtre d'alerte avant expiration
EXPIRING_SOON_DAYS = 30

# Fenêtre et taille de la liste "prochaines expirations" du dashboard
UPCOMING_WINDOW_DAYS = 60
UPCOMING_LIMIT = 10


# =============================================================================
# EXCEPTIONS
# =============================================================================

class ProfessionalNotFoundError(Exception):
    """Praticien non trouvé dans la clinique."""
    pass


# =============================================================================
# DÉRIVATION DU STATUT
# =============================================================================

def compute_status(expiration_date: Optional[datetime], now: datetime) -> DocumentStatus:
    """
    Calcule le statut d'un document à l'instant `now`.

    Fonction pure : ne retourne jamais PENDING_RENEWAL.
    """
    if expiration_date is None:
        return DocumentStatus.VALID

    expiration_date = to_utc(expiration_date)
    now = to_utc(now)

    if expiration_date < now:
        return DocumentStatus.EXPIRED
    if expiration_date <= now + timedelta(days=EXPIRING_SOON_DAYS):
        return DocumentStatus.EXPIRING_SOON
    return DocumentStatus.VALID


# =============================================================================
# COMPLIANCE SERVICE (MULTI-TENANT)
# =============================================================================

class ComplianceService:
    """
    Service pour la gestion des documents réglementaires.

    MULTI-TENANT: Toutes les opérations sont filtrées par tenant_id.
    Les opérations sur un document absent (ou d'une autre clinique)
    retournent None / False.
    """

    def __init__(self, db: Session, tenant_id: int, clock: Optional[Clock] = None):
        """
        Args:
            db: Session SQLAlchemy
            tenant_id: ID de la clinique courante
            clock: Horloge (SystemClock par défaut)
        """
        self.db = db
        self.tenant_id = tenant_id
        self.clock = clock or SystemClock()
        self.documents = TenantScopedRepository(db, tenant_id, ComplianceDocument)

    def _check_professional(self, professional_id: int) -> None:
        """Vérifie que le praticien appartient à la clinique."""
        professionals = TenantScopedRepository(self.db, self.tenant_id, Professional)
        if professionals.get(professional_id) is None:
            raise ProfessionalNotFoundError(f"Praticien {professional_id} non trouvé")

    # =========================================================================
    # LECTURE
    # =========================================================================

    def list_documents(
            self,
            category: Optional[DocumentCategory] = None,
            status: Optional[DocumentStatus] = None,
            professional_id: Optional[int] = None,
    ) -> List[ComplianceDocument]:
        """Liste les documents, triés par date d'expiration puis par nom."""
        criteria = []
        if category:
            criteria.append(ComplianceDocument.category == category)
        if status:
            criteria.append(ComplianceDocument.status == status)
        if professional_id:
            criteria.append(ComplianceDocument.professional_id == professional_id)

        return self.documents.list(
            *criteria,
            order_by=[
                ComplianceDocument.expiration_date.asc().nulls_last(),
                ComplianceDocument.name,
            ],
        )

    def get_document(self, document_id: int) -> Optional[ComplianceDocument]:
        """Récupère un document (None si absent)."""
        return self.documents.get(document_id)

    def get_expiring_documents(self, days: int = EXPIRING_SOON_DAYS) -> List[ComplianceDocument]:
        """
        Documents à surveiller : déjà expirés, marqués EXPIRING_SOON,
        ou dont l'expiration tombe dans les `days` prochains jours.
        """
        now = self.clock.now()
        horizon = now + timedelta(days=days)

        return self.documents.list(
            or_(
                ComplianceDocument.status == DocumentStatus.EXPIRED,
                ComplianceDocument.status == DocumentStatus.EXPIRING_SOON,
                and_(
                    ComplianceDocument.expiration_date <= horizon,
                    ComplianceDocument.expiration_date >= now,
                ),
            ),
            order_by=ComplianceDocument.expiration_date.asc().nulls_last(),
        )

    def get_dashboard(self) -> dict:
        """Synthèse : compteurs par statut, par catégorie, prochaines expirations."""
        by_status = self.documents.group_count(ComplianceDocument.status)
        by_category = self.documents.group_count(ComplianceDocument.category)

        return {
            "total_documents": sum(by_status.values()),
            "valid_documents": by_status.get(DocumentStatus.VALID, 0),
            "expiring_soon_documents": by_status.get(DocumentStatus.EXPIRING_SOON, 0),
            "expired_documents": by_status.get(DocumentStatus.EXPIRED, 0),
            "pending_renewal_documents": by_status.get(DocumentStatus.PENDING_RENEWAL, 0),
            "by_category": [
                {"category": category, "count": count}
                for category, count in sorted(by_category.items(), key=lambda item: item[0].value)
            ],
            "upcoming_expirations": self.get_expiring_documents(UPCOMING_WINDOW_DAYS)[:UPCOMING_LIMIT],
        }

    # =========================================================================
    # ÉCRITURE
    # =========================================================================

    def create_document(
            self,
            data: ComplianceDocumentCreate,
            uploaded_by: Optional[int] = None,
    ) -> ComplianceDocument:
        """
        Enregistre un document ; le statut est calculé une fois ici.

        Raises:
            ProfessionalNotFoundError: praticien inconnu dans la clinique
        """
        if data.professional_id:
            self._check_professional(data.professional_id)

        now = self.clock.now()
        expiration_date = to_utc(data.expiration_date)

        document = ComplianceDocument(
            name=data.name,
            description=data.description,
            category=data.category,
            document_number=data.document_number,
            file_url=data.file_url,
            file_name=data.file_name,
            file_size=data.file_size,
            mime_type=data.mime_type,
            issue_date=to_utc(data.issue_date),
            expiration_date=expiration_date,
            status=compute_status(expiration_date, now),
            professional_id=data.professional_id,
            notes=data.notes,
            uploaded_by=uploaded_by,
            uploaded_at=now,
        )
        self.documents.add(document)

        logger.info(
            f"Document {document.id} créé (tenant={self.tenant_id}, statut={document.status.value})"
        )
        return document

    def update_document(
            self,
            document_id: int,
            data: ComplianceDocumentUpdate,
    ) -> Optional[ComplianceDocument]:
        """
        Met à jour un document (mise à jour partielle).

        Le statut n'est recalculé que si `expiration_date` figure dans la
        mise à jour (y compris pour l'effacer), même depuis PENDING_RENEWAL.

        Raises:
            ProfessionalNotFoundError: praticien inconnu dans la clinique
        """
        document = self.documents.get(document_id)
        if document is None:
            return None

        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("professional_id"):
            self._check_professional(update_data["professional_id"])

        for field in ("issue_date", "expiration_date"):
            if field in update_data:
                update_data[field] = to_utc(update_data[field])

        for field, value in update_data.items():
            setattr(document, field, value)

        if "expiration_date" in update_data:
            document.status = compute_status(document.expiration_date, self.clock.now())

        self.documents.save(document)
        return document

    def delete_document(self, document_id: int) -> bool:
        """Supprime un document. Retourne False si absent."""
        document = self.documents.get(document_id)
        if document is None:
            return False

        self.documents.delete(document)
        logger.info(f"Document {document_id} supprimé (tenant={self.tenant_id})")
        return True

    def mark_renewal_started(self, document_id: int) -> Optional[ComplianceDocument]:
        """
        Marque le début d'un renouvellement : statut PENDING_RENEWAL,
        date d'expiration inchangée.
        """
        document = self.documents.get(document_id)
        if document is None:
            return None

        document.status = DocumentStatus.PENDING_RENEWAL
        document.renewal_started_at = self.clock.now()
        self.documents.save(document)
        return document

    def update_statuses(self) -> int:
        """
        Recalcule le statut de tous les documents hors PENDING_RENEWAL.

        Chaque ligne modifiée est commitée individuellement : une
        interruption laisse un ensemble partiellement mis à jour, et
        l'opération peut être relancée sans effet de bord.

        Returns:
            Nombre de documents dont le statut a changé
        """
        now = self.clock.now()
        documents = self.documents.list(
            ComplianceDocument.status != DocumentStatus.PENDING_RENEWAL,
        )

        updated = 0
        for document in documents:
            new_status = compute_status(document.expiration_date, now)
            if new_status != document.status:
                document.status = new_status
                self.documents.save()
                updated += 1

        if updated:
            logger.info(f"🔄 {updated} statut(s) de documents mis à jour (tenant={self.tenant_id})")
        return updated


def update_all_statuses(db: Session, tenant_ids: List[int], clock: Optional[Clock] = None) -> Dict[int, int]:
    """
    Recalcul des statuts pour plusieurs cliniques (tâche planifiée).

    Returns:
        Nombre de documents modifiés par tenant_id
    """
    return {
        tenant_id: ComplianceService(db, tenant_id, clock=clock).update_statuses()
        for tenant_id in tenant_ids
    }
