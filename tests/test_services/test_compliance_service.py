"""
Tests unitaires pour le service de conformité.

Couvre :
- La dérivation du statut depuis la date d'expiration (bornes incluses)
- La création / mise à jour / suppression de documents
- Le recalcul périodique des statuts (idempotent, hors PENDING_RENEWAL)
- Le dashboard et la liste des documents à surveiller
"""

from datetime import timedelta

import pytest
from sqlalchemy.orm import Session

from app.api.v1.compliance.schemas import ComplianceDocumentCreate, ComplianceDocumentUpdate
from app.api.v1.compliance.services import (
    ComplianceService,
    ProfessionalNotFoundError,
    compute_status,
    update_all_statuses,
)
from app.models import DocumentCategory, DocumentStatus, Professional
from conftest import NOW


class TestComputeStatus:
    """Tests pour compute_status()."""

    def test_no_expiration_is_valid(self):
        assert compute_status(None, NOW) == DocumentStatus.VALID

    def test_expired(self):
        assert compute_status(NOW - timedelta(seconds=1), NOW) == DocumentStatus.EXPIRED

    def test_expiring_exactly_now_is_expiring_soon(self):
        """Une expiration égale à maintenant n'est pas encore passée."""
        assert compute_status(NOW, NOW) == DocumentStatus.EXPIRING_SOON

    def test_expiring_exactly_in_30_days(self):
        assert compute_status(NOW + timedelta(days=30), NOW) == DocumentStatus.EXPIRING_SOON

    def test_just_after_30_days_is_valid(self):
        assert compute_status(NOW + timedelta(days=30, seconds=1), NOW) == DocumentStatus.VALID

    def test_naive_datetime_is_utc(self):
        naive = (NOW - timedelta(days=1)).replace(tzinfo=None)
        assert compute_status(naive, NOW) == DocumentStatus.EXPIRED


class TestComplianceServiceCrud:
    """Tests pour la création et la mise à jour des documents."""

    def _create_data(self, **kwargs) -> ComplianceDocumentCreate:
        data = {
            "name": "Contrôle radioprotection",
            "category": DocumentCategory.CERTIFICATE,
            "file_url": "https://files.dentflow.app/radio.pdf",
            "file_name": "radio.pdf",
            "file_size": 2048,
        }
        data.update(kwargs)
        return ComplianceDocumentCreate(**data)

    def test_create_computes_status(self, db_session: Session, tenant, clock):
        service = ComplianceService(db_session, tenant.id, clock=clock)

        document = service.create_document(
            self._create_data(expiration_date=NOW + timedelta(days=10)),
            uploaded_by=None,
        )

        assert document.id is not None
        assert document.tenant_id == tenant.id
        assert document.status == DocumentStatus.EXPIRING_SOON

    def test_create_without_expiration(self, db_session: Session, tenant, clock):
        document = ComplianceService(db_session, tenant.id, clock=clock).create_document(self._create_data())
        assert document.status == DocumentStatus.VALID

    def test_create_with_foreign_professional(self, db_session: Session, tenant, other_tenant, clock):
        """Un praticien d'une autre clinique est refusé."""
        foreign = Professional(tenant_id=other_tenant.id, name="Dr Ailleurs")
        db_session.add(foreign)
        db_session.commit()

        service = ComplianceService(db_session, tenant.id, clock=clock)
        with pytest.raises(ProfessionalNotFoundError):
            service.create_document(self._create_data(professional_id=foreign.id))

    def test_get_other_tenant_returns_none(self, db_session: Session, tenant, other_tenant, clock, make_document):
        foreign = make_document(name="doc-voisin", tenant_id=other_tenant.id)
        service = ComplianceService(db_session, tenant.id, clock=clock)

        assert service.get_document(foreign.id) is None
        assert service.update_document(foreign.id, ComplianceDocumentUpdate(name="x")) is None
        assert service.delete_document(foreign.id) is False

    def test_update_without_expiration_keeps_status(self, db_session: Session, tenant, clock, make_document):
        document = make_document(expiration_date=NOW - timedelta(days=1), status=DocumentStatus.VALID)

        service = ComplianceService(db_session, tenant.id, clock=clock)
        updated = service.update_document(document.id, ComplianceDocumentUpdate(notes="Relancer l'assureur"))

        assert updated.notes == "Relancer l'assureur"
        assert updated.status == DocumentStatus.VALID

    def test_update_expiration_recomputes_status(self, db_session: Session, tenant, clock, make_document):
        document = make_document(expiration_date=NOW + timedelta(days=5), status=DocumentStatus.EXPIRING_SOON)

        service = ComplianceService(db_session, tenant.id, clock=clock)
        updated = service.update_document(
            document.id,
            ComplianceDocumentUpdate(expiration_date=NOW + timedelta(days=365)),
        )

        assert updated.status == DocumentStatus.VALID

    def test_update_expiration_leaves_pending_renewal(self, db_session: Session, tenant, clock, make_document):
        """Une nouvelle date d'expiration clôt le renouvellement en cours."""
        document = make_document(
            expiration_date=NOW + timedelta(days=5),
            status=DocumentStatus.PENDING_RENEWAL,
        )

        service = ComplianceService(db_session, tenant.id, clock=clock)
        updated = service.update_document(
            document.id,
            ComplianceDocumentUpdate(expiration_date=NOW + timedelta(days=400)),
        )

        assert updated.status == DocumentStatus.VALID

    def test_clear_expiration(self, db_session: Session, tenant, clock, make_document):
        document = make_document(expiration_date=NOW - timedelta(days=3), status=DocumentStatus.EXPIRED)

        service = ComplianceService(db_session, tenant.id, clock=clock)
        updated = service.update_document(document.id, ComplianceDocumentUpdate(expiration_date=None))

        assert updated.expiration_date is None
        assert updated.status == DocumentStatus.VALID

    def test_mark_renewal_started(self, db_session: Session, tenant, clock, make_document):
        expiration = NOW + timedelta(days=5)
        document = make_document(expiration_date=expiration, status=DocumentStatus.EXPIRING_SOON)

        service = ComplianceService(db_session, tenant.id, clock=clock)
        renewed = service.mark_renewal_started(document.id)

        assert renewed.status == DocumentStatus.PENDING_RENEWAL
        assert renewed.expiration_date.replace(tzinfo=None) == expiration.replace(tzinfo=None)

    def test_delete(self, db_session: Session, tenant, clock, make_document):
        document = make_document()
        service = ComplianceService(db_session, tenant.id, clock=clock)

        assert service.delete_document(document.id) is True
        assert service.get_document(document.id) is None
        assert service.delete_document(document.id) is False

    def test_list_ordered_by_expiration_nulls_last(self, db_session: Session, tenant, clock, make_document):
        make_document(name="sans-date")
        make_document(name="lointain", expiration_date=NOW + timedelta(days=200))
        make_document(name="proche", expiration_date=NOW + timedelta(days=2))

        documents = ComplianceService(db_session, tenant.id, clock=clock).list_documents()

        assert [d.name for d in documents] == ["proche", "lointain", "sans-date"]

    def test_list_filters(self, db_session: Session, tenant, clock, make_document):
        make_document(name="assurance", category=DocumentCategory.INSURANCE)
        make_document(name="licence", category=DocumentCategory.LICENSE)

        service = ComplianceService(db_session, tenant.id, clock=clock)

        assert [d.name for d in service.list_documents(category=DocumentCategory.LICENSE)] == ["licence"]
        assert service.list_documents(status=DocumentStatus.EXPIRED) == []


class TestUpdateStatuses:
    """Tests pour le recalcul périodique des statuts."""

    def test_transitions_and_count(self, db_session: Session, tenant, clock, make_document):
        expired = make_document(name="expiré", expiration_date=NOW - timedelta(days=1))
        soon = make_document(name="bientôt", expiration_date=NOW + timedelta(days=15))
        make_document(name="valide", expiration_date=NOW + timedelta(days=90))

        service = ComplianceService(db_session, tenant.id, clock=clock)

        assert service.update_statuses() == 2
        assert service.get_document(expired.id).status == DocumentStatus.EXPIRED
        assert service.get_document(soon.id).status == DocumentStatus.EXPIRING_SOON

    def test_idempotent(self, db_session: Session, tenant, clock, make_document):
        make_document(name="expiré", expiration_date=NOW - timedelta(days=1))
        service = ComplianceService(db_session, tenant.id, clock=clock)

        assert service.update_statuses() == 1
        assert service.update_statuses() == 0

    def test_pending_renewal_is_skipped(self, db_session: Session, tenant, clock, make_document):
        document = make_document(
            expiration_date=NOW - timedelta(days=10),
            status=DocumentStatus.PENDING_RENEWAL,
        )

        service = ComplianceService(db_session, tenant.id, clock=clock)

        assert service.update_statuses() == 0
        assert service.get_document(document.id).status == DocumentStatus.PENDING_RENEWAL

    def test_renewal_survives_note_edits_and_recompute(self, db_session: Session, tenant, clock):
        """
        Cycle complet : un renouvellement en cours n'est levé ni par une
        modification sans date, ni par le recalcul périodique.
        """
        service = ComplianceService(db_session, tenant.id, clock=clock)
        document = service.create_document(
            ComplianceDocumentCreate(
                name="Assurance RCP",
                category=DocumentCategory.INSURANCE,
                file_url="https://files.dentflow.app/rcp.pdf",
                file_name="rcp.pdf",
                expiration_date=NOW + timedelta(days=10),
            )
        )
        assert document.status == DocumentStatus.EXPIRING_SOON

        service.update_document(document.id, ComplianceDocumentUpdate(notes="Devis demandé"))
        assert service.get_document(document.id).status == DocumentStatus.EXPIRING_SOON

        assert service.mark_renewal_started(document.id).status == DocumentStatus.PENDING_RENEWAL

        updated = service.update_document(document.id, ComplianceDocumentUpdate(notes="Devis reçu"))
        assert updated.status == DocumentStatus.PENDING_RENEWAL

        assert service.update_statuses() == 0
        assert service.get_document(document.id).status == DocumentStatus.PENDING_RENEWAL

    def test_null_expiration_goes_back_to_valid(self, db_session: Session, tenant, clock, make_document):
        document = make_document(expiration_date=None, status=DocumentStatus.EXPIRED)

        service = ComplianceService(db_session, tenant.id, clock=clock)

        assert service.update_statuses() == 1
        assert service.get_document(document.id).status == DocumentStatus.VALID

    def test_follows_clock(self, db_session: Session, tenant, clock, make_document):
        document = make_document(expiration_date=NOW + timedelta(days=31))
        service = ComplianceService(db_session, tenant.id, clock=clock)

        assert service.update_statuses() == 0

        clock.advance(days=2)
        assert service.update_statuses() == 1
        assert service.get_document(document.id).status == DocumentStatus.EXPIRING_SOON

    def test_other_tenant_untouched(self, db_session: Session, tenant, other_tenant, clock, make_document):
        foreign = make_document(name="voisin", expiration_date=NOW - timedelta(days=1), tenant_id=other_tenant.id)

        ComplianceService(db_session, tenant.id, clock=clock).update_statuses()

        db_session.refresh(foreign)
        assert foreign.status == DocumentStatus.VALID

    def test_update_all_statuses(self, db_session: Session, tenant, other_tenant, clock, make_document):
        make_document(name="a", expiration_date=NOW - timedelta(days=1))
        make_document(name="b", expiration_date=NOW - timedelta(days=1), tenant_id=other_tenant.id)
        make_document(name="c", expiration_date=NOW + timedelta(days=3), tenant_id=other_tenant.id)

        results = update_all_statuses(db_session, [tenant.id, other_tenant.id], clock=clock)

        assert results == {tenant.id: 1, other_tenant.id: 2}


class TestExpiringAndDashboard:
    """Tests pour la liste des documents à surveiller et le dashboard."""

    def test_expiring_documents(self, db_session: Session, tenant, clock, make_document):
        make_document(name="expiré", expiration_date=NOW - timedelta(days=5), status=DocumentStatus.EXPIRED)
        make_document(name="dans-10j", expiration_date=NOW + timedelta(days=10))
        make_document(name="dans-45j", expiration_date=NOW + timedelta(days=45))
        make_document(name="sans-date")

        service = ComplianceService(db_session, tenant.id, clock=clock)

        assert [d.name for d in service.get_expiring_documents(30)] == ["expiré", "dans-10j"]
        assert [d.name for d in service.get_expiring_documents(60)] == ["expiré", "dans-10j", "dans-45j"]

    def test_dashboard(self, db_session: Session, tenant, other_tenant, clock, make_document):
        make_document(name="a", status=DocumentStatus.VALID)
        make_document(name="b", status=DocumentStatus.EXPIRED, expiration_date=NOW - timedelta(days=2))
        make_document(
            name="c",
            status=DocumentStatus.PENDING_RENEWAL,
            category=DocumentCategory.LICENSE,
            expiration_date=NOW + timedelta(days=20),
        )
        make_document(name="voisin", tenant_id=other_tenant.id)

        dashboard = ComplianceService(db_session, tenant.id, clock=clock).get_dashboard()

        assert dashboard["total_documents"] == 3
        assert dashboard["valid_documents"] == 1
        assert dashboard["expired_documents"] == 1
        assert dashboard["pending_renewal_documents"] == 1
        assert dashboard["expiring_soon_documents"] == 0
        assert {c["category"]: c["count"] for c in dashboard["by_category"]} == {
            DocumentCategory.INSURANCE: 2,
            DocumentCategory.LICENSE: 1,
        }
        assert [d.name for d in dashboard["upcoming_expirations"]] == ["b", "c"]
