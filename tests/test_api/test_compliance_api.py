"""
Tests API pour le module Conformité.

Ce module teste les endpoints :
- /api/v1/compliance/documents : CRUD des documents réglementaires
- /api/v1/compliance/documents/{id}/renewal : renouvellement
- /api/v1/compliance/expiring : documents à surveiller
- /api/v1/compliance/dashboard : synthèse
- /api/v1/compliance/update-statuses : recalcul des statuts
"""

from datetime import timedelta

import pytest
from fastapi import status
from sqlalchemy.orm import Session

from app.models import DocumentCategory, DocumentStatus, Subscription, SubscriptionStatus
from conftest import NOW

BASE_URL = "/api/v1/compliance"


def _document_payload(**kwargs) -> dict:
    data = {
        "name": "Assurance RCP 2025",
        "category": "INSURANCE",
        "file_url": "https://files.dentflow.app/rcp-2025.pdf",
        "file_name": "rcp-2025.pdf",
        "file_size": 2048,
    }
    data.update(kwargs)
    return data


class TestDocumentCrud:
    """Tests pour /compliance/documents."""

    def test_create_computes_status(self, client):
        response = client.post(
            f"{BASE_URL}/documents",
            json=_document_payload(expiration_date=(NOW + timedelta(days=10)).isoformat()),
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["status"] == "EXPIRING_SOON"
        assert data["file_size"] == 2048
        assert data["mime_type"] == "application/pdf"

    def test_create_without_expiration_is_valid(self, client):
        response = client.post(f"{BASE_URL}/documents", json=_document_payload())
        assert response.json()["status"] == "VALID"

    def test_create_missing_file_is_422(self, client):
        response = client.post(f"{BASE_URL}/documents", json={"name": "Licence", "category": "LICENSE"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_create_with_foreign_professional_is_404(self, db_session: Session, client, other_tenant):
        from app.models import Professional

        foreign = Professional(tenant_id=other_tenant.id, name="Dr Voisin")
        db_session.add(foreign)
        db_session.commit()

        response = client.post(f"{BASE_URL}/documents", json=_document_payload(professional_id=foreign.id))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_create_storage_limit(self, db_session: Session, client_for, tenant, plan_free, user_admin,
                                  make_document):
        """Plan gratuit : 1 Go de stockage."""
        db_session.add(Subscription(tenant_id=tenant.id, plan_id=plan_free.id, status=SubscriptionStatus.ACTIVE))
        db_session.commit()
        make_document(name="Archive", file_size=1024 * 1024 * 1024)

        response = client_for(user_admin).post(f"{BASE_URL}/documents", json=_document_payload())

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"]["metric"] == "storage"

    def test_list_and_filter(self, client, make_document):
        make_document(name="Assurance RCP")
        make_document(name="Licence", category=DocumentCategory.LICENSE)

        all_docs = client.get(f"{BASE_URL}/documents").json()
        assert all_docs["total"] == 2

        licenses = client.get(f"{BASE_URL}/documents", params={"category": "LICENSE"}).json()
        assert [d["name"] for d in licenses["items"]] == ["Licence"]

    def test_get_other_tenant_is_404(self, client, other_tenant, make_document):
        foreign = make_document(name="Voisin", tenant_id=other_tenant.id)
        assert client.get(f"{BASE_URL}/documents/{foreign.id}").status_code == status.HTTP_404_NOT_FOUND

    def test_update_expiration_recomputes_status(self, client, make_document):
        document = make_document(expiration_date=NOW + timedelta(days=200))

        response = client.patch(
            f"{BASE_URL}/documents/{document.id}",
            json={"expiration_date": (NOW - timedelta(days=1)).isoformat()},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "EXPIRED"

    def test_update_without_expiration_keeps_status(self, client, make_document):
        document = make_document(status=DocumentStatus.PENDING_RENEWAL, expiration_date=NOW + timedelta(days=5))

        response = client.patch(f"{BASE_URL}/documents/{document.id}", json={"notes": "Relance envoyée"})

        assert response.json()["status"] == "PENDING_RENEWAL"
        assert response.json()["notes"] == "Relance envoyée"

    @pytest.mark.parametrize("field", ["name", "category"])
    def test_update_null_required_field_is_422(self, client, make_document, field):
        """Un null explicite sur une colonne obligatoire est refusé à la validation."""
        document = make_document(name="Assurance RCP")

        response = client.patch(f"{BASE_URL}/documents/{document.id}", json={field: None})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert client.get(f"{BASE_URL}/documents/{document.id}").json()["name"] == "Assurance RCP"

    def test_delete_admin_only(self, client_for, subscription, user_receptionist, user_admin, make_document):
        document = make_document()

        receptionist = client_for(user_receptionist)
        assert receptionist.delete(f"{BASE_URL}/documents/{document.id}").status_code == status.HTTP_403_FORBIDDEN

        admin = client_for(user_admin)
        assert admin.delete(f"{BASE_URL}/documents/{document.id}").status_code == status.HTTP_204_NO_CONTENT
        assert admin.delete(f"{BASE_URL}/documents/{document.id}").status_code == status.HTTP_404_NOT_FOUND

    def test_start_renewal(self, client, make_document):
        document = make_document(status=DocumentStatus.EXPIRING_SOON, expiration_date=NOW + timedelta(days=5))

        response = client.post(f"{BASE_URL}/documents/{document.id}/renewal")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "PENDING_RENEWAL"
        assert data["renewal_started_at"] is not None


class TestComplianceMonitoring:
    """Tests pour /expiring, /dashboard et /update-statuses."""

    def test_expiring(self, client, make_document):
        make_document(name="Bientôt", expiration_date=NOW + timedelta(days=20))
        make_document(name="Lointain", expiration_date=NOW + timedelta(days=90))
        make_document(name="Expiré", expiration_date=NOW - timedelta(days=2), status=DocumentStatus.EXPIRED)

        names = [d["name"] for d in client.get(f"{BASE_URL}/expiring").json()["items"]]
        assert names == ["Expiré", "Bientôt"]

        wide = client.get(f"{BASE_URL}/expiring", params={"days": 120}).json()
        assert wide["total"] == 3

    def test_expiring_days_out_of_range(self, client):
        assert client.get(f"{BASE_URL}/expiring", params={"days": 0}).status_code == \
            status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_dashboard(self, client, make_document):
        make_document(name="Assurance RCP")
        make_document(name="Licence", category=DocumentCategory.LICENSE, status=DocumentStatus.EXPIRED,
                      expiration_date=NOW - timedelta(days=3))

        data = client.get(f"{BASE_URL}/dashboard").json()

        assert data["total_documents"] == 2
        assert data["valid_documents"] == 1
        assert data["expired_documents"] == 1
        assert {row["category"]: row["count"] for row in data["by_category"]} == {"INSURANCE": 1, "LICENSE": 1}
        assert [d["name"] for d in data["upcoming_expirations"]] == ["Licence"]

    def test_update_statuses(self, client, make_document):
        make_document(name="Périmé", expiration_date=NOW - timedelta(days=1), status=DocumentStatus.VALID)
        make_document(name="À jour", expiration_date=NOW + timedelta(days=100), status=DocumentStatus.VALID)

        response = client.post(f"{BASE_URL}/update-statuses")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"updated": 1}
        assert client.post(f"{BASE_URL}/update-statuses").json() == {"updated": 0}

    def test_update_statuses_admin_only(self, client_for, subscription, user_receptionist):
        response = client_for(user_receptionist).post(f"{BASE_URL}/update-statuses")
        assert response.status_code == status.HTTP_403_FORBIDDEN
