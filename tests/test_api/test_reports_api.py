"""
Tests API pour le module Rapports.

Ce module teste l'endpoint :
- /api/v1/reports/{type} : téléchargement CSV (admin et financier)
"""

import csv
import io
from datetime import timedelta

import pytest
from fastapi import status
from sqlalchemy.orm import Session

from app.models import User, UserRole
from conftest import NOW

BASE_URL = "/api/v1/reports"


def _rows(response):
    return list(csv.reader(io.StringIO(response.content.decode("utf-8"))))


class TestReportsApi:
    """Tests pour GET /reports/{type}."""

    def test_patients_download(self, client, patient):
        response = client.get(f"{BASE_URL}/patients")

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == 'attachment; filename="liste-patients-2025-06-15.csv"'
        assert [row[0] for row in _rows(response)] == ["Nom", "Jean Martin"]

    @pytest.mark.parametrize("report_type,prefix", [
        ("appointments", "historique-rendez-vous-"),
        ("compliance", "conformite-"),
        ("campaigns", "campagnes-"),
    ])
    def test_each_type(self, client, report_type, prefix):
        response = client.get(f"{BASE_URL}/{report_type}")

        assert response.status_code == status.HTTP_200_OK
        assert f'filename="{prefix}' in response.headers["content-disposition"]
        assert len(_rows(response)) == 1

    def test_explicit_period(self, client, patient, make_appointment):
        make_appointment(patient, NOW - timedelta(days=40))
        make_appointment(patient, NOW - timedelta(days=2))

        response = client.get(f"{BASE_URL}/appointments", params={
            "start_date": (NOW - timedelta(days=60)).isoformat(),
            "end_date": (NOW - timedelta(days=30)).isoformat(),
        })

        assert len(_rows(response)) == 2
        assert "2025-04-16-2025-05-16" in response.headers["content-disposition"]

    def test_unknown_type_is_422(self, client):
        assert client.get(f"{BASE_URL}/financial").status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_receptionist_forbidden(self, client_for, subscription, user_receptionist):
        response = client_for(user_receptionist).get(f"{BASE_URL}/patients")
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_financial_allowed(self, db_session: Session, client_for, subscription, tenant):
        accountant = User(tenant_id=tenant.id, email="compta@sourire.fr", name="Comptable", role=UserRole.FINANCIAL)
        db_session.add(accountant)
        db_session.commit()

        assert client_for(accountant).get(f"{BASE_URL}/compliance").status_code == status.HTTP_200_OK

    def test_other_tenant_data_excluded(self, client, other_tenant, make_patient):
        make_patient(name="Voisin", tenant_id=other_tenant.id)
        assert len(_rows(client.get(f"{BASE_URL}/patients"))) == 1
