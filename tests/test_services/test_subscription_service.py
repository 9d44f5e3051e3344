"""
Tests unitaires pour le service d'abonnement.

Couvre :
- L'expiration paresseuse des essais (persistée à la lecture)
- Les jours d'essai restants (arrondi supérieur)
- Les limites du plan (current < limit) pour chaque métrique
- Les relevés de consommation mensuels (upsert)
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.v1.subscription.services import SubscriptionNotFoundError, SubscriptionService
from app.models import (
    AppointmentStatus,
    Invoice,
    InvoiceStatus,
    SubscriptionStatus,
    UsageMetric,
    UsageRecord,
    User,
    UserRole,
)
from conftest import NOW


@pytest.fixture
def free_subscription(db_session: Session, tenant, plan_free):
    """Abonnement ACTIVE sur le plan gratuit (limites basses)."""
    from app.models import Subscription

    subscription = Subscription(tenant_id=tenant.id, plan_id=plan_free.id, status=SubscriptionStatus.ACTIVE)
    db_session.add(subscription)
    db_session.commit()
    return subscription


class TestSubscriptionStatus:
    """Tests pour le statut et l'expiration paresseuse."""

    def test_no_subscription(self, db_session: Session, tenant, clock):
        service = SubscriptionService(db_session, tenant.id, clock=clock)

        assert service.get_subscription() is None
        assert service.is_subscription_active() is False
        assert service.get_trial_days_remaining() is None

    def test_trialing_is_active(self, db_session: Session, tenant, subscription, clock):
        service = SubscriptionService(db_session, tenant.id, clock=clock)

        assert service.is_subscription_active() is True
        assert service.get_subscription().status == SubscriptionStatus.TRIALING

    def test_trial_end_expires_on_read(self, db_session: Session, tenant, subscription, clock):
        """Un essai terminé est persisté en EXPIRED à la lecture."""
        clock.advance(days=14, seconds=1)
        service = SubscriptionService(db_session, tenant.id, clock=clock)

        assert service.get_subscription().status == SubscriptionStatus.EXPIRED
        assert service.is_subscription_active() is False

        db_session.expire_all()
        assert db_session.get(type(subscription), subscription.id).status == SubscriptionStatus.EXPIRED

    def test_trial_end_exact_instant_not_expired(self, db_session: Session, tenant, subscription, clock):
        """À l'instant exact de fin d'essai : plus actif, pas encore EXPIRED."""
        clock.advance(days=14)
        service = SubscriptionService(db_session, tenant.id, clock=clock)

        assert service.get_subscription().status == SubscriptionStatus.TRIALING
        assert service.is_subscription_active() is False

    def test_trialing_without_end_is_active(self, db_session: Session, tenant, subscription, clock):
        subscription.trial_ends_at = None
        db_session.commit()

        assert SubscriptionService(db_session, tenant.id, clock=clock).is_subscription_active() is True

    @pytest.mark.parametrize("status,active", [
        (SubscriptionStatus.ACTIVE, True),
        (SubscriptionStatus.PAST_DUE, False),
        (SubscriptionStatus.CANCELLED, False),
        (SubscriptionStatus.EXPIRED, False),
    ])
    def test_status_activity(self, db_session: Session, tenant, subscription, clock, status, active):
        subscription.status = status
        db_session.commit()

        assert SubscriptionService(db_session, tenant.id, clock=clock).is_subscription_active() is active


class TestTrialDaysRemaining:
    """Tests pour get_trial_days_remaining()."""

    def test_full_trial(self, db_session: Session, tenant, subscription, clock):
        assert SubscriptionService(db_session, tenant.id, clock=clock).get_trial_days_remaining() == 14

    def test_rounds_up(self, db_session: Session, tenant, subscription, clock):
        clock.advance(days=11, hours=12)
        assert SubscriptionService(db_session, tenant.id, clock=clock).get_trial_days_remaining() == 3

    def test_never_negative(self, db_session: Session, tenant, subscription, clock):
        """Lecture brute : pas de transition, mais jamais de valeur négative."""
        clock.advance(days=20)
        assert SubscriptionService(db_session, tenant.id, clock=clock).get_trial_days_remaining() == 0

    def test_not_trialing(self, db_session: Session, tenant, subscription, clock):
        subscription.status = SubscriptionStatus.ACTIVE
        db_session.commit()
        assert SubscriptionService(db_session, tenant.id, clock=clock).get_trial_days_remaining() is None


class TestUsageLimits:
    """Tests pour check_usage_limit() et get_usage_metrics()."""

    def test_without_subscription_raises(self, db_session: Session, tenant, clock):
        with pytest.raises(SubscriptionNotFoundError):
            SubscriptionService(db_session, tenant.id, clock=clock).check_usage_limit(UsageMetric.PATIENTS)

    def test_patients_limit_is_strict(self, db_session: Session, tenant, free_subscription, clock, make_patient):
        service = SubscriptionService(db_session, tenant.id, clock=clock)

        make_patient(name="A")
        make_patient(name="B")
        result = service.check_usage_limit(UsageMetric.PATIENTS)
        assert (result.allowed, result.current, result.limit) == (True, 2, 3)

        make_patient(name="C")
        result = service.check_usage_limit(UsageMetric.PATIENTS)
        assert (result.allowed, result.current, result.limit) == (False, 3, 3)

    def test_archived_patients_not_counted(self, db_session: Session, tenant, free_subscription, clock, make_patient):
        for name in ("A", "B", "C"):
            make_patient(name=name)
        make_patient(name="Archivé", is_active=False)

        result = SubscriptionService(db_session, tenant.id, clock=clock).check_usage_limit(UsageMetric.PATIENTS)
        assert result.current == 3

    def test_other_tenant_not_counted(
            self, db_session: Session, tenant, other_tenant, free_subscription, clock, make_patient
    ):
        for name in ("A", "B", "C"):
            make_patient(name=name, tenant_id=other_tenant.id)

        result = SubscriptionService(db_session, tenant.id, clock=clock).check_usage_limit(UsageMetric.PATIENTS)
        assert result.allowed is True
        assert result.current == 0

    def test_users_only_active(self, db_session: Session, tenant, free_subscription, user_admin, clock):
        db_session.add(User(
            tenant_id=tenant.id, email="ancien@sourire.fr", name="Ancien", role=UserRole.ASSISTANT, is_active=False,
        ))
        db_session.commit()

        result = SubscriptionService(db_session, tenant.id, clock=clock).check_usage_limit(UsageMetric.USERS)
        assert (result.current, result.limit, result.allowed) == (1, 2, True)

    def test_appointments_current_month_only(
            self, db_session: Session, tenant, free_subscription, clock, patient, make_appointment
    ):
        """Seuls les rendez-vous créés dans le mois calendaire courant comptent."""
        make_appointment(patient, NOW + timedelta(days=1), created_at=NOW - timedelta(days=20))
        make_appointment(patient, NOW + timedelta(days=2), created_at=NOW.replace(day=1))
        make_appointment(patient, NOW + timedelta(days=3), status=AppointmentStatus.CANCELLED)

        result = SubscriptionService(db_session, tenant.id, clock=clock).check_usage_limit(UsageMetric.APPOINTMENTS)
        assert (result.current, result.limit, result.allowed) == (2, 2, False)

    def test_storage_in_mb_truncated(self, db_session: Session, tenant, free_subscription, clock, make_document):
        """Stockage : octets → Mo (division entière), plafond Go → Mo."""
        make_document(name="scan", file_size=3 * 1024 * 1024 - 1)

        result = SubscriptionService(db_session, tenant.id, clock=clock).check_usage_limit(UsageMetric.STORAGE)
        assert (result.current, result.limit, result.allowed) == (2, 1024, True)

    def test_storage_limit_reached(self, db_session: Session, tenant, free_subscription, clock, make_document):
        make_document(name="archives", file_size=1024 * 1024 * 1024)

        result = SubscriptionService(db_session, tenant.id, clock=clock).check_usage_limit(UsageMetric.STORAGE)
        assert (result.current, result.allowed) == (1024, False)

    def test_usage_metrics(self, db_session: Session, tenant, subscription, user_admin, clock, patient):
        metrics = SubscriptionService(db_session, tenant.id, clock=clock).get_usage_metrics()

        assert metrics == {
            "users": {"current": 1, "limit": 5},
            "patients": {"current": 1, "limit": 1000},
            "appointments": {"current": 0, "limit": 1000},
            "storage": {"current": 0, "limit": 5 * 1024},
        }

    def test_limits_ignore_subscription_status(self, db_session: Session, tenant, subscription, clock):
        """La vérification de limite lit l'abonnement sans le faire expirer."""
        clock.advance(days=30)
        service = SubscriptionService(db_session, tenant.id, clock=clock)

        assert service.check_usage_limit(UsageMetric.PATIENTS).allowed is True
        assert subscription.status == SubscriptionStatus.TRIALING


class TestUsageRecords:
    """Tests pour record_usage() et snapshot_usage()."""

    def test_record_usage_upsert(self, db_session: Session, tenant, subscription, clock):
        service = SubscriptionService(db_session, tenant.id, clock=clock)

        first = service.record_usage(UsageMetric.PATIENTS, 10)
        second = service.record_usage(UsageMetric.PATIENTS, 12)

        assert first.id == second.id
        assert second.value == 12
        records = db_session.execute(select(UsageRecord)).scalars().all()
        assert len(records) == 1

    def test_new_month_new_record(self, db_session: Session, tenant, subscription, clock):
        service = SubscriptionService(db_session, tenant.id, clock=clock)

        service.record_usage(UsageMetric.PATIENTS, 10)
        clock.advance(days=20)
        service.record_usage(UsageMetric.PATIENTS, 11)

        records = db_session.execute(select(UsageRecord).order_by(UsageRecord.id)).scalars().all()
        assert [r.value for r in records] == [10, 11]
        assert records[1].period_start.month == 7

    def test_snapshot_all_metrics(self, db_session: Session, tenant, subscription, clock, patient):
        records = SubscriptionService(db_session, tenant.id, clock=clock).snapshot_usage()

        assert {r.metric: r.value for r in records} == {
            UsageMetric.USERS: 0,
            UsageMetric.PATIENTS: 1,
            UsageMetric.APPOINTMENTS: 0,
            UsageMetric.STORAGE: 0,
        }
        assert all(r.tenant_id == tenant.id for r in records)


class TestPlansAndInvoices:
    """Tests pour le catalogue et les factures."""

    def test_list_plans_by_price(self, db_session: Session, tenant, plan_starter, plan_free, clock):
        plans = SubscriptionService(db_session, tenant.id, clock=clock).list_plans()
        assert [p.name for p in plans] == ["Gratuit", "Starter"]

    def test_list_plans_excludes_inactive(self, db_session: Session, tenant, plan_starter, plan_free, clock):
        plan_free.is_active = False
        db_session.commit()

        plans = SubscriptionService(db_session, tenant.id, clock=clock).list_plans()
        assert [p.name for p in plans] == ["Starter"]

    def test_invoices_scoped_by_tenant(
            self, db_session: Session, tenant, other_tenant, subscription, plan_starter, clock
    ):
        from app.models import Subscription

        other_subscription = Subscription(
            tenant_id=other_tenant.id, plan_id=plan_starter.id, status=SubscriptionStatus.ACTIVE,
        )
        db_session.add(other_subscription)
        db_session.commit()

        db_session.add_all([
            Invoice(subscription_id=subscription.id, provider_invoice_id="in_1",
                    amount=Decimal("49.00"), status=InvoiceStatus.PAID),
            Invoice(subscription_id=other_subscription.id, provider_invoice_id="in_2",
                    amount=Decimal("49.00"), status=InvoiceStatus.OPEN),
        ])
        db_session.commit()

        invoices = SubscriptionService(db_session, tenant.id, clock=clock).list_invoices()
        assert [i.provider_invoice_id for i in invoices] == ["in_1"]
