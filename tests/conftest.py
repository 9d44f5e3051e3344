"""
Fixtures pytest partagées pour les tests DentFlow.

Ce module fournit :
- Une base de données SQLite en mémoire pour les tests (rapide, isolée)
- Une horloge figée (FixedClock) injectée dans les services et les routes
- Des fixtures pour créer des objets de test (Plan, Tenant, Subscription,
  User, Professional, Patient, ComplianceDocument, SuperAdmin)
- Des clients de test avec authentification mockée

IMPORTANT - Multi-tenant:
- Chaque entité métier porte tenant_id
- `other_tenant` sert à vérifier qu'aucune donnée ne franchit la frontière
"""

import os

# Configuration de test AVANT l'import de l'application
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["BILLING_WEBHOOK_SECRET"] = "whsec_test"
os.environ.pop("BILLING_API_KEY", None)

from datetime import date, datetime, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import Callable, Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.v1.platform.super_admin_security import get_current_super_admin  # noqa: E402
from app.core.auth.user_auth import get_current_user  # noqa: E402
from app.core.clock import FixedClock, get_clock  # noqa: E402
from app.database.base import Base  # noqa: E402
from app.database.session import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Appointment,
    AppointmentStatus,
    ComplianceDocument,
    DocumentCategory,
    DocumentStatus,
    Gender,
    Patient,
    PatientTag,
    Plan,
    PlanTier,
    Professional,
    Subscription,
    SubscriptionStatus,
    SuperAdmin,
    Tenant,
    User,
    UserRole,
)

# Instant de référence de tous les tests
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def engine():
    """
    Crée un engine SQLite en mémoire pour les tests.

    Chaque test a sa propre base : les commit() du code testé
    n'ont pas besoin d'être annulés.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,  # Mettre True pour debug SQL
    )

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """Session de test, configurée comme SessionLocal."""
    session = Session(bind=engine, autoflush=False, expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FixedClock:
    """Horloge figée au 15/06/2025 12:00 UTC."""
    return FixedClock(NOW)


# =============================================================================
# MODEL FIXTURES - Plans
# =============================================================================

@pytest.fixture
def plan_free(db_session: Session) -> Plan:
    plan = Plan(
        name="Gratuit",
        tier=PlanTier.FREE,
        price=Decimal("0"),
        max_users=2,
        max_patients=3,
        max_appointments=2,
        max_storage=1,
        features=["agenda"],
    )
    db_session.add(plan)
    db_session.commit()
    return plan


@pytest.fixture
def plan_starter(db_session: Session) -> Plan:
    plan = Plan(
        name="Starter",
        tier=PlanTier.STARTER,
        price=Decimal("49.00"),
        provider_price_id="price_starter",
        max_users=5,
        max_patients=1000,
        max_appointments=1000,
        max_storage=5,
        features=["agenda", "compliance", "reports"],
    )
    db_session.add(plan)
    db_session.commit()
    return plan


# =============================================================================
# MODEL FIXTURES - Tenants et abonnements
# =============================================================================

@pytest.fixture
def tenant(db_session: Session) -> Tenant:
    """Clinique principale des tests."""
    tenant = Tenant(
        name="Cabinet du Sourire",
        subdomain="sourire",
        email="contact@sourire.fr",
        created_at=NOW - timedelta(days=60),
    )
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture
def other_tenant(db_session: Session) -> Tenant:
    """Seconde clinique (isolation multi-tenant)."""
    tenant = Tenant(
        name="Clinique Voisine",
        subdomain="voisine",
        email="contact@voisine.fr",
        created_at=NOW - timedelta(days=3),
    )
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture
def subscription(db_session: Session, tenant: Tenant, plan_starter: Plan) -> Subscription:
    """Abonnement en essai (14 jours restants)."""
    subscription = Subscription(
        tenant_id=tenant.id,
        plan_id=plan_starter.id,
        status=SubscriptionStatus.TRIALING,
        trial_ends_at=NOW + timedelta(days=14),
    )
    db_session.add(subscription)
    db_session.commit()
    return subscription


# =============================================================================
# MODEL FIXTURES - Utilisateurs
# =============================================================================

@pytest.fixture
def user_admin(db_session: Session, tenant: Tenant) -> User:
    user = User(tenant_id=tenant.id, email="admin@sourire.fr", name="Alice Admin", role=UserRole.ADMIN)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def user_receptionist(db_session: Session, tenant: Tenant) -> User:
    user = User(
        tenant_id=tenant.id,
        email="accueil@sourire.fr",
        name="Rémi Accueil",
        role=UserRole.RECEPTIONIST,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def user_other_tenant(db_session: Session, other_tenant: Tenant) -> User:
    user = User(tenant_id=other_tenant.id, email="admin@voisine.fr", name="Victor Voisin", role=UserRole.ADMIN)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def professional(db_session: Session, tenant: Tenant) -> Professional:
    professional = Professional(
        tenant_id=tenant.id,
        name="Dr Claire Dupont",
        license_number="CD-75-0001",
        specialty="Orthodontie",
    )
    db_session.add(professional)
    db_session.commit()
    return professional


@pytest.fixture
def super_admin(db_session: Session) -> SuperAdmin:
    admin = SuperAdmin(email="platform@dentflow.app", name="Équipe DentFlow")
    db_session.add(admin)
    db_session.commit()
    return admin


# =============================================================================
# FACTORIES - Patients, rendez-vous, documents
# =============================================================================

@pytest.fixture
def make_patient(db_session: Session, tenant: Tenant) -> Callable[..., Patient]:
    """
    Factory de patients.

    Usage:
        patient = make_patient(name="Jean", tags=["vip"], birth_date=date(1980, 1, 1))
    """
    def _make(name: str = "Patient Test", tags=(), tenant_id: int = None, **kwargs) -> Patient:
        patient = Patient(
            tenant_id=tenant_id or tenant.id,
            name=name,
            tags=[PatientTag(tag=tag) for tag in tags],
            **kwargs,
        )
        db_session.add(patient)
        db_session.commit()
        return patient

    return _make


@pytest.fixture
def patient(make_patient) -> Patient:
    return make_patient(
        name="Jean Martin",
        birth_date=date(1980, 3, 10),
        gender=Gender.MALE,
        phone="0601020304",
        email="jean.martin@example.fr",
        whatsapp_opt_in=True,
        tags=["orthodontie"],
    )


@pytest.fixture
def make_appointment(db_session: Session, tenant: Tenant) -> Callable[..., Appointment]:
    def _make(patient: Patient, start_time: datetime, status=AppointmentStatus.SCHEDULED, **kwargs) -> Appointment:
        appointment = Appointment(
            tenant_id=kwargs.pop("tenant_id", tenant.id),
            patient_id=patient.id,
            start_time=start_time,
            end_time=start_time + timedelta(minutes=30),
            status=status,
            created_at=kwargs.pop("created_at", NOW),
            **kwargs,
        )
        db_session.add(appointment)
        db_session.commit()
        return appointment

    return _make


@pytest.fixture
def make_document(db_session: Session, tenant: Tenant) -> Callable[..., ComplianceDocument]:
    def _make(
            name: str = "Assurance RCP",
            expiration_date: datetime = None,
            status: DocumentStatus = DocumentStatus.VALID,
            **kwargs,
    ) -> ComplianceDocument:
        document = ComplianceDocument(
            tenant_id=kwargs.pop("tenant_id", tenant.id),
            name=name,
            category=kwargs.pop("category", DocumentCategory.INSURANCE),
            file_url=f"https://files.dentflow.app/{name}.pdf",
            file_name=f"{name}.pdf",
            file_size=kwargs.pop("file_size", 1024),
            mime_type="application/pdf",
            expiration_date=expiration_date,
            status=status,
            uploaded_at=NOW,
            **kwargs,
        )
        db_session.add(document)
        db_session.commit()
        return document

    return _make


# =============================================================================
# CLIENTS DE TEST - Authentification mockée
# =============================================================================

def _override_db(db_session: Session):
    def override_get_db():
        yield db_session
    return override_get_db


@pytest.fixture
def client_for(db_session: Session, clock: FixedClock) -> Generator[Callable[[User], TestClient], None, None]:
    """
    Factory de clients authentifiés en tant qu'un utilisateur donné.

    Usage:
        client = client_for(user_receptionist)
    """
    clients = []

    def _client(user: User) -> TestClient:
        async def override_get_current_user():
            return user

        app.dependency_overrides[get_db] = _override_db(db_session)
        app.dependency_overrides[get_current_user] = override_get_current_user
        app.dependency_overrides[get_clock] = lambda: clock

        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _client

    for test_client in clients:
        test_client.__exit__(None, None, None)
    app.dependency_overrides.clear()


@pytest.fixture
def client(client_for, user_admin: User, subscription: Subscription) -> TestClient:
    """Client authentifié en tant qu'administrateur (clinique en essai)."""
    return client_for(user_admin)


@pytest.fixture
def platform_client(db_session: Session, clock: FixedClock, super_admin: SuperAdmin) -> Generator[TestClient, None, None]:
    """Client authentifié en tant que SuperAdmin."""
    async def override_get_current_super_admin():
        return super_admin

    app.dependency_overrides[get_db] = _override_db(db_session)
    app.dependency_overrides[get_current_super_admin] = override_get_current_super_admin
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def unauthenticated_client(db_session: Session, clock: FixedClock) -> Generator[TestClient, None, None]:
    """Client de test sans authentification (pour tester les 401)."""
    app.dependency_overrides[get_db] = _override_db(db_session)
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# --- Instructions de lancement des tests --- #
"""
Pour lancer les tests :
   pytest tests/test_services/ -v --tb=short
   pytest tests/test_api/ -v --tb=short
   pytest tests/ -v
"""
