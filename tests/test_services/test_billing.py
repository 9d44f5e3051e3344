"""
Tests unitaires pour l'intégration du fournisseur de paiement.

Couvre :
- La vérification de signature des webhooks (valide, invalide, périmée, rotation)
- Le client HTTP (httpx.MockTransport, pas d'appel réseau)
- La réconciliation de chaque type d'événement
- Le passage au paiement (checkout) et le portail de facturation
"""

import json
from datetime import timedelta
from decimal import Decimal
from urllib.parse import parse_qs

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.v1.billing.services import BillingWebhookService
from app.api.v1.subscription.services import (
    BillingCustomerMissingError,
    PlanNotFoundError,
    SubscriptionService,
)
from app.core.config import settings
from app.models import Invoice, InvoiceStatus, SubscriptionStatus
from app.services.billing.provider import BillingProviderClient, BillingProviderError, create_billing_client
from app.services.billing.webhooks import WebhookSignatureError, compute_signature, verify_webhook_signature
from conftest import NOW

SECRET = "whsec_test"


def sign(payload: bytes, timestamp: int = None, secret: str = SECRET) -> str:
    timestamp = int(NOW.timestamp()) if timestamp is None else timestamp
    return f"t={timestamp},v1={compute_signature(payload, timestamp, secret)}"


class RecordingProvider:
    """Faux fournisseur : enregistre les requêtes et renvoie des réponses prédéfinies."""

    def __init__(self, responses=None):
        self.requests = []
        self.responses = responses or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        status_code, body = self.responses.get(key, (404, {"error": {"message": "not found"}}))
        return httpx.Response(status_code, json=body)

    def form(self, index: int) -> dict:
        return {k: v[0] for k, v in parse_qs(self.requests[index].content.decode()).items()}


@pytest.fixture
def make_billing_client(monkeypatch):
    """Factory de clients de paiement branchés sur un RecordingProvider."""
    monkeypatch.setattr(settings, "BILLING_API_KEY", "sk_test_123")
    clients = []

    def _make(provider: RecordingProvider) -> BillingProviderClient:
        client = create_billing_client(transport=httpx.MockTransport(provider))
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close()


# =============================================================================
# SIGNATURE
# =============================================================================

class TestWebhookSignature:
    """Tests pour verify_webhook_signature()."""

    payload = json.dumps({"id": "evt_1", "type": "invoice.paid"}).encode()

    def _verify(self, header: str, payload: bytes = None):
        return verify_webhook_signature(
            payload if payload is not None else self.payload,
            header,
            secret=SECRET,
            tolerance_seconds=300,
            now=NOW,
        )

    def test_valid_signature(self):
        event = self._verify(sign(self.payload))
        assert event["id"] == "evt_1"

    def test_tampered_payload(self):
        header = sign(self.payload)
        with pytest.raises(WebhookSignatureError):
            self._verify(header, payload=self.payload + b" ")

    def test_wrong_secret(self):
        with pytest.raises(WebhookSignatureError):
            self._verify(sign(self.payload, secret="whsec_autre"))

    def test_stale_timestamp(self):
        old = int((NOW - timedelta(seconds=301)).timestamp())
        with pytest.raises(WebhookSignatureError, match="tolérance"):
            self._verify(sign(self.payload, timestamp=old))

    def test_timestamp_within_tolerance(self):
        recent = int((NOW - timedelta(seconds=299)).timestamp())
        assert self._verify(sign(self.payload, timestamp=recent))["type"] == "invoice.paid"

    def test_rotated_secrets(self):
        """Un seul des v1 présents doit correspondre."""
        timestamp = int(NOW.timestamp())
        header = (
            f"t={timestamp},"
            f"v1={compute_signature(self.payload, timestamp, 'whsec_ancien')},"
            f"v1={compute_signature(self.payload, timestamp, SECRET)}"
        )
        assert self._verify(header)["id"] == "evt_1"

    @pytest.mark.parametrize("header", ["", "v1=abc", "t=abc,v1=abc", "t=123"])
    def test_malformed_header(self, header):
        with pytest.raises(WebhookSignatureError):
            self._verify(header)

    def test_invalid_json(self):
        payload = b"pas du json"
        with pytest.raises(WebhookSignatureError, match="JSON"):
            self._verify(sign(payload), payload=payload)


# =============================================================================
# CLIENT HTTP
# =============================================================================

class TestBillingProviderClient:
    """Tests pour BillingProviderClient."""

    def test_not_configured_returns_none(self, monkeypatch):
        monkeypatch.setattr(settings, "BILLING_API_KEY", None)
        assert create_billing_client() is None

    def test_create_customer_form_encoding(self, make_billing_client):
        provider = RecordingProvider({("POST", "/v1/customers"): (200, {"id": "cus_1"})})
        client = make_billing_client(provider)

        customer = client.create_customer(email="contact@sourire.fr", name="Cabinet du Sourire", tenant_id=7)

        assert customer == {"id": "cus_1"}
        request = provider.requests[0]
        assert request.headers["Authorization"].startswith("Basic ")
        assert provider.form(0) == {
            "email": "contact@sourire.fr",
            "name": "Cabinet du Sourire",
            "metadata[tenant_id]": "7",
        }

    def test_http_error_raises(self, make_billing_client):
        provider = RecordingProvider({
            ("GET", "/v1/subscriptions/sub_x"): (404, {"error": {"message": "No such subscription"}}),
        })
        client = make_billing_client(provider)

        with pytest.raises(BillingProviderError) as exc_info:
            client.retrieve_subscription("sub_x")

        assert exc_info.value.status_code == 404
        assert "No such subscription" in str(exc_info.value)

    def test_connection_error_raises(self, make_billing_client):
        def handler(request):
            raise httpx.ConnectError("connexion refusée", request=request)

        client = make_billing_client(handler)

        with pytest.raises(BillingProviderError) as exc_info:
            client.create_billing_portal_session("cus_1", return_url="http://localhost:3000")
        assert exc_info.value.status_code is None


# =============================================================================
# CHECKOUT / PORTAIL
# =============================================================================

class TestCheckout:
    """Tests pour create_checkout_session() et create_billing_portal_session()."""

    def test_checkout_creates_customer_once(
            self, db_session: Session, tenant, subscription, plan_starter, clock, make_billing_client
    ):
        provider = RecordingProvider({
            ("POST", "/v1/customers"): (200, {"id": "cus_1"}),
            ("POST", "/v1/checkout/sessions"): (200, {"id": "cs_1", "url": "https://pay.example/cs_1"}),
        })
        billing = make_billing_client(provider)
        service = SubscriptionService(db_session, tenant.id, clock=clock)

        assert service.create_checkout_session(plan_starter.id, billing) == "https://pay.example/cs_1"
        assert subscription.provider_customer_id == "cus_1"

        service.create_checkout_session(plan_starter.id, billing)
        paths = [r.url.path for r in provider.requests]
        assert paths == ["/v1/customers", "/v1/checkout/sessions", "/v1/checkout/sessions"]

        checkout = provider.form(1)
        assert checkout["customer"] == "cus_1"
        assert checkout["line_items[0][price]"] == "price_starter"
        assert checkout["metadata[tenant_id]"] == str(tenant.id)
        assert checkout["mode"] == "subscription"

    def test_checkout_plan_without_price(
            self, db_session: Session, tenant, subscription, plan_free, clock, make_billing_client
    ):
        billing = make_billing_client(RecordingProvider())
        with pytest.raises(PlanNotFoundError):
            SubscriptionService(db_session, tenant.id, clock=clock).create_checkout_session(plan_free.id, billing)

    def test_portal_requires_customer(self, db_session: Session, tenant, subscription, clock, make_billing_client):
        billing = make_billing_client(RecordingProvider())
        with pytest.raises(BillingCustomerMissingError):
            SubscriptionService(db_session, tenant.id, clock=clock).create_billing_portal_session(billing)

    def test_portal_url(self, db_session: Session, tenant, subscription, clock, make_billing_client):
        subscription.provider_customer_id = "cus_1"
        db_session.commit()
        provider = RecordingProvider({
            ("POST", "/v1/billing_portal/sessions"): (200, {"url": "https://billing.example/p_1"}),
        })

        url = SubscriptionService(db_session, tenant.id, clock=clock).create_billing_portal_session(
            make_billing_client(provider)
        )

        assert url == "https://billing.example/p_1"
        assert provider.form(0)["customer"] == "cus_1"


# =============================================================================
# ÉVÉNEMENTS
# =============================================================================

def _event(event_type: str, obj: dict) -> dict:
    return {"id": "evt_test", "type": event_type, "data": {"object": obj}}


def _provider_subscription(price_id: str = "price_starter", status: str = "active") -> dict:
    return {
        "id": "sub_1",
        "status": status,
        "items": {"data": [{"price": {"id": price_id}}]},
        "current_period_start": int(NOW.timestamp()),
        "current_period_end": int((NOW + timedelta(days=30)).timestamp()),
    }


class TestBillingWebhookService:
    """Tests pour BillingWebhookService.handle_event()."""

    def test_checkout_completed_activates(
            self, db_session: Session, tenant, subscription, plan_starter, plan_free, clock, make_billing_client
    ):
        subscription.plan_id = plan_free.id
        db_session.commit()

        provider = RecordingProvider({("GET", "/v1/subscriptions/sub_1"): (200, _provider_subscription())})
        service = BillingWebhookService(db_session, billing=make_billing_client(provider), clock=clock)

        handled = service.handle_event(_event("checkout.session.completed", {
            "subscription": "sub_1",
            "customer": "cus_1",
            "metadata": {"tenant_id": str(tenant.id)},
        }))

        assert handled is True
        db_session.refresh(subscription)
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.provider_subscription_id == "sub_1"
        assert subscription.provider_customer_id == "cus_1"
        assert subscription.trial_ends_at is None
        assert subscription.plan_id == plan_starter.id
        assert subscription.current_period_end is not None

    def test_checkout_completed_without_client(self, db_session: Session, tenant, subscription, clock):
        handled = BillingWebhookService(db_session, clock=clock).handle_event(
            _event("checkout.session.completed", {
                "subscription": {"id": "sub_1"},
                "metadata": {"tenant_id": str(tenant.id)},
            })
        )

        assert handled is True
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.provider_subscription_id == "sub_1"

    def test_checkout_unknown_tenant_ignored(self, db_session: Session, tenant, subscription, clock):
        handled = BillingWebhookService(db_session, clock=clock).handle_event(
            _event("checkout.session.completed", {"subscription": "sub_1", "metadata": {"tenant_id": "9999"}})
        )

        assert handled is False
        assert subscription.status == SubscriptionStatus.TRIALING

    @pytest.mark.parametrize("provider_status,expected", [
        ("past_due", SubscriptionStatus.PAST_DUE),
        ("canceled", SubscriptionStatus.CANCELLED),
        ("active", SubscriptionStatus.ACTIVE),
        ("incomplete", SubscriptionStatus.ACTIVE),
    ])
    def test_subscription_updated_maps_status(
            self, db_session: Session, tenant, subscription, clock, provider_status, expected
    ):
        subscription.provider_subscription_id = "sub_1"
        db_session.commit()

        handled = BillingWebhookService(db_session, clock=clock).handle_event(
            _event("customer.subscription.updated", _provider_subscription(status=provider_status))
        )

        assert handled is True
        assert subscription.status == expected

    def test_subscription_deleted(self, db_session: Session, tenant, subscription, clock):
        subscription.provider_subscription_id = "sub_1"
        db_session.commit()

        BillingWebhookService(db_session, clock=clock).handle_event(
            _event("customer.subscription.deleted", {"id": "sub_1"})
        )

        assert subscription.status == SubscriptionStatus.CANCELLED
        assert subscription.cancelled_at == NOW

    def test_invoice_paid_creates_then_updates(self, db_session: Session, tenant, subscription, clock):
        subscription.provider_subscription_id = "sub_1"
        db_session.commit()
        service = BillingWebhookService(db_session, clock=clock)

        invoice_obj = {
            "id": "in_1",
            "subscription": "sub_1",
            "amount_paid": 4900,
            "invoice_pdf": "https://pay.example/in_1.pdf",
        }
        assert service.handle_event(_event("invoice.paid", invoice_obj)) is True
        assert service.handle_event(_event("invoice.paid", invoice_obj)) is True

        invoices = db_session.execute(select(Invoice)).scalars().all()
        assert len(invoices) == 1
        assert invoices[0].amount == Decimal("49.00")
        assert invoices[0].status == InvoiceStatus.PAID
        assert invoices[0].subscription_id == subscription.id

    def test_invoice_payment_failed(self, db_session: Session, tenant, subscription, clock):
        subscription.provider_subscription_id = "sub_1"
        subscription.status = SubscriptionStatus.ACTIVE
        db_session.commit()

        BillingWebhookService(db_session, clock=clock).handle_event(
            _event("invoice.payment_failed", {"id": "in_2", "subscription": "sub_1"})
        )

        assert subscription.status == SubscriptionStatus.PAST_DUE

    def test_unknown_event_ignored(self, db_session: Session, clock):
        assert BillingWebhookService(db_session, clock=clock).handle_event(
            _event("customer.created", {"id": "cus_1"})
        ) is False

    def test_provider_error_propagates(
            self, db_session: Session, tenant, subscription, clock, make_billing_client
    ):
        service = BillingWebhookService(db_session, billing=make_billing_client(RecordingProvider()), clock=clock)

        with pytest.raises(BillingProviderError):
            service.handle_event(_event("checkout.session.completed", {
                "subscription": "sub_1",
                "metadata": {"tenant_id": str(tenant.id)},
            }))
