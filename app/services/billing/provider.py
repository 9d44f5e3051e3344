"""
Client du fournisseur de paiement (API compatible Stripe).

Le client HTTP est créé une seule fois au démarrage de l'application
(lifespan FastAPI), stocké sur `app.state.billing_client` et fermé à
l'arrêt. Les routes le reçoivent via la dépendance `get_billing_client`.

Les erreurs réseau ou HTTP sont propagées (BillingProviderError) :
aucune relance automatique.

Usage:
    client = create_billing_client()
    customer = client.create_customer(email="contact@clinique.fr", name="Clinique", tenant_id=1)
    session = client.create_checkout_session(customer["id"], "price_123", tenant_id=1, ...)
    client.close()
"""
import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import Request

from app.core.config import settings

logger = logging.getLogger(__name__)


__all__ = [
    "BillingProviderError",
    "BillingProviderClient",
    "create_billing_client",
    "get_billing_client",
]


# =============================================================================
# EXCEPTIONS
# =============================================================================

class BillingProviderError(Exception):
    """Erreur lors d'un appel au fournisseur de paiement."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


# =============================================================================
# CLIENT
# =============================================================================

class BillingProviderClient:
    """
    Client synchrone de l'API de paiement.

    Les requêtes sont encodées en formulaire (convention Stripe :
    `metadata[tenant_id]=1`, `line_items[0][price]=price_...`).
    """

    def __init__(self, http_client: httpx.Client):
        self._http = http_client

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self._http.request(method, path, data=data)
        except httpx.RequestError as e:
            raise BillingProviderError(f"Erreur de connexion au fournisseur de paiement: {str(e)}")

        if response.status_code >= 400:
            error_detail = response.text
            try:
                error = response.json().get("error")
                if isinstance(error, dict):
                    error_detail = error.get("message", response.text)
            except ValueError:
                pass
            logger.error(f"❌ Fournisseur de paiement {method} {path}: {response.status_code} - {error_detail}")
            raise BillingProviderError(
                f"Erreur fournisseur de paiement: {response.status_code} - {error_detail}",
                status_code=response.status_code,
            )

        return response.json()

    # =========================================================================
    # OPÉRATIONS
    # =========================================================================

    def create_customer(self, email: str, name: str, tenant_id: int) -> Dict[str, Any]:
        """Crée le client de facturation d'une clinique."""
        return self._request("POST", "/customers", data={
            "email": email,
            "name": name,
            "metadata[tenant_id]": str(tenant_id),
        })

    def create_checkout_session(
            self,
            customer_id: str,
            price_id: str,
            tenant_id: int,
            success_url: str,
            cancel_url: str,
    ) -> Dict[str, Any]:
        """Crée une session de paiement pour souscrire un plan."""
        return self._request("POST", "/checkout/sessions", data={
            "mode": "subscription",
            "customer": customer_id,
            "line_items[0][price]": price_id,
            "line_items[0][quantity]": "1",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata[tenant_id]": str(tenant_id),
            "subscription_data[metadata][tenant_id]": str(tenant_id),
        })

    def create_billing_portal_session(self, customer_id: str, return_url: str) -> Dict[str, Any]:
        """Crée une session du portail de facturation (moyens de paiement, factures)."""
        return self._request("POST", "/billing_portal/sessions", data={
            "customer": customer_id,
            "return_url": return_url,
        })

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Récupère un abonnement côté fournisseur."""
        return self._request("GET", f"/subscriptions/{subscription_id}")


# =============================================================================
# CYCLE DE VIE
# =============================================================================

def create_billing_client(transport: Optional[httpx.BaseTransport] = None) -> Optional[BillingProviderClient]:
    """
    Construit le client si une clé API est configurée, sinon None.

    Args:
        transport: Transport httpx alternatif (tests : httpx.MockTransport)
    """
    if not settings.billing_configured:
        logger.warning("⚠️ Fournisseur de paiement non configuré (BILLING_API_KEY absent)")
        return None

    http_client = httpx.Client(
        base_url=settings.BILLING_API_BASE_URL,
        auth=(settings.BILLING_API_KEY, ""),
        timeout=settings.BILLING_TIMEOUT_SECONDS,
        transport=transport,
    )
    return BillingProviderClient(http_client)


def get_billing_client(request: Request) -> Optional[BillingProviderClient]:
    """Dépendance FastAPI : client créé au démarrage (None si non configuré)."""
    return getattr(request.app.state, "billing_client", None)
