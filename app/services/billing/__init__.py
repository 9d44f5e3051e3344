"""
Intégration avec le fournisseur de paiement : client HTTP et
vérification de signature des webhooks.
"""
from app.services.billing.provider import (
    BillingProviderClient,
    BillingProviderError,
    create_billing_client,
    get_billing_client,
)
from app.services.billing.webhooks import WebhookSignatureError, verify_webhook_signature

__all__ = [
    "BillingProviderClient",
    "BillingProviderError",
    "create_billing_client",
    "get_billing_client",
    "WebhookSignatureError",
    "verify_webhook_signature",
]
