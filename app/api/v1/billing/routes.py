"""
Routes FastAPI pour les webhooks du fournisseur de paiement.

Pas d'authentification utilisateur : la requête est authentifiée par
sa signature (en-tête Stripe-Signature, secret BILLING_WEBHOOK_SECRET).
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.api.v1.billing.services import BillingWebhookService
from app.core.clock import Clock, get_clock
from app.core.config import settings
from app.database.session import get_db
from app.services.billing.provider import BillingProviderClient, BillingProviderError, get_billing_client
from app.services.billing.webhooks import WebhookSignatureError, verify_webhook_signature

router = APIRouter(prefix="/billing", tags=["Facturation"])


@router.post("/webhook")
async def billing_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    billing: Optional[BillingProviderClient] = Depends(get_billing_client),
    clock: Clock = Depends(get_clock),
):
    """
    Reçoit un événement du fournisseur de paiement.

    - 400 : signature absente ou invalide
    - 502 : échec d'un appel de synchronisation vers le fournisseur
    - 503 : secret de webhook non configuré
    """
    if not settings.BILLING_WEBHOOK_SECRET:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Secret de webhook non configuré",
        )

    payload = await request.body()

    try:
        event = verify_webhook_signature(
            payload,
            stripe_signature or "",
            secret=settings.BILLING_WEBHOOK_SECRET,
            tolerance_seconds=settings.BILLING_WEBHOOK_TOLERANCE_SECONDS,
            now=clock.now(),
        )
    except WebhookSignatureError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        handled = BillingWebhookService(db, billing=billing, clock=clock).handle_event(event)
    except BillingProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return {"received": True, "handled": handled}
