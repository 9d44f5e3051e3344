"""
Vérification des webhooks du fournisseur de paiement.

En-tête de signature (convention Stripe) :

    Stripe-Signature: t=1700000000,v1=<hex>

avec v1 = HMAC-SHA256(secret, "{t}.{payload brut}"). Plusieurs v1 peuvent
être présents (rotation de secret) : un seul doit correspondre.
"""
import hashlib
import hmac
import json
from datetime import datetime
from typing import Any, Dict, List, Tuple


class WebhookSignatureError(Exception):
    """Signature de webhook absente, invalide ou périmée."""
    pass


def _parse_signature_header(header: str) -> Tuple[int, List[str]]:
    timestamp = None
    signatures = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise WebhookSignatureError("Horodatage de signature invalide")
        elif key == "v1" and value:
            signatures.append(value)

    if timestamp is None or not signatures:
        raise WebhookSignatureError("En-tête de signature mal formé")
    return timestamp, signatures


def compute_signature(payload: bytes, timestamp: int, secret: str) -> str:
    """Signature attendue pour un payload et un horodatage."""
    signed = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def verify_webhook_signature(
        payload: bytes,
        header: str,
        secret: str,
        tolerance_seconds: int,
        now: datetime,
) -> Dict[str, Any]:
    """
    Vérifie la signature et retourne l'événement décodé.

    Raises:
        WebhookSignatureError: en-tête absent ou mal formé, signature
            invalide, horodatage hors tolérance, payload non JSON
    """
    if not header:
        raise WebhookSignatureError("En-tête de signature manquant")

    timestamp, signatures = _parse_signature_header(header)

    if abs(now.timestamp() - timestamp) > tolerance_seconds:
        raise WebhookSignatureError("Horodatage de signature hors tolérance")

    expected = compute_signature(payload, timestamp, secret)
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise WebhookSignatureError("Signature invalide")

    try:
        return json.loads(payload)
    except ValueError:
        raise WebhookSignatureError("Payload JSON invalide")
