"""
Gardes d'abonnement (dépendances FastAPI).

- require_active_subscription : 402 si l'abonnement n'est pas actif
- require_usage_limit(metric) : 403 si la limite du plan est atteinte
- add_trial_warning_headers : en-têtes X-Trial-Days-Remaining / X-Trial-Warning

Usage:
    @router.post(
        "",
        dependencies=[
            Depends(require_active_subscription),
            Depends(require_usage_limit(UsageMetric.PATIENTS)),
        ],
    )
    def create_patient(...):
        ...
"""
from fastapi import Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.v1.subscription.services import SubscriptionNotFoundError, SubscriptionService
from app.api.v1.user.tenant_users_security import get_current_tenant_id
from app.core.clock import Clock, get_clock
from app.core.config import settings
from app.database.session import get_db
from app.models.enums import UsageMetric

USAGE_LIMIT_MESSAGES = {
    UsageMetric.USERS: "Limite d'utilisateurs du plan atteinte",
    UsageMetric.PATIENTS: "Limite de patients du plan atteinte",
    UsageMetric.APPOINTMENTS: "Limite mensuelle de rendez-vous du plan atteinte",
    UsageMetric.STORAGE: "Quota de stockage du plan atteint",
}


def _inactive_subscription() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_402_PAYMENT_REQUIRED,
        detail={
            "code": "SUBSCRIPTION_INACTIVE",
            "message": "Votre abonnement est inactif. Veuillez mettre à jour votre moyen de paiement.",
        },
    )


def require_active_subscription(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),
    clock: Clock = Depends(get_clock),
) -> None:
    """Refuse la requête (402) si l'abonnement de la clinique n'est pas actif."""
    if not SubscriptionService(db, tenant_id, clock=clock).is_subscription_active():
        raise _inactive_subscription()


def require_usage_limit(metric: UsageMetric):
    """
    Factory de dépendance vérifiant la limite du plan pour `metric`.

    Raises:
        HTTPException 402: pas d'abonnement
        HTTPException 403: limite atteinte (current >= limit)
    """
    def usage_checker(
        db: Session = Depends(get_db),
        tenant_id: int = Depends(get_current_tenant_id),
        clock: Clock = Depends(get_clock),
    ) -> None:
        try:
            result = SubscriptionService(db, tenant_id, clock=clock).check_usage_limit(metric)
        except SubscriptionNotFoundError:
            raise _inactive_subscription()

        if not result.allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "USAGE_LIMIT_EXCEEDED",
                    "message": USAGE_LIMIT_MESSAGES[metric],
                    "metric": metric.value,
                    "current": result.current,
                    "limit": result.limit,
                },
            )

    return usage_checker


def add_trial_warning_headers(
    response: Response,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(get_current_tenant_id),
    clock: Clock = Depends(get_clock),
) -> None:
    """Ajoute les jours d'essai restants aux réponses (alerte sous le seuil)."""
    days = SubscriptionService(db, tenant_id, clock=clock).get_trial_days_remaining()
    if days is None:
        return

    response.headers["X-Trial-Days-Remaining"] = str(days)
    if days <= settings.TRIAL_WARNING_DAYS:
        response.headers["X-Trial-Warning"] = "true"
