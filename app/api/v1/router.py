"""
Router principal API v1.

Agrège tous les routers des différents modules métier.

Les routers des modules clinique portent la dépendance
`add_trial_warning_headers` : chaque réponse indique les jours d'essai
restants (X-Trial-Days-Remaining) et une alerte sous le seuil
(X-Trial-Warning).

Usage dans main.py:
    from app.api.v1.router import api_router

    app = FastAPI(title="DentFlow API")
    app.include_router(api_router)
"""
from fastapi import APIRouter, Depends

from app.core.config import settings

from .appointment import router as appointment_router
from .billing import router as billing_router
from .campaign import campaign_router, segment_router
from .compliance import router as compliance_router
from .patient import router as patient_router
from .platform import router as platform_router
from .report import router as report_router
from .subscription import router as subscription_router
from .subscription.guards import add_trial_warning_headers


# =============================================================================
# ROUTER PRINCIPAL
# =============================================================================

api_router = APIRouter(prefix="/api/v1")

# Modules clinique (MULTI-TENANT)
tenant_routers = [
    patient_router,
    appointment_router,
    compliance_router,
    subscription_router,
    segment_router,
    campaign_router,
    report_router,
]
for tenant_router in tenant_routers:
    api_router.include_router(tenant_router, dependencies=[Depends(add_trial_warning_headers)])

# Webhooks du fournisseur de paiement (signature, pas d'utilisateur)
api_router.include_router(billing_router)

# Back-office plateforme (SuperAdmin)
api_router.include_router(platform_router)


# =============================================================================
# HEALTH CHECK
# =============================================================================

@api_router.get(
    "/health",
    tags=["System"],
    summary="Health check",
    description="Vérifie que l'API est opérationnelle.",
)
async def health_check():
    """
    Endpoint de santé pour les load balancers et le monitoring.

    Returns:
        Statut de l'API
    """
    return {
        "status": "healthy",
        "service": "dentflow-api",
        "version": settings.APP_VERSION,
        "api_version": "v1",
    }
