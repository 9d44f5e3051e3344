"""
DentFlow - Application principale FastAPI
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import api_router
from app.core.config import settings
from app.services.billing.provider import create_billing_client

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Client du fournisseur de paiement : créé au démarrage, fermé à l'arrêt."""
    app.state.billing_client = create_billing_client()
    if app.state.billing_client is None:
        logger.warning("⚠️ BILLING_API_KEY absente : paiement et portail désactivés")
    else:
        logger.info("💳 Client du fournisseur de paiement initialisé")

    yield

    if app.state.billing_client is not None:
        app.state.billing_client.close()
        logger.info("Client du fournisseur de paiement fermé")


# Créer l'application FastAPI
app = FastAPI(
    title=settings.APP_NAME,
    description="Plateforme de gestion de cabinets dentaires (multi-cliniques)",
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

# Configuration CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Trial-Days-Remaining", "X-Trial-Warning"],
)

# Inclure les routes API v1
app.include_router(api_router)


@app.get("/")
async def root():
    """Page d'accueil - Health check"""
    return {
        "app": settings.APP_NAME,
        "status": "running",
        "environment": settings.ENVIRONMENT,
    }
