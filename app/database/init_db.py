"""
Initialisation de la base de données DentFlow (Multi-tenant)
Crée les tables, le catalogue des plans, une clinique de démonstration
(en essai) avec son administrateur, et le compte super-admin de la plateforme.
"""

import logging
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.database.base_class import Base
from app.database.session import engine, db_session, check_database_connection
# =============================================================================
# IMPORTS DES MODÈLES (via le module centralisé)
# =============================================================================
from app.models import (
    BillingPeriod,
    Plan,
    PlanTier,
    Subscription,
    SubscriptionStatus,
    SuperAdmin,
    Tenant,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CATALOGUE INITIAL
# =============================================================================

INITIAL_PLANS = [
    {
        "name": "Gratuit",
        "tier": PlanTier.FREE,
        "price": Decimal("0"),
        "max_users": 2,
        "max_patients": 100,
        "max_appointments": 200,
        "max_storage": 1,
        "features": ["agenda", "patients"],
    },
    {
        "name": "Starter",
        "tier": PlanTier.STARTER,
        "price": Decimal("49.00"),
        "max_users": 5,
        "max_patients": 1000,
        "max_appointments": 1000,
        "max_storage": 5,
        "features": ["agenda", "patients", "compliance", "reports"],
    },
    {
        "name": "Professionnel",
        "tier": PlanTier.PROFESSIONAL,
        "price": Decimal("99.00"),
        "max_users": 15,
        "max_patients": 5000,
        "max_appointments": 5000,
        "max_storage": 20,
        "features": ["agenda", "patients", "compliance", "reports", "campaigns"],
    },
    {
        "name": "Entreprise",
        "tier": PlanTier.ENTERPRISE,
        "price": Decimal("2990.00"),
        "billing_period": BillingPeriod.YEARLY,
        "max_users": 100,
        "max_patients": 50000,
        "max_appointments": 50000,
        "max_storage": 100,
        "features": ["agenda", "patients", "compliance", "reports", "campaigns", "multi_site"],
    },
]


# =============================================================================
# 1. CRÉATION DES TABLES
# =============================================================================

def create_all_tables() -> bool:
    """
    Crée toutes les tables de la base de données.

    Utilise les métadonnées de Base qui contiennent tous les modèles
    importés via app/database/base.py

    Returns:
        True si succès, False sinon
    """
    try:
        logger.info("📦 Création des tables...")
        Base.metadata.create_all(bind=engine)

        table_names = list(Base.metadata.tables.keys())
        logger.info(f"✅ {len(table_names)} tables créées : {', '.join(sorted(table_names))}")

        return True
    except Exception as e:
        logger.error(f"❌ Erreur lors de la création des tables : {e}")
        return False


def drop_all_tables() -> bool:
    """
    Supprime toutes les tables de la base de données.

    ⚠️ ATTENTION : Cette action est irréversible !
    """
    try:
        logger.warning("❗️ Suppression de toutes les tables...")
        Base.metadata.drop_all(bind=engine)
        logger.info("✅ Toutes les tables ont été supprimées")
        return True
    except Exception as e:
        logger.error(f"❌ Erreur lors de la suppression des tables : {e}")
        return False


# =============================================================================
# 2. PLANS
# =============================================================================

def init_plans(db: Session) -> list[Plan]:
    """
    Crée les plans du catalogue (identifiés par leur tier).

    Idempotent : un plan déjà présent n'est pas modifié.
    """
    logger.info("💳 Initialisation des plans...")

    plans = []
    for plan_data in INITIAL_PLANS:
        existing = db.execute(
            select(Plan).where(Plan.tier == plan_data["tier"])
        ).scalars().first()

        if existing:
            plans.append(existing)
            logger.debug(f"   ℹ️ {plan_data['name']} existe déjà")
            continue

        plan = Plan(**plan_data)
        db.add(plan)
        plans.append(plan)
        logger.info(f"   ✅ {plan_data['name']} créé")

    db.flush()
    return plans


# =============================================================================
# 3. CLINIQUE DE DÉMONSTRATION
# =============================================================================

def init_demo_tenant(db: Session, plan: Plan) -> Tenant:
    """Crée la clinique de démonstration avec un abonnement d'essai."""
    logger.info("🏥 Initialisation de la clinique de démonstration...")

    tenant = db.execute(
        select(Tenant).where(Tenant.subdomain == "demo")
    ).scalar_one_or_none()
    if tenant:
        logger.info("   ℹ️ Clinique 'demo' existe déjà")
        return tenant

    tenant = Tenant(
        name="Cabinet Dentaire Démo",
        subdomain="demo",
        email="contact@demo.dentflow.app",
    )
    tenant.subscription = Subscription(
        plan_id=plan.id,
        status=SubscriptionStatus.TRIALING,
        trial_ends_at=datetime.now(timezone.utc) + timedelta(days=settings.TRIAL_DAYS),
    )
    db.add(tenant)
    db.flush()

    logger.info(f"   ✅ Clinique {tenant.id} créée (essai {plan.name}, {settings.TRIAL_DAYS} jours)")
    return tenant


def init_default_admin(db: Session, tenant: Tenant, email: str) -> User:
    """Crée l'administrateur de la clinique de démonstration."""
    logger.info("👤 Initialisation du compte administrateur...")

    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user:
        logger.info(f"   ℹ️ {email} existe déjà")
        return user

    user = User(
        tenant_id=tenant.id,
        email=email,
        name="Administrateur Démo",
        role=UserRole.ADMIN,
    )
    db.add(user)
    db.flush()

    logger.info(f"   ✅ Administrateur {email} créé")
    return user


def init_super_admin(db: Session, email: str) -> SuperAdmin:
    """Crée le compte super-admin de la plateforme."""
    logger.info("🛡️ Initialisation du super-admin...")

    admin = db.execute(select(SuperAdmin).where(SuperAdmin.email == email)).scalar_one_or_none()
    if admin:
        logger.info(f"   ℹ️ {email} existe déjà")
        return admin

    admin = SuperAdmin(email=email, name="Équipe DentFlow")
    db.add(admin)
    db.flush()

    logger.info(f"   ✅ Super-admin {email} créé")
    return admin


# =============================================================================
# 4. INITIALISATION COMPLÈTE
# =============================================================================

def init_database(
    drop_existing: bool = False,
    admin_email: str = "admin@demo.dentflow.app",
    super_admin_email: str = "platform@dentflow.app",
) -> bool:
    """
    Initialise complètement la base de données DentFlow.

    Étapes :
    1. Vérifie la connexion à la base
    2. (Optionnel) Supprime les tables existantes
    3. Crée toutes les tables
    4. Crée les plans du catalogue
    5. Crée la clinique de démonstration (essai sur le plan gratuit)
    6. Crée l'administrateur de la clinique
    7. Crée le super-admin de la plateforme

    Returns:
        True si initialisation réussie, False sinon
    """
    logger.info("=" * 60)
    logger.info("🚀 INITIALISATION DE LA BASE DE DONNÉES DENTFLOW")
    logger.info("=" * 60)

    if not check_database_connection():
        logger.error("❌ Impossible de se connecter à la base de données")
        logger.error("   Vérifiez que DATABASE_URL est correct")
        return False
    logger.info("✅ Connexion OK")

    if drop_existing:
        logger.warning("⚠️ Mode DROP_EXISTING activé")
        if not drop_all_tables():
            return False

    if not create_all_tables():
        return False

    try:
        with db_session() as db:
            plans = init_plans(db)
            free_plan = next(p for p in plans if p.tier == PlanTier.FREE)
            tenant = init_demo_tenant(db, free_plan)
            init_default_admin(db, tenant, admin_email)
            init_super_admin(db, super_admin_email)
    except Exception:
        logger.exception("❌ Erreur lors de l'initialisation des données")
        return False

    logger.info("=" * 60)
    logger.info("✅ INITIALISATION TERMINÉE AVEC SUCCÈS")
    logger.info("=" * 60)
    logger.info(f"""
📋 Résumé :
   - Tables créées : {len(Base.metadata.tables)}
   - Plans : {len(INITIAL_PLANS)}
   - Clinique : Cabinet Dentaire Démo (demo)
   - Admin clinique : {admin_email}
   - Super-admin : {super_admin_email}

🚀 Prochaine étape :
   uvicorn app.main:app --reload
""")

    return True


# =============================================================================
# 5. POINT D'ENTRÉE CLI
# =============================================================================

def main():
    """
    Point d'entrée pour exécution en ligne de commande.

    Usage:
        python -m app.database.init_db
        python -m app.database.init_db --drop
    """
    import argparse

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    parser = argparse.ArgumentParser(description="Initialise la base de données DentFlow")
    parser.add_argument(
        '--drop',
        action='store_true',
        help="Supprime les tables existantes avant création (ATTENTION !)"
    )
    parser.add_argument(
        '--admin-email',
        default="admin@demo.dentflow.app",
        help="Email de l'administrateur de la clinique de démonstration"
    )
    parser.add_argument(
        '--super-admin-email',
        default="platform@dentflow.app",
        help="Email du super-admin de la plateforme"
    )

    args = parser.parse_args()

    if args.drop:
        print("\n⚠️  ATTENTION : Vous allez SUPPRIMER toutes les tables existantes !")
        response = input("Êtes-vous sûr ? (oui/non) : ")
        if response.lower() != 'oui':
            print("Annulé.")
            sys.exit(0)

    success = init_database(
        drop_existing=args.drop,
        admin_email=args.admin_email,
        super_admin_email=args.super_admin_email,
    )

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
