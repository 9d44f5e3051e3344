"""
Configuration de la session SQLAlchemy - Connexion PostgreSQL
Fournit l'engine, la factory de sessions, et la dependency FastAPI
"""
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from typing import Generator, Optional
import logging

from app.core.config import settings

# Logger pour debugging des connexions
logger = logging.getLogger(__name__)


# === 1. ENGINE (Connexion PostgreSQL) ===
#
# L'engine est le point d'entrée vers la base de données.
# Il gère un "pool" de connexions réutilisables pour les performances.
# SQLite (tests, démo locale) n'accepte ni QueuePool ni les options PostgreSQL.

def _engine_options() -> dict:
    """Options de l'engine selon le dialecte configuré."""
    if settings.is_sqlite:
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }

    return {
        # === Pool de connexions ===
        "poolclass": QueuePool,
        "pool_size": 5,              # Connexions permanentes
        "max_overflow": 10,          # Connexions temporaires si besoin
        "pool_timeout": 30,
        "pool_recycle": 1800,        # Recycler après 30 min
        "pool_pre_ping": True,

        # === Paramètres PostgreSQL ===
        "connect_args": {
            "application_name": "dentflow",
            "options": "-c timezone=UTC",
        },
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.is_development,  # Log SQL en dev uniquement
    echo_pool=False,
    **_engine_options(),
)


# === 2. SESSION LOCAL (Factory de sessions) ===
#
# Chaque session = une transaction avec la base de données.

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,         # On contrôle explicitement les commits
    autoflush=False,
    expire_on_commit=False,   # Garder les objets accessibles après commit
)


# === 3. DEPENDENCY FASTAPI ===

def get_db() -> Generator[Session, None, None]:
    """
    Dépendance FastAPI : une session par requête.

    Commit si la requête se termine sans erreur, rollback sinon,
    fermeture dans tous les cas.

    Example:
        @router.get("/patients")
        def list_patients(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# === 4. USAGE HORS FASTAPI ===

class db_session:
    """
    Context manager pour utiliser une session hors FastAPI
    (scripts, seed, tâches planifiées comme la mise à jour des statuts).

    Usage:
        with db_session() as db:
            ComplianceService(db, tenant_id=1).update_statuses()
    """

    def __init__(self, commit_on_exit: bool = True):
        self.db: Optional[Session] = None
        self.commit_on_exit = commit_on_exit

    def __enter__(self) -> Session:
        self.db = SessionLocal()
        return self.db

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None and self.commit_on_exit:
                self.db.commit()
            else:
                self.db.rollback()
        finally:
            self.db.close()

        # Propager l'exception
        return False


# === 5. VÉRIFICATION DE CONNEXION ===

def check_database_connection() -> bool:
    """
    Vérifie que la connexion à la base de données fonctionne.

    Utilisé par le script d'initialisation (init_db).
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"❌ Erreur de connexion à la base de données : {e}")
        return False


# === 6. EVENT LISTENERS (Debugging) ===

if settings.is_development:
    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        """Log quand une nouvelle connexion est créée"""
        logger.debug("🔌 Nouvelle connexion créée")

    @event.listens_for(engine, "checkout")
    def on_checkout(dbapi_connection, connection_record, connection_proxy):
        """Log quand une connexion est empruntée du pool"""
        logger.debug("📤 Connexion empruntée du pool")
