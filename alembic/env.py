"""
Alembic Environment Configuration - DentFlow

Ce fichier configure Alembic pour :
1. Charger l'URL de la base depuis app/core/config.py (qui lit le .env)
2. Importer tous les modèles SQLAlchemy pour la détection automatique
3. Supporter les migrations online (base connectée) et offline (génération SQL)
"""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

from app.core.config import settings

# Import de la Base avec tous les modèles enregistrés
from app.database.base import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_url() -> str:
    """URL de la base, chargée depuis le .env via Pydantic Settings."""
    return settings.DATABASE_URL


def run_migrations_offline() -> None:
    """
    Exécute les migrations en mode 'offline' (génération du SQL).

    Usage:
        alembic upgrade head --sql > migration.sql
    """
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Exécute les migrations en mode 'online'.

    Usage:
        alembic upgrade head
    """
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite ne supporte pas ALTER TABLE : batch mode
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
