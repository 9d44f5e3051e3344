from app.database.session import SessionLocal, engine, get_db, db_session

__all__ = [
    "SessionLocal",
    "engine",
    "get_db",
    "db_session",
]
