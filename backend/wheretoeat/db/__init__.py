from wheretoeat.db.base import Base
from wheretoeat.db.session import get_db, engine, SessionLocal
from wheretoeat.db.tables import ALL_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES"]
