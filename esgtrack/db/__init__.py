"""Database layer for ESGTrack with async SQLAlchemy."""

from esgtrack.db.connection import close_db, get_session, init_db
from esgtrack.db.models import Base, EsgMetricModel, EsgRecordModel

__all__ = [
    "Base",
    "EsgRecordModel",
    "EsgMetricModel",
    "close_db",
    "get_session",
    "init_db",
]
