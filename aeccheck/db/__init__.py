"""Database layer for AECCheck with async SQLAlchemy."""

from aeccheck.db.connection import close_db, get_session, init_db
from aeccheck.db.models import Base, ParameterCheckElementModel, ParameterCheckModel

__all__ = [
    "Base",
    "ParameterCheckModel",
    "ParameterCheckElementModel",
    "close_db",
    "get_session",
    "init_db",
]
