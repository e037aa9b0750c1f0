"""
Database configuration and models.
"""

from loansim.db.database import engine, SessionLocal, get_db
from loansim.db.models import Base

__all__ = ["engine", "SessionLocal", "get_db", "Base"]
