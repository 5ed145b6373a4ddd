# flask_app/models/__init__.py
"""
Database models package
"""

from .base import BaseModel, db, utcnow
from .contact import Contact, LinkPrecedence
from .sqlite import configure_sqlite_engine

__all__ = [
    "db",
    "BaseModel",
    "utcnow",
    "Contact",
    "LinkPrecedence",
    "configure_sqlite_engine",
]
