# flask_app/models/contact/__init__.py
"""
Contact models package.
Provides the Contact model used for identity reconciliation.
"""

from .base import Contact
from .enums import LinkPrecedence

__all__ = [
    "Contact",
    "LinkPrecedence",
]
