# flask_app/models/contact/enums.py
"""
Enums for contact models.
"""

from enum import Enum as PyEnum


class LinkPrecedence(PyEnum):
    """Position of a contact within its identity cluster"""

    PRIMARY = "primary"
    SECONDARY = "secondary"
