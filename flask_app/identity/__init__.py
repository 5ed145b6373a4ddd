"""
Identity reconciliation core.

Resolves partial contact fragments (email and/or phone) into identity
clusters with a single canonical primary.
"""

from __future__ import annotations

from flask import Flask

from .cli import identity_cli
from .errors import IdentityError, InvalidRequest, StoreUnavailable, TransientStoreConflict
from .matcher import find_cluster
from .merger import ReconcileOutcome, reconcile
from .normalize import IdentifyRequest, normalize_identify_payload
from .service import IdentityService, ResolutionFailure, ResolutionResult, resolve_identity
from .store import ContactRecord, ContactStore, InMemoryContactStore, SqlAlchemyContactStore
from .view import IdentityView, project

__all__ = [
    "init_identity",
    "ContactRecord",
    "ContactStore",
    "IdentifyRequest",
    "IdentityError",
    "IdentityService",
    "IdentityView",
    "InMemoryContactStore",
    "InvalidRequest",
    "ReconcileOutcome",
    "ResolutionFailure",
    "ResolutionResult",
    "SqlAlchemyContactStore",
    "StoreUnavailable",
    "TransientStoreConflict",
    "find_cluster",
    "normalize_identify_payload",
    "project",
    "reconcile",
    "resolve_identity",
]


def init_identity(app: Flask) -> None:
    """Register identity CLI commands on ``app``."""
    # Avoid duplicate registrations when running tests
    if identity_cli.name in app.cli.commands:
        app.cli.commands.pop(identity_cli.name)
    app.cli.add_command(identity_cli)
