"""
Identity resolution service.

Runs matcher -> merger -> view inside one transaction on the request-scoped
session, retrying the whole resolution when the store reports a
serialization conflict. Callers receive a ``ResolutionResult`` rather than
an exception, so every failure path is explicit at the call site.
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from flask import current_app
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from flask_app.models import db

from .errors import (
    IdentityError,
    InvalidRequest,
    StoreUnavailable,
    TransientStoreConflict,
    classify_store_error,
)
from .matcher import find_cluster
from .merger import ReconcileOutcome, reconcile
from .metrics import record_conflict_retry, record_contact_created, record_merge, record_resolution
from .normalize import IdentifyRequest, normalize_identify_payload
from .store import ContactStore, SqlAlchemyContactStore
from .view import IdentityView, project


class ResolutionFailure(str, enum.Enum):
    """Why a resolution did not produce an identity."""

    INVALID_REQUEST = "invalid_request"
    STORE_UNAVAILABLE = "store_unavailable"
    INTERNAL = "internal_error"


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of one identify call: a view on success, a failure kind otherwise."""

    view: IdentityView | None = None
    failure: ResolutionFailure | None = None
    message: str | None = None
    attempts: int = 0
    outcome: ReconcileOutcome | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.view is not None

    @classmethod
    def success(cls, view: IdentityView, outcome: ReconcileOutcome, *, attempts: int) -> "ResolutionResult":
        return cls(view=view, outcome=outcome, attempts=attempts)

    @classmethod
    def failed(cls, failure: ResolutionFailure, message: str, *, attempts: int = 0) -> "ResolutionResult":
        return cls(failure=failure, message=message, attempts=attempts)


def resolve_identity(store: ContactStore, request: IdentifyRequest) -> tuple[IdentityView, ReconcileOutcome]:
    """
    Resolve one normalized request against ``store``.

    Performs no transaction management; the caller owns commit/rollback.
    """

    cluster = find_cluster(store, request.email, request.phone_number)
    outcome = reconcile(store, cluster, request.email, request.phone_number)
    return project(outcome.canonical, outcome.members), outcome


class IdentityService:
    """Transactional entry point for identity resolution."""

    def __init__(
        self,
        session: Session | None = None,
        *,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
        store_factory: Callable[[Session], ContactStore] = SqlAlchemyContactStore,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session or db.session
        config = current_app.config
        self.max_attempts = max(1, max_attempts or config.get("IDENTITY_MAX_ATTEMPTS", 3))
        self.backoff_seconds = (
            backoff_seconds
            if backoff_seconds is not None
            else config.get("IDENTITY_RETRY_BACKOFF_SECONDS", 0.05)
        )
        self.store_factory = store_factory
        self._sleep = sleep

    def identify_payload(self, payload: Mapping[str, Any] | Any) -> ResolutionResult:
        """Normalize a raw request body, then resolve it."""

        started = time.perf_counter()
        try:
            request = normalize_identify_payload(payload)
        except InvalidRequest as exc:
            current_app.logger.info(f"Rejected identify request: {exc.message}")
            record_resolution(outcome="invalid_request", duration_seconds=time.perf_counter() - started)
            return ResolutionResult.failed(ResolutionFailure.INVALID_REQUEST, exc.message)
        return self.identify(request)

    def identify(self, request: IdentifyRequest) -> ResolutionResult:
        """
        Resolve ``request`` and commit, retrying on transient conflicts.

        Every attempt starts from a fresh read; a failed attempt is rolled
        back in full before the next one begins.
        """

        started = time.perf_counter()
        result = self._identify_with_retry(request)
        record_resolution(
            outcome="success" if result.ok else result.failure.value,
            duration_seconds=time.perf_counter() - started,
        )
        return result

    def _identify_with_retry(self, request: IdentifyRequest) -> ResolutionResult:
        if request.is_empty:
            return ResolutionResult.failed(ResolutionFailure.INVALID_REQUEST, InvalidRequest().message)

        attempt = 0
        while True:
            attempt += 1
            try:
                view, outcome = resolve_identity(self.store_factory(self.session), request)
                self.session.commit()
            except InvalidRequest as exc:
                self.session.rollback()
                return ResolutionResult.failed(ResolutionFailure.INVALID_REQUEST, exc.message, attempts=attempt)
            except (DBAPIError, IdentityError) as exc:
                self.session.rollback()
                error = classify_store_error(exc) if isinstance(exc, DBAPIError) else exc
                if isinstance(error, TransientStoreConflict) and attempt < self.max_attempts:
                    current_app.logger.warning(
                        f"Identity resolution conflict on attempt {attempt}/{self.max_attempts}, retrying: {error}"
                    )
                    record_conflict_retry()
                    if self.backoff_seconds:
                        self._sleep(self.backoff_seconds * attempt)
                    continue
                if isinstance(error, TransientStoreConflict):
                    error = StoreUnavailable(
                        f"Contact store conflict persisted after {attempt} attempts",
                        original=error.original,
                    )
                current_app.logger.error(f"Identity resolution failed: {error}", exc_info=True)
                return ResolutionResult.failed(ResolutionFailure.STORE_UNAVAILABLE, str(error), attempts=attempt)
            except Exception as exc:
                self.session.rollback()
                current_app.logger.error(f"Unexpected error during identity resolution: {exc}", exc_info=True)
                return ResolutionResult.failed(ResolutionFailure.INTERNAL, str(exc), attempts=attempt)

            self._log_outcome(request, outcome, attempt)
            return ResolutionResult.success(view, outcome, attempts=attempt)

    def _log_outcome(self, request: IdentifyRequest, outcome: ReconcileOutcome, attempts: int) -> None:
        if outcome.created_primary:
            record_contact_created("primary")
            current_app.logger.info(f"Created primary contact {outcome.canonical.id}")
            return

        if outcome.merged:
            record_merge(len(outcome.demoted_ids))
            current_app.logger.info(
                f"Merged clusters {list(outcome.demoted_ids)} into primary {outcome.canonical.id}"
            )
        if outcome.created_id is not None:
            record_contact_created("secondary")
            current_app.logger.info(
                f"Absorbed new information as secondary {outcome.created_id} under {outcome.canonical.id}"
            )
        current_app.logger.debug(
            f"Resolved identity {outcome.canonical.id} with {len(outcome.members)} members "
            f"(email={'yes' if request.email else 'no'}, phone={'yes' if request.phone_number else 'no'}, "
            f"attempts={attempts})"
        )

    def cluster_for(self, contact_id: int) -> IdentityView | None:
        """
        Read-only view of the cluster containing ``contact_id``.

        Returns None when the contact does not exist or is soft-deleted.
        """

        store = SqlAlchemyContactStore(self.session, lock_rows=False)
        try:
            record = store.get(contact_id)
            if record is None or record.deleted_at is not None:
                return None
            canonical = store.get(record.canonical_id)
            if canonical is None or canonical.deleted_at is not None:
                return None
            members = store.find_clusters([canonical.id])
            return project(canonical, members)
        finally:
            self.session.rollback()
