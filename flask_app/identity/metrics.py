"""Prometheus metrics helpers for identity resolution."""

from __future__ import annotations

from typing import Literal

from prometheus_client import Counter, Histogram

_resolutions_counter = Counter(
    "identity_resolutions_total",
    "Identify requests by outcome.",
    ["outcome"],
)
_resolution_duration = Histogram(
    "identity_resolution_duration_seconds",
    "Duration of a full identity resolution, retries included.",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5),
)
_merges_counter = Counter(
    "identity_cluster_merges_total",
    "Former primaries demoted while merging clusters.",
)
_records_created_counter = Counter(
    "identity_contacts_created_total",
    "Contacts created by resolution, by link precedence.",
    ["link_precedence"],
)
_conflict_retries_counter = Counter(
    "identity_conflict_retries_total",
    "Resolutions retried after a transient store conflict.",
)


def record_resolution(
    *,
    outcome: Literal["success", "invalid_request", "store_unavailable", "internal_error"],
    duration_seconds: float,
) -> None:
    """Count one identify call and observe its duration."""

    _resolutions_counter.labels(outcome=outcome).inc()
    _resolution_duration.observe(duration_seconds)


def record_merge(demoted_count: int) -> None:
    if demoted_count > 0:
        _merges_counter.inc(demoted_count)


def record_contact_created(link_precedence: Literal["primary", "secondary"]) -> None:
    _records_created_counter.labels(link_precedence=link_precedence).inc()


def record_conflict_retry() -> None:
    _conflict_retries_counter.inc()
