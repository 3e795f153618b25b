from __future__ import annotations

from prometheus_client import Counter, Histogram

RECONCILE_TOTAL = Counter(
    "gitops_primer_reconcile_total",
    "Number of Extract reconcile cycles",
    labelnames=("result",),
)

RECONCILE_DURATION = Histogram(
    "gitops_primer_reconcile_duration_seconds",
    "Duration of Extract reconcile cycles in seconds",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10),
)

DEPENDENTS_CREATED_TOTAL = Counter(
    "gitops_primer_dependents_created_total",
    "Number of dependent objects created",
    labelnames=("kind",),
)

DEPENDENTS_DELETED_TOTAL = Counter(
    "gitops_primer_dependents_deleted_total",
    "Number of dependent objects deleted",
    labelnames=("kind",),
)

EXTRACTS_COMPLETED_TOTAL = Counter(
    "gitops_primer_extracts_completed_total",
    "Number of Extracts that reached the completed state",
)
