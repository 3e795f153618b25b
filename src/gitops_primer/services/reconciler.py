"""Reconcile cycle for a single Extract."""

from __future__ import annotations

from dataclasses import dataclass, field
from time import monotonic
from typing import Any

from kubernetes import client

from .. import logging as structured_logging
from .. import metrics
from ..constants import EXTRACT_IMAGE_DEFAULT
from ..utils.conditions import set_reconciled_condition
from ..utils.errors import format_error, is_conflict, is_not_found
from ..utils.events import (
    REASON_DEPENDENT_CREATED,
    REASON_EXTRACT_COMPLETED,
    REASON_RECONCILE_FAILED,
)
from .cleanup import complete_extract
from .cluster import ClusterStore
from .dependents import extract_ref, observe_dependents
from .planner import (
    Action,
    ActionType,
    CyclePlan,
    ExtractPhase,
    is_recorded_completed,
    is_terminating,
    plan_cycle,
)


@dataclass
class ReconcileResult:
    """What a finished cycle asks of the delivery substrate."""

    found: bool = True
    requeue: bool = False
    phase: ExtractPhase | None = None
    created: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


def _create(
    store: ClusterStore, extract: dict[str, Any], action: Action, result: ReconcileResult
) -> None:
    namespace, name, uid = extract_ref(extract)
    resource = f"{namespace}/{name}"
    structured_logging.logger.info(
        f"Creating a new {action.kind}",
        resource=resource,
        uid=uid,
        event="ensure",
        reason="DependentCreating",
        kind=action.kind,
        dependent=action.name,
    )
    try:
        store.create_dependent(action.kind, namespace, action.body)
    except client.exceptions.ApiException as e:
        if not is_conflict(e):
            structured_logging.logger.error(
                f"Failed to create new {action.kind}",
                resource=resource,
                uid=uid,
                event="ensure",
                reason="DependentCreateFailed",
                kind=action.kind,
                dependent=action.name,
                status_code=e.status,
            )
            raise
        # Created by an earlier delivery this cycle's read did not see yet
        structured_logging.logger.info(
            f"{action.kind} already exists",
            resource=resource,
            uid=uid,
            event="ensure",
            reason="DependentExists",
            kind=action.kind,
            dependent=action.name,
        )
        return

    result.created.append(action.kind)
    metrics.DEPENDENTS_CREATED_TOTAL.labels(kind=action.kind).inc()
    store.emit_event(
        extract, REASON_DEPENDENT_CREATED, f"Created {action.kind} {action.name}"
    )


def _apply(
    store: ClusterStore,
    extract: dict[str, Any],
    plan: CyclePlan,
    result: ReconcileResult,
    resource_version: str | None,
) -> tuple[str | None, Exception | None]:
    for action in plan.of_type(ActionType.CREATE):
        _create(store, extract, action, result)
    result.requeue = plan.requeue

    if not plan.completes:
        return resource_version, None

    outcome = complete_extract(
        store, extract, plan.of_type(ActionType.DELETE), resource_version=resource_version
    )
    result.deleted.extend(outcome.deleted)
    if outcome.error is None:
        store.emit_event(
            extract, REASON_EXTRACT_COMPLETED, "Extract job succeeded; dependents cleaned up"
        )
    return outcome.resource_version, outcome.error


def _write_condition(
    store: ClusterStore,
    extract: dict[str, Any],
    conditions: list[dict[str, Any]] | None,
    error: Exception | None,
    resource_version: str | None,
) -> Exception | None:
    namespace, name, uid = extract_ref(extract)
    if error is None and conditions is not None:
        new_conditions = conditions
    else:
        current = (extract.get("status") or {}).get("conditions")
        new_conditions = set_reconciled_condition(
            current, format_error(error) if error is not None else None
        )
    try:
        store.patch_extract_status(
            namespace, name, {"conditions": new_conditions}, resource_version=resource_version
        )
    except client.exceptions.ApiException as e:
        structured_logging.logger.error(
            "Failed to update Extract status",
            resource=f"{namespace}/{name}",
            uid=uid,
            event="status",
            reason="StatusUpdateFailed",
            status_code=e.status,
        )
        return e
    return None


def reconcile_extract(
    store: ClusterStore,
    namespace: str,
    name: str,
    *,
    image: str = EXTRACT_IMAGE_DEFAULT,
) -> ReconcileResult:
    """Run one reconcile cycle for the Extract ``namespace/name``.

    A missing Extract ends the cycle quietly. Otherwise the cycle creates at
    most one missing dependent (and asks for a requeue), or detects completion
    of the Job and retires the dependents, and always finishes by recording the
    Reconciled condition. Any error is raised after the condition is written;
    a failed condition write is raised only when nothing failed before it.
    """
    started_at = monotonic()
    resource = f"{namespace}/{name}"
    try:
        extract = store.get_extract(namespace, name)
    except client.exceptions.ApiException as e:
        if is_not_found(e):
            structured_logging.logger.info(
                "Extract resource not found. Ignoring since object must be deleted",
                resource=resource,
                event="reconcile",
                reason="NotFound",
            )
            metrics.RECONCILE_TOTAL.labels(result="not_found").inc()
            return ReconcileResult(found=False)
        structured_logging.logger.error(
            "Failed to get Extract",
            resource=resource,
            event="reconcile",
            reason="FetchFailed",
            status_code=e.status,
        )
        metrics.RECONCILE_TOTAL.labels(result="error").inc()
        raise

    _, _, uid = extract_ref(extract)
    resource_version = (extract.get("metadata") or {}).get("resourceVersion")
    result = ReconcileResult()
    conditions: list[dict[str, Any]] | None = None
    cycle_error: Exception | None = None

    structured_logging.logger.info(
        "Starting extract reconciliation",
        resource=resource,
        uid=uid,
        event="reconcile",
        reason="ReconcileStarted",
    )
    try:
        observed = (
            {}
            if is_recorded_completed(extract) or is_terminating(extract)
            else observe_dependents(store, extract)
        )
        plan = plan_cycle(extract, observed, image=image)
        result.phase = plan.phase
        conditions = plan.conditions
        resource_version, cycle_error = _apply(store, extract, plan, result, resource_version)
    except Exception as e:
        cycle_error = e

    status_error = _write_condition(store, extract, conditions, cycle_error, resource_version)
    if cycle_error is None:
        cycle_error = status_error

    duration = monotonic() - started_at
    metrics.RECONCILE_DURATION.observe(duration)
    if cycle_error is not None:
        structured_logging.logger.error(
            f"Extract reconciliation failed: {format_error(cycle_error)}",
            resource=resource,
            uid=uid,
            event="reconcile",
            reason="ReconcileFailed",
        )
        metrics.RECONCILE_TOTAL.labels(result="error").inc()
        store.emit_event(
            extract, REASON_RECONCILE_FAILED, format_error(cycle_error), type_="Warning"
        )
        raise cycle_error

    metrics.RECONCILE_TOTAL.labels(result="requeue" if result.requeue else "success").inc()
    structured_logging.logger.info(
        "Extract reconciliation completed",
        resource=resource,
        uid=uid,
        event="reconcile",
        reason="ReconcileSucceeded",
        phase=result.phase.value if result.phase else None,
        requeue=result.requeue,
        duration=round(duration, 3),
    )
    return result
