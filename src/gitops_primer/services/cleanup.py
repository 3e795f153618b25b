"""Retirement of an Extract's dependents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kubernetes import client

from .. import logging as structured_logging
from .. import metrics
from ..builders.metadata import owner_selector
from .cluster import ClusterStore
from .dependents import DEPENDENT_KIND_NAMES, extract_ref
from .planner import Action, ActionType


@dataclass
class CleanupOutcome:
    resource_version: str | None
    deleted: list[str] = field(default_factory=list)
    error: Exception | None = None


def complete_extract(
    store: ClusterStore,
    extract: dict[str, Any],
    deletions: list[Action],
    resource_version: str | None = None,
) -> CleanupOutcome:
    """Record ``completed: true`` on the Extract, then delete its dependents.

    Deletions run even when the status write fails; the first error seen
    (status write first) is returned on the outcome, not raised.
    """
    namespace, name, uid = extract_ref(extract)
    resource = f"{namespace}/{name}"
    outcome = CleanupOutcome(resource_version=resource_version)

    try:
        updated = store.patch_extract_status(
            namespace, name, {"completed": True}, resource_version=resource_version
        )
        outcome.resource_version = (updated.get("metadata") or {}).get(
            "resourceVersion", resource_version
        )
        metrics.EXTRACTS_COMPLETED_TOTAL.inc()
        structured_logging.logger.info(
            "Extract marked completed",
            resource=resource,
            uid=uid,
            event="cleanup",
            reason="ExtractCompleted",
        )
    except client.exceptions.ApiException as e:
        structured_logging.logger.error(
            f"Failed to update Extract status: {e.reason}",
            resource=resource,
            uid=uid,
            event="cleanup",
            reason="StatusUpdateFailed",
            status_code=e.status,
        )
        outcome.error = e

    structured_logging.logger.info(
        "Cleaning up Extract dependents", resource=resource, uid=uid, event="cleanup"
    )
    for action in deletions:
        if action.type is not ActionType.DELETE:
            continue
        try:
            removed = store.delete_dependent(action.kind, namespace, action.name)
        except client.exceptions.ApiException as e:
            structured_logging.logger.error(
                f"Failed to delete {action.kind}: {e.reason}",
                resource=resource,
                uid=uid,
                event="cleanup",
                reason="DependentDeletionFailed",
                kind=action.kind,
                dependent=action.name,
                status_code=e.status,
            )
            if outcome.error is None:
                outcome.error = e
            continue
        if removed:
            outcome.deleted.append(action.kind)
            metrics.DEPENDENTS_DELETED_TOTAL.labels(kind=action.kind).inc()
            structured_logging.logger.info(
                f"{action.kind} deleted",
                resource=resource,
                uid=uid,
                event="cleanup",
                reason="DependentDeleted",
                kind=action.kind,
                dependent=action.name,
            )
    return outcome


def sweep_owned_dependents(store: ClusterStore, namespace: str, owner_uid: str) -> list[str]:
    """Delete every dependent labelled with ``owner_uid`` in ``namespace``.

    Used when the Extract itself goes away, so dependents do not depend on the
    platform's garbage collector to be retired. Returns "<Kind>/<name>" for
    each object deleted. Not-found is ignored; other failures propagate.
    """
    selector = owner_selector(owner_uid)
    removed: list[str] = []
    for kind in DEPENDENT_KIND_NAMES:
        for obj in store.list_dependents(kind, namespace, selector):
            obj_name = (obj.get("metadata") or {}).get("name")
            if not obj_name:
                continue
            if store.delete_dependent(kind, namespace, obj_name):
                metrics.DEPENDENTS_DELETED_TOTAL.labels(kind=kind).inc()
                removed.append(f"{kind}/{obj_name}")
    return removed
