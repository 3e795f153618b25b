from __future__ import annotations

import threading
from contextlib import suppress
from typing import Any

import kopf
from kubernetes import config
from prometheus_client import start_http_server

from . import logging as structured_logging
from .config import OperatorConfig
from .constants import (
    API_GROUP_VERSION,
    COMPONENT_EXTRACT,
    EXTRACT_PLURAL,
    LABEL_COMPONENT,
    LABEL_MANAGED_BY,
    LABEL_OWNER_NAME,
    OPERATOR_NAME,
)
from .services.cleanup import sweep_owned_dependents
from .services.cluster import ClusterStore
from .services.reconciler import ReconcileResult, reconcile_extract
from .utils.events import REASON_CLEANUP_SUCCEEDED, REASON_EXTRACT_COMPLETED

# Read at import so the resync timer interval can be set from the environment
_config: OperatorConfig = OperatorConfig.from_env()
_store: ClusterStore | None = None

# kopf runs sync handlers in a thread pool; cycles for one Extract must not overlap
_cycle_locks: dict[tuple[str, str], threading.Lock] = {}
_cycle_locks_guard = threading.Lock()


def _get_store() -> ClusterStore:
    global _store
    if _store is None:
        _store = ClusterStore()
    return _store


def _cycle_lock(namespace: str, name: str) -> threading.Lock:
    with _cycle_locks_guard:
        return _cycle_locks.setdefault((namespace, name), threading.Lock())


def _forget_cycle_lock(namespace: str, name: str) -> None:
    with _cycle_locks_guard:
        _cycle_locks.pop((namespace, name), None)


def _run_cycle(namespace: str, name: str) -> ReconcileResult:
    """Run one cycle for ``namespace/name``, never concurrently with another for it."""
    with _cycle_lock(namespace, name):
        result = reconcile_extract(_get_store(), namespace, name, image=_config.extract_image)

    if not result.found:
        _forget_cycle_lock(namespace, name)
        structured_logging.logger.debug(
            "Cycle skipped for missing Extract",
            resource=f"{namespace}/{name}",
            event="reconcile",
            reason="NotFound",
        )
    elif result.deleted:
        structured_logging.logger.info(
            "Extract completed; dependents retired",
            resource=f"{namespace}/{name}",
            event="cleanup",
            reason=REASON_EXTRACT_COMPLETED,
            deleted=result.deleted,
        )
    return result


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    global _config
    structured_logging.setup_structured_logging()
    _config = OperatorConfig.from_env()

    # Keep kopf's bookkeeping out of status: the operator writes status with
    # resourceVersion preconditions and must not race kopf's own patches there.
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix="primer.gitops.io"
    )
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix="primer.gitops.io"
    )
    settings.posting.level = 0
    settings.networking.request_timeout = _config.request_timeout
    settings.execution.max_workers = _config.max_workers

    with suppress(OSError):
        start_http_server(_config.metrics_port)

    try:
        config.load_incluster_config()
    except config.ConfigException:
        try:
            config.load_kube_config()
        except config.ConfigException:
            # Running without kube config (e.g., unit tests)
            return

    structured_logging.logger.info(
        "Operator configured",
        event="startup",
        reason="Configured",
        image=_config.extract_image,
        metrics_port=_config.metrics_port,
    )


@kopf.on.create(API_GROUP_VERSION, EXTRACT_PLURAL)
@kopf.on.update(API_GROUP_VERSION, EXTRACT_PLURAL)
@kopf.on.resume(API_GROUP_VERSION, EXTRACT_PLURAL)
def reconcile_extract_handler(name: str, namespace: str, **_: Any) -> None:
    result = _run_cycle(namespace, name)
    if result.requeue:
        created = ", ".join(result.created) or "dependent"
        raise kopf.TemporaryError(f"Created {created}; requeueing", delay=_config.requeue_delay)


@kopf.timer(
    API_GROUP_VERSION,
    EXTRACT_PLURAL,
    interval=_config.resync_interval,
    initial_delay=_config.resync_interval,
    when=lambda status, **_: not (status or {}).get("completed"),
)
def resync_extract(name: str, namespace: str, **_: Any) -> None:
    """Periodic resync for Extracts that have not completed yet.

    Catches dependents deleted out of band; Job progress is already delivered
    by the dependent event handler.
    """
    _run_cycle(namespace, name)


_DEPENDENT_LABELS = {LABEL_MANAGED_BY: OPERATOR_NAME, LABEL_COMPONENT: COMPONENT_EXTRACT}


@kopf.on.event("batch", "v1", "jobs", labels=_DEPENDENT_LABELS)
@kopf.on.event("v1", "serviceaccounts", labels=_DEPENDENT_LABELS)
@kopf.on.event("rbac.authorization.k8s.io", "v1", "roles", labels=_DEPENDENT_LABELS)
@kopf.on.event("rbac.authorization.k8s.io", "v1", "rolebindings", labels=_DEPENDENT_LABELS)
def handle_dependent_event(event: dict[str, Any], **_: Any) -> None:
    """Run a cycle for the owning Extract whenever one of its dependents changes.

    Job events deliver completion; the others catch out-of-band deletion of
    the objects the Job runs under.
    """
    obj = event.get("object") or {}
    metadata = obj.get("metadata") or {}
    labels = metadata.get("labels") or {}
    extract_name = labels.get(LABEL_OWNER_NAME)
    namespace = metadata.get("namespace")
    if not extract_name or not namespace:
        return

    structured_logging.logger.debug(
        "Dependent event received",
        resource=f"{namespace}/{extract_name}",
        event="dependent",
        reason=str(event.get("type") or "Unknown"),
        kind=obj.get("kind"),
        dependent=metadata.get("name"),
    )
    _run_cycle(namespace, extract_name)


@kopf.on.delete(API_GROUP_VERSION, EXTRACT_PLURAL)
def on_delete_extract(
    name: str, namespace: str, uid: str, body: kopf.Body | None = None, **_: Any
) -> None:
    store = _get_store()
    with _cycle_lock(namespace, name):
        removed = sweep_owned_dependents(store, namespace, uid)
    _forget_cycle_lock(namespace, name)
    if removed and body is not None:
        store.emit_event(
            dict(body), REASON_CLEANUP_SUCCEEDED, f"Removed {', '.join(removed)}"
        )
    structured_logging.logger.info(
        "Extract deleted; owned dependents swept",
        resource=f"{namespace}/{name}",
        uid=uid,
        event="finalizer",
        reason=REASON_CLEANUP_SUCCEEDED,
        removed=removed,
    )
