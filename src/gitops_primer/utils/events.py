from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from kubernetes import client

from ..constants import API_GROUP_VERSION, EXTRACT_KIND, OPERATOR_NAME

# Event reasons
REASON_DEPENDENT_CREATED = "DependentCreated"
REASON_EXTRACT_COMPLETED = "ExtractCompleted"
REASON_RECONCILE_FAILED = "ReconcileFailed"
REASON_CLEANUP_SUCCEEDED = "CleanupSucceeded"


def build_event(
    *,
    namespace: str,
    name: str,
    uid: str | None,
    reason: str,
    message: str,
    type_: str = "Normal",
) -> client.CoreV1Event:
    """Event attached to an Extract."""
    now = datetime.now(timezone.utc)
    involved: dict[str, Any] = {
        "api_version": API_GROUP_VERSION,
        "kind": EXTRACT_KIND,
        "name": name,
        "namespace": namespace,
    }
    if uid:
        involved["uid"] = uid
    return client.CoreV1Event(
        metadata=client.V1ObjectMeta(generate_name=f"{name}-", namespace=namespace),
        type=type_,
        reason=reason,
        message=message[:1024],
        involved_object=client.V1ObjectReference(**involved),
        source=client.V1EventSource(component=OPERATOR_NAME),
        first_timestamp=now,
        last_timestamp=now,
        count=1,
    )
