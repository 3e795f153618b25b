"""Thin adapter over the Kubernetes API for Extracts and their dependents."""

from __future__ import annotations

from typing import Any

from kubernetes import client

from .. import logging as structured_logging
from ..constants import (
    API_GROUP,
    API_VERSION,
    EXTRACT_PLURAL,
    FIELD_MANAGER,
    KIND_JOB,
    KIND_ROLE,
    KIND_ROLE_BINDING,
    KIND_SERVICE_ACCOUNT,
)
from ..utils.errors import is_not_found
from ..utils.events import build_event

# kind -> (api attribute, method suffix of the *_namespaced_<suffix> calls)
_DEPENDENT_APIS: dict[str, tuple[str, str]] = {
    KIND_SERVICE_ACCOUNT: ("core", "service_account"),
    KIND_ROLE: ("rbac", "role"),
    KIND_ROLE_BINDING: ("rbac", "role_binding"),
    KIND_JOB: ("batch", "job"),
}


class ClusterStore:
    """Synchronous request/response access to the cluster object store.

    Every method maps to exactly one API call. Reads of dependents return the
    object as a plain camelCase dict (the same shape the builders produce), or
    ``None`` when it does not exist. All other failures propagate as
    ``kubernetes.client.exceptions.ApiException``.
    """

    def __init__(self, api_client: client.ApiClient | None = None) -> None:
        self._api_client = api_client or client.ApiClient()
        self.core = client.CoreV1Api(self._api_client)
        self.rbac = client.RbacAuthorizationV1Api(self._api_client)
        self.batch = client.BatchV1Api(self._api_client)
        self.custom = client.CustomObjectsApi(self._api_client)

    def _call(self, kind: str, verb: str, **kwargs: Any) -> Any:
        try:
            api_attr, suffix = _DEPENDENT_APIS[kind]
        except KeyError:
            raise ValueError(f"Unsupported dependent kind: {kind}") from None
        method = getattr(getattr(self, api_attr), f"{verb}_namespaced_{suffix}")
        return method(**kwargs)

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self._api_client.sanitize_for_serialization(obj)

    # Extract

    def get_extract(self, namespace: str, name: str) -> dict[str, Any]:
        return self.custom.get_namespaced_custom_object(
            group=API_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural=EXTRACT_PLURAL,
            name=name,
        )

    def patch_extract_status(
        self,
        namespace: str,
        name: str,
        status: dict[str, Any],
        resource_version: str | None = None,
    ) -> dict[str, Any]:
        """Merge-patch ``status``; a stale ``resource_version`` fails with 409."""
        body: dict[str, Any] = {"status": status}
        if resource_version:
            body["metadata"] = {"resourceVersion": resource_version}
        return self.custom.patch_namespaced_custom_object_status(
            group=API_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural=EXTRACT_PLURAL,
            name=name,
            body=body,
            field_manager=FIELD_MANAGER,
        )

    # Dependents

    def read_dependent(self, kind: str, namespace: str, name: str) -> dict[str, Any] | None:
        try:
            obj = self._call(kind, "read", name=name, namespace=namespace)
        except client.exceptions.ApiException as e:
            if is_not_found(e):
                return None
            raise
        return self._to_dict(obj)

    def create_dependent(self, kind: str, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        obj = self._call(
            kind, "create", namespace=namespace, body=body, field_manager=FIELD_MANAGER
        )
        return self._to_dict(obj)

    def delete_dependent(self, kind: str, namespace: str, name: str) -> bool:
        """Delete a dependent. Returns False when it was already gone."""
        kwargs: dict[str, Any] = {"name": name, "namespace": namespace}
        if kind == KIND_JOB:
            # Pods of the Job go with it
            kwargs["propagation_policy"] = "Background"
        try:
            self._call(kind, "delete", **kwargs)
        except client.exceptions.ApiException as e:
            if is_not_found(e):
                return False
            raise
        return True

    def list_dependents(
        self, kind: str, namespace: str, label_selector: str
    ) -> list[dict[str, Any]]:
        result = self._call(kind, "list", namespace=namespace, label_selector=label_selector)
        return [self._to_dict(item) for item in (result.items or [])]

    # Events

    def emit_event(
        self,
        extract: dict[str, Any],
        reason: str,
        message: str,
        type_: str = "Normal",
    ) -> None:
        """Post an Event on the Extract. Events are best-effort."""
        metadata = extract.get("metadata") or {}
        namespace = metadata.get("namespace", "")
        event = build_event(
            namespace=namespace,
            name=metadata.get("name", ""),
            uid=metadata.get("uid"),
            reason=reason,
            message=message,
            type_=type_,
        )
        try:
            self.core.create_namespaced_event(namespace=namespace, body=event)
        except Exception as e:
            structured_logging.logger.debug(
                f"Failed to emit event {reason}: {e}",
                resource=f"{namespace}/{metadata.get('name', '')}",
                event="event",
                reason="EventEmitFailed",
            )
