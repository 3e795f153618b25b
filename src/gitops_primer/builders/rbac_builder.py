"""Identity and authorization objects the extract Job runs under."""

from __future__ import annotations

from typing import Any

from .metadata import dependent_metadata, dependent_name


def build_service_account(*, extract_name: str, namespace: str, owner_uid: str) -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": dependent_metadata(
            extract_name=extract_name, namespace=namespace, owner_uid=owner_uid
        ),
    }


def build_role(*, extract_name: str, namespace: str, owner_uid: str) -> dict[str, Any]:
    """Read-only access to every resource kind in the namespace."""
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "Role",
        "metadata": dependent_metadata(
            extract_name=extract_name, namespace=namespace, owner_uid=owner_uid
        ),
        "rules": [
            {
                "apiGroups": ["*"],
                "resources": ["*"],
                "verbs": ["get", "list"],
            }
        ],
    }


def build_role_binding(*, extract_name: str, namespace: str, owner_uid: str) -> dict[str, Any]:
    name = dependent_name(extract_name)
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "RoleBinding",
        "metadata": dependent_metadata(
            extract_name=extract_name, namespace=namespace, owner_uid=owner_uid
        ),
        "roleRef": {
            "apiGroup": "rbac.authorization.k8s.io",
            "kind": "Role",
            "name": name,
        },
        "subjects": [
            {"kind": "ServiceAccount", "name": name, "namespace": namespace},
        ],
    }
