from __future__ import annotations

from typing import Any

from ..constants import (
    API_GROUP_VERSION,
    COMPONENT_EXTRACT,
    DEPENDENT_PREFIX,
    EXTRACT_KIND,
    LABEL_COMPONENT,
    LABEL_MANAGED_BY,
    LABEL_OWNER_NAME,
    LABEL_OWNER_UID,
    OPERATOR_NAME,
)


def dependent_name(extract_name: str) -> str:
    """Name shared by every dependent object of an Extract."""
    return f"{DEPENDENT_PREFIX}{extract_name}"


def owner_labels(extract_name: str, owner_uid: str) -> dict[str, str]:
    return {
        LABEL_MANAGED_BY: OPERATOR_NAME,
        LABEL_OWNER_NAME: extract_name,
        LABEL_OWNER_UID: owner_uid,
        LABEL_COMPONENT: COMPONENT_EXTRACT,
    }


def owner_selector(owner_uid: str) -> str:
    """Label selector matching every dependent recorded against ``owner_uid``."""
    return f"{LABEL_MANAGED_BY}={OPERATOR_NAME},{LABEL_OWNER_UID}={owner_uid}"


def dependent_metadata(*, extract_name: str, namespace: str, owner_uid: str) -> dict[str, Any]:
    return {
        "name": dependent_name(extract_name),
        "namespace": namespace,
        "labels": owner_labels(extract_name, owner_uid),
        "ownerReferences": [
            {
                "apiVersion": API_GROUP_VERSION,
                "kind": EXTRACT_KIND,
                "name": extract_name,
                "uid": owner_uid,
                "controller": True,
                "blockOwnerDeletion": True,
            }
        ],
    }
