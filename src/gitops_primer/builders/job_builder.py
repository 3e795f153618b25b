from __future__ import annotations

from typing import Any

from ..constants import EXTRACT_COMMAND, EXTRACT_IMAGE_DEFAULT, SECRET_MODE
from .metadata import dependent_metadata, dependent_name


def build_extract_job(
    *,
    extract_name: str,
    namespace: str,
    extract_spec: dict[str, Any],
    owner_uid: str,
    image: str = EXTRACT_IMAGE_DEFAULT,
) -> dict[str, Any]:
    """Render the one-shot Job that exports the namespace into the git repo.

    The pod runs under the Extract's dedicated ServiceAccount, gets the
    repository coordinates through its environment and reads the SSH deploy
    key from the Secret named in ``spec.secret``. This function is pure.
    """
    spec = extract_spec or {}
    name = dependent_name(extract_name)

    env_list: list[dict[str, Any]] = [
        {"name": "REPO", "value": spec.get("repo", "")},
        {"name": "BRANCH", "value": spec.get("branch", "")},
        {"name": "EMAIL", "value": spec.get("email", "")},
        {"name": "NAMESPACE", "value": namespace},
    ]

    volumes: list[dict[str, Any]] = [
        {"name": "repo", "emptyDir": {}},
        {
            "name": "sshkeys",
            "secret": {"secretName": spec.get("secret", ""), "defaultMode": SECRET_MODE},
        },
    ]
    volume_mounts: list[dict[str, Any]] = [
        {"name": "sshkeys", "mountPath": "/keys", "readOnly": True},
        {"name": "repo", "mountPath": "/repo"},
    ]

    manifest: dict[str, Any] = {
        "apiVersion": "batch/v1",
        "kind": "Job",
        "metadata": dependent_metadata(
            extract_name=extract_name, namespace=namespace, owner_uid=owner_uid
        ),
        "spec": {
            "template": {
                "spec": {
                    "restartPolicy": "Never",
                    "serviceAccountName": name,
                    "containers": [
                        {
                            "name": extract_name,
                            "image": image,
                            "command": list(EXTRACT_COMMAND),
                            "env": env_list,
                            "volumeMounts": volume_mounts,
                        }
                    ],
                    "volumes": volumes,
                }
            },
        },
    }
    return manifest
