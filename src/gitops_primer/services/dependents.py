"""The ordered set of objects an Extract depends on."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ..builders.job_builder import build_extract_job
from ..builders.metadata import dependent_name
from ..builders.rbac_builder import build_role, build_role_binding, build_service_account
from ..constants import (
    EXTRACT_IMAGE_DEFAULT,
    KIND_JOB,
    KIND_ROLE,
    KIND_ROLE_BINDING,
    KIND_SERVICE_ACCOUNT,
)
from .cluster import ClusterStore


@dataclass(frozen=True)
class DependentKind:
    kind: str
    build: Callable[..., dict[str, Any]]
    takes_spec: bool = False


# Creation order: the ServiceAccount must exist before the RoleBinding and the
# Job reference it, and the Job is started last so its permissions are in place.
DEPENDENT_KINDS: tuple[DependentKind, ...] = (
    DependentKind(KIND_SERVICE_ACCOUNT, build_service_account),
    DependentKind(KIND_ROLE, build_role),
    DependentKind(KIND_ROLE_BINDING, build_role_binding),
    DependentKind(KIND_JOB, build_extract_job, takes_spec=True),
)

DEPENDENT_KIND_NAMES: tuple[str, ...] = tuple(d.kind for d in DEPENDENT_KINDS)


def extract_ref(extract: dict[str, Any]) -> tuple[str, str, str]:
    """(namespace, name, uid) of an Extract object."""
    metadata = extract.get("metadata") or {}
    return metadata.get("namespace", ""), metadata.get("name", ""), metadata.get("uid", "")


def build_dependent(
    dependent: DependentKind, extract: dict[str, Any], image: str = EXTRACT_IMAGE_DEFAULT
) -> dict[str, Any]:
    namespace, name, uid = extract_ref(extract)
    if dependent.takes_spec:
        return dependent.build(
            extract_name=name,
            namespace=namespace,
            extract_spec=extract.get("spec") or {},
            owner_uid=uid,
            image=image,
        )
    return dependent.build(extract_name=name, namespace=namespace, owner_uid=uid)


def observe_dependents(
    store: ClusterStore, extract: dict[str, Any]
) -> dict[str, dict[str, Any] | None]:
    """Read dependents in creation order, stopping at the first absent one.

    Kinds after the first absent one are left out of the result: that cycle
    ends by creating the missing object, so there is nothing to decide about
    the rest. Read failures other than not-found propagate and halt the walk.
    """
    namespace, name, _ = extract_ref(extract)
    observed: dict[str, dict[str, Any] | None] = {}
    for dependent in DEPENDENT_KINDS:
        obj = store.read_dependent(dependent.kind, namespace, dependent_name(name))
        observed[dependent.kind] = obj
        if obj is None:
            break
    return observed
