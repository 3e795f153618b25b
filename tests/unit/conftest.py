"""Shared fixtures for unit tests: an in-memory stand-in for ClusterStore."""

from __future__ import annotations

import copy
from typing import Any

import pytest
from kubernetes import client

from gitops_primer.builders.metadata import dependent_name
from gitops_primer.constants import API_GROUP_VERSION, KIND_JOB


def api_error(status: int, reason: str | None = None) -> client.exceptions.ApiException:
    return client.exceptions.ApiException(status=status, reason=reason)


class FakeClusterStore:
    """Dict-backed object store with the same surface as ``ClusterStore``.

    ``calls`` records every mutating call as ``(verb, kind, name)``; reads are
    recorded in ``reads``. ``failures`` maps ``(verb, kind)`` to an exception
    raised on the next matching call (``kind`` is ``"Extract"`` for the
    primary resource and ``"status"`` for status patches).
    """

    def __init__(self) -> None:
        self.extracts: dict[tuple[str, str], dict[str, Any]] = {}
        self.objects: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, str, str]] = []
        self.reads: list[tuple[str, str]] = []
        self.events: list[tuple[str, str, str]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self._rv = 0

    def _next_rv(self) -> str:
        self._rv += 1
        return str(self._rv)

    def _maybe_fail(self, verb: str, kind: str) -> None:
        error = self.failures.pop((verb, kind), None)
        if error is not None:
            raise error

    # helpers for tests

    def add_extract(
        self,
        name: str = "demo",
        namespace: str = "ns",
        spec: dict[str, Any] | None = None,
        status: dict[str, Any] | None = None,
        uid: str = "uid-demo",
    ) -> dict[str, Any]:
        extract = {
            "apiVersion": API_GROUP_VERSION,
            "kind": "Extract",
            "metadata": {
                "name": name,
                "namespace": namespace,
                "uid": uid,
                "resourceVersion": self._next_rv(),
            },
            "spec": spec
            if spec is not None
            else {"repo": "git@x", "branch": "main", "email": "a@b", "secret": "s1"},
        }
        if status is not None:
            extract["status"] = status
        self.extracts[(namespace, name)] = extract
        return extract

    def status_of(self, name: str = "demo", namespace: str = "ns") -> dict[str, Any]:
        return self.extracts[(namespace, name)].get("status") or {}

    def dependent(self, kind: str, extract_name: str = "demo", namespace: str = "ns"):
        return self.objects.get((kind, namespace, dependent_name(extract_name)))

    def kinds_present(self, namespace: str = "ns") -> set[str]:
        return {kind for (kind, ns, _) in self.objects if ns == namespace}

    def mark_job_succeeded(self, extract_name: str = "demo", namespace: str = "ns") -> None:
        job = self.objects[(KIND_JOB, namespace, dependent_name(extract_name))]
        job["status"] = {"succeeded": 1}

    def mutations(self, verb: str) -> list[tuple[str, str, str]]:
        return [c for c in self.calls if c[0] == verb]

    # ClusterStore surface

    def get_extract(self, namespace: str, name: str) -> dict[str, Any]:
        self.reads.append(("Extract", name))
        self._maybe_fail("get", "Extract")
        try:
            return copy.deepcopy(self.extracts[(namespace, name)])
        except KeyError:
            raise api_error(404, "Not Found") from None

    def patch_extract_status(
        self,
        namespace: str,
        name: str,
        status: dict[str, Any],
        resource_version: str | None = None,
    ) -> dict[str, Any]:
        self.calls.append(("patch_status", "Extract", name))
        self._maybe_fail("patch", "status")
        extract = self.extracts.get((namespace, name))
        if extract is None:
            raise api_error(404, "Not Found")
        if resource_version and resource_version != extract["metadata"]["resourceVersion"]:
            raise api_error(409, "Conflict")
        extract.setdefault("status", {}).update(copy.deepcopy(status))
        extract["metadata"]["resourceVersion"] = self._next_rv()
        return copy.deepcopy(extract)

    def read_dependent(self, kind: str, namespace: str, name: str) -> dict[str, Any] | None:
        self.reads.append((kind, name))
        self._maybe_fail("read", kind)
        obj = self.objects.get((kind, namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def create_dependent(self, kind: str, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        name = body["metadata"]["name"]
        self.calls.append(("create", kind, name))
        self._maybe_fail("create", kind)
        if (kind, namespace, name) in self.objects:
            raise api_error(409, "AlreadyExists")
        obj = copy.deepcopy(body)
        obj["metadata"]["resourceVersion"] = self._next_rv()
        self.objects[(kind, namespace, name)] = obj
        return copy.deepcopy(obj)

    def delete_dependent(self, kind: str, namespace: str, name: str) -> bool:
        self.calls.append(("delete", kind, name))
        self._maybe_fail("delete", kind)
        return self.objects.pop((kind, namespace, name), None) is not None

    def list_dependents(
        self, kind: str, namespace: str, label_selector: str
    ) -> list[dict[str, Any]]:
        self._maybe_fail("list", kind)
        wanted = dict(term.split("=", 1) for term in label_selector.split(","))
        items = []
        for (obj_kind, ns, _), obj in self.objects.items():
            labels = obj["metadata"].get("labels") or {}
            if obj_kind == kind and ns == namespace and all(
                labels.get(k) == v for k, v in wanted.items()
            ):
                items.append(copy.deepcopy(obj))
        return items

    def emit_event(
        self, extract: dict[str, Any], reason: str, message: str, type_: str = "Normal"
    ) -> None:
        self.events.append((reason, message, type_))


@pytest.fixture
def store() -> FakeClusterStore:
    return FakeClusterStore()


@pytest.fixture
def demo_extract(store: FakeClusterStore) -> dict[str, Any]:
    return store.add_extract()
