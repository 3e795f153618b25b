"""
Pytest configuration and fixtures for integration tests.

The tests talk to a throwaway kind cluster and drive reconcile cycles
in-process against it; no operator Deployment is required.
"""

import os
import subprocess
import tempfile
import time
from typing import Any, Callable, Generator, Optional

import pytest
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from gitops_primer.constants import API_GROUP, API_VERSION, EXTRACT_KIND, EXTRACT_PLURAL

CLUSTER_NAME = "gitops-primer-test"


@pytest.fixture(scope="session")
def kind_available():
    """Check if kind is available."""
    try:
        subprocess.run(["kind", "version"], capture_output=True, check=True)
        return True
    except (subprocess.CalledProcessError, FileNotFoundError):
        pytest.skip("kind not available")


class KindCluster:
    """Helper class for managing kind cluster operations."""

    def __init__(self, cluster_name: str = CLUSTER_NAME):
        self.cluster_name = cluster_name
        self.kubeconfig_path: Optional[str] = None

    def create(self) -> None:
        result = subprocess.run(
            ["kind", "create", "cluster", "--name", self.cluster_name],
            text=True,
            capture_output=True,
        )
        if result.returncode != 0:
            raise RuntimeError(f"Failed to create kind cluster: {result.stderr}")

        result = subprocess.run(
            ["kind", "get", "kubeconfig", "--name", self.cluster_name],
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            raise RuntimeError(f"Failed to get kubeconfig: {result.stderr}")

        with tempfile.NamedTemporaryFile(mode="w", delete=False, suffix=".yaml") as f:
            f.write(result.stdout)
            self.kubeconfig_path = f.name

        config.load_kube_config(config_file=self.kubeconfig_path)

    def delete(self) -> None:
        if self.kubeconfig_path is not None and os.path.exists(self.kubeconfig_path):
            os.unlink(self.kubeconfig_path)

        subprocess.run(
            ["kind", "delete", "cluster", "--name", self.cluster_name], capture_output=True
        )


def extract_crd() -> dict[str, Any]:
    """Minimal Extract CRD with a status subresource."""
    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": f"{EXTRACT_PLURAL}.{API_GROUP}"},
        "spec": {
            "group": API_GROUP,
            "names": {
                "kind": EXTRACT_KIND,
                "listKind": f"{EXTRACT_KIND}List",
                "plural": EXTRACT_PLURAL,
                "singular": EXTRACT_KIND.lower(),
            },
            "scope": "Namespaced",
            "versions": [
                {
                    "name": API_VERSION,
                    "served": True,
                    "storage": True,
                    "subresources": {"status": {}},
                    "schema": {
                        "openAPIV3Schema": {
                            "type": "object",
                            "properties": {
                                "spec": {
                                    "type": "object",
                                    "properties": {
                                        "repo": {"type": "string"},
                                        "branch": {"type": "string"},
                                        "email": {"type": "string"},
                                        "secret": {"type": "string"},
                                    },
                                },
                                "status": {
                                    "type": "object",
                                    "x-kubernetes-preserve-unknown-fields": True,
                                },
                            },
                        }
                    },
                }
            ],
        },
    }


def wait_for(predicate: Callable[[], bool], timeout: int = 60, interval: float = 1.0) -> bool:
    """Poll ``predicate`` until it returns True or ``timeout`` seconds pass."""
    start_time = time.time()
    while time.time() - start_time < timeout:
        try:
            if predicate():
                return True
        except ApiException:
            pass
        time.sleep(interval)
    return False


@pytest.fixture(scope="session")
def kind_cluster(kind_available) -> Generator[KindCluster, None, None]:
    """Create and manage a kind cluster for integration tests."""
    cluster = KindCluster()
    cluster.create()
    yield cluster
    cluster.delete()


@pytest.fixture(scope="session")
def extract_crd_installed(kind_cluster) -> str:
    """Install the Extract CRD and wait until it is established."""
    ext_api = client.ApiextensionsV1Api()
    crd = extract_crd()
    ext_api.create_custom_resource_definition(body=crd)
    crd_name = crd["metadata"]["name"]

    def established() -> bool:
        current = ext_api.read_custom_resource_definition(name=crd_name)
        return any(
            c.type == "Established" and c.status == "True"
            for c in (current.status.conditions or [])
        )

    if not wait_for(established, timeout=60):
        pytest.fail("Extract CRD was not established")
    return crd_name


@pytest.fixture
def test_namespace(extract_crd_installed) -> Generator[str, None, None]:
    """Create a test namespace for each test."""
    v1 = client.CoreV1Api()
    namespace_name = f"test-{int(time.time() * 1000)}"
    v1.create_namespace(client.V1Namespace(metadata=client.V1ObjectMeta(name=namespace_name)))
    yield namespace_name

    try:
        v1.delete_namespace(name=namespace_name)
    except ApiException:
        pass


@pytest.fixture
def create_extract() -> Callable[..., dict[str, Any]]:
    """Factory creating an Extract with a fixed spec."""

    def _create(namespace: str, name: str = "demo") -> dict[str, Any]:
        return client.CustomObjectsApi().create_namespaced_custom_object(
            group=API_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural=EXTRACT_PLURAL,
            body={
                "apiVersion": f"{API_GROUP}/{API_VERSION}",
                "kind": EXTRACT_KIND,
                "metadata": {"name": name, "namespace": namespace},
                "spec": {
                    "repo": "git@github.com:example/cluster-state.git",
                    "branch": "main",
                    "email": "primer@example.com",
                    "secret": "deploy-key",
                },
            },
        )

    return _create
