#!/usr/bin/env python3
from __future__ import annotations

import argparse
from contextlib import suppress

from kubernetes import client, config

from gitops_primer.config import OperatorConfig
from gitops_primer.constants import API_GROUP, API_VERSION, EXTRACT_PLURAL
from gitops_primer.services.cluster import ClusterStore
from gitops_primer.services.reconciler import reconcile_extract


def main() -> int:
    parser = argparse.ArgumentParser(description="Run one reconcile cycle per Extract")
    parser.add_argument("--namespace", required=True)
    parser.add_argument("--name", help="Only reconcile this Extract")
    args = parser.parse_args()

    # Load kube config (in-cluster or local)
    with suppress(config.ConfigException):
        config.load_incluster_config()
    with suppress(config.ConfigException):
        config.load_kube_config()

    operator_config = OperatorConfig.from_env()
    store = ClusterStore()

    if args.name:
        names = [args.name]
    else:
        extracts = store.custom.list_namespaced_custom_object(
            group=API_GROUP,
            version=API_VERSION,
            namespace=args.namespace,
            plural=EXTRACT_PLURAL,
        )
        names = [item["metadata"]["name"] for item in extracts.get("items", [])]

    failures = 0
    for name in names:
        try:
            result = reconcile_extract(
                store, args.namespace, name, image=operator_config.extract_image
            )
        except client.exceptions.ApiException as e:
            failures += 1
            print(f"Failed {args.namespace}/{name}: {e.status} {e.reason}")
            continue
        if not result.found:
            print(f"Skipped {args.namespace}/{name}: not found")
            continue
        phase = result.phase.value if result.phase else "Absent"
        created = ", ".join(result.created) or "-"
        deleted = ", ".join(result.deleted) or "-"
        print(
            f"Reconciled {args.namespace}/{name}: "
            f"phase={phase} created={created} deleted={deleted}"
        )

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
