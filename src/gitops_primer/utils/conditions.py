"""Helpers for the ``status.conditions`` list of an Extract."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ..constants import (
    COND_RECONCILED,
    MESSAGE_RECONCILE_COMPLETE,
    REASON_RECONCILE_COMPLETE,
    REASON_RECONCILE_ERROR,
)


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def update_condition(
    conditions: list[dict[str, Any]] | None,
    type_: str,
    status_value: str,
    reason: str,
    message: str,
) -> list[dict[str, Any]]:
    """Return a new conditions list with ``type_`` replaced by the given values.

    At most one condition per type is kept. ``lastTransitionTime`` only moves
    when the status value changes. The input list is not modified.
    """
    conditions = conditions or []
    previous = next((c for c in conditions if c.get("type") == type_), None)

    transition_time = _now()
    if previous is not None and previous.get("status") == status_value:
        transition_time = previous.get("lastTransitionTime") or transition_time

    filtered = [dict(c) for c in conditions if c.get("type") != type_]
    filtered.append(
        {
            "type": type_,
            "status": status_value,
            "reason": reason,
            "message": message,
            "lastTransitionTime": transition_time,
        }
    )
    return filtered


def get_condition(conditions: list[dict[str, Any]] | None, type_: str) -> dict[str, Any] | None:
    for condition in conditions or []:
        if condition.get("type") == type_:
            return condition
    return None


def reconciled_condition(error: str | None = None) -> tuple[str, str, str]:
    """(status, reason, message) of the Reconciled condition for a cycle outcome."""
    if error is None:
        return "True", REASON_RECONCILE_COMPLETE, MESSAGE_RECONCILE_COMPLETE
    return "False", REASON_RECONCILE_ERROR, error


def set_reconciled_condition(
    conditions: list[dict[str, Any]] | None, error: str | None = None
) -> list[dict[str, Any]]:
    status_value, reason, message = reconciled_condition(error)
    return update_condition(conditions, COND_RECONCILED, status_value, reason, message)
