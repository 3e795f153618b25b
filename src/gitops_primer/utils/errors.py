from __future__ import annotations

import json

from kubernetes import client


def is_not_found(error: BaseException) -> bool:
    return isinstance(error, client.exceptions.ApiException) and error.status == 404


def is_conflict(error: BaseException) -> bool:
    return isinstance(error, client.exceptions.ApiException) and error.status == 409


def format_error(error: BaseException) -> str:
    """Human readable text for a condition message.

    ``ApiException`` bodies usually hold a Kubernetes ``Status`` object whose
    ``message`` is far more useful than the exception's multi-line repr.
    """
    if isinstance(error, client.exceptions.ApiException):
        head = " ".join(str(part) for part in (error.status, error.reason) if part)
        detail = None
        if error.body:
            try:
                body = json.loads(error.body)
            except (TypeError, ValueError):
                body = None
            if isinstance(body, dict):
                detail = body.get("message")
        return f"{head}: {detail}" if detail else head or type(error).__name__
    return str(error) or type(error).__name__
