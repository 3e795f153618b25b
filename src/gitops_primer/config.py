"""Operator configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from .constants import (
    EXTRACT_IMAGE_DEFAULT,
    EXTRACT_IMAGE_ENV,
    MAX_WORKERS_ENV,
    METRICS_PORT_ENV,
    REQUEST_TIMEOUT_ENV,
    REQUEUE_DELAY_ENV,
    RESYNC_INTERVAL_ENV,
)


@dataclass(frozen=True)
class OperatorConfig:
    extract_image: str = EXTRACT_IMAGE_DEFAULT
    requeue_delay: float = 1.0
    resync_interval: float = 60.0
    metrics_port: int = 8080
    max_workers: int = 4
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OperatorConfig:
        """Build a config from environment variables, falling back to defaults.

        Raises:
            ValueError: if a numeric variable cannot be parsed or is not positive.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            extract_image=env.get(EXTRACT_IMAGE_ENV) or defaults.extract_image,
            requeue_delay=_parse(env, REQUEUE_DELAY_ENV, float, defaults.requeue_delay),
            resync_interval=_parse(env, RESYNC_INTERVAL_ENV, float, defaults.resync_interval),
            metrics_port=_parse(env, METRICS_PORT_ENV, int, defaults.metrics_port),
            max_workers=_parse(env, MAX_WORKERS_ENV, int, defaults.max_workers),
            request_timeout=_parse(env, REQUEST_TIMEOUT_ENV, float, defaults.request_timeout),
        )


def _parse(
    env: Mapping[str, str], key: str, cast: Callable[[str], Any], default: Any
) -> Any:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ValueError(f"{key} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {raw!r}")
    return value
