"""Job runner factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import PipekitConfig, load_config
from .base import BaseJobRunner
from .inmemory import InMemoryJobRunner
from .models import QueueStatus, QueueStatusName, QueueTicket, Signal


def get_runner(
    backend: Optional[str] = None, config: Optional[PipekitConfig] = None
) -> BaseJobRunner:
    """Factory function to get the configured job runner."""

    config = config or load_config()
    backend = (backend or os.getenv("PIPEKIT_RUNNER") or config.runner.backend).lower()

    if backend == "inmemory":
        return InMemoryJobRunner(
            runner_ids=config.runner.runner_ids,
            capacity=config.runner.capacity,
            namespace=config.namespace or "default",
        )
    elif backend == "http":
        from .http import HttpJobRunner

        http_conf = config.runner.http
        return HttpJobRunner(
            base_url=http_conf.base_url,
            token=http_conf.token,
            timeout=http_conf.timeout,
        )
    else:
        raise ValueError(f"Unsupported runner backend: {backend}")


__all__ = [
    "BaseJobRunner",
    "InMemoryJobRunner",
    "QueueStatus",
    "QueueStatusName",
    "QueueTicket",
    "Signal",
    "get_runner",
]
