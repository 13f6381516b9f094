"""Record store factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import PipekitConfig, load_config
from .base import BaseRecordStore, Record
from .inmemory import InMemoryRecordStore


def get_store(
    backend: Optional[str] = None, config: Optional[PipekitConfig] = None
) -> BaseRecordStore:
    """Factory function to get the configured record store."""

    config = config or load_config()
    backend = (backend or os.getenv("PIPEKIT_STORE") or config.store.backend).lower()

    if backend == "inmemory":
        return InMemoryRecordStore()
    elif backend == "http":
        from .http import HttpRecordStore

        http_conf = config.store.http
        return HttpRecordStore(
            base_url=http_conf.base_url,
            token=http_conf.token,
            timeout=http_conf.timeout,
        )
    else:
        raise ValueError(f"Unsupported store backend: {backend}")


__all__ = ["BaseRecordStore", "InMemoryRecordStore", "Record", "get_store"]
