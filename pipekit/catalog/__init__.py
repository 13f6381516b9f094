"""Catalog factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import PipekitConfig, load_config
from .base import BaseCatalog
from .inmemory import InMemoryCatalog
from .models import (
    MarketplaceItem,
    MarketplaceItemType,
    Standard,
    StandardVersion,
    Suite,
    WalletAction,
    WalletVersion,
)


def get_catalog(
    backend: Optional[str] = None, config: Optional[PipekitConfig] = None
) -> BaseCatalog:
    """Factory function to get the configured catalog."""

    config = config or load_config()
    backend = (
        backend or os.getenv("PIPEKIT_CATALOG") or config.catalog.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryCatalog()
    elif backend == "http":
        from .http import HttpCatalog

        http_conf = config.catalog.http
        return HttpCatalog(
            base_url=http_conf.base_url,
            token=http_conf.token,
            timeout=http_conf.timeout,
        )
    else:
        raise ValueError(f"Unsupported catalog backend: {backend}")


__all__ = [
    "BaseCatalog",
    "InMemoryCatalog",
    "MarketplaceItem",
    "MarketplaceItemType",
    "Standard",
    "StandardVersion",
    "Suite",
    "WalletAction",
    "WalletVersion",
    "get_catalog",
]
