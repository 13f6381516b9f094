from __future__ import annotations

import os
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field

from .constants import DEFAULT_SEARCH_DEBOUNCE, DEFAULT_SEARCH_PAGE_SIZE
from .document import ActivityOptions


class HttpConfig(BaseModel):
    """Connection settings for an HTTP backend."""

    base_url: str = "http://localhost:8090"
    token: Optional[str] = None
    timeout: float = 30.0


class RunnerConfig(BaseModel):
    """Job runner backend settings."""

    backend: Literal["inmemory", "http"] = "inmemory"
    http: HttpConfig = Field(default_factory=HttpConfig)
    runner_ids: List[str] = Field(default_factory=lambda: ["default-runner"])
    capacity: int = 1


class StoreConfig(BaseModel):
    """Record store backend settings."""

    backend: Literal["inmemory", "http"] = "inmemory"
    http: HttpConfig = Field(default_factory=HttpConfig)


class CatalogConfig(BaseModel):
    """Catalog backend settings."""

    backend: Literal["inmemory", "http"] = "inmemory"
    http: HttpConfig = Field(default_factory=HttpConfig)


class SearchConfig(BaseModel):
    debounce_seconds: float = DEFAULT_SEARCH_DEBOUNCE
    page_size: int = DEFAULT_SEARCH_PAGE_SIZE


class PipekitConfig(BaseModel):
    """Top-level configuration model."""

    namespace: Optional[str] = None
    runner: RunnerConfig = RunnerConfig()
    store: StoreConfig = StoreConfig()
    catalog: CatalogConfig = CatalogConfig()
    search: SearchConfig = SearchConfig()
    activity_options: ActivityOptions = ActivityOptions()


def load_config(path: Optional[str] = None) -> PipekitConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to PIPEKIT_CONFIG env
            variable or 'pipekit.yaml' in the current directory.
    """

    config_path = path or os.getenv("PIPEKIT_CONFIG", "pipekit.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = PipekitConfig(**data)
    else:
        config = PipekitConfig()

    api_url = os.getenv("PIPEKIT_API_URL")
    api_token = os.getenv("PIPEKIT_API_TOKEN")
    for section in (config.runner, config.store, config.catalog):
        if api_url:
            section.http.base_url = api_url
        if api_token:
            section.http.token = api_token
    return config
