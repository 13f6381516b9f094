"""Tests for configuration loading."""

from pipekit.catalog import InMemoryCatalog, get_catalog
from pipekit.catalog.http import HttpCatalog
from pipekit.config import load_config
from pipekit.runner import InMemoryJobRunner, get_runner
from pipekit.runner.http import HttpJobRunner
from pipekit.store import get_store
from pipekit.store.http import HttpRecordStore


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
namespace: acme
runner:
  backend: http
  http:
    base_url: http://runner:8090
search:
  debounce_seconds: 0.1
activity_options:
  start_to_close_timeout: 600s
"""
    )
    monkeypatch.setenv("PIPEKIT_CONFIG", str(config_path))

    config = load_config()
    assert config.namespace == "acme"
    assert config.runner.backend == "http"
    assert config.runner.http.base_url == "http://runner:8090"
    assert config.store.backend == "inmemory"
    assert config.search.debounce_seconds == 0.1
    assert config.activity_options.start_to_close_timeout == "10m"


def test_missing_config_gives_defaults():
    config = load_config()
    assert config.runner.backend == "inmemory"
    assert config.search.page_size == 10
    assert config.activity_options.schedule_to_close_timeout == "20m"


def test_api_overrides_apply_to_every_backend(monkeypatch):
    monkeypatch.setenv("PIPEKIT_API_URL", "https://dashboard.example")
    monkeypatch.setenv("PIPEKIT_API_TOKEN", "secret")

    config = load_config()
    for section in (config.runner, config.store, config.catalog):
        assert section.http.base_url == "https://dashboard.example"
        assert section.http.token == "secret"


def test_factories_use_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
runner:
  backend: inmemory
  runner_ids: [a, b]
  capacity: 2
store:
  backend: http
  http:
    base_url: http://store:8090
"""
    )
    monkeypatch.setenv("PIPEKIT_CONFIG", str(config_path))

    runner = get_runner()
    assert isinstance(runner, InMemoryJobRunner)
    assert runner.runner_ids == ["a", "b"]
    assert runner.capacity == 2
    assert isinstance(get_store(), HttpRecordStore)
    assert isinstance(get_catalog(), InMemoryCatalog)


def test_env_selects_backend(monkeypatch):
    monkeypatch.setenv("PIPEKIT_RUNNER", "http")
    monkeypatch.setenv("PIPEKIT_CATALOG", "http")
    assert isinstance(get_runner(), HttpJobRunner)
    assert isinstance(get_catalog(), HttpCatalog)
