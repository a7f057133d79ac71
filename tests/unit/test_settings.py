"""
Unit tests for configuration loading and service factories
"""
import pytest
from pydantic import ValidationError

from trip_planner.config.loader import ConfigLoader
from trip_planner.config.settings import Environment, Settings, StorageBackend, StorageSettings
from trip_planner.core.storage import MemoryStorage, RedisStorage
from trip_planner.services import create_auth_session, create_storage, create_trip_store


def test_defaults():
    settings = Settings()

    assert settings.storage.namespace_prefix == "tripplanner:data"
    assert settings.storage.auth_key == "tripplanner:auth:phone"
    assert settings.photo_search.per_page == 15
    assert settings.flight_lookup.api_url == "https://api.flightapi.io"


def test_environment_and_log_level_are_case_insensitive():
    settings = Settings(
        environment="PRODUCTION",
        log_level="debug",
        storage=StorageSettings(backend=StorageBackend.REDIS),
    )

    assert settings.is_production()
    assert settings.log_level.value == "DEBUG"


def test_production_rejects_memory_storage():
    with pytest.raises(ValidationError, match="use redis in production"):
        Settings(environment="production", storage=StorageSettings(backend=StorageBackend.MEMORY))


def test_namespace_prefix_trailing_separator_is_dropped():
    assert StorageSettings(namespace_prefix="trips:data:").namespace_prefix == "trips:data"


def test_storage_settings_from_env(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "redis")
    monkeypatch.setenv("STORAGE_PERSIST_MAX_ATTEMPTS", "5")

    storage = StorageSettings()

    assert storage.backend is StorageBackend.REDIS
    assert storage.persist_max_attempts == 5


def test_loader_reads_environment_file(tmp_path):
    (tmp_path / ".env.staging").write_text("LOG_LEVEL=DEBUG\nDEBUG=true\n")
    (tmp_path / ".env.unknown").write_text("")

    settings = ConfigLoader.load_environment_config("staging", config_dir=tmp_path)

    assert settings.environment is Environment.STAGING
    assert settings.log_level.value == "DEBUG"
    assert settings.debug is True
    assert ConfigLoader.get_available_environments(tmp_path) == ["staging"]


def test_loader_without_file_uses_defaults(tmp_path):
    settings = ConfigLoader.load_environment_config("testing", config_dir=tmp_path)

    assert settings.environment is Environment.TESTING


def test_factories_follow_storage_backend():
    memory = Settings(storage=StorageSettings(backend=StorageBackend.MEMORY, namespace_prefix="t:data"))
    redis = Settings(storage=StorageSettings(backend=StorageBackend.REDIS))

    assert isinstance(create_storage(memory), MemoryStorage)
    assert isinstance(create_storage(redis), RedisStorage)

    store = create_trip_store(memory)
    assert store.namespace_prefix == "t:data"
    assert isinstance(store.storage, MemoryStorage)

    session = create_auth_session(memory)
    assert session.storage_key == "tripplanner:auth:phone"


def test_loader_applies_file_to_nested_groups(tmp_path):
    (tmp_path / ".env.production").write_text(
        "STORAGE_BACKEND=redis\nREDIS_HOST=cache.internal\nPHOTO_SEARCH_API_KEY=pexels-key\n"
    )

    settings = ConfigLoader.load_environment_config("production", config_dir=tmp_path)

    assert settings.storage.backend is StorageBackend.REDIS
    assert settings.redis.host == "cache.internal"
    assert settings.photo_search.api_key == "pexels-key"


def test_settings_are_built_on_first_use(monkeypatch):
    from trip_planner.config import settings as settings_module

    monkeypatch.setattr(settings_module, "_settings", None)
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.delenv("STORAGE_BACKEND", raising=False)

    assert not hasattr(settings_module, "settings")
    with pytest.raises(ValidationError):
        settings_module.get_settings()

    monkeypatch.setenv("STORAGE_BACKEND", "redis")
    assert settings_module.reload_settings().is_production()
    assert settings_module.get_settings() is settings_module.get_settings()
