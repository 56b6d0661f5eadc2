"""Factory for settings and secret store backends."""

from dictation_ai.config.settings import get_settings
from dictation_ai.store.secret_store import InMemorySecretStore, JSONFileSecretStore, SecretStore
from dictation_ai.store.settings_store import InMemorySettingsStore, JSONSettingsStore, SettingsStore

_secret_store: SecretStore | None = None
_settings_store: SettingsStore | None = None


def get_secret_store() -> SecretStore:
    """Get the secret store singleton for the configured backend."""
    global _secret_store
    if _secret_store is not None:
        return _secret_store

    settings = get_settings()
    backend = settings.secret_store_backend

    if backend == "json":
        _secret_store = JSONFileSecretStore(settings.secret_store_path)
    elif backend == "memory":
        _secret_store = InMemorySecretStore()
    else:
        raise ValueError(f"Unknown secret store backend: {backend}")

    return _secret_store


def get_settings_store() -> SettingsStore:
    """Get the settings store singleton for the configured backend."""
    global _settings_store
    if _settings_store is not None:
        return _settings_store

    settings = get_settings()
    backend = settings.settings_store_backend

    if backend == "json":
        _settings_store = JSONSettingsStore(settings.settings_path, secrets=get_secret_store())
    elif backend == "memory":
        _settings_store = InMemorySettingsStore()
    else:
        raise ValueError(f"Unknown settings store backend: {backend}")

    return _settings_store


def reset_stores() -> None:
    """Drop both singletons. Useful for testing."""
    global _secret_store, _settings_store
    _secret_store = None
    _settings_store = None
