"""Settings collaborator: configurations, active selection, legacy fields, toggles."""

import json
import os
import threading
from abc import ABC, abstractmethod

from dictation_ai.store.models import AppSettings, Configuration
from dictation_ai.store.secret_store import SecretStore


class SettingsStore(ABC):
    """Abstract base for the persisted application settings."""

    @abstractmethod
    def load(self) -> AppSettings:
        """Return the current settings snapshot."""
        ...

    @abstractmethod
    def save(self, settings: AppSettings) -> None:
        ...

    def get_configuration(self, config_id: str) -> Configuration | None:
        return self.load().find_configuration(config_id)

    def active_configuration(self) -> Configuration | None:
        return self.load().active_configuration

    def set_active_configuration(self, config_id: str) -> None:
        settings = self.load()
        config = settings.find_configuration(config_id)
        if config is None:
            raise KeyError(f"Unknown configuration: {config_id}")
        settings.active_configuration_id = config_id
        self.save(settings)

    def clear_active_configuration(self) -> None:
        settings = self.load()
        settings.active_configuration_id = None
        self.save(settings)

    def upsert_configuration(self, config: Configuration) -> None:
        settings = self.load()
        settings.configurations = [c for c in settings.configurations if c.id != config.id]
        settings.configurations.append(config)
        self.save(settings)

    def delete_configuration(self, config_id: str, secrets: SecretStore | None = None) -> None:
        settings = self.load()
        config = settings.find_configuration(config_id)
        if config is None:
            return
        settings.configurations.remove(config)
        if settings.active_configuration_id == config_id:
            settings.active_configuration_id = None
        self.save(settings)
        if secrets is not None:
            secrets.delete(config.secret_key)
            secrets.delete(config.aws_secret_key)


class InMemorySettingsStore(SettingsStore):
    def __init__(self, settings: AppSettings | None = None):
        self._settings = settings or AppSettings()
        self._lock = threading.Lock()

    def load(self) -> AppSettings:
        with self._lock:
            return self._settings

    def save(self, settings: AppSettings) -> None:
        with self._lock:
            self._settings = settings


class JSONSettingsStore(SettingsStore):
    """File-backed settings. Reloads on mtime change."""

    def __init__(self, path: str, secrets: SecretStore | None = None):
        self._path = os.path.expanduser(path)
        self._secrets = secrets
        self._settings = AppSettings()
        self._last_mtime: float = 0.0
        self._lock = threading.Lock()

    def _reload(self) -> None:
        try:
            mtime = os.path.getmtime(self._path)
        except OSError:
            return

        if mtime == self._last_mtime:
            return

        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)

        self._settings = AppSettings.from_dict(data, self._secrets)
        self._last_mtime = mtime

    def load(self) -> AppSettings:
        with self._lock:
            self._reload()
            return self._settings

    def save(self, settings: AppSettings) -> None:
        with self._lock:
            directory = os.path.dirname(self._path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(settings.to_dict(), f, indent=2)
            self._settings = settings
            self._last_mtime = os.path.getmtime(self._path)
