"""Secret store abstraction + in-memory and JSON file implementations.

Secrets are opaque strings addressed by a logical key. Nothing in the
pipeline caches a secret read from here: deletions made out of band
are seen on the next read.
"""

import json
import os
import threading
from abc import ABC, abstractmethod


class SecretStore(ABC):
    """Abstract base for secret get/set/delete."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the secret stored under key, or None."""
        ...

    @abstractmethod
    def set(self, key: str, secret: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Deleting a missing key is not an error."""
        ...


class InMemorySecretStore(SecretStore):
    """Process-local store. Used by tests and the `memory` backend."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._secrets: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._secrets.get(key)

    def set(self, key: str, secret: str) -> None:
        with self._lock:
            self._secrets[key] = secret

    def delete(self, key: str) -> None:
        with self._lock:
            self._secrets.pop(key, None)


class JSONFileSecretStore(SecretStore):
    """File-backed store, readable by the owner only. Reloads on mtime change."""

    def __init__(self, path: str):
        self._path = os.path.expanduser(path)
        self._secrets: dict[str, str] = {}
        self._last_mtime: float = 0.0
        self._lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        try:
            mtime = os.path.getmtime(self._path)
        except OSError:
            self._secrets = {}
            self._last_mtime = 0.0
            return

        if mtime == self._last_mtime:
            return

        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)

        self._secrets = {str(k): str(v) for k, v in data.get("secrets", {}).items()}
        self._last_mtime = mtime

    def _save(self) -> None:
        directory = os.path.dirname(self._path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump({"secrets": self._secrets}, f, indent=2)
        self._last_mtime = os.path.getmtime(self._path)

    def get(self, key: str) -> str | None:
        with self._lock:
            self._load()  # reload if file changed
            return self._secrets.get(key)

    def set(self, key: str, secret: str) -> None:
        with self._lock:
            self._load()
            self._secrets[key] = secret
            self._save()

    def delete(self, key: str) -> None:
        with self._lock:
            self._load()
            if self._secrets.pop(key, None) is not None:
                self._save()
