"""AWS shared-credentials profile resolution.

Reads the two INI-style files the AWS CLI uses:

- credentials: `[name]` sections holding aws_access_key_id,
  aws_secret_access_key and optionally aws_session_token
- config: `[default]` or `[profile name]` sections; only `region`
  is read from here, and it is optional
"""

import asyncio
import os
from dataclasses import dataclass

from dictation_ai.config.settings import get_settings
from dictation_ai.logging.audit import get_audit_logger


@dataclass(frozen=True)
class AWSCredentials:
    access_key_id: str
    secret_access_key: str
    session_token: str | None = None
    region: str | None = None

    def __repr__(self) -> str:
        # Keep secrets out of logs and tracebacks
        return f"AWSCredentials(access_key_id={self.access_key_id!r}, region={self.region!r})"


class AWSProfileError(Exception):
    """Base class for profile resolution failures."""


class CredentialsFileMissing(AWSProfileError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"AWS credentials file not found at {path}")


class CredentialsFileUnreadable(AWSProfileError):
    """The file exists but is not readable UTF-8 text."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read AWS file at {path}: {reason}")


class ProfileNotFound(AWSProfileError):
    def __init__(self, profile: str):
        self.profile = profile
        super().__init__(f"AWS profile '{profile}' not found")


class InvalidCredentials(AWSProfileError):
    def __init__(self, profile: str):
        self.profile = profile
        super().__init__(f"Invalid credentials for profile '{profile}'")


def _section_name(line: str) -> str | None:
    """Return the header name for a `[name]` line, else None."""
    if line.startswith("[") and line.endswith("]"):
        return line[1:-1].strip()
    return None


def parse_section_names(content: str) -> list[str]:
    """Section names in file order. Repeated sections are listed each time."""
    names = []
    for line in content.splitlines():
        name = _section_name(line.strip())
        if name is not None:
            names.append(name)
    return names


def parse_ini(content: str) -> dict[str, dict[str, str]]:
    """Parse `[section]` / `key = value` text into nested dicts.

    Blank lines and lines starting with `#` or `;` are skipped, as are
    key lines that appear before the first section. A section that
    appears twice starts over from an empty mapping.
    """
    result: dict[str, dict[str, str]] = {}
    current: str | None = None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(("#", ";")):
            continue

        name = _section_name(stripped)
        if name is not None:
            current = name
            result[current] = {}
            continue

        if current is None or "=" not in stripped:
            continue

        key, _, value = stripped.partition("=")
        result[current][key.strip()] = value.strip()

    return result


def config_section_for(profile: str) -> str:
    """Config-file section naming: `default` or `profile <name>`."""
    return "default" if profile == "default" else f"profile {profile}"


class AWSProfileResolver:
    """Resolves named profiles from the shared credentials/config files."""

    def __init__(self, credentials_path: str | None = None, config_path: str | None = None):
        settings = get_settings()
        self._credentials_path = os.path.expanduser(credentials_path or settings.aws_credentials_file)
        self._config_path = os.path.expanduser(config_path or settings.aws_config_file)

    @property
    def credentials_path(self) -> str:
        return self._credentials_path

    @staticmethod
    def _read_file(path: str) -> str | None:
        """File text, or None when the file does not exist.

        Raises:
            CredentialsFileUnreadable: the path exists but cannot be read.
        """
        try:
            with open(path, encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise CredentialsFileUnreadable(path, str(e)) from e

    def list_profiles(self) -> list[str]:
        """Profile names from the credentials file; empty if it is missing or unreadable."""
        try:
            content = self._read_file(self._credentials_path)
        except CredentialsFileUnreadable as e:
            get_audit_logger().warning(
                "AWS credentials file unreadable",
                extra={"audit_data": {"path": e.path, "error": e.reason}},
            )
            return []
        if content is None:
            get_audit_logger().info(
                "AWS credentials file not found",
                extra={"audit_data": {"path": self._credentials_path}},
            )
            return []
        return parse_section_names(content)

    def profile_exists(self, profile: str) -> bool:
        return profile in self.list_profiles()

    def get_credentials(self, profile: str) -> AWSCredentials:
        """Resolve a profile to concrete credentials.

        Raises:
            CredentialsFileMissing: the credentials file does not exist.
            CredentialsFileUnreadable: the credentials file cannot be read.
            ProfileNotFound: no `[profile]` section in the credentials file.
            InvalidCredentials: access key id or secret key missing or empty.
        """
        content = self._read_file(self._credentials_path)
        if content is None:
            raise CredentialsFileMissing(self._credentials_path)

        sections = parse_ini(content)
        if profile not in sections:
            raise ProfileNotFound(profile)

        data = sections[profile]
        access_key_id = data.get("aws_access_key_id")
        secret_access_key = data.get("aws_secret_access_key")
        if not access_key_id or not secret_access_key:
            raise InvalidCredentials(profile)

        credentials = AWSCredentials(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=data.get("aws_session_token") or None,
            region=self._region_for(profile),
        )
        get_audit_logger().info(
            "Loaded AWS profile credentials",
            extra={"audit_data": {"profile": profile, "region": credentials.region}},
        )
        return credentials

    async def resolve_credentials(self, profile: str) -> AWSCredentials:
        """Async wrapper; file I/O runs in a worker thread."""
        return await asyncio.to_thread(self.get_credentials, profile)

    def _region_for(self, profile: str) -> str | None:
        try:
            content = self._read_file(self._config_path)
        except CredentialsFileUnreadable as e:
            # An unreadable config file only costs the region
            get_audit_logger().warning(
                "AWS config file unreadable",
                extra={"audit_data": {"path": e.path, "error": e.reason}},
            )
            return None
        if content is None:
            return None
        section = parse_ini(content).get(config_section_for(profile), {})
        return section.get("region") or None
