"""Persisted records: provider configurations, prompts and app settings.

A Configuration never holds a secret. API keys and AWS secret keys live
in the secret store under keys derived from the configuration id, so
validity is recomputed against the store on every read.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from dictation_ai.providers.catalog import Provider
from dictation_ai.store.secret_store import SecretStore

SECRET_KEY_PREFIX = "dictation_ai.aiconfig"
# The pre-configuration global key lives in the secret store too
LEGACY_API_KEY_SECRET = "dictation_ai.legacy_api_key"


class AuthMethod(str, Enum):
    NONE = "none"
    API_KEY = "api_key"
    AWS_PROFILE = "aws_profile"
    AWS_ACCESS_KEY = "aws_access_key"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class Configuration:
    name: str
    provider: str  # Provider value; may be unknown for hand-edited files
    model: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    region: str | None = None
    enable_cross_region: bool = False
    aws_profile_name: str | None = None
    aws_access_key_id: str | None = None
    created_at: datetime = field(default_factory=_now)
    last_used_at: datetime | None = None

    @property
    def secret_key(self) -> str:
        """Secret-store key for this configuration's API key / bearer token."""
        return f"{SECRET_KEY_PREFIX}.{self.id}"

    @property
    def aws_secret_key(self) -> str:
        """Secret-store key for this configuration's AWS secret access key."""
        return f"{SECRET_KEY_PREFIX}.{self.id}.aws_secret_access_key"

    @property
    def provider_enum(self) -> Provider | None:
        return Provider.parse(self.provider)

    def get_api_key(self, secrets: SecretStore) -> str | None:
        return secrets.get(self.secret_key) or None

    def get_aws_secret_access_key(self, secrets: SecretStore) -> str | None:
        return secrets.get(self.aws_secret_key) or None

    def has_aws_profile(self) -> bool:
        return bool(self.aws_profile_name)

    def has_aws_access_key(self, secrets: SecretStore) -> bool:
        return bool(self.aws_access_key_id) and self.get_aws_secret_access_key(secrets) is not None

    def auth_method(self, secrets: SecretStore) -> AuthMethod:
        if self.has_aws_profile():
            return AuthMethod.AWS_PROFILE
        if self.has_aws_access_key(secrets):
            return AuthMethod.AWS_ACCESS_KEY
        if self.get_api_key(secrets) is not None:
            return AuthMethod.API_KEY
        return AuthMethod.NONE

    def validation_errors(self, secrets: SecretStore) -> list[str]:
        """Lightweight checks; profile files are not read here."""
        errors = []

        if not self.name.strip():
            errors.append("Configuration name is required")

        provider = self.provider_enum
        if not self.provider:
            errors.append("Provider is required")
        elif provider is None:
            errors.append(f"Invalid provider: {self.provider}")

        if not self.model.strip():
            errors.append("Model is required")

        if provider is Provider.AWS_BEDROCK:
            if self.auth_method(secrets) is AuthMethod.NONE:
                errors.append("AWS Bedrock requires an API key, an access key or an AWS profile")
            if not (self.region or "").strip():
                errors.append("Region is required for AWS Bedrock")
        elif provider is not None and self.get_api_key(secrets) is None:
            errors.append(f"API key is required for {provider.display_name}")

        return errors

    def is_valid(self, secrets: SecretStore) -> bool:
        return not self.validation_errors(secrets)

    def summary(self) -> str:
        provider = self.provider_enum
        if provider is Provider.AWS_BEDROCK:
            return f"{provider.display_name} • {self.region or 'unknown'} • {self.model}"
        if provider is not None:
            return f"{provider.display_name} • {self.model}"
        return f"{self.provider} • {self.model}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "provider": self.provider,
            "model": self.model,
            "region": self.region,
            "enable_cross_region": self.enable_cross_region,
            "aws_profile_name": self.aws_profile_name,
            "aws_access_key_id": self.aws_access_key_id,
            "created_at": self.created_at.isoformat(),
            "last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict, secrets: SecretStore | None = None) -> "Configuration":
        """Build from a persisted dict.

        A legacy plaintext `api_key` entry is moved into the secret store
        when one is supplied and dropped otherwise.
        """
        config = cls(
            id=data["id"],
            name=data["name"],
            provider=data["provider"],
            model=data["model"],
            region=data.get("region"),
            enable_cross_region=bool(data.get("enable_cross_region", False)),
            aws_profile_name=data.get("aws_profile_name"),
            aws_access_key_id=data.get("aws_access_key_id"),
            created_at=_parse_datetime(data.get("created_at")) or _now(),
            last_used_at=_parse_datetime(data.get("last_used_at")),
        )
        legacy_key = data.get("api_key")
        if legacy_key and secrets is not None:
            secrets.set(config.secret_key, legacy_key)
        return config


@dataclass
class Prompt:
    title: str
    prompt_text: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def final_prompt_text(self) -> str:
        return self.prompt_text.strip()


DEFAULT_PROMPT_ID = "default"

DEFAULT_PROMPT = Prompt(
    id=DEFAULT_PROMPT_ID,
    title="Default",
    prompt_text=(
        "You are a transcript editor. Clean up the dictated text inside <TRANSCRIPT> tags: "
        "fix punctuation, capitalization and obvious recognition errors, remove filler words, "
        "and keep the speaker's meaning and language. Use the context blocks only to resolve "
        "names and terms. Reply with the cleaned text only."
    ),
)


@dataclass
class AppSettings:
    configurations: list[Configuration] = field(default_factory=list)
    active_configuration_id: str | None = None
    prompts: list[Prompt] = field(default_factory=lambda: [DEFAULT_PROMPT])
    selected_prompt_id: str | None = DEFAULT_PROMPT_ID

    # Single-provider settings from before configurations existed
    legacy_provider: str = Provider.OPENAI.value
    legacy_model: str = ""
    bedrock_region: str = "us-east-1"

    # Context toggles
    use_user_profile_context: bool = True
    use_selected_text_context: bool = False
    use_clipboard_context: bool = False
    use_screen_capture_context: bool = False
    user_profile_context: str = ""

    def find_configuration(self, config_id: str | None) -> Configuration | None:
        if config_id is None:
            return None
        return next((c for c in self.configurations if c.id == config_id), None)

    @property
    def active_configuration(self) -> Configuration | None:
        return self.find_configuration(self.active_configuration_id)

    @property
    def active_prompt(self) -> Prompt | None:
        """Selected prompt, else the default prompt, else the first one."""
        for prompt_id in (self.selected_prompt_id, DEFAULT_PROMPT_ID):
            match = next((p for p in self.prompts if p.id == prompt_id), None)
            if match is not None:
                return match
        return self.prompts[0] if self.prompts else None

    def to_dict(self) -> dict:
        return {
            "configurations": [c.to_dict() for c in self.configurations],
            "active_configuration_id": self.active_configuration_id,
            "prompts": [{"id": p.id, "title": p.title, "prompt_text": p.prompt_text} for p in self.prompts],
            "selected_prompt_id": self.selected_prompt_id,
            "legacy_provider": self.legacy_provider,
            "legacy_model": self.legacy_model,
            "bedrock_region": self.bedrock_region,
            "use_user_profile_context": self.use_user_profile_context,
            "use_selected_text_context": self.use_selected_text_context,
            "use_clipboard_context": self.use_clipboard_context,
            "use_screen_capture_context": self.use_screen_capture_context,
            "user_profile_context": self.user_profile_context,
        }

    @classmethod
    def from_dict(cls, data: dict, secrets: SecretStore | None = None) -> "AppSettings":
        defaults = cls()
        legacy_key = data.get("legacy_api_key")
        if legacy_key and secrets is not None:
            secrets.set(LEGACY_API_KEY_SECRET, legacy_key)
        prompts = [Prompt(**p) for p in data["prompts"]] if "prompts" in data else defaults.prompts
        return cls(
            configurations=[Configuration.from_dict(c, secrets) for c in data.get("configurations", [])],
            active_configuration_id=data.get("active_configuration_id"),
            prompts=prompts,
            selected_prompt_id=data.get("selected_prompt_id", defaults.selected_prompt_id),
            legacy_provider=data.get("legacy_provider", defaults.legacy_provider),
            legacy_model=data.get("legacy_model", defaults.legacy_model),
            bedrock_region=data.get("bedrock_region", defaults.bedrock_region),
            use_user_profile_context=data.get("use_user_profile_context", True),
            use_selected_text_context=data.get("use_selected_text_context", False),
            use_clipboard_context=data.get("use_clipboard_context", False),
            use_screen_capture_context=data.get("use_screen_capture_context", False),
            user_profile_context=data.get("user_profile_context", ""),
        )
