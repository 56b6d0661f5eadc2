"""Active session: the resolved, immutable runtime shape of one configuration."""

from dataclasses import dataclass

from dictation_ai.aws.profiles import AWSCredentials
from dictation_ai.providers.catalog import Provider


@dataclass(frozen=True)
class BearerAuth:
    token: str


@dataclass(frozen=True)
class BedrockSigV4Auth:
    credentials: AWSCredentials
    region: str


@dataclass(frozen=True)
class BedrockBearerAuth:
    token: str
    region: str


@dataclass(frozen=True)
class AnthropicAuth:
    api_key: str


SessionAuth = BearerAuth | BedrockSigV4Auth | BedrockBearerAuth | AnthropicAuth


def auth_kind(auth: SessionAuth) -> str:
    if isinstance(auth, BearerAuth):
        return "bearer"
    if isinstance(auth, BedrockSigV4Auth):
        return "bedrock_sigv4"
    if isinstance(auth, BedrockBearerAuth):
        return "bedrock_bearer"
    if isinstance(auth, AnthropicAuth):
        return "anthropic"
    raise ValueError(f"Unknown session auth: {type(auth).__name__}")


@dataclass(frozen=True)
class ActiveSession:
    provider: Provider
    model: str
    region: str | None
    auth: SessionAuth
    configuration_id: str | None = None  # None for legacy single-key sessions

    def describe(self) -> dict:
        """Secret-free summary for logs and the control API."""
        return {
            "provider": self.provider.value,
            "model": self.model,
            "region": self.region,
            "auth": auth_kind(self.auth),
            "configuration_id": self.configuration_id,
        }
