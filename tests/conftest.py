"""Shared fixtures for the dictation AI test suite."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from dictation_ai.aws.profiles import AWSProfileResolver
from dictation_ai.config.settings import get_settings
from dictation_ai.store.models import AppSettings, Configuration
from dictation_ai.store.secret_store import InMemorySecretStore
from dictation_ai.store.settings_store import InMemorySettingsStore

CREDENTIALS_FILE = """\
[default]
aws_access_key_id = AKIADEFAULT
aws_secret_access_key = default-secret

# work account
[work]
aws_access_key_id = AKIAWORK
aws_secret_access_key = work-secret
aws_session_token = work-token

[broken]
aws_access_key_id = AKIABROKEN
aws_secret_access_key =
"""

CONFIG_FILE = """\
[default]
region = us-west-2

[profile work]
region = eu-central-1
output = json
"""


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(VALIDATION_TIMEOUT="0.1", RATE_LIMIT_INTERVAL="0")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    # Always clear cache on teardown so other tests get fresh settings
    get_settings.cache_clear()


@pytest.fixture
def secret_store() -> InMemorySecretStore:
    return InMemorySecretStore()


@pytest.fixture
def settings_store() -> InMemorySettingsStore:
    return InMemorySettingsStore(AppSettings())


@pytest.fixture
def aws_files(tmp_path):
    """Write AWS credentials/config files and return their paths."""
    credentials = tmp_path / "credentials"
    credentials.write_text(CREDENTIALS_FILE, encoding="utf-8")
    config = tmp_path / "config"
    config.write_text(CONFIG_FILE, encoding="utf-8")
    return str(credentials), str(config)


@pytest.fixture
def profile_resolver(aws_files) -> AWSProfileResolver:
    credentials, config = aws_files
    return AWSProfileResolver(credentials_path=credentials, config_path=config)


@pytest.fixture(params=["invalid-utf8", "directory"])
def unreadable_resolver(request, tmp_path) -> AWSProfileResolver:
    """Resolver whose credentials path exists but cannot be read as text."""
    credentials = tmp_path / "credentials"
    if request.param == "directory":
        credentials.mkdir()
    else:
        credentials.write_bytes(b"\xff\xfe[work]\naws_access_key_id = AKIAWORK\n")
    return AWSProfileResolver(credentials_path=str(credentials), config_path=str(tmp_path / "config"))


@pytest.fixture
def openai_config(secret_store) -> Configuration:
    """An OpenAI configuration with its key in the secret store."""
    config = Configuration(id="cfg-openai", name="OpenAI", provider="openai", model="gpt-4o-mini")
    secret_store.set(config.secret_key, "sk-openai-test")
    return config


@pytest.fixture
def anthropic_config(secret_store) -> Configuration:
    config = Configuration(
        id="cfg-anthropic", name="Claude", provider="anthropic", model="claude-3-5-haiku-latest"
    )
    secret_store.set(config.secret_key, "sk-ant-test")
    return config


@pytest.fixture
def bedrock_key_config(secret_store) -> Configuration:
    """Bedrock configuration authenticated with an access key pair."""
    config = Configuration(
        id="cfg-bedrock-keys",
        name="Bedrock keys",
        provider="aws_bedrock",
        model="anthropic.claude-3-5-haiku-20241022-v1:0",
        region="us-east-1",
        aws_access_key_id="AKIATEST",
    )
    secret_store.set(config.aws_secret_key, "test-secret")
    return config


@pytest.fixture
def bedrock_profile_config() -> Configuration:
    return Configuration(
        id="cfg-bedrock-profile",
        name="Bedrock work",
        provider="aws_bedrock",
        model="anthropic.claude-3-5-haiku-20241022-v1:0",
        region="us-east-1",
        aws_profile_name="work",
    )


def make_http_response(status_code: int = 200, payload=None, text: str | None = None) -> MagicMock:
    """Stand-in for an httpx.Response as seen by LLMProvider.send."""
    response = MagicMock()
    response.status_code = status_code
    if text is not None:
        response.content = text.encode("utf-8")
    else:
        response.content = json.dumps(payload if payload is not None else {}).encode("utf-8")
    return response


def mock_http_client(*responses, side_effect=None) -> AsyncMock:
    """AsyncMock client whose post() returns `responses` in order."""
    client = AsyncMock()
    client.is_closed = False
    if side_effect is not None:
        client.post.side_effect = side_effect
    elif len(responses) == 1:
        client.post.return_value = responses[0]
    else:
        client.post.side_effect = list(responses)
    return client


def sent_payload(client: AsyncMock, call_index: int = -1) -> dict:
    """Decode the JSON body of a recorded post() call."""
    call = client.post.call_args_list[call_index]
    return json.loads(call.kwargs["content"])
