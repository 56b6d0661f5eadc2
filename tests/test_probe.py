"""Tests for dictation_ai/validation/probe.py: live configuration probe."""

import json

import httpx
import pytest

from dictation_ai.providers.base import ProviderResponse
from dictation_ai.providers.openai import OpenAIProvider
from dictation_ai.session.builder import SessionBuilder
from dictation_ai.store.models import LEGACY_API_KEY_SECRET, Configuration
from dictation_ai.validation.probe import PROBE_MESSAGE, ConfigurationProber, extract_error_message
from tests.conftest import make_http_response, mock_http_client, sent_payload


@pytest.fixture
def http_provider():
    return OpenAIProvider()


@pytest.fixture
def prober(settings_store, secret_store, profile_resolver, http_provider):
    builder = SessionBuilder(settings_store, secret_store, profile_resolver)
    return ConfigurationProber(builder, provider_factory=lambda _p: http_provider)


class TestExtractErrorMessage:

    def test_openai_style(self):
        response = ProviderResponse(401, json.dumps({"error": {"message": "Incorrect API key"}}).encode())
        assert extract_error_message(response) == "Incorrect API key"

    def test_bedrock_style(self):
        response = ProviderResponse(403, b'{"message": "The security token included in the request is invalid."}')
        assert extract_error_message(response) == "The security token included in the request is invalid."

    def test_raw_body_truncated(self):
        response = ProviderResponse(502, b"<html>" + b"x" * 500)
        message = extract_error_message(response)
        assert message.startswith("HTTP 502: <html>")
        assert len(message) == len("HTTP 502: ") + 200

    def test_empty_body(self):
        assert extract_error_message(ProviderResponse(500, b"")) == "HTTP 500"


class TestProbe:

    async def test_success(self, prober, http_provider, openai_config):
        client = mock_http_client(make_http_response(200, {"choices": [{"message": {"content": "ok"}}]}))
        http_provider._client = client

        result = await prober.probe(openai_config)
        assert result.success is True

        payload = sent_payload(client)
        assert payload["messages"] == [{"role": "user", "content": PROBE_MESSAGE}]
        assert payload["max_tokens"] == 5

    async def test_http_failure_carries_status(self, prober, http_provider, openai_config):
        http_provider._client = mock_http_client(
            make_http_response(401, {"error": {"message": "Incorrect API key provided"}})
        )
        result = await prober.probe(openai_config)
        assert result.success is False
        assert result.status_code == 401
        assert result.error_message == "Incorrect API key provided"

    async def test_no_retry_on_server_error(self, prober, http_provider, openai_config):
        client = mock_http_client(make_http_response(503, text="unavailable"))
        http_provider._client = client
        result = await prober.probe(openai_config)
        assert result.status_code == 503
        assert client.post.call_count == 1

    async def test_network_failure(self, prober, http_provider, openai_config):
        http_provider._client = mock_http_client(side_effect=httpx.ConnectError("refused"))
        result = await prober.probe(openai_config)
        assert result.success is False
        assert result.is_network_error is True
        assert result.status_code is None

    async def test_missing_key_does_not_use_legacy(self, prober, secret_store, openai_config):
        secret_store.delete(openai_config.secret_key)
        secret_store.set(LEGACY_API_KEY_SECRET, "sk-legacy")
        result = await prober.probe(openai_config)
        assert result.error_message == "API key not found"

    async def test_unresolvable_profile(self, prober, bedrock_profile_config):
        bedrock_profile_config.aws_profile_name = "personal"
        result = await prober.probe(bedrock_profile_config)
        assert result.error_message == "Failed to resolve AWS profile 'personal'"

    async def test_bedrock_without_auth(self, prober):
        config = Configuration(name="b", provider="aws_bedrock", model="m", region="us-east-1")
        result = await prober.probe(config)
        assert result.error_message == "No valid authentication method found"

    async def test_invalid_provider(self, prober):
        result = await prober.probe(Configuration(name="x", provider="mistral", model="m"))
        assert result.error_message == "Invalid provider"
