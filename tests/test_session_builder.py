"""Tests for dictation_ai/session/builder.py: configuration -> ActiveSession."""

import pytest

from dictation_ai.aws.profiles import AWSProfileResolver
from dictation_ai.providers.catalog import Provider
from dictation_ai.session.builder import SessionBuilder, cross_region_model_id
from dictation_ai.session.models import (
    AnthropicAuth,
    BearerAuth,
    BedrockBearerAuth,
    BedrockSigV4Auth,
    auth_kind,
)
from dictation_ai.store.models import LEGACY_API_KEY_SECRET, Configuration


@pytest.fixture
def builder(settings_store, secret_store, profile_resolver) -> SessionBuilder:
    return SessionBuilder(settings_store, secret_store, profile_resolver)


class TestCrossRegion:

    @pytest.mark.parametrize("region,expected", [
        ("us-east-1", "us.anthropic.claude"),
        ("eu-west-1", "eu.anthropic.claude"),
        ("ap-northeast-1", "apac.anthropic.claude"),
        ("us-gov-west-1", "us-gov.anthropic.claude"),
        ("ca-central-1", "ca.anthropic.claude"),
        ("sa-east-1", "anthropic.claude"),
    ])
    def test_prefix_by_geography(self, region, expected):
        assert cross_region_model_id("anthropic.claude", region) == expected

    def test_already_prefixed(self):
        assert cross_region_model_id("eu.anthropic.claude", "us-east-1") == "eu.anthropic.claude"


class TestBuild:

    def test_openai_bearer(self, builder, openai_config):
        session = builder.build(openai_config)
        assert session.provider is Provider.OPENAI
        assert session.auth == BearerAuth("sk-openai-test")
        assert session.configuration_id == openai_config.id

    def test_anthropic(self, builder, anthropic_config):
        session = builder.build(anthropic_config)
        assert session.auth == AnthropicAuth("sk-ant-test")
        assert session.region is None

    def test_bedrock_access_key_is_sigv4(self, builder, bedrock_key_config):
        session = builder.build(bedrock_key_config)
        assert isinstance(session.auth, BedrockSigV4Auth)
        assert session.auth.credentials.access_key_id == "AKIATEST"
        assert session.auth.credentials.secret_access_key == "test-secret"
        assert session.region == "us-east-1"

    def test_bedrock_bearer_key(self, builder, secret_store):
        config = Configuration(name="b", provider="aws_bedrock", model="m", region="eu-west-1")
        secret_store.set(config.secret_key, "bedrock-api-key")
        session = builder.build(config)
        assert session.auth == BedrockBearerAuth("bedrock-api-key", "eu-west-1")

    def test_bedrock_access_key_without_secret_falls_to_bearer(self, builder, secret_store, bedrock_key_config):
        secret_store.delete(bedrock_key_config.aws_secret_key)
        secret_store.set(bedrock_key_config.secret_key, "bearer")
        assert auth_kind(builder.build(bedrock_key_config).auth) == "bedrock_bearer"

    def test_bedrock_profile_not_built_synchronously(self, builder, bedrock_profile_config):
        assert builder.build(bedrock_profile_config) is None

    def test_cross_region_model(self, builder, bedrock_key_config):
        bedrock_key_config.enable_cross_region = True
        session = builder.build(bedrock_key_config)
        assert session.model == "us.anthropic.claude-3-5-haiku-20241022-v1:0"

    def test_missing_key_is_none(self, builder, secret_store, openai_config):
        secret_store.delete(openai_config.secret_key)
        assert builder.build(openai_config) is None

    def test_legacy_key_fallback(self, builder, secret_store, openai_config):
        secret_store.delete(openai_config.secret_key)
        secret_store.set(LEGACY_API_KEY_SECRET, "sk-legacy")
        assert builder.build(openai_config).auth == BearerAuth("sk-legacy")
        assert builder.build(openai_config, include_legacy=False) is None

    def test_unknown_provider_is_none(self, builder):
        assert builder.build(Configuration(name="x", provider="mistral", model="m")) is None

    def test_blank_model_uses_default(self, builder, secret_store):
        config = Configuration(name="g", provider="groq", model=" ")
        secret_store.set(config.secret_key, "gsk")
        assert builder.build(config).model == Provider.GROQ.default_model


class TestBuildAsync:

    async def test_profile_resolves_to_sigv4(self, builder, bedrock_profile_config):
        session = await builder.build_async(bedrock_profile_config)
        assert isinstance(session.auth, BedrockSigV4Auth)
        assert session.auth.credentials.session_token == "work-token"
        # Region from the profile's config section overrides the stored one
        assert session.region == "eu-central-1"
        assert session.auth.region == "eu-central-1"

    async def test_profile_without_config_region_keeps_stored(self, settings_store, secret_store, aws_files, tmp_path):
        credentials, _ = aws_files
        resolver = AWSProfileResolver(credentials_path=credentials, config_path=str(tmp_path / "none"))
        builder = SessionBuilder(settings_store, secret_store, resolver)
        config = Configuration(name="b", provider="aws_bedrock", model="m", region="ap-south-1", aws_profile_name="work")
        session = await builder.build_async(config)
        assert session.region == "ap-south-1"

    async def test_unknown_profile_is_none(self, builder, bedrock_profile_config):
        bedrock_profile_config.aws_profile_name = "personal"
        assert await builder.build_async(bedrock_profile_config) is None

    async def test_non_profile_delegates_to_build(self, builder, openai_config):
        assert await builder.build_async(openai_config) == builder.build(openai_config)

    async def test_unreadable_credentials_file_is_none(self, settings_store, secret_store, unreadable_resolver, bedrock_profile_config):
        builder = SessionBuilder(settings_store, secret_store, unreadable_resolver)
        assert await builder.build_async(bedrock_profile_config) is None


class TestBuildLegacy:

    def test_no_legacy_key(self, builder):
        assert builder.build_legacy() is None

    def test_legacy_openai(self, builder, secret_store):
        secret_store.set(LEGACY_API_KEY_SECRET, "sk-legacy")
        session = builder.build_legacy()
        assert session.provider is Provider.OPENAI
        assert session.model == Provider.OPENAI.default_model
        assert session.configuration_id is None

    def test_legacy_bedrock(self, builder, settings_store, secret_store):
        settings = settings_store.load()
        settings.legacy_provider = "aws_bedrock"
        settings.bedrock_region = "eu-west-3"
        secret_store.set(LEGACY_API_KEY_SECRET, "br-key")
        session = builder.build_legacy()
        assert session.auth == BedrockBearerAuth("br-key", "eu-west-3")


class TestDescribe:

    def test_describe_has_no_secret(self, builder, bedrock_key_config):
        described = builder.build(bedrock_key_config).describe()
        assert described["auth"] == "bedrock_sigv4"
        assert "test-secret" not in str(described)
