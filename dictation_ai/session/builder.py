"""Session builder: configuration -> ActiveSession.

Building never raises. Any unsatisfied precondition yields None, which
the pipeline reports as "not configured".

Fallback chain per provider:

- Bedrock: AWS profile (async only) -> access key + secret -> bearer
  key from the secret store -> legacy global key
- Anthropic and bearer providers: secret-store key -> legacy global key
"""

from dictation_ai.aws.profiles import AWSCredentials, AWSProfileError, AWSProfileResolver
from dictation_ai.logging.audit import get_audit_logger
from dictation_ai.providers.catalog import Provider
from dictation_ai.session.models import (
    ActiveSession,
    AnthropicAuth,
    BearerAuth,
    BedrockBearerAuth,
    BedrockSigV4Auth,
)
from dictation_ai.store.models import LEGACY_API_KEY_SECRET, Configuration
from dictation_ai.store.secret_store import SecretStore
from dictation_ai.store.settings_store import SettingsStore

# Inference-profile prefixes Bedrock accepts in front of a model id
_GEO_PREFIXES = ("us.", "eu.", "apac.", "us-gov.", "ca.", "jp.", "au.", "global.")


def cross_region_model_id(model: str, region: str) -> str:
    """Prefix a Bedrock model id with the region's inference-profile geography."""
    if model.startswith(_GEO_PREFIXES):
        return model
    if region.startswith("us-gov-"):
        geo = "us-gov"
    elif region.startswith("us-"):
        geo = "us"
    elif region.startswith("eu-"):
        geo = "eu"
    elif region.startswith("ap-"):
        geo = "apac"
    elif region.startswith("ca-"):
        geo = "ca"
    else:
        return model
    return f"{geo}.{model}"


class SessionBuilder:
    def __init__(
        self,
        settings_store: SettingsStore,
        secret_store: SecretStore,
        profile_resolver: AWSProfileResolver | None = None,
    ):
        self._settings_store = settings_store
        self._secrets = secret_store
        self._profiles = profile_resolver or AWSProfileResolver()

    def _legacy_key(self) -> str | None:
        return self._secrets.get(LEGACY_API_KEY_SECRET) or None

    def _bedrock_region(self, config: Configuration) -> str:
        return config.region or self._settings_store.load().bedrock_region

    @staticmethod
    def _model_for(config: Configuration, provider: Provider, region: str | None) -> str:
        model = config.model.strip() or provider.default_model
        if provider is Provider.AWS_BEDROCK and config.enable_cross_region and region:
            model = cross_region_model_id(model, region)
        return model

    def build(self, config: Configuration, include_legacy: bool = True) -> ActiveSession | None:
        """Synchronous path. Profile-based configurations return None here."""
        provider = config.provider_enum
        if provider is None:
            return None

        legacy_key = self._legacy_key() if include_legacy else None
        api_key = config.get_api_key(self._secrets)

        if provider is Provider.AWS_BEDROCK:
            if config.has_aws_profile():
                return None  # resolved by build_async

            region = self._bedrock_region(config)
            model = self._model_for(config, provider, region)

            secret = config.get_aws_secret_access_key(self._secrets)
            if config.aws_access_key_id and secret:
                credentials = AWSCredentials(
                    access_key_id=config.aws_access_key_id,
                    secret_access_key=secret,
                    region=region,
                )
                return ActiveSession(provider, model, region, BedrockSigV4Auth(credentials, region), config.id)

            token = api_key or legacy_key
            if token:
                return ActiveSession(provider, model, region, BedrockBearerAuth(token, region), config.id)
            return None

        model = self._model_for(config, provider, config.region)

        if provider is Provider.ANTHROPIC:
            key = api_key or legacy_key
            if key:
                return ActiveSession(provider, model, None, AnthropicAuth(key), config.id)
            return None

        if provider in (
            Provider.OPENAI,
            Provider.GEMINI,
            Provider.GROQ,
            Provider.CEREBRAS,
            Provider.OPENROUTER,
        ):
            key = api_key or legacy_key
            if key:
                return ActiveSession(provider, model, config.region, BearerAuth(key), config.id)
            return None

        raise ValueError(f"Unhandled provider: {provider}")

    async def build_async(self, config: Configuration, include_legacy: bool = True) -> ActiveSession | None:
        """Full path, including AWS profile resolution (file I/O in a thread)."""
        if config.provider_enum is not Provider.AWS_BEDROCK or not config.has_aws_profile():
            return self.build(config, include_legacy=include_legacy)

        profile = config.aws_profile_name
        try:
            credentials = await self._profiles.resolve_credentials(profile)
        except AWSProfileError as e:
            get_audit_logger().warning(
                "AWS profile resolution failed",
                extra={"audit_data": {"profile": profile, "configuration_id": config.id, "error": str(e)}},
            )
            return None

        # Region from the profile's config section wins over the stored one
        region = credentials.region or self._bedrock_region(config)
        model = self._model_for(config, Provider.AWS_BEDROCK, region)
        return ActiveSession(
            Provider.AWS_BEDROCK, model, region, BedrockSigV4Auth(credentials, region), config.id
        )

    def build_legacy(self) -> ActiveSession | None:
        """Session from the pre-configuration single provider/key settings."""
        settings = self._settings_store.load()
        provider = Provider.parse(settings.legacy_provider)
        api_key = self._legacy_key()
        if provider is None or not api_key:
            return None

        model = settings.legacy_model.strip() or provider.default_model

        if provider is Provider.AWS_BEDROCK:
            region = settings.bedrock_region
            return ActiveSession(provider, model, region, BedrockBearerAuth(api_key, region))
        if provider is Provider.ANTHROPIC:
            return ActiveSession(provider, model, None, AnthropicAuth(api_key))
        return ActiveSession(provider, model, None, BearerAuth(api_key))
