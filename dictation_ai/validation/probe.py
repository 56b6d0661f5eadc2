"""Live probe of a candidate configuration.

Goes through the same session builder and provider dispatch as real
enhancement requests, but with a one-word prompt, no system message,
a tiny token budget, no retries and no legacy-key fallback.
"""

from collections.abc import Callable

from dictation_ai.config.settings import get_settings
from dictation_ai.errors import EnhancementError, NetworkError
from dictation_ai.logging.audit import get_audit_logger
from dictation_ai.providers.base import LLMProvider, ProviderResponse
from dictation_ai.providers.catalog import Provider
from dictation_ai.providers.registry import get_provider
from dictation_ai.session.builder import SessionBuilder
from dictation_ai.store.models import Configuration
from dictation_ai.validation.errors import ValidationResult

PROBE_MESSAGE = "test"
ERROR_SNIPPET_LIMIT = 200


def extract_error_message(response: ProviderResponse) -> str:
    """`error.message` from a JSON error body, else `HTTP n: <body>`."""
    data = response.json()
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        # Bedrock reports {"message": "..."}
        if isinstance(data.get("message"), str):
            return data["message"]
    snippet = response.text[:ERROR_SNIPPET_LIMIT]
    return f"HTTP {response.status_code}: {snippet}" if snippet else f"HTTP {response.status_code}"


class ConfigurationProber:

    def __init__(
        self,
        session_builder: SessionBuilder,
        provider_factory: Callable[[Provider], LLMProvider] = get_provider,
        max_tokens: int | None = None,
    ):
        self._builder = session_builder
        self._provider_factory = provider_factory
        self._max_tokens = max_tokens if max_tokens is not None else get_settings().probe_max_tokens

    async def probe(self, config: Configuration) -> ValidationResult:
        provider = config.provider_enum
        if provider is None:
            return ValidationResult.failure("Invalid provider")

        session = await self._builder.build_async(config, include_legacy=False)
        if session is None:
            if config.has_aws_profile():
                return ValidationResult.failure(f"Failed to resolve AWS profile '{config.aws_profile_name}'")
            if provider is Provider.AWS_BEDROCK:
                return ValidationResult.failure("No valid authentication method found")
            return ValidationResult.failure("API key not found")

        try:
            response = await self._provider_factory(provider).send(
                session, None, PROBE_MESSAGE, max_tokens=self._max_tokens
            )
        except NetworkError as e:
            return ValidationResult.failure(e.message, is_network_error=True)
        except EnhancementError as e:
            return ValidationResult.failure(e.message)

        get_audit_logger().info(
            "Configuration probe finished",
            extra={"audit_data": {
                "configuration_id": config.id,
                "provider": provider.value,
                "status": response.status_code,
            }},
        )
        if response.status_code == 200:
            return ValidationResult.ok()
        return ValidationResult.failure(extract_error_message(response), status_code=response.status_code)
