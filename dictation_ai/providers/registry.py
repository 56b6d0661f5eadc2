"""Provider registry: singleton map of Provider -> implementation instance."""

from dictation_ai.providers.anthropic import AnthropicProvider
from dictation_ai.providers.base import LLMProvider
from dictation_ai.providers.bedrock import BedrockProvider
from dictation_ai.providers.catalog import Provider
from dictation_ai.providers.openai import OpenAIProvider

_providers: dict[Provider, LLMProvider] = {}

_OPENAI_COMPATIBLE = (
    Provider.OPENAI,
    Provider.GEMINI,
    Provider.GROQ,
    Provider.CEREBRAS,
    Provider.OPENROUTER,
)


def _create_provider(provider: Provider) -> LLMProvider:
    if provider is Provider.AWS_BEDROCK:
        return BedrockProvider()
    if provider is Provider.ANTHROPIC:
        return AnthropicProvider()
    if provider in _OPENAI_COMPATIBLE:
        return OpenAIProvider()
    raise ValueError(f"Unknown provider: {provider}")


def get_provider(provider: Provider | str) -> LLMProvider:
    """Get or create a provider instance."""
    if not isinstance(provider, Provider):
        parsed = Provider.parse(provider)
        if parsed is None:
            raise ValueError(f"Unknown provider: {provider}")
        provider = parsed

    if provider not in _providers:
        _providers[provider] = _create_provider(provider)
    return _providers[provider]


async def close_all_providers() -> None:
    """Gracefully shut down all provider connections."""
    for provider in _providers.values():
        await provider.close()
    _providers.clear()
