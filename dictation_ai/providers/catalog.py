"""Closed catalog of remote LLM backends."""

from enum import Enum


class AuthShape(str, Enum):
    SIGV4_OR_BEARER = "sigv4_or_bearer"
    CUSTOM_HEADER = "custom_header"
    BEARER = "bearer"


class Provider(str, Enum):
    AWS_BEDROCK = "aws_bedrock"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GEMINI = "gemini"
    GROQ = "groq"
    CEREBRAS = "cerebras"
    OPENROUTER = "openrouter"

    @property
    def base_url(self) -> str:
        return _PROVIDER_INFO[self][0]

    @property
    def default_model(self) -> str:
        return _PROVIDER_INFO[self][1]

    @property
    def auth_shape(self) -> AuthShape:
        return _PROVIDER_INFO[self][2]

    @property
    def display_name(self) -> str:
        return _PROVIDER_INFO[self][3]

    @classmethod
    def parse(cls, raw: str | None) -> "Provider | None":
        """Lenient lookup by value; unknown or empty tags return None."""
        if not raw:
            return None
        try:
            return cls(raw)
        except ValueError:
            return None


BEDROCK_URL_TEMPLATE = "https://bedrock-runtime.{region}.amazonaws.com/model/{model_id}/converse"

# provider -> (base endpoint, default model, auth shape, display name)
_PROVIDER_INFO: dict[Provider, tuple[str, str, AuthShape, str]] = {
    Provider.AWS_BEDROCK: (
        BEDROCK_URL_TEMPLATE,
        "anthropic.claude-3-5-haiku-20241022-v1:0",
        AuthShape.SIGV4_OR_BEARER,
        "AWS Bedrock",
    ),
    Provider.ANTHROPIC: (
        "https://api.anthropic.com/v1/messages",
        "claude-3-5-haiku-latest",
        AuthShape.CUSTOM_HEADER,
        "Anthropic",
    ),
    Provider.OPENAI: (
        "https://api.openai.com/v1/chat/completions",
        "gpt-4o-mini",
        AuthShape.BEARER,
        "OpenAI",
    ),
    Provider.GEMINI: (
        "https://generativelanguage.googleapis.com/v1beta/openai/chat/completions",
        "gemini-2.0-flash",
        AuthShape.BEARER,
        "Gemini",
    ),
    Provider.GROQ: (
        "https://api.groq.com/openai/v1/chat/completions",
        "llama-3.3-70b-versatile",
        AuthShape.BEARER,
        "Groq",
    ),
    Provider.CEREBRAS: (
        "https://api.cerebras.ai/v1/chat/completions",
        "llama-3.3-70b",
        AuthShape.BEARER,
        "Cerebras",
    ),
    Provider.OPENROUTER: (
        "https://openrouter.ai/api/v1/chat/completions",
        "openai/gpt-4o-mini",
        AuthShape.BEARER,
        "OpenRouter",
    ),
}
