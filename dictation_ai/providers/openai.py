"""OpenAI-compatible chat completions (OpenAI, Gemini, Groq, Cerebras, OpenRouter)."""

import json
import re

from dictation_ai.config.settings import get_settings
from dictation_ai.errors import NotConfigured
from dictation_ai.providers.base import LLMProvider, ProviderRequest, encode_json
from dictation_ai.session.models import ActiveSession, BearerAuth

# Models that reject a temperature parameter
NO_TEMPERATURE_MODELS = frozenset({"gpt-5-mini", "gpt-5-nano"})

# (model-name pattern, reasoning_effort value), first match wins
_REASONING_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"^gpt-5", re.I), "minimal"),
    (re.compile(r"^o[134](-|$)", re.I), "low"),
    (re.compile(r"^gemini-2\.5-flash", re.I), "low"),
]


def reasoning_effort_for(model: str) -> str | None:
    for pattern, effort in _REASONING_PATTERNS:
        if pattern.search(model):
            return effort
    return None


class OpenAIProvider(LLMProvider):
    """Bearer-token providers speaking the chat completions shape."""

    def build_request(
        self,
        session: ActiveSession,
        system_message: str | None,
        user_message: str,
        max_tokens: int | None = None,
    ) -> ProviderRequest:
        if not isinstance(session.auth, BearerAuth) or not session.auth.token:
            raise NotConfigured()

        messages = []
        if system_message is not None:
            messages.append({"role": "system", "content": system_message})
        messages.append({"role": "user", "content": user_message})

        payload = {
            "model": session.model,
            "messages": messages,
            "stream": False,
        }
        if session.model not in NO_TEMPERATURE_MODELS:
            payload["temperature"] = get_settings().enhancement_temperature
        effort = reasoning_effort_for(session.model)
        if effort:
            payload["reasoning_effort"] = effort
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        return ProviderRequest(
            url=session.provider.base_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {session.auth.token}",
            },
            body=encode_json(payload),
        )

    def parse_response(self, body: bytes) -> str | None:
        try:
            data = json.loads(body)
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            return None
        return content if isinstance(content, str) else None
