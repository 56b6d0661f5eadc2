"""Anthropic Messages API provider (custom `x-api-key` header scheme)."""

import json

from dictation_ai.config.settings import get_settings
from dictation_ai.errors import NotConfigured
from dictation_ai.providers.base import LLMProvider, ProviderRequest, encode_json
from dictation_ai.session.models import ActiveSession, AnthropicAuth

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(LLMProvider):

    def build_request(
        self,
        session: ActiveSession,
        system_message: str | None,
        user_message: str,
        max_tokens: int | None = None,
    ) -> ProviderRequest:
        if not isinstance(session.auth, AnthropicAuth) or not session.auth.api_key:
            raise NotConfigured()

        payload = {
            "model": session.model,
            "max_tokens": max_tokens if max_tokens is not None else get_settings().anthropic_max_tokens,
        }
        if system_message is not None:
            payload["system"] = system_message
        payload["messages"] = [{"role": "user", "content": user_message}]

        return ProviderRequest(
            url=session.provider.base_url,
            headers={
                "Content-Type": "application/json",
                "x-api-key": session.auth.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            body=encode_json(payload),
        )

    def parse_response(self, body: bytes) -> str | None:
        try:
            blocks = json.loads(body)["content"]
        except (ValueError, KeyError, TypeError):
            return None
        if not isinstance(blocks, list):
            return None
        for block in blocks:
            if isinstance(block, dict) and isinstance(block.get("text"), str):
                return block["text"]
        return None
