"""AWS Bedrock Converse API provider, called over plain HTTPS.

Auth is one of: SigV4 signature headers (access key or profile
credentials), a Bedrock API key sent as a bearer token, or a generic
bearer token.
"""

import json
from collections.abc import Callable
from datetime import datetime, timezone
from urllib.parse import quote

from dictation_ai.aws.signer import sign_request
from dictation_ai.config.settings import get_settings
from dictation_ai.errors import NotConfigured
from dictation_ai.providers.base import LLMProvider, ProviderRequest, encode_json
from dictation_ai.providers.catalog import BEDROCK_URL_TEMPLATE
from dictation_ai.session.models import ActiveSession, BearerAuth, BedrockBearerAuth, BedrockSigV4Auth

# Credential-scope service name for bedrock-runtime endpoints
SIGNING_SERVICE = "bedrock"

# Flat text fields some models return instead of the Converse envelope
_FLAT_TEXT_FIELDS = ("output_text", "outputText", "completion", "generated_text")


class BedrockProvider(LLMProvider):
    """Sends requests to the Bedrock runtime Converse endpoint."""

    def __init__(self, clock: Callable[[], datetime] | None = None):
        super().__init__()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @staticmethod
    def _translate_request(system_message: str | None, user_message: str, max_tokens: int | None) -> dict:
        """Converse payload. System text is folded into the single user turn."""
        settings = get_settings()
        prompt = user_message if system_message is None else f"{system_message}\n{user_message}"
        return {
            "messages": [
                {"role": "user", "content": [{"text": prompt}]},
            ],
            "inferenceConfig": {
                "maxTokens": max_tokens if max_tokens is not None else settings.bedrock_max_tokens,
                "temperature": settings.enhancement_temperature,
            },
        }

    @staticmethod
    def _region_for(session: ActiveSession) -> str:
        region = session.region or ""
        if isinstance(session.auth, (BedrockSigV4Auth, BedrockBearerAuth)) and session.auth.region:
            region = session.auth.region
        return region or get_settings().default_bedrock_region

    @staticmethod
    def endpoint(region: str, model_id: str) -> str:
        # Model ids contain ':' which must be escaped in the path
        return BEDROCK_URL_TEMPLATE.format(region=region, model_id=quote(model_id, safe=""))

    def build_request(
        self,
        session: ActiveSession,
        system_message: str | None,
        user_message: str,
        max_tokens: int | None = None,
    ) -> ProviderRequest:
        if not session.model:
            raise NotConfigured("Bedrock model id is required")

        region = self._region_for(session)
        url = self.endpoint(region, session.model)
        body = encode_json(self._translate_request(system_message, user_message, max_tokens))
        headers = {"Content-Type": "application/json"}

        auth = session.auth
        if isinstance(auth, BedrockSigV4Auth):
            headers = sign_request(
                method="POST",
                url=url,
                headers=headers,
                body=body,
                credentials=auth.credentials,
                region=region,
                service=SIGNING_SERVICE,
                timestamp=self._clock(),
            )
        elif isinstance(auth, (BedrockBearerAuth, BearerAuth)):
            if not auth.token:
                raise NotConfigured()
            headers["Authorization"] = f"Bearer {auth.token}"
        else:
            raise NotConfigured(f"Unsupported auth for Bedrock: {type(auth).__name__}")

        return ProviderRequest(url=url, headers=headers, body=body)

    @staticmethod
    def _translate_response(data: dict) -> str | None:
        """Pull reply text out of the envelope shapes Bedrock models produce."""
        output = data.get("output")
        message = output.get("message") if isinstance(output, dict) else None
        content = message.get("content") if isinstance(message, dict) else None

        if isinstance(content, list):
            blocks = [b for b in content if isinstance(b, dict)]
            # Final answer first; reasoning text only when nothing else came back
            for block in blocks:
                if isinstance(block.get("text"), str):
                    return block["text"]
            for block in blocks:
                reasoning = block.get("reasoningContent")
                if isinstance(reasoning, dict):
                    reasoning_text = reasoning.get("reasoningText")
                    if isinstance(reasoning_text, dict) and isinstance(reasoning_text.get("text"), str):
                        return reasoning_text["text"]

        for field_name in _FLAT_TEXT_FIELDS:
            if isinstance(data.get(field_name), str):
                return data[field_name]

        outputs = data.get("outputs")
        if isinstance(outputs, list) and outputs and isinstance(outputs[0], dict):
            first = outputs[0]
            for field_name in ("text", "output_text"):
                if isinstance(first.get(field_name), str):
                    return first[field_name]

        return None

    def parse_response(self, body: bytes) -> str | None:
        try:
            data = json.loads(body)
        except ValueError:
            data = None
        if not isinstance(data, dict):
            # Not a JSON object: the body itself is the reply
            return body.decode("utf-8", errors="replace")
        return self._translate_response(data)
