"""Error taxonomy for the enhancement request pipeline.

Every failure surfaced by `EnhancementService.enhance` is an
`EnhancementError`. `retryable` drives the retry wrapper; `status_code`
is what the local control API answers with.
"""


class EnhancementError(Exception):
    """Base class for request-pipeline failures."""

    default_message = "AI enhancement failed"
    retryable = False
    status_code = 502

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotConfigured(EnhancementError):
    default_message = "AI enhancement is not configured"
    status_code = 409


class NetworkError(EnhancementError):
    default_message = "Network error while contacting the AI provider"
    retryable = True


class ServerError(EnhancementError):
    default_message = "The AI provider returned a server error"
    retryable = True


class RateLimitExceeded(EnhancementError):
    default_message = "Rate limit exceeded"
    retryable = True
    status_code = 429


class ApiKeyInvalid(EnhancementError):
    default_message = "Invalid API key or credentials"
    status_code = 401


class InvalidResponse(EnhancementError):
    default_message = "Invalid response from the AI provider"


class EnhancementFailed(EnhancementError):
    default_message = "Could not read enhanced text from the provider response"


class CustomError(EnhancementError):
    """Anything else; carries the provider's status and (truncated) body."""
