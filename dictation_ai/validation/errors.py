"""User-facing error taxonomy for configuration validation.

`from_status_code` / `from_result` are the single place where probe
outcomes become errors; the quick verify-and-save flow and the
background switch flow both go through them.
"""

from dataclasses import dataclass


@dataclass
class ValidationResult:
    success: bool
    status_code: int | None = None
    error_message: str | None = None
    is_network_error: bool = False

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(success=True)

    @classmethod
    def failure(cls, message: str, status_code: int | None = None, is_network_error: bool = False) -> "ValidationResult":
        return cls(success=False, status_code=status_code, error_message=message, is_network_error=is_network_error)


class ConfigurationValidationError(Exception):
    """Base class; carries a message and a recovery suggestion."""

    recovery_suggestion = "Please try again."

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "recovery_suggestion": self.recovery_suggestion,
        }

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self.message == other.message

    def __hash__(self) -> int:
        return hash((type(self), self.message))

    @staticmethod
    def from_status_code(status_code: int, provider: str, message: str | None = None) -> "ConfigurationValidationError":
        if status_code in (401, 403):
            return InvalidCredentials(provider)
        if status_code == 429:
            return RateLimited()
        if 500 <= status_code <= 599:
            return ProviderUnavailable(provider)
        return UnknownValidationError(message or f"HTTP {status_code}")

    @staticmethod
    def from_result(result: ValidationResult, provider: str) -> "ConfigurationValidationError | None":
        """Map a failed probe result. None for success or a cancelled probe."""
        if result.success:
            return None
        message = result.error_message or ""
        if result.status_code is not None:
            return ConfigurationValidationError.from_status_code(result.status_code, provider, result.error_message)
        if "timed out" in message.lower():
            return ValidationTimeout()
        if "cancelled" in message.lower():
            return None
        if result.is_network_error:
            return ValidationNetworkError(message)
        return UnknownValidationError(message or "Validation failed")


class ValidationTimeout(ConfigurationValidationError):
    recovery_suggestion = "Try again or check your network connection."

    def __init__(self):
        super().__init__("Connection timed out. The provider may be slow or unavailable.")


class InvalidCredentials(ConfigurationValidationError):
    recovery_suggestion = "Edit the configuration to update your API key."

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Invalid credentials for {provider}.")


class RateLimited(ConfigurationValidationError):
    recovery_suggestion = "Wait a moment before trying again."

    def __init__(self, retry_after: float | None = None):
        self.retry_after = retry_after
        if retry_after is not None:
            super().__init__(f"Rate limited. Try again in {retry_after:.0f} seconds.")
        else:
            super().__init__("Rate limited. Try again later.")


class ValidationNetworkError(ConfigurationValidationError):
    recovery_suggestion = "Check your internet connection and try again."

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Network error: {detail}")


class ProviderUnavailable(ConfigurationValidationError):
    recovery_suggestion = "Try again later or use a different configuration."

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"{provider} is currently unavailable.")


class UnknownValidationError(ConfigurationValidationError):
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)
