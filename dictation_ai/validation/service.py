"""Configuration validation before switching.

Per attempt: Idle -> Validating(id) -> Success(id) | Failed(error) -> Idle.

- The probe races a fixed timer; a timer win is a Timeout even if the
  probe would have succeeded later.
- Starting a new switch cancels the previous attempt. A cancelled or
  superseded attempt changes no state at all.
- Success makes the configuration active and shows a success flag that
  clears itself after `success_indicator_duration` seconds.
- Errors stay until cleared or until the next switch starts.
"""

import asyncio

from dictation_ai.concurrency.race import run_with_timeout
from dictation_ai.config.settings import get_settings
from dictation_ai.enhancement.service import EnhancementService
from dictation_ai.logging.audit import get_audit_logger
from dictation_ai.store.models import Configuration
from dictation_ai.store.secret_store import SecretStore
from dictation_ai.store.settings_store import SettingsStore
from dictation_ai.validation.errors import (
    ConfigurationValidationError,
    UnknownValidationError,
    ValidationResult,
    ValidationTimeout,
)
from dictation_ai.validation.probe import ConfigurationProber


def _provider_label(config: Configuration) -> str:
    provider = config.provider_enum
    return provider.display_name if provider else config.provider


class ConfigurationValidationService:

    def __init__(
        self,
        settings_store: SettingsStore,
        secret_store: SecretStore,
        prober: ConfigurationProber,
        enhancement_service: EnhancementService | None = None,
        timeout: float | None = None,
        success_indicator_duration: float | None = None,
    ):
        settings = get_settings()
        self._settings_store = settings_store
        self._secrets = secret_store
        self._prober = prober
        self._enhancement_service = enhancement_service
        self.timeout = timeout if timeout is not None else settings.validation_timeout
        self.success_indicator_duration = (
            success_indicator_duration
            if success_indicator_duration is not None
            else settings.success_indicator_duration
        )

        self.validating_config_id: str | None = None
        self.validation_error: ConfigurationValidationError | None = None
        self.last_success_config_id: str | None = None

        self._task: asyncio.Task | None = None
        self._attempt = 0
        self._success_clear_handle: asyncio.TimerHandle | None = None

    @property
    def is_validating(self) -> bool:
        return self.validating_config_id is not None

    def state(self) -> dict:
        return {
            "validating_config_id": self.validating_config_id,
            "last_success_config_id": self.last_success_config_id,
            "error": self.validation_error.to_dict() if self.validation_error else None,
        }

    # --- Public operations ---

    def switch_to_configuration(self, config_id: str) -> asyncio.Task | None:
        """Cancel any in-flight validation and start validating `config_id`.

        Returns the validation task, or None when the configuration was
        rejected up front (unknown id or failing local checks).
        """
        self.cancel_validation()
        self.validation_error = None

        config = self._settings_store.get_configuration(config_id)
        if config is None:
            self.validation_error = UnknownValidationError("Configuration not found")
            return None

        errors = config.validation_errors(self._secrets)
        if errors:
            self.validation_error = UnknownValidationError(errors[0])
            return None

        self._attempt += 1
        self.validating_config_id = config_id
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._perform_validation(config, self._attempt))
        return self._task

    def cancel_validation(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._attempt += 1
        self.validating_config_id = None

    def clear_error(self) -> None:
        self.validation_error = None

    async def verify_configuration(self, config: Configuration) -> ValidationResult:
        """Probe with the validation timeout; a timeout is a failed result."""
        outcome = await run_with_timeout(self._prober.probe(config), self.timeout)
        if outcome.timed_out:
            return ValidationResult.failure("Request timed out")
        return outcome.value

    async def verify_and_save(self, config: Configuration) -> ConfigurationValidationError | None:
        """Quick flow for the edit sheet: save only if the live probe passes."""
        errors = config.validation_errors(self._secrets)
        if errors:
            return UnknownValidationError(errors[0])

        result = await self.verify_configuration(config)
        if result.success:
            self._settings_store.upsert_configuration(config)
            return None
        return ConfigurationValidationError.from_result(result, _provider_label(config))

    # --- Internals ---

    async def _perform_validation(self, config: Configuration, attempt: int) -> None:
        outcome = await run_with_timeout(self._prober.probe(config), self.timeout)

        # Superseded while the race was running
        if attempt != self._attempt or self.validating_config_id != config.id:
            return

        self.validating_config_id = None
        logger = get_audit_logger()

        if outcome.timed_out:
            self.validation_error = ValidationTimeout()
            logger.warning(
                "Configuration validation timed out",
                extra={"audit_data": {"configuration_id": config.id, "timeout": self.timeout}},
            )
            return

        result = outcome.value
        if result.success:
            self._activate(config)
            return

        self.validation_error = ConfigurationValidationError.from_result(result, _provider_label(config))
        logger.warning(
            "Configuration validation failed",
            extra={"audit_data": {
                "configuration_id": config.id,
                "status": result.status_code,
                "error": result.error_message,
            }},
        )

    def _activate(self, config: Configuration) -> None:
        self._settings_store.set_active_configuration(config.id)
        if self._enhancement_service is not None:
            self._enhancement_service.apply_configuration(config)
        get_audit_logger().info(
            "Configuration validated and activated",
            extra={"audit_data": {"configuration_id": config.id}},
        )
        self._show_success_indicator(config.id)

    def _show_success_indicator(self, config_id: str) -> None:
        self.last_success_config_id = config_id
        if self._success_clear_handle is not None:
            self._success_clear_handle.cancel()
        loop = asyncio.get_running_loop()
        self._success_clear_handle = loop.call_later(
            self.success_indicator_duration, self._clear_success_indicator, config_id
        )

    def _clear_success_indicator(self, config_id: str) -> None:
        if self.last_success_config_id == config_id:
            self.last_success_config_id = None
        self._success_clear_handle = None
