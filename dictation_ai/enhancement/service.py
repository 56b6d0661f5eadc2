"""Enhancement request pipeline.

Owns the active session and turns a transcript into enhanced text:

    session check -> empty short-circuit -> system message assembly ->
    snapshot + log -> rate limit -> retry(provider dispatch) -> output filter

The active session is replaced whole, never mutated, so a concurrent
`enhance` sees either the previous or the next session. Profile-based
sessions resolve in a background task tagged with a request token; a
resolution whose token is no longer the latest is dropped.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import NamedTuple

from dictation_ai.aws.profiles import AWSProfileResolver
from dictation_ai.config.settings import get_settings
from dictation_ai.enhancement.prompts import ContextSnapshot, build_system_message, format_transcript
from dictation_ai.enhancement.ratelimit import MinIntervalRateLimiter
from dictation_ai.enhancement.retry import call_with_retry
from dictation_ai.errors import CustomError, EnhancementError, NotConfigured
from dictation_ai.logging.audit import RequestTimer, generate_request_id, get_audit_logger, request_id_var
from dictation_ai.providers.base import LLMProvider
from dictation_ai.providers.catalog import Provider
from dictation_ai.providers.registry import get_provider
from dictation_ai.security.output_filter import filter_output
from dictation_ai.session.builder import SessionBuilder
from dictation_ai.session.models import ActiveSession
from dictation_ai.store.models import AppSettings, Configuration
from dictation_ai.store.secret_store import SecretStore
from dictation_ai.store.settings_store import SettingsStore


def _log_failure(session: ActiveSession, error: EnhancementError) -> None:
    get_audit_logger().error(
        "Enhancement request failed",
        extra={"audit_data": {
            "provider": session.provider.value,
            "model": session.model,
            "error_type": type(error).__name__,
            "error": error.message,
        }},
    )


class EnhancementResult(NamedTuple):
    text: str
    elapsed: float  # seconds
    prompt_name: str | None


@dataclass(frozen=True)
class RequestSnapshot:
    """The exact messages of the last request, for diagnostic display."""

    system_message: str
    user_message: str


class EnhancementService:

    def __init__(
        self,
        settings_store: SettingsStore,
        secret_store: SecretStore,
        profile_resolver: AWSProfileResolver | None = None,
        rate_limiter: MinIntervalRateLimiter | None = None,
        provider_factory: Callable[[Provider], LLMProvider] = get_provider,
        selected_text_source: Callable[[], Awaitable[str | None]] | None = None,
        retry_sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        settings = get_settings()
        self._settings_store = settings_store
        self._builder = SessionBuilder(settings_store, secret_store, profile_resolver)
        self._rate_limiter = rate_limiter or MinIntervalRateLimiter(settings.rate_limit_interval)
        self._provider_factory = provider_factory
        self._selected_text_source = selected_text_source
        self._retry_sleep = retry_sleep

        self._active_session: ActiveSession | None = None
        self._session_token = 0
        self.pending_resolution: asyncio.Task | None = None

        self.last_request: RequestSnapshot | None = None
        self.last_captured_clipboard: str | None = None
        self.last_captured_screen_text: str | None = None

    # --- Session ownership ---

    @property
    def active_session(self) -> ActiveSession | None:
        return self._active_session

    @property
    def session_builder(self) -> SessionBuilder:
        return self._builder

    @property
    def rate_limiter(self) -> MinIntervalRateLimiter:
        return self._rate_limiter

    @property
    def is_configured(self) -> bool:
        return self._active_session is not None

    def _next_token(self) -> int:
        self._session_token += 1
        return self._session_token

    def _replace_session(self, session: ActiveSession | None) -> None:
        self._active_session = session
        get_audit_logger().info(
            "Active session replaced",
            extra={"audit_data": {"session": session.describe() if session else None}},
        )

    def apply_configuration(self, config: Configuration) -> None:
        """Rebuild the session from one configuration.

        Profile-based Bedrock configurations clear the session and resolve
        in the background; this must then be called from a running loop.
        """
        token = self._next_token()
        if config.provider_enum is Provider.AWS_BEDROCK and config.has_aws_profile():
            self._replace_session(None)
            loop = asyncio.get_running_loop()
            self.pending_resolution = loop.create_task(self._resolve_profile_session(config, token))
            return
        self._replace_session(self._builder.build(config))

    async def _resolve_profile_session(self, config: Configuration, token: int) -> None:
        session = await self._builder.build_async(config)
        if token != self._session_token:
            get_audit_logger().info(
                "Discarded stale profile resolution",
                extra={"audit_data": {"configuration_id": config.id}},
            )
            return
        self._replace_session(session)

    def rebuild_active_session(self) -> None:
        """Rebuild from the active configuration, else from legacy settings."""
        config = self._settings_store.active_configuration()
        if config is not None:
            self.apply_configuration(config)
            return
        self._next_token()
        self._replace_session(self._builder.build_legacy())

    def clear_active_session(self) -> None:
        self._next_token()
        self._replace_session(None)

    # --- Captured context ---

    def capture_clipboard_context(self, text: str | None) -> None:
        self.last_captured_clipboard = text

    def capture_screen_context(self, text: str | None) -> None:
        self.last_captured_screen_text = text

    def clear_captured_contexts(self) -> None:
        self.last_captured_clipboard = None
        self.last_captured_screen_text = None

    async def _context_snapshot(self, settings: AppSettings) -> ContextSnapshot:
        selected = None
        if settings.use_selected_text_context and self._selected_text_source is not None:
            selected = await self._selected_text_source()
        return ContextSnapshot(
            selected_text=selected,
            clipboard=self.last_captured_clipboard,
            screen_text=self.last_captured_screen_text,
        )

    # --- Requests ---

    async def make_request(self, text: str) -> str:
        session = self._active_session
        if session is None:
            raise NotConfigured()

        if not text:
            return ""

        settings = self._settings_store.load()
        context = await self._context_snapshot(settings)
        system_message = build_system_message(settings.active_prompt, settings, context)
        user_message = format_transcript(text)
        self.last_request = RequestSnapshot(system_message, user_message)

        logger = get_audit_logger()
        logger.info(
            "Enhancement request",
            extra={"audit_data": {
                "provider": session.provider.value,
                "model": session.model,
                "system_message": system_message,
                "user_message": user_message,
            }},
        )

        await self._rate_limiter.acquire()

        app_settings = get_settings()
        provider = self._provider_factory(session.provider)
        try:
            raw = await call_with_retry(
                lambda: provider.complete(session, system_message, user_message),
                max_attempts=app_settings.max_attempts,
                initial_delay=app_settings.initial_retry_delay,
                sleep=self._retry_sleep,
            )
        except EnhancementError as e:
            _log_failure(session, e)
            raise
        except OSError as e:
            error = CustomError(str(e))
            _log_failure(session, error)
            raise error from e

        return filter_output(raw)

    async def enhance(self, text: str) -> EnhancementResult:
        """Enhance one transcript. Raises NotConfigured without a session."""
        request_id_var.set(generate_request_id())
        prompt = self._settings_store.load().active_prompt
        prompt_name = prompt.title if prompt else None

        with RequestTimer() as timer:
            result = await self.make_request(text)

        if text:
            get_audit_logger().info(
                "Enhancement completed",
                extra={"audit_data": {"latency_ms": timer.elapsed_ms, "prompt": prompt_name}},
            )
        return EnhancementResult(result, timer.elapsed, prompt_name)
