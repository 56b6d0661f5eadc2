"""Local control API for the dictation app.

The desktop UI drives the enhancement pipeline through these endpoints;
they are thin wrappers over EnhancementService and
ConfigurationValidationService, which live on `app.state`.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dictation_ai.aws.profiles import AWSProfileResolver
from dictation_ai.enhancement.service import EnhancementService
from dictation_ai.errors import EnhancementError
from dictation_ai.logging.audit import get_audit_logger, setup_logging
from dictation_ai.providers.registry import close_all_providers
from dictation_ai.store.factory import get_secret_store, get_settings_store
from dictation_ai.validation.probe import ConfigurationProber
from dictation_ai.validation.service import ConfigurationValidationService

VERSION = "0.6.0"


class EnhanceRequest(BaseModel):
    text: str


class EnhanceResponse(BaseModel):
    text: str
    elapsed_seconds: float
    prompt_name: str | None


def build_services(app: FastAPI) -> None:
    """Wire stores, resolver and services onto app.state."""
    settings_store = get_settings_store()
    secret_store = get_secret_store()
    resolver = AWSProfileResolver()

    enhancement = EnhancementService(settings_store, secret_store, profile_resolver=resolver)
    validation = ConfigurationValidationService(
        settings_store,
        secret_store,
        ConfigurationProber(enhancement.session_builder),
        enhancement_service=enhancement,
    )

    app.state.profile_resolver = resolver
    app.state.enhancement = enhancement
    app.state.validation = validation


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    build_services(app)
    app.state.enhancement.rebuild_active_session()
    get_audit_logger().info("Enhancement service started")
    yield
    app.state.validation.cancel_validation()
    await close_all_providers()
    get_audit_logger().info("Enhancement service stopped")


app = FastAPI(
    title="Dictation AI",
    description="AI enhancement pipeline for dictated text",
    version=VERSION,
    lifespan=lifespan,
)


@app.exception_handler(EnhancementError)
async def enhancement_error_handler(request: Request, exc: EnhancementError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "type": type(exc).__name__},
    )


@app.get("/health")
async def health(request: Request):
    return {
        "status": "healthy",
        "version": VERSION,
        "configured": request.app.state.enhancement.is_configured,
    }


@app.post("/v1/enhance", response_model=EnhanceResponse)
async def enhance(body: EnhanceRequest, request: Request):
    result = await request.app.state.enhancement.enhance(body.text)
    return EnhanceResponse(text=result.text, elapsed_seconds=result.elapsed, prompt_name=result.prompt_name)


@app.get("/v1/session")
async def active_session(request: Request):
    session = request.app.state.enhancement.active_session
    return {"session": session.describe() if session else None}


@app.get("/v1/last-request")
async def last_request(request: Request):
    snapshot = request.app.state.enhancement.last_request
    if snapshot is None:
        return {"system_message": None, "user_message": None}
    return {"system_message": snapshot.system_message, "user_message": snapshot.user_message}


@app.get("/v1/aws/profiles")
async def aws_profiles(request: Request):
    return {"profiles": request.app.state.profile_resolver.list_profiles()}


@app.post("/v1/configurations/{config_id}/switch", status_code=202)
async def switch_configuration(config_id: str, request: Request):
    validation: ConfigurationValidationService = request.app.state.validation
    task = validation.switch_to_configuration(config_id)
    if task is None:
        raise HTTPException(status_code=422, detail=validation.state()["error"])
    return validation.state()


@app.get("/v1/validation")
async def validation_state(request: Request):
    return request.app.state.validation.state()


@app.post("/v1/validation/cancel")
async def cancel_validation(request: Request):
    request.app.state.validation.cancel_validation()
    return request.app.state.validation.state()


@app.delete("/v1/validation/error")
async def clear_validation_error(request: Request):
    request.app.state.validation.clear_error()
    return request.app.state.validation.state()
