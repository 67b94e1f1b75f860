from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sermon_helper.api.routes import router
from sermon_helper.audit.usage import UsageLogger
from sermon_helper.budget.quota import QuotaGuard
from sermon_helper.config.settings import Settings, get_settings
from sermon_helper.core.errors import AppError, app_error_response, request_id_from_request
from sermon_helper.core.logging import configure_logging
from sermon_helper.crypto.secrets import cipher_from_settings
from sermon_helper.guards.credentials import CredentialResolver
from sermon_helper.metrics import metrics_router
from sermon_helper.middleware.auth import AuthMiddleware
from sermon_helper.middleware.request_id import RequestIDMiddleware
from sermon_helper.providers.base import ChatProvider
from sermon_helper.providers.http_openai import HTTPOpenAIProvider
from sermon_helper.providers.stub import StubProvider
from sermon_helper.services.pipeline import SermonHelperPipeline
from sermon_helper.storage.postgres import PostgresGuardrailStore
from sermon_helper.storage.sqlite import SQLiteGuardrailStore


def _build_store(settings: Settings) -> SQLiteGuardrailStore | PostgresGuardrailStore:
    backend = settings.database_backend_normalized
    if backend == "sqlite":
        return SQLiteGuardrailStore(path=settings.database_path)
    if backend == "postgres":
        if not settings.database_dsn:
            raise RuntimeError("SHG_DATABASE_DSN is required when database_backend=postgres")
        return PostgresGuardrailStore(dsn=settings.database_dsn)
    raise RuntimeError(f"Unsupported SHG_DATABASE_BACKEND value: {settings.database_backend}")


def _build_provider(settings: Settings) -> ChatProvider:
    name = settings.provider_name_normalized
    if name in {"openai", "openai_compatible"}:
        return HTTPOpenAIProvider(
            base_url=settings.provider_base_url,
            timeout_s=settings.provider_timeout_s,
        )
    if name == "stub":
        return StubProvider()
    raise RuntimeError(f"Unsupported SHG_PROVIDER_NAME value: {settings.provider_name}")


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Sermon Helper Guard", version="0.1.0")

    app.add_middleware(AuthMiddleware)
    app.add_middleware(RequestIDMiddleware)

    store = _build_store(settings)
    quota_guard = QuotaGuard(
        tenant_store=store,
        usage_store=store,
        timezone=settings.quota_timezone,
    )
    pipeline = SermonHelperPipeline(
        settings=settings,
        credentials=CredentialResolver(
            deploy_env=settings.deploy_env,
            cipher=cipher_from_settings(settings),
            settings_store=store,
        ),
        quota=quota_guard,
        provider=_build_provider(settings),
        usage_logger=UsageLogger(store),
    )

    app.state.settings = settings
    app.state.store = store
    app.state.profile_store = store
    app.state.usage_store = store
    app.state.quota_guard = quota_guard
    app.state.pipeline = pipeline

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        request_id = request_id_from_request(request)
        return app_error_response(
            exc.status_code, exc.code, exc.error_type, exc.message, request_id
        )

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        request_id = request_id_from_request(request)
        return app_error_response(
            422, "request_validation_failed", "validation", str(exc), request_id
        )

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, _: Exception) -> JSONResponse:
        request_id = request_id_from_request(request)
        return app_error_response(
            500, "internal_error", "internal", "Internal server error", request_id
        )

    app.include_router(router)
    if settings.metrics_enabled:
        app.include_router(metrics_router)
    return app
